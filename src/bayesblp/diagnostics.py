"""Recovery diagnostics: recovered vs true parameters, and data sanity checks."""

from __future__ import annotations

from typing import Dict, Sequence

import numpy as np
import pandas as pd

from bayesblp.data import MarketData, SimulatedDataset, StructuralParameters
from bayesblp.estimators.base import EstimationResult, element_labels
from bayesblp.shares import predicted_shares

STRUCTURAL = ("alpha", "beta", "gamma0", "gamma", "lam", "price_scale", "tau", "omega")


def summarize_vec(estimate: np.ndarray, true_val: np.ndarray) -> Dict[str, float]:
    """Bias, RMSE and correlation of an estimated vector against the truth."""
    est = np.ravel(np.asarray(estimate, dtype=np.float64))
    true = np.ravel(np.asarray(true_val, dtype=np.float64))
    if est.shape != true.shape:
        raise ValueError(f"shape mismatch: {est.shape} vs {true.shape}")
    keep = ~(np.isnan(est) | np.isnan(true))
    est, true = est[keep], true[keep]
    if est.size == 0:
        return {"bias": np.nan, "rmse": np.nan, "corr": np.nan, "n": 0}
    err = est - true
    corr = np.nan
    if est.size > 1 and np.std(est) > 0 and np.std(true) > 0:
        corr = float(np.corrcoef(est, true)[0, 1])
    return {
        "bias": float(np.mean(err)),
        "rmse": float(np.sqrt(np.mean(err * err))),
        "corr": corr,
        "n": int(est.size),
    }


def _truth_values(truth: StructuralParameters) -> Dict[str, np.ndarray]:
    return {
        "alpha": np.asarray(truth.alpha),
        "beta": truth.beta,
        "gamma0": np.asarray(truth.gamma0),
        "gamma": truth.gamma,
        "lam": np.asarray(truth.lam),
        "price_scale": np.asarray(truth.price_scale),
        "tau": truth.tau,
        "omega": truth.omega,
        "xi": truth.xi,
    }


def recovery_frame(result: EstimationResult, truth: StructuralParameters) -> pd.DataFrame:
    """One row per structural parameter element: true, estimate, error and
    posterior interval coverage when draws are available.

    The demand shocks are summarised separately by ``summarize_vec`` since
    there are T x J of them.
    """
    summary = result.summary()
    true_vals = _truth_values(truth)
    rows = []
    for name in STRUCTURAL:
        true = np.asarray(true_vals[name], dtype=np.float64)
        if name == "omega":
            # Diagonal is fixed at one and the matrix is symmetric
            idx = np.tril_indices(true.shape[0], k=-1)
            labels = [f"omega[{i},{j}]" for i, j in zip(*idx, strict=True)]
            values = true[idx]
        else:
            labels = element_labels(name, true.shape)
            values = true.ravel()
        for label, tv in zip(labels, values, strict=True):
            row = summary.loc[label]
            covered = np.nan
            if np.isfinite(row["q05"]) and np.isfinite(row["q95"]):
                covered = bool(row["q05"] <= tv <= row["q95"])
            rows.append(
                {
                    "parameter": label,
                    "true": float(tv),
                    "estimate": float(row["mean"]),
                    "error": float(row["mean"] - tv),
                    "q05": float(row["q05"]),
                    "q95": float(row["q95"]),
                    "covered": covered,
                }
            )
    return pd.DataFrame(rows).set_index("parameter")


def data_diagnostics(dataset: SimulatedDataset) -> Dict[str, float]:
    """Quick checks that the simulated design is informative.

    A tiny outside share or zero sales everywhere leave the taste parameters
    weakly identified; corr(price, xi) measures the endogeneity built in.
    """
    data = dataset.data
    xi = dataset.truth.xi
    return {
        "mean_outside_share": float(data.observed_shares[:, 0].mean()),
        "min_inside_share": float(data.observed_shares[:, 1:].min()),
        "frac_zero_sales": float(np.mean(data.sales[:, 1:] == 0)),
        "mean_price": float(data.prices.mean()),
        "min_price": float(data.prices.min()),
        "corr_price_xi": float(np.corrcoef(data.prices.ravel(), xi.ravel())[0, 1]),
    }


def share_draw_variance(
    data: MarketData,
    params: StructuralParameters,
    n_draws_grid: Sequence[int],
    n_repeats: int = 20,
    seed: int = 0,
) -> pd.DataFrame:
    """Monte Carlo variance of predicted shares as the number of individuals grows.

    For each NS, recompute shares ``n_repeats`` times with fresh standard
    normal draws and average the across-repeat variance over all markets and
    options.
    """
    if params.xi is None:
        raise ValueError("params.xi is required to compute shares")
    if n_repeats < 2:
        raise ValueError("n_repeats must be at least 2")
    rng = np.random.default_rng(seed)
    T, P1 = data.n_markets, data.n_covariates + 1

    rows = []
    for ns in n_draws_grid:
        if ns <= 0:
            raise ValueError("every entry of n_draws_grid must be positive")
        reps = np.stack(
            [
                predicted_shares(
                    params.alpha,
                    params.beta,
                    data.price_characteristics,
                    params.cov,
                    params.xi,
                    rng.standard_normal(size=(T, ns, P1)),
                ).numpy()
                for _ in range(n_repeats)
            ]
        )
        rows.append({"n_draws": int(ns), "variance": float(reps.var(axis=0, ddof=1).mean())})
    return pd.DataFrame(rows)
