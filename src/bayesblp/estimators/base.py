from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd

from bayesblp.data import MarketData

QUANTILES = (0.05, 0.5, 0.95)


def with_derived(values: Dict[str, np.ndarray]) -> Dict[str, np.ndarray]:
    """Add omega = L L^T and cov = diag(tau) omega diag(tau).

    Works for a single state and for draws with leading sample dimensions.
    """
    out = {name: np.asarray(v, dtype=np.float64) for name, v in values.items()}
    L = out["L_omega"]
    tau = out["tau"]
    omega = L @ np.swapaxes(L, -1, -2)
    out["omega"] = omega
    out["cov"] = tau[..., :, None] * omega * tau[..., None, :]
    return out


def element_labels(name: str, shape) -> list[str]:
    if len(shape) == 0:
        return [name]
    return [f"{name}[{','.join(str(i) for i in idx)}]" for idx in np.ndindex(*shape)]


@dataclass
class EstimationResult:
    """Output of any estimator: point estimates, optional draws, engine diagnostics."""

    method: str
    estimates: Dict[str, np.ndarray]
    samples: Optional[Dict[str, np.ndarray]] = None  # [num_results, num_chains, ...]
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    def summary(self) -> pd.DataFrame:
        """One row per scalar parameter element.

        Columns: mean, sd, q05, q50, q95, r_hat, ess. Posterior spread
        columns are NaN for point estimators.
        """
        r_hat = self.diagnostics.get("r_hat", {})
        ess = self.diagnostics.get("ess", {})
        rows = []
        for name, est in self.estimates.items():
            est = np.asarray(est)
            labels = element_labels(name, est.shape)
            if self.samples is not None and name in self.samples:
                draws = np.asarray(self.samples[name])
                flat = draws.reshape(draws.shape[0] * draws.shape[1], -1)
                sd = flat.std(axis=0, ddof=1)
                qs = np.quantile(flat, QUANTILES, axis=0)
            else:
                sd = np.full(est.size, np.nan)
                qs = np.full((len(QUANTILES), est.size), np.nan)
            rh = np.ravel(r_hat[name]) if name in r_hat else np.full(est.size, np.nan)
            es = np.ravel(ess[name]) if name in ess else np.full(est.size, np.nan)
            for i, label in enumerate(labels):
                rows.append(
                    {
                        "parameter": label,
                        "mean": float(est.ravel()[i]),
                        "sd": float(sd[i]),
                        "q05": float(qs[0, i]),
                        "q50": float(qs[1, i]),
                        "q95": float(qs[2, i]),
                        "r_hat": float(rh[i]),
                        "ess": float(es[i]),
                    }
                )
        return pd.DataFrame(rows).set_index("parameter")


class Estimator(ABC):
    """Strategy interface: hand a ``MarketData`` block to an inference engine."""

    name: str = ""

    @abstractmethod
    def fit(self, data: MarketData) -> EstimationResult:
        raise NotImplementedError
