"""Draws of the true structural parameters and the exogenous characteristics.

The random-coefficient covariance is built the usual way for LKJ models:

    Sigma = diag(tau) Omega diag(tau),   Omega ~ LKJ(P + 1, nu),   tau ~ |N(0, s^2)|

where the first coordinate of every (P + 1)-vector is price.
"""

from __future__ import annotations

import numpy as np

from bayesblp.config import SimConfig
from bayesblp.data import StructuralParameters
from bayesblp.distributions import correlation_distribution
from bayesblp.utils import tfp_seed


def draw_correlation(dimension: int, concentration: float, rng: np.random.Generator) -> np.ndarray:
    """One LKJ correlation matrix, symmetrised with an exact unit diagonal."""
    omega = correlation_distribution(dimension, concentration).sample(seed=tfp_seed(rng)).numpy()
    omega = 0.5 * (omega + omega.T)
    np.fill_diagonal(omega, 1.0)
    return omega


def draw_true_parameters(cfg: SimConfig, rng: np.random.Generator) -> StructuralParameters:
    """Draw (alpha, beta, gamma0, gamma, lambda, tau, Omega) from their fixed distributions."""
    P = cfg.n_covariates

    alpha = rng.normal(cfg.alpha_loc, cfg.alpha_sd)
    beta = rng.normal(0.0, cfg.coef_sd, size=P)
    gamma0 = rng.normal(cfg.gamma0_loc, cfg.gamma0_sd)
    gamma = rng.normal(0.0, cfg.coef_sd, size=P)
    lam = rng.normal(cfg.loading_loc, cfg.loading_sd)
    tau = np.abs(rng.normal(0.0, cfg.tau_scale, size=P + 1))
    omega = draw_correlation(P + 1, cfg.lkj_concentration, rng)

    return StructuralParameters(
        alpha=float(alpha),
        beta=beta,
        gamma0=float(gamma0),
        gamma=gamma,
        lam=float(lam),
        price_scale=cfg.price_scale,
        tau=tau,
        omega=omega,
    )


def draw_characteristics(cfg: SimConfig, rng: np.random.Generator) -> np.ndarray:
    """J x P characteristics, replicated identically across the T markets.

    Returns:
        [T, J, P] float array.
    """
    base = rng.normal(0.0, cfg.characteristics_sd, size=(cfg.n_products, cfg.n_covariates))
    return np.tile(base[None, :, :], (cfg.n_markets, 1, 1))
