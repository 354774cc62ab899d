"""Single-market simulator: demand shocks, endogenous prices, shares and sales."""

from __future__ import annotations

import numpy as np

from bayesblp.config import SimConfig
from bayesblp.data import StructuralParameters
from bayesblp.distributions import price_mean, sales_distribution, truncated_price_distribution
from bayesblp.shares import shares_from_factor, stack_price_characteristics
from bayesblp.utils import tfp_seed


def simulate_prices(
    characteristics: np.ndarray,
    xi: np.ndarray,
    params: StructuralParameters,
    rng: np.random.Generator,
) -> np.ndarray:
    """Truncated-normal prices whose mean loads on the demand shock.

    Args:
        characteristics: [J, P]
        xi: [J] demand shocks

    Returns:
        [J] non-negative prices.
    """
    if params.price_scale <= 0:
        raise ValueError("price_scale must be positive")
    loc = price_mean(params.gamma0, params.gamma, params.lam, characteristics, xi)
    dist = truncated_price_distribution(loc, params.price_scale)
    return dist.sample(seed=tfp_seed(rng)).numpy().astype(float)


def simulate_sales(shares: np.ndarray, market_size: int, rng: np.random.Generator) -> np.ndarray:
    """Multinomial unit sales over the J + 1 options, summing to market_size."""
    shares = np.asarray(shares, dtype=np.float64)
    # softmax averages can drift from 1 in the last bits
    shares = shares / shares.sum(axis=-1, keepdims=True)
    counts = sales_distribution(market_size, shares).sample(seed=tfp_seed(rng)).numpy()
    return np.rint(counts).astype(np.int64)


def simulate_market(
    characteristics: np.ndarray,
    params: StructuralParameters,
    cfg: SimConfig,
    rng: np.random.Generator,
) -> dict:
    """Simulate a single market.

    Returns dict with keys:
        xi, price, draws, shares, market_size, sales
    """
    J, P = characteristics.shape

    # Demand shock, unobserved by the estimator
    xi = rng.normal(0.0, cfg.xi_sd, size=J)

    # Price is correlated with xi through the loading lambda
    price = simulate_prices(characteristics, xi, params, rng)

    # Individual taste draws, shared with the estimator
    draws = rng.standard_normal(size=(cfg.n_draws, P + 1))

    xp = stack_price_characteristics(price, characteristics)
    shares = shares_from_factor(params.alpha, params.beta, xp, params.chol, xi, draws).numpy()

    market_size = int(rng.integers(cfg.market_size_low, cfg.market_size_high + 1))
    sales = simulate_sales(shares, market_size, rng)

    return {
        "xi": xi,
        "price": price,
        "draws": draws,
        "shares": shares,
        "market_size": market_size,
        "sales": sales,
    }
