"""Shared fixtures: small simulated panels reused across test modules."""

import numpy as np
import pytest

from bayesblp.config import SimConfig
from bayesblp.data import MarketData
from bayesblp.simulation import simulate_dataset


@pytest.fixture(scope="session")
def tiny_config() -> SimConfig:
    return SimConfig(n_draws=40, n_products=3, n_markets=4, n_covariates=1, seed=7)


@pytest.fixture(scope="session")
def tiny_dataset(tiny_config):
    return simulate_dataset(tiny_config)


@pytest.fixture(scope="session")
def large_dataset():
    cfg = SimConfig(n_draws=200, n_products=5, n_markets=30, n_covariates=2, seed=11)
    return simulate_dataset(cfg)


@pytest.fixture
def random_market_inputs():
    """Arbitrary but valid share inputs for T=3 markets, J=4, P=2, NS=30."""
    rng = np.random.default_rng(0)
    T, J, P, NS = 3, 4, 2, 30
    A = rng.normal(size=(P + 1, P + 1))
    return {
        "alpha": -1.2,
        "beta": rng.normal(size=P),
        "price_characteristics": np.concatenate(
            [rng.uniform(0.5, 3.0, size=(T, J, 1)), rng.normal(size=(T, J, P))], axis=-1
        ),
        "cov": A @ A.T + 0.1 * np.eye(P + 1),
        "xi": rng.normal(size=(T, J)),
        "draws": rng.standard_normal(size=(T, NS, P + 1)),
    }


def _make_market_data(T=2, J=3, P=1, NS=5, seed=0) -> MarketData:
    rng = np.random.default_rng(seed)
    sales = rng.integers(1, 50, size=(T, J + 1))
    return MarketData(
        characteristics=rng.normal(size=(T, J, P)),
        prices=rng.uniform(0.5, 2.0, size=(T, J)),
        sales=sales,
        draws=rng.standard_normal(size=(T, NS, P + 1)),
    )


@pytest.fixture
def make_market_data():
    """Factory for small valid MarketData blocks."""
    return _make_market_data
