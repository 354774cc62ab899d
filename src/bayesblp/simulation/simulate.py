"""Dataset simulator: one pass over T markets with a shared set of true parameters."""

from __future__ import annotations

import logging

import numpy as np

from bayesblp.config import SimConfig
from bayesblp.data import MarketData, SimulatedDataset
from bayesblp.simulation.dgp import draw_characteristics, draw_true_parameters
from bayesblp.simulation.market import simulate_market

logger = logging.getLogger(__name__)


def simulate_dataset(cfg: SimConfig, seed: int | None = None) -> SimulatedDataset:
    """Simulate T markets and return the observed data alongside the truth."""
    rng = np.random.default_rng(cfg.seed if seed is None else seed)

    truth = draw_true_parameters(cfg, rng)
    characteristics = draw_characteristics(cfg, rng)
    markets = [simulate_market(characteristics[t], truth, cfg, rng) for t in range(cfg.n_markets)]

    truth.xi = np.stack([m["xi"] for m in markets])
    data = MarketData(
        characteristics=characteristics,
        prices=np.stack([m["price"] for m in markets]),
        sales=np.stack([m["sales"] for m in markets]),
        draws=np.stack([m["draws"] for m in markets]),
        lkj_concentration=cfg.lkj_concentration,
    )
    shares = np.stack([m["shares"] for m in markets])

    logger.info(
        "Simulated %d markets x %d products (P=%d, NS=%d), mean outside share %.3f",
        data.n_markets,
        data.n_products,
        data.n_covariates,
        data.n_draws,
        float(shares[:, 0].mean()),
    )
    return SimulatedDataset(data=data, truth=truth, shares=shares)
