"""Containers for the simulated panel and the structural parameters.

``MarketData`` is what the estimator sees: characteristics, prices, sales and
the simulated individuals used to integrate over taste heterogeneity.
``StructuralParameters`` holds a full parameter vector, either the truth from
the data generating process or a point estimate.

Shapes (T markets, J products, P characteristics, NS individuals):

- characteristics: [T, J, P]
- prices:          [T, J]
- sales:           [T, J + 1], column 0 is the outside good
- draws:           [T, NS, P + 1]
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import numpy as np
import pandas as pd


@dataclass
class MarketData:
    characteristics: np.ndarray
    prices: np.ndarray
    sales: np.ndarray
    draws: np.ndarray
    lkj_concentration: float = 4.0

    def __post_init__(self) -> None:
        self.characteristics = np.asarray(self.characteristics, dtype=np.float64)
        self.prices = np.asarray(self.prices, dtype=np.float64)
        self.sales = np.asarray(self.sales, dtype=np.int64)
        self.draws = np.asarray(self.draws, dtype=np.float64)
        self._validate_shapes()
        self._validate_values()

    def _validate_shapes(self) -> None:
        if self.characteristics.ndim != 3:
            raise ValueError("characteristics must have shape [T, J, P]")
        T, J, P = self.characteristics.shape
        if self.prices.shape != (T, J):
            raise ValueError(f"prices must have shape {(T, J)}, got {self.prices.shape}")
        if self.sales.shape != (T, J + 1):
            raise ValueError(
                f"sales must have shape {(T, J + 1)} (outside good first), got {self.sales.shape}"
            )
        if self.draws.ndim != 3 or self.draws.shape[0] != T or self.draws.shape[2] != P + 1:
            raise ValueError(f"draws must have shape [{T}, NS, {P + 1}], got {self.draws.shape}")

    def _validate_values(self) -> None:
        if np.any(self.prices < 0):
            raise ValueError("prices must be non-negative")
        if np.any(self.sales < 0):
            raise ValueError("sales must be non-negative counts")
        if np.any(self.market_sizes <= 0):
            raise ValueError("every market needs at least one observed purchase decision")
        if self.lkj_concentration <= 0:
            raise ValueError("lkj_concentration must be positive")

    @property
    def n_markets(self) -> int:
        return self.characteristics.shape[0]

    @property
    def n_products(self) -> int:
        return self.characteristics.shape[1]

    @property
    def n_covariates(self) -> int:
        return self.characteristics.shape[2]

    @property
    def n_draws(self) -> int:
        return self.draws.shape[1]

    @property
    def market_sizes(self) -> np.ndarray:
        return self.sales.sum(axis=1)

    @property
    def observed_shares(self) -> np.ndarray:
        return self.sales / self.market_sizes[:, None]

    @property
    def price_characteristics(self) -> np.ndarray:
        """[T, J, P + 1] with price in column 0, the regressors that carry random coefficients."""
        return np.concatenate([self.prices[..., None], self.characteristics], axis=-1)

    def to_frame(self) -> pd.DataFrame:
        """Long format, one row per product-market (outside good excluded)."""
        T, J, P = self.characteristics.shape
        market, product = np.meshgrid(np.arange(T), np.arange(J), indexing="ij")
        frame = pd.DataFrame(
            {
                "market_id": market.ravel(),
                "product_id": product.ravel(),
                "price": self.prices.ravel(),
                "sales": self.sales[:, 1:].ravel(),
                "share": self.observed_shares[:, 1:].ravel(),
                "market_size": np.repeat(self.market_sizes, J),
            }
        )
        for k in range(P):
            frame[f"x{k}"] = self.characteristics[..., k].ravel()
        return frame


@dataclass
class StructuralParameters:
    alpha: float
    beta: np.ndarray
    gamma0: float
    gamma: np.ndarray
    lam: float
    price_scale: float
    tau: np.ndarray
    omega: np.ndarray
    xi: Optional[np.ndarray] = None

    def __post_init__(self) -> None:
        self.beta = np.asarray(self.beta, dtype=np.float64)
        self.gamma = np.asarray(self.gamma, dtype=np.float64)
        self.tau = np.asarray(self.tau, dtype=np.float64)
        self.omega = np.asarray(self.omega, dtype=np.float64)
        if self.xi is not None:
            self.xi = np.asarray(self.xi, dtype=np.float64)
        P = self.beta.shape[0]
        if self.gamma.shape != (P,):
            raise ValueError("gamma must have the same length as beta")
        if self.tau.shape != (P + 1,) or self.omega.shape != (P + 1, P + 1):
            raise ValueError("tau and omega must cover price plus every characteristic")
        if self.price_scale <= 0:
            raise ValueError("price_scale must be positive")

    @property
    def cov(self) -> np.ndarray:
        return self.tau[:, None] * self.omega * self.tau[None, :]

    @property
    def chol(self) -> np.ndarray:
        return self.tau[:, None] * np.linalg.cholesky(self.omega)

    def as_state(self) -> Dict[str, np.ndarray]:
        """Flat mapping keyed by the model's parameter names."""
        if self.xi is None:
            raise ValueError("xi is required to build a full model state")
        return {
            "alpha": np.float64(self.alpha),
            "beta": self.beta,
            "gamma0": np.float64(self.gamma0),
            "gamma": self.gamma,
            "lam": np.float64(self.lam),
            "price_scale": np.float64(self.price_scale),
            "tau": self.tau,
            "L_omega": np.linalg.cholesky(self.omega),
            "xi": self.xi,
        }

    @classmethod
    def from_state(cls, state: Dict[str, np.ndarray]) -> "StructuralParameters":
        L = np.asarray(state["L_omega"], dtype=np.float64)
        return cls(
            alpha=float(state["alpha"]),
            beta=state["beta"],
            gamma0=float(state["gamma0"]),
            gamma=state["gamma"],
            lam=float(state["lam"]),
            price_scale=float(state["price_scale"]),
            tau=state["tau"],
            omega=L @ L.T,
            xi=state.get("xi"),
        )


@dataclass
class SimulatedDataset:
    data: MarketData
    truth: StructuralParameters
    shares: np.ndarray  # [T, J + 1] true predicted shares
