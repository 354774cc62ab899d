from __future__ import annotations

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class SimConfig:
    """Fake-data design: panel dimensions and the distributions of the truth."""

    # Panel dimensions
    n_draws: int = 500  # NS simulated individuals per market
    n_products: int = 10  # J
    n_markets: int = 20  # T
    n_covariates: int = 3  # P

    # LKJ concentration for the random-coefficient correlation matrix,
    # also used as the prior concentration when estimating
    lkj_concentration: float = 4.0

    seed: int = 123

    # Market size ~ U{low, ..., high}
    market_size_low: int = 1000
    market_size_high: int = 5000

    # True structural parameters
    alpha_loc: float = -1.0  # mean price sensitivity
    alpha_sd: float = 0.2
    coef_sd: float = 0.5  # beta and gamma
    gamma0_loc: float = 3.0  # price equation intercept
    gamma0_sd: float = 0.5
    loading_loc: float = 0.5  # lambda, strength of endogeneity
    loading_sd: float = 0.2
    price_scale: float = 0.5
    tau_scale: float = 0.5  # half-normal scale of random-coefficient sds

    # Exogenous data
    characteristics_sd: float = 1.0
    xi_sd: float = 1.0

    def __post_init__(self) -> None:
        self._validate_positive_ints()
        self._validate_positive_floats()
        if self.market_size_high < self.market_size_low:
            raise ValueError("market_size_high must be >= market_size_low")
        if self.seed < 0:
            raise ValueError("seed must be non-negative")

    def _validate_positive_ints(self) -> None:
        for name, val in (
            ("n_draws", self.n_draws),
            ("n_products", self.n_products),
            ("n_markets", self.n_markets),
            ("n_covariates", self.n_covariates),
            ("market_size_low", self.market_size_low),
        ):
            if val <= 0:
                raise ValueError(f"{name} must be a positive integer")

    def _validate_positive_floats(self) -> None:
        for name, val in (
            ("lkj_concentration", self.lkj_concentration),
            ("alpha_sd", self.alpha_sd),
            ("coef_sd", self.coef_sd),
            ("gamma0_sd", self.gamma0_sd),
            ("loading_sd", self.loading_sd),
            ("price_scale", self.price_scale),
            ("tau_scale", self.tau_scale),
            ("characteristics_sd", self.characteristics_sd),
            ("xi_sd", self.xi_sd),
        ):
            if val <= 0:
                raise ValueError(f"{name} must be positive")

    @classmethod
    def from_args(cls, args):
        """Create a SimConfig from argparse.Namespace."""
        kwargs = {}
        for f in fields(cls):
            arg_val = getattr(args, f.name, None)
            kwargs[f.name] = f.default if arg_val is None else arg_val
        return cls(**kwargs)
