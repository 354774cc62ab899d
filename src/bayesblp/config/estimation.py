from __future__ import annotations

from dataclasses import dataclass, field, fields

from bayesblp.config.simulation import SimConfig


@dataclass
class PriorConfig:
    """Prior scales for the joint log-density."""

    alpha_loc: float = -1.0
    alpha_scale: float = 1.0
    coef_scale: float = 1.0  # beta and gamma
    intercept_scale: float = 5.0  # gamma0
    loading_scale: float = 1.0  # lambda
    price_scale_scale: float = 1.0  # half-normal
    tau_scale: float = 1.0  # half-normal
    xi_scale: float = 1.0

    def __post_init__(self) -> None:
        for f in fields(self):
            if f.name == "alpha_loc":
                continue
            if getattr(self, f.name) <= 0:
                raise ValueError(f"{f.name} must be positive")


@dataclass
class MAPConfig:
    """L-BFGS settings for the posterior mode."""

    max_iterations: int = 1000
    tolerance: float = 1e-8
    num_correction_pairs: int = 10

    def __post_init__(self) -> None:
        if self.max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        if self.tolerance <= 0:
            raise ValueError("tolerance must be positive")
        if self.num_correction_pairs <= 0:
            raise ValueError("num_correction_pairs must be positive")

    @classmethod
    def from_args(cls, args):
        """Create a MAPConfig from argparse.Namespace."""
        kwargs = {}
        for f in fields(cls):
            arg_val = getattr(args, f.name, None)
            kwargs[f.name] = f.default if arg_val is None else arg_val
        return cls(**kwargs)


@dataclass
class SamplerConfig:
    """No-U-Turn sampler settings."""

    num_results: int = 500
    num_burnin_steps: int = 500
    num_chains: int = 4
    step_size: float = 0.01
    target_accept_prob: float = 0.8
    max_tree_depth: int = 8
    # Start every chain at the posterior mode
    init_from_map: bool = True
    chain_seed: int = 42

    def __post_init__(self) -> None:
        for name, val in (
            ("num_results", self.num_results),
            ("num_chains", self.num_chains),
            ("max_tree_depth", self.max_tree_depth),
        ):
            if val <= 0:
                raise ValueError(f"{name} must be a positive integer")
        if self.num_burnin_steps < 0:
            raise ValueError("num_burnin_steps must be non-negative")
        if self.step_size <= 0:
            raise ValueError("step_size must be positive")
        if not 0 < self.target_accept_prob < 1:
            raise ValueError("target_accept_prob must be in (0, 1)")

    @classmethod
    def from_args(cls, args):
        """Create a SamplerConfig from argparse.Namespace."""
        kwargs = {}
        for f in fields(cls):
            arg_val = getattr(args, f.name, None)
            kwargs[f.name] = f.default if arg_val is None else arg_val
        return cls(**kwargs)


@dataclass
class Config:
    """Root configuration grouping simulation, prior and estimator settings."""

    sim: SimConfig = field(default_factory=SimConfig)
    prior: PriorConfig = field(default_factory=PriorConfig)
    map: MAPConfig = field(default_factory=MAPConfig)
    sampler: SamplerConfig = field(default_factory=SamplerConfig)
    method: str = "map"

    def __post_init__(self) -> None:
        if self.method not in {"map", "nuts"}:
            raise ValueError("method must be 'map' or 'nuts'")

    @classmethod
    def from_args(cls, args):
        """Create a Config from argparse.Namespace, falling back to defaults."""
        method = getattr(args, "method", None) or "map"
        return cls(
            sim=SimConfig.from_args(args),
            prior=PriorConfig(),
            map=MAPConfig.from_args(args),
            sampler=SamplerConfig.from_args(args),
            method=method,
        )
