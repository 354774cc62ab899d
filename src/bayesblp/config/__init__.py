from bayesblp.config.config import get_args
from bayesblp.config.estimation import Config, MAPConfig, PriorConfig, SamplerConfig
from bayesblp.config.simulation import SimConfig

__all__ = [
    "Config",
    "MAPConfig",
    "PriorConfig",
    "SamplerConfig",
    "SimConfig",
    "get_args",
]
