from __future__ import annotations

from typing import Optional

from bayesblp.config import Config
from bayesblp.estimators.base import EstimationResult, Estimator
from bayesblp.estimators.map import MAPEstimator
from bayesblp.estimators.nuts import NUTSEstimator

ESTIMATORS = {
    MAPEstimator.name: MAPEstimator,
    NUTSEstimator.name: NUTSEstimator,
}


def get_estimator(name: str, config: Optional[Config] = None) -> Estimator:
    """Resolve an estimator strategy by name ("map" or "nuts")."""
    config = config or Config()
    key = name.lower().strip()
    if key not in ESTIMATORS:
        raise ValueError(f"Unknown estimator '{name}'. Available: {sorted(ESTIMATORS)}")
    if key == MAPEstimator.name:
        return MAPEstimator(config.map, config.prior)
    return NUTSEstimator(config.sampler, config.prior, config.map)


__all__ = [
    "ESTIMATORS",
    "EstimationResult",
    "Estimator",
    "MAPEstimator",
    "NUTSEstimator",
    "get_estimator",
]
