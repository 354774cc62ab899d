"""Posterior mode by L-BFGS over the unconstrained state.

Each state part is pushed through its constraining bijector before the log
posterior is evaluated, so scales stay positive and L_omega stays a valid
correlation Cholesky factor whatever the optimizer proposes. The objective is
the log posterior in the constrained space (no Jacobian term), which makes the
optimum the usual MAP estimate.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np
import tensorflow as tf
import tensorflow_probability as tfp

from bayesblp.config import MAPConfig, PriorConfig
from bayesblp.data import MarketData
from bayesblp.estimators.base import EstimationResult, Estimator, with_derived
from bayesblp.exceptions import EstimationError
from bayesblp.model import (
    PARAMETER_NAMES,
    constraining_bijectors,
    initial_state,
    make_target_log_prob_fn,
)

logger = logging.getLogger(__name__)


class MAPEstimator(Estimator):
    name = "map"

    def __init__(self, config: Optional[MAPConfig] = None, priors: Optional[PriorConfig] = None):
        self.config = config or MAPConfig()
        self.priors = priors or PriorConfig()

    def fit(self, data: MarketData, initial: Optional[Sequence[tf.Tensor]] = None) -> EstimationResult:
        cfg = self.config
        target = make_target_log_prob_fn(data, self.priors)
        bijectors = constraining_bijectors()
        start = list(initial) if initial is not None else initial_state(data, self.priors)

        unconstrained = [b.inverse(x) for b, x in zip(bijectors, start, strict=True)]
        shapes = [u.shape for u in unconstrained]
        sizes = [int(tf.size(u)) for u in unconstrained]

        def unpack(flat) -> List[tf.Tensor]:
            parts = tf.split(flat, sizes)
            return [
                b.forward(tf.reshape(p, s))
                for b, p, s in zip(bijectors, parts, shapes, strict=True)
            ]

        def neg_log_posterior(flat):
            return -target(*unpack(flat))

        @tf.function(autograph=False)
        def optimize(x0):
            return tfp.optimizer.lbfgs_minimize(
                lambda x: tfp.math.value_and_gradient(neg_log_posterior, x),
                initial_position=x0,
                num_correction_pairs=cfg.num_correction_pairs,
                tolerance=cfg.tolerance,
                max_iterations=cfg.max_iterations,
            )

        x0 = tf.concat([tf.reshape(u, [-1]) for u in unconstrained], axis=0)
        initial_objective = float(neg_log_posterior(x0).numpy())
        results = optimize(x0)

        state = {name: part.numpy() for name, part in zip(PARAMETER_NAMES, unpack(results.position), strict=True)}
        diagnostics = {
            "converged": bool(results.converged.numpy()),
            "failed": bool(results.failed.numpy()),
            "num_iterations": int(results.num_iterations.numpy()),
            "num_objective_evaluations": int(results.num_objective_evaluations.numpy()),
            "objective": float(results.objective_value.numpy()),
            "initial_objective": initial_objective,
        }

        if diagnostics["failed"] or not np.isfinite(diagnostics["objective"]):
            raise EstimationError(
                f"L-BFGS failed after {diagnostics['num_iterations']} iterations "
                f"(objective {diagnostics['objective']})",
                diagnostics,
            )
        if not diagnostics["converged"]:
            logger.warning(
                "L-BFGS did not converge within %d iterations (objective %.3f)",
                cfg.max_iterations,
                diagnostics["objective"],
            )
        else:
            logger.info(
                "L-BFGS converged in %d iterations, -log posterior %.3f -> %.3f",
                diagnostics["num_iterations"],
                initial_objective,
                diagnostics["objective"],
            )

        return EstimationResult(
            method=self.name,
            estimates=with_derived(state),
            samples=None,
            diagnostics=diagnostics,
        )
