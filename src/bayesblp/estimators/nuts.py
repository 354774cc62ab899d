"""Full posterior sampling with the No-U-Turn sampler.

Kernel stack (outermost first):

    DualAveragingStepSizeAdaptation
      -> TransformedTransitionKernel (constraining bijectors)
        -> NoUTurnSampler

Chains are run one after another, each with its own stateless seed, and the
draws are stacked to [num_results, num_chains, ...] before computing R-hat and
effective sample size.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import numpy as np
import tensorflow as tf
import tensorflow_probability as tfp
from tqdm import tqdm

from bayesblp.config import MAPConfig, PriorConfig, SamplerConfig
from bayesblp.data import MarketData
from bayesblp.estimators.base import EstimationResult, Estimator, with_derived
from bayesblp.estimators.map import MAPEstimator
from bayesblp.model import (
    PARAMETER_NAMES,
    constraining_bijectors,
    dict_to_state,
    initial_state,
    make_target_log_prob_fn,
)
from bayesblp.utils import tfp_seed

logger = logging.getLogger(__name__)

# Spread of the per-chain starting points in unconstrained space
INIT_JITTER = 0.1
R_HAT_WARN = 1.1


def _trace(_, pkr):
    nuts = pkr.inner_results.inner_results
    return (
        nuts.has_divergence,
        nuts.target_log_prob,
        nuts.log_accept_ratio,
        pkr.new_step_size,
    )


class NUTSEstimator(Estimator):
    name = "nuts"

    def __init__(
        self,
        config: Optional[SamplerConfig] = None,
        priors: Optional[PriorConfig] = None,
        map_config: Optional[MAPConfig] = None,
    ):
        self.config = config or SamplerConfig()
        self.priors = priors or PriorConfig()
        self.map_config = map_config or MAPConfig()

    def _kernel(self, target_log_prob_fn) -> tfp.mcmc.TransitionKernel:
        cfg = self.config
        nuts = tfp.mcmc.NoUTurnSampler(
            target_log_prob_fn=target_log_prob_fn,
            step_size=tf.constant(cfg.step_size, dtype=tf.float64),
            max_tree_depth=cfg.max_tree_depth,
        )
        transformed = tfp.mcmc.TransformedTransitionKernel(
            inner_kernel=nuts,
            bijector=constraining_bijectors(),
        )
        return tfp.mcmc.DualAveragingStepSizeAdaptation(
            inner_kernel=transformed,
            num_adaptation_steps=int(0.8 * cfg.num_burnin_steps),
            target_accept_prob=tf.constant(cfg.target_accept_prob, dtype=tf.float64),
            step_size_setter_fn=lambda pkr, new_step_size: pkr._replace(
                inner_results=pkr.inner_results._replace(step_size=new_step_size)
            ),
            step_size_getter_fn=lambda pkr: pkr.inner_results.step_size,
            log_accept_prob_getter_fn=lambda pkr: pkr.inner_results.log_accept_ratio,
        )

    def _starting_state(self, data: MarketData) -> List[tf.Tensor]:
        if not self.config.init_from_map:
            return initial_state(data, self.priors)
        logger.info("Initialising chains at the posterior mode")
        mode = MAPEstimator(self.map_config, self.priors).fit(data)
        return dict_to_state(mode.estimates)

    @staticmethod
    def _jitter(state: List[tf.Tensor], rng: np.random.Generator) -> List[tf.Tensor]:
        out = []
        for b, x in zip(constraining_bijectors(), state, strict=True):
            u = b.inverse(x)
            noise = rng.normal(0.0, INIT_JITTER, size=tuple(u.shape))
            out.append(b.forward(u + tf.constant(noise, dtype=tf.float64)))
        return out

    def fit(self, data: MarketData) -> EstimationResult:
        cfg = self.config
        target = make_target_log_prob_fn(data, self.priors)
        kernel = self._kernel(target)
        start = self._starting_state(data)
        rng = np.random.default_rng(cfg.chain_seed)

        @tf.function(autograph=False)
        def run_chain(current_state, seed):
            return tfp.mcmc.sample_chain(
                num_results=cfg.num_results,
                num_burnin_steps=cfg.num_burnin_steps,
                current_state=current_state,
                kernel=kernel,
                trace_fn=_trace,
                seed=seed,
            )

        chains: List[List[np.ndarray]] = []
        divergences, step_sizes, accept_rates = [], [], []
        for chain in tqdm(range(cfg.num_chains), desc="NUTS chains", unit="chain"):
            init = start if chain == 0 else self._jitter(start, rng)
            draws, (has_divergence, _, log_accept_ratio, step_size) = run_chain(init, tfp_seed(rng))
            chains.append([d.numpy() for d in draws])
            divergences.append(int(tf.reduce_sum(tf.cast(has_divergence, tf.int32)).numpy()))
            step_sizes.append(float(step_size[-1].numpy()))
            accept = tf.exp(tf.minimum(log_accept_ratio, 0.0))
            accept_rates.append(float(tf.reduce_mean(accept).numpy()))

        samples = {
            name: np.stack([c[i] for c in chains], axis=1)
            for i, name in enumerate(PARAMETER_NAMES)
        }
        diagnostics: Dict = {
            "num_chains": cfg.num_chains,
            "num_results": cfg.num_results,
            "divergences": divergences,
            "step_size": step_sizes,
            "accept_rate": accept_rates,
        }
        diagnostics.update(self._convergence(samples, cfg.num_chains))

        n_div = sum(divergences)
        if n_div:
            logger.warning("%d divergent transitions across %d chains", n_div, cfg.num_chains)
        worst = diagnostics.get("max_r_hat", {})
        bad = [k for k, v in worst.items() if np.isfinite(v) and v > R_HAT_WARN]
        if bad:
            logger.warning("R-hat above %.2f for %s", R_HAT_WARN, ", ".join(bad))

        samples = with_derived(samples)
        estimates = {name: draws.mean(axis=(0, 1)) for name, draws in samples.items()}
        return EstimationResult(
            method=self.name,
            estimates=estimates,
            samples=samples,
            diagnostics=diagnostics,
        )

    @staticmethod
    def _convergence(samples: Dict[str, np.ndarray], num_chains: int) -> Dict:
        ess, r_hat = {}, {}
        for name, draws in samples.items():
            x = tf.constant(draws, dtype=tf.float64)
            if num_chains > 1:
                ess[name] = tfp.mcmc.effective_sample_size(x, cross_chain_dims=1).numpy()
                r_hat[name] = tfp.mcmc.potential_scale_reduction(x, independent_chain_ndims=1).numpy()
            else:
                ess[name] = tfp.mcmc.effective_sample_size(x[:, 0]).numpy()

        out = {
            "ess": ess,
            "min_ess": {k: _nan_reduce(np.nanmin, v) for k, v in ess.items()},
        }
        if r_hat:
            out["r_hat"] = r_hat
            out["max_r_hat"] = {k: _nan_reduce(np.nanmax, v) for k, v in r_hat.items()}
        return out


def _nan_reduce(fn, values) -> float:
    # Constant entries (the fixed diagonal of L_omega) give NaN diagnostics
    values = np.asarray(values, dtype=np.float64)
    finite = values[np.isfinite(values)]
    return float(fn(finite)) if finite.size else float("nan")
