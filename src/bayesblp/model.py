"""Joint log-density of the random-coefficients logit with endogenous prices.

State (in this order, see ``PARAMETER_NAMES``):

    alpha        scalar   price sensitivity
    beta         [P]      taste coefficients
    gamma0       scalar   price equation intercept
    gamma        [P]      price equation coefficients
    lam          scalar   loading of price on the demand shock
    price_scale  scalar   > 0, scale of the truncated-normal price equation
    tau          [P + 1]  > 0, random-coefficient standard deviations
    L_omega      [P + 1, P + 1] Cholesky factor of the correlation matrix
    xi           [T, J]   demand shocks

log p = log prior + sum_t,j log TN(p_jt | gamma0 + x_jt gamma + lam xi_jt, price_scale; 0, inf)
      + sum_t log Multinomial(sales_t | N_t, s_t(alpha, beta, diag(tau) L_omega, xi_t))
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import numpy as np
import tensorflow as tf
import tensorflow_probability as tfp

from bayesblp.config import PriorConfig
from bayesblp.data import MarketData
from bayesblp.distributions import (
    correlation_cholesky_prior,
    price_mean,
    sales_distribution,
    truncated_price_log_prob,
)
from bayesblp.shares import log_shares_from_factor
from bayesblp.utils import to_tensor

tfd = tfp.distributions
tfb = tfp.bijectors

PARAMETER_NAMES = (
    "alpha",
    "beta",
    "gamma0",
    "gamma",
    "lam",
    "price_scale",
    "tau",
    "L_omega",
    "xi",
)


def _f64(x) -> tf.Tensor:
    return tf.constant(x, dtype=tf.float64)


def constraining_bijectors() -> List[tfb.Bijector]:
    """Maps from unconstrained space onto the support of each state part."""
    return [
        tfb.Identity(),  # alpha
        tfb.Identity(),  # beta
        tfb.Identity(),  # gamma0
        tfb.Identity(),  # gamma
        tfb.Identity(),  # lam
        tfb.Softplus(),  # price_scale
        tfb.Softplus(),  # tau
        tfb.CorrelationCholesky(),  # L_omega
        tfb.Identity(),  # xi
    ]


def initial_state(data: MarketData, priors: Optional[PriorConfig] = None) -> List[tf.Tensor]:
    """A neutral starting point: prior centres, identity correlation, zero shocks."""
    priors = priors or PriorConfig()
    P = data.n_covariates
    price_sd = float(np.std(data.prices))
    return [
        _f64(priors.alpha_loc),
        tf.zeros([P], dtype=tf.float64),
        _f64(float(np.mean(data.prices))),
        tf.zeros([P], dtype=tf.float64),
        _f64(0.0),
        _f64(price_sd if price_sd > 0 else 1.0),
        tf.ones([P + 1], dtype=tf.float64),
        tf.eye(P + 1, dtype=tf.float64),
        tf.zeros([data.n_markets, data.n_products], dtype=tf.float64),
    ]


def state_to_dict(state) -> Dict[str, tf.Tensor]:
    return dict(zip(PARAMETER_NAMES, state, strict=True))


def dict_to_state(params: Dict[str, np.ndarray]) -> List[tf.Tensor]:
    return [to_tensor(params[name]) for name in PARAMETER_NAMES]


def log_prior(params: Dict[str, tf.Tensor], priors: PriorConfig, lkj_concentration: float) -> tf.Tensor:
    """Sum of independent prior terms over every state part."""
    P = params["beta"].shape[-1]
    coef = tfd.Normal(_f64(0.0), _f64(priors.coef_scale))

    lp = tfd.Normal(_f64(priors.alpha_loc), _f64(priors.alpha_scale)).log_prob(params["alpha"])
    lp += tf.reduce_sum(coef.log_prob(params["beta"]))
    lp += tfd.Normal(_f64(0.0), _f64(priors.intercept_scale)).log_prob(params["gamma0"])
    lp += tf.reduce_sum(coef.log_prob(params["gamma"]))
    lp += tfd.Normal(_f64(0.0), _f64(priors.loading_scale)).log_prob(params["lam"])
    lp += tfd.HalfNormal(_f64(priors.price_scale_scale)).log_prob(params["price_scale"])
    lp += tf.reduce_sum(tfd.HalfNormal(_f64(priors.tau_scale)).log_prob(params["tau"]))
    lp += correlation_cholesky_prior(P + 1, lkj_concentration).log_prob(params["L_omega"])
    lp += tf.reduce_sum(tfd.Normal(_f64(0.0), _f64(priors.xi_scale)).log_prob(params["xi"]))
    return lp


class _DataTensors:
    """float64 tensors of the data block, built once per model."""

    def __init__(self, data: MarketData):
        self.characteristics = tf.constant(data.characteristics, dtype=tf.float64)
        self.prices = tf.constant(data.prices, dtype=tf.float64)
        self.price_characteristics = tf.constant(data.price_characteristics, dtype=tf.float64)
        self.sales = tf.constant(data.sales, dtype=tf.float64)
        self.market_sizes = tf.constant(data.market_sizes, dtype=tf.float64)
        self.draws = tf.constant(data.draws, dtype=tf.float64)


def _log_likelihood(params: Dict[str, tf.Tensor], d: _DataTensors) -> tf.Tensor:
    chol = params["tau"][:, tf.newaxis] * params["L_omega"]  # diag(tau) L_omega
    log_shares = log_shares_from_factor(
        params["alpha"],
        params["beta"],
        d.price_characteristics,
        chol,
        params["xi"],
        d.draws,
    )  # [T, J + 1]

    loc = price_mean(params["gamma0"], params["gamma"], params["lam"], d.characteristics, params["xi"])
    price_lp = truncated_price_log_prob(d.prices, loc, params["price_scale"])
    sales_lp = sales_distribution(d.market_sizes, log_shares=log_shares).log_prob(d.sales)
    return tf.reduce_sum(price_lp) + tf.reduce_sum(sales_lp)


def make_target_log_prob_fn(
    data: MarketData, priors: Optional[PriorConfig] = None
) -> Callable[..., tf.Tensor]:
    """Return f(alpha, beta, ..., xi) -> scalar log posterior (up to a constant)."""
    priors = priors or PriorConfig()
    tensors = _DataTensors(data)
    nu = data.lkj_concentration

    def target_log_prob_fn(*state):
        params = state_to_dict(state)
        return log_prior(params, priors, nu) + _log_likelihood(params, tensors)

    return target_log_prob_fn


def log_likelihood(data: MarketData, params: Dict[str, np.ndarray]) -> float:
    """Price plus sales log-likelihood at a given state (no prior)."""
    state = state_to_dict(dict_to_state(params))
    return float(_log_likelihood(state, _DataTensors(data)).numpy())


def log_joint(data: MarketData, params: Dict[str, np.ndarray], priors: Optional[PriorConfig] = None) -> float:
    """Log posterior (up to a constant) at a given state."""
    fn = make_target_log_prob_fn(data, priors)
    return float(fn(*dict_to_state(params)).numpy())
