"""Observation distributions shared by the data generator and the likelihood.

Keeping a single definition of each distribution means sampling and density
evaluation always agree, in particular on the truncation of prices at zero.
"""

from __future__ import annotations

import numpy as np
import tensorflow as tf
import tensorflow_probability as tfp
from tensorflow_probability.python.internal.special_math import log_ndtr

from bayesblp.utils import to_tensor

tfd = tfp.distributions


def price_mean(gamma0, gamma, lam, characteristics, xi) -> tf.Tensor:
    """gamma0 + x . gamma + lambda * xi, shape [..., J]."""
    characteristics, gamma, xi = to_tensor(characteristics), to_tensor(gamma), to_tensor(xi)
    gamma0, lam = to_tensor(gamma0), to_tensor(lam)
    return gamma0 + tf.linalg.matvec(characteristics, gamma) + lam * xi


def truncated_price_distribution(loc, scale) -> tfd.Distribution:
    """Normal(loc, scale) restricted to [0, inf) and renormalised.

    Used for sampling. Its density is not differentiable in the scale because
    the infinite upper bound standardises to inf * 0, so the likelihood goes
    through ``truncated_price_log_prob`` instead.
    """
    loc = tf.convert_to_tensor(loc, dtype=tf.float64)
    scale = tf.convert_to_tensor(scale, dtype=tf.float64)
    if tf.executing_eagerly() and not bool(tf.reduce_all(scale > 0)):
        raise ValueError("price scale must be positive")
    return tfd.TruncatedNormal(
        loc=loc,
        scale=scale,
        low=tf.constant(0.0, dtype=tf.float64),
        high=tf.constant(np.inf, dtype=tf.float64),
    )


def truncated_price_log_prob(prices, loc, scale) -> tf.Tensor:
    """log N(p | loc, scale) - log Phi(loc / scale) on p >= 0, -inf below zero."""
    prices, loc, scale = to_tensor(prices), to_tensor(loc), to_tensor(scale)
    lp = tfd.Normal(loc, scale).log_prob(prices) - log_ndtr(loc / scale)
    return tf.where(prices >= 0, lp, tf.constant(-np.inf, dtype=tf.float64))


def sales_distribution(market_size, shares=None, log_shares=None) -> tfd.Distribution:
    """Multinomial over the J + 1 options of a market.

    Pass ``log_shares`` when evaluating densities so that an inside share too
    small to represent still contributes a finite log-probability.
    """
    if (shares is None) == (log_shares is None):
        raise ValueError("pass exactly one of shares or log_shares")
    total_count = tf.cast(tf.convert_to_tensor(market_size), tf.float64)
    if log_shares is not None:
        return tfd.Multinomial(total_count=total_count, logits=to_tensor(log_shares))
    return tfd.Multinomial(total_count=total_count, probs=to_tensor(shares))


def correlation_distribution(dimension: int, concentration) -> tfd.Distribution:
    """LKJ distribution over correlation matrices, used to draw the truth."""
    return tfd.LKJ(
        dimension=dimension,
        concentration=tf.convert_to_tensor(concentration, dtype=tf.float64),
    )


def correlation_cholesky_prior(dimension: int, concentration) -> tfd.Distribution:
    """LKJ prior expressed on the Cholesky factor of the correlation matrix."""
    return tfd.CholeskyLKJ(
        dimension=dimension,
        concentration=tf.convert_to_tensor(concentration, dtype=tf.float64),
    )
