"""Predicted market shares for the random-coefficients logit.

The same computation generates the fake data and sits inside the likelihood.
Every function broadcasts over leading market dimensions, so a [T, J, P + 1]
price-characteristics array with [T, NS, P + 1] draws yields [T, J + 1]
shares in one pass. The outside option is column 0.
"""

from __future__ import annotations

import tensorflow as tf

from bayesblp.exceptions import NotPositiveDefiniteError
from bayesblp.utils import to_tensor

# Relative size of a negative eigenvalue still treated as rounding noise
PSD_TOLERANCE = 1e-10
PSD_RIDGE = 1e-12


def stack_price_characteristics(prices, characteristics) -> tf.Tensor:
    """Concatenate prices [..., J] and characteristics [..., J, P] into [..., J, P + 1]."""
    prices = tf.convert_to_tensor(prices, dtype=tf.float64)
    characteristics = tf.convert_to_tensor(characteristics, dtype=tf.float64)
    return tf.concat([prices[..., tf.newaxis], characteristics], axis=-1)


def covariance_factor(cov) -> tf.Tensor:
    """Lower-triangular L with L L^T = cov, for any positive semi-definite cov.

    Singular matrices (a zero covariance, a coefficient with zero variance) are
    factored after adding a tiny ridge to the diagonal.

    Raises:
        NotPositiveDefiniteError: if cov has an eigenvalue below zero beyond
            rounding (eager mode only).
    """
    cov = to_tensor(cov)
    cov = 0.5 * (cov + tf.linalg.matrix_transpose(cov))
    try:
        chol = tf.linalg.cholesky(cov)
        if not tf.executing_eagerly() or bool(tf.reduce_all(tf.math.is_finite(chol))):
            return chol
    except tf.errors.InvalidArgumentError:
        pass  # singular or indefinite, decided by the eigenvalues below

    eigvals = tf.linalg.eigvalsh(cov)
    size = max(float(tf.reduce_max(tf.abs(eigvals))), 1.0)
    if float(tf.reduce_min(eigvals)) < -PSD_TOLERANCE * size:
        raise NotPositiveDefiniteError()
    ridge = PSD_RIDGE * size * tf.eye(tf.shape(cov)[-1], dtype=tf.float64)
    return tf.linalg.cholesky(cov + ridge)


def individual_utilities(alpha, beta, price_characteristics, chol, xi, draws) -> tf.Tensor:
    """Utility of each option for each simulated individual.

    Args:
        alpha: scalar price sensitivity.
        beta: [P] taste coefficients.
        price_characteristics: [..., J, P + 1], price in column 0.
        chol: [P + 1, P + 1] lower-triangular factor of the random-coefficient covariance.
        xi: [..., J] demand shocks.
        draws: [..., NS, P + 1] standard normal individual draws.

    Returns:
        [..., NS, J + 1] utilities; column 0 (outside option) is exactly zero.
    """
    xp = tf.convert_to_tensor(price_characteristics, dtype=tf.float64)
    alpha = tf.convert_to_tensor(alpha, dtype=tf.float64)
    beta = tf.convert_to_tensor(beta, dtype=tf.float64)
    chol = tf.convert_to_tensor(chol, dtype=tf.float64)
    xi = tf.convert_to_tensor(xi, dtype=tf.float64)
    draws = tf.convert_to_tensor(draws, dtype=tf.float64)

    price = xp[..., 0]
    X = xp[..., 1:]
    mean_util = alpha * price + tf.linalg.matvec(X, beta) + xi  # [..., J]

    deviations = tf.linalg.matmul(draws, chol, transpose_b=True)  # [..., NS, P+1]
    dev_util = tf.linalg.matmul(deviations, xp, transpose_b=True)  # [..., NS, J]

    util = tf.expand_dims(mean_util, -2) + dev_util
    outside = tf.zeros_like(util[..., :1])
    return tf.concat([outside, util], axis=-1)


def shares_from_factor(alpha, beta, price_characteristics, chol, xi, draws) -> tf.Tensor:
    """Average logit choice probabilities over individuals: [..., J + 1]."""
    util = individual_utilities(alpha, beta, price_characteristics, chol, xi, draws)
    # softmax subtracts the row max before exponentiating
    probs = tf.nn.softmax(util, axis=-1)
    return tf.reduce_mean(probs, axis=-2)


def log_shares_from_factor(alpha, beta, price_characteristics, chol, xi, draws) -> tf.Tensor:
    """Log of ``shares_from_factor``, computed without leaving log space.

    Shares that underflow to zero in probability space (very large |alpha| or
    price) stay finite here, so the multinomial likelihood does not collapse
    to -inf.
    """
    util = individual_utilities(alpha, beta, price_characteristics, chol, xi, draws)
    log_probs = tf.nn.log_softmax(util, axis=-1)
    n_draws = tf.cast(tf.shape(util)[-2], tf.float64)
    return tf.reduce_logsumexp(log_probs, axis=-2) - tf.math.log(n_draws)


def predicted_shares(alpha, beta, price_characteristics, cov, xi, draws) -> tf.Tensor:
    """Shares given the random-coefficient covariance matrix itself."""
    chol = covariance_factor(cov)
    return shares_from_factor(alpha, beta, price_characteristics, chol, xi, draws)
