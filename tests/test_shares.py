import numpy as np
import pytest

from bayesblp.exceptions import NotPositiveDefiniteError
from bayesblp.shares import (
    covariance_factor,
    individual_utilities,
    log_shares_from_factor,
    predicted_shares,
    shares_from_factor,
    stack_price_characteristics,
)

unit = pytest.mark.unit
integration = pytest.mark.integration


@unit
def test_shares_are_probabilities(random_market_inputs):
    """Each market's J + 1 shares are non-negative and sum to one."""
    shares = predicted_shares(**random_market_inputs).numpy()

    assert shares.shape == (3, 5)
    assert np.all(shares >= 0)
    np.testing.assert_allclose(shares.sum(axis=-1), 1.0, atol=1e-12)


@unit
def test_outside_utility_is_exactly_zero(random_market_inputs):
    """Column 0 of the utility matrix is the outside option with zero utility."""
    inp = dict(random_market_inputs)
    chol = covariance_factor(inp.pop("cov"))
    util = individual_utilities(chol=chol, **inp).numpy()

    assert util.shape == (3, 30, 5)
    assert np.all(util[..., 0] == 0.0)


@unit
def test_batched_shares_match_per_market(random_market_inputs):
    """Broadcasting over markets gives the same shares as one market at a time."""
    inp = random_market_inputs
    batched = predicted_shares(**inp).numpy()
    for t in range(3):
        single = predicted_shares(
            inp["alpha"],
            inp["beta"],
            inp["price_characteristics"][t],
            inp["cov"],
            inp["xi"][t],
            inp["draws"][t],
        ).numpy()
        np.testing.assert_allclose(batched[t], single, rtol=1e-12)


@unit
def test_identical_products_get_identical_shares():
    """J=2, P=1, alpha=-1, beta=0, xi=0, price=0 and identical characteristics."""
    rng = np.random.default_rng(3)
    xp = stack_price_characteristics(np.zeros(2), np.array([[0.7], [0.7]]))
    shares = predicted_shares(
        alpha=-1.0,
        beta=np.zeros(1),
        price_characteristics=xp,
        cov=np.diag([0.5, 2.0]),
        xi=np.zeros(2),
        draws=rng.standard_normal(size=(100, 2)),
    ).numpy()

    np.testing.assert_allclose(shares[1], shares[2], rtol=0, atol=1e-15)


@unit
def test_zero_characteristics_split_evenly():
    """With every utility at zero the three options share the market equally."""
    rng = np.random.default_rng(4)
    xp = stack_price_characteristics(np.zeros(2), np.zeros((2, 1)))
    shares = predicted_shares(
        alpha=-1.0,
        beta=np.zeros(1),
        price_characteristics=xp,
        cov=np.eye(2),
        xi=np.zeros(2),
        draws=rng.standard_normal(size=(50, 2)),
    ).numpy()

    np.testing.assert_allclose(shares, np.full(3, 1.0 / 3.0), rtol=1e-12)


@unit
def test_no_random_coefficients_reduces_to_plain_logit():
    """A zero Cholesky factor gives closed-form multinomial logit shares."""
    prices = np.array([1.0, 2.0])
    X = np.array([[0.5], [-0.5]])
    xi = np.array([0.1, -0.2])
    xp = stack_price_characteristics(prices, X)
    shares = shares_from_factor(-1.0, np.array([0.8]), xp, np.zeros((2, 2)), xi, np.ones((10, 2))).numpy()

    delta = -1.0 * prices + X[:, 0] * 0.8 + xi
    expected = np.concatenate([[1.0], np.exp(delta)]) / (1.0 + np.exp(delta).sum())
    np.testing.assert_allclose(shares, expected, rtol=1e-12)


@unit
def test_large_utilities_stay_finite():
    """Softmax is evaluated stably for very large utilities."""
    xp = stack_price_characteristics(np.zeros(2), np.array([[500.0], [400.0]]))
    shares = shares_from_factor(-1.0, np.array([2.0]), xp, np.zeros((2, 2)), np.zeros(2), np.zeros((5, 2))).numpy()

    assert np.all(np.isfinite(shares))
    assert shares[1] == pytest.approx(1.0)


@unit
def test_non_positive_definite_covariance_raises():
    """A covariance without a Cholesky factor is rejected with a clear error."""
    with pytest.raises(NotPositiveDefiniteError) as exc:
        covariance_factor(np.array([[1.0, 2.0], [2.0, 1.0]]))
    assert isinstance(exc.value, ValueError)
    assert exc.value.matrix_name == "covariance"


@unit
def test_zero_covariance_reduces_to_plain_logit():
    """A zero covariance matrix is accepted and gives the closed-form logit shares."""
    prices = np.array([1.0, 2.0])
    X = np.array([[0.5], [-0.5]])
    xi = np.array([0.1, -0.2])
    xp = stack_price_characteristics(prices, X)
    draws = np.random.default_rng(8).standard_normal(size=(20, 2))
    shares = predicted_shares(-1.0, np.array([0.8]), xp, np.zeros((2, 2)), xi, draws).numpy()

    delta = -1.0 * prices + X[:, 0] * 0.8 + xi
    expected = np.concatenate([[1.0], np.exp(delta)]) / (1.0 + np.exp(delta).sum())
    np.testing.assert_allclose(shares, expected, atol=1e-5)


@unit
def test_rank_deficient_covariance_is_factored():
    """A coefficient with zero variance still yields a factor that rebuilds cov."""
    cov = np.diag([0.0, 1.0])
    chol = covariance_factor(cov).numpy()

    assert np.all(np.isfinite(chol))
    np.testing.assert_allclose(chol @ chol.T, cov, atol=1e-10)


@unit
def test_log_shares_match_shares(random_market_inputs):
    """Exponentiated log shares agree with the probability-space computation."""
    inp = dict(random_market_inputs)
    chol = covariance_factor(inp.pop("cov"))
    shares = shares_from_factor(chol=chol, **inp).numpy()
    log_shares = log_shares_from_factor(chol=chol, **inp).numpy()

    np.testing.assert_allclose(np.exp(log_shares), shares, rtol=1e-10)


@unit
def test_log_shares_finite_when_shares_underflow():
    """Inside shares of order exp(-800) are zero as probabilities but finite as logs."""
    prices = np.array([1.0, 2.0])
    xp = stack_price_characteristics(prices, np.zeros((2, 1)))
    args = (-800.0, np.zeros(1), xp, np.zeros((2, 2)), np.zeros(2), np.zeros((5, 2)))

    assert np.all(shares_from_factor(*args).numpy()[1:] == 0.0)
    log_shares = log_shares_from_factor(*args).numpy()
    assert np.all(np.isfinite(log_shares))
    np.testing.assert_allclose(log_shares[1:], -800.0 * prices, rtol=1e-12)
    assert log_shares[0] == pytest.approx(0.0, abs=1e-12)
