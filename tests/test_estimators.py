import logging

import numpy as np
import pytest
import tensorflow as tf

from bayesblp.config import Config, MAPConfig, SamplerConfig
from bayesblp.estimators import (
    EstimationResult,
    MAPEstimator,
    NUTSEstimator,
    get_estimator,
)
from bayesblp.estimators.base import with_derived
from bayesblp.exceptions import EstimationError
from bayesblp.model import initial_state

unit = pytest.mark.unit
integration = pytest.mark.integration

TINY_SAMPLER = SamplerConfig(
    num_results=10,
    num_burnin_steps=10,
    num_chains=2,
    max_tree_depth=3,
    init_from_map=False,
)


@unit
def test_get_estimator_resolves_names():
    """Both strategies are available by name and carry their config sections."""
    cfg = Config(map=MAPConfig(max_iterations=7))
    est = get_estimator("MAP", cfg)
    assert isinstance(est, MAPEstimator)
    assert est.config.max_iterations == 7
    assert isinstance(get_estimator("nuts", cfg), NUTSEstimator)


@unit
def test_get_estimator_unknown_name():
    """Unknown strategy names are rejected."""
    with pytest.raises(ValueError, match="Unknown estimator"):
        get_estimator("gmm")


@unit
def test_point_estimate_summary_has_no_spread(tiny_dataset):
    """A result without draws reports means only; spread columns are NaN."""
    result = EstimationResult(method="map", estimates=with_derived(tiny_dataset.truth.as_state()))
    summary = result.summary()

    assert summary.loc["alpha", "mean"] == pytest.approx(tiny_dataset.truth.alpha)
    assert summary["sd"].isna().all()
    assert "omega[1,0]" in summary.index
    np.testing.assert_allclose(result.estimates["omega"], tiny_dataset.truth.omega, atol=1e-12)


@integration
def test_map_improves_on_initial_state(tiny_dataset):
    """L-BFGS takes real steps and strictly lowers the negative log posterior."""
    result = MAPEstimator(MAPConfig(max_iterations=50)).fit(tiny_dataset.data)
    diag = result.diagnostics

    assert result.method == "map"
    assert result.samples is None
    assert not diag["failed"]
    assert diag["num_iterations"] > 1
    assert diag["objective"] < diag["initial_objective"]
    assert result.estimates["price_scale"] > 0
    assert np.all(result.estimates["tau"] > 0)
    np.testing.assert_allclose(np.diag(result.estimates["omega"]), 1.0, atol=1e-10)


@integration
def test_map_recovers_price_sensitivity(large_dataset):
    """On a 30-market panel the posterior mode lands near the true alpha."""
    result = MAPEstimator(MAPConfig(max_iterations=500)).fit(large_dataset.data)
    assert abs(float(result.estimates["alpha"]) - large_dataset.truth.alpha) < 0.5


@integration
def test_map_raises_when_optimizer_fails(tiny_dataset):
    """A starting point with no finite objective raises instead of returning garbage."""
    start = initial_state(tiny_dataset.data)
    start[0] = tf.constant(np.nan, dtype=tf.float64)  # alpha

    with pytest.raises(EstimationError) as exc:
        MAPEstimator(MAPConfig(max_iterations=5)).fit(tiny_dataset.data, initial=start)
    assert "num_iterations" in exc.value.diagnostics


@integration
def test_map_warns_when_not_converged(tiny_dataset, caplog):
    """Running out of iterations is reported but still returns the last position."""
    with caplog.at_level(logging.WARNING, logger="bayesblp.estimators.map"):
        result = MAPEstimator(MAPConfig(max_iterations=1)).fit(tiny_dataset.data)

    assert not result.diagnostics["converged"]
    assert "did not converge" in caplog.text
    assert np.isfinite(result.diagnostics["objective"])


@integration
def test_nuts_draw_shapes_and_diagnostics(tiny_dataset, tiny_config):
    """Draws are stacked as (num_results, num_chains, ...) with per-chain diagnostics."""
    result = NUTSEstimator(TINY_SAMPLER).fit(tiny_dataset.data)
    T, J, P = tiny_config.n_markets, tiny_config.n_products, tiny_config.n_covariates

    assert result.samples["alpha"].shape == (10, 2)
    assert result.samples["beta"].shape == (10, 2, P)
    assert result.samples["L_omega"].shape == (10, 2, P + 1, P + 1)
    assert result.samples["xi"].shape == (10, 2, T, J)
    # chains actually move
    assert np.unique(result.samples["alpha"]).size > 1
    assert all(rate > 0 for rate in result.diagnostics["accept_rate"])
    assert result.estimates["xi"].shape == (T, J)

    diag = result.diagnostics
    assert len(diag["divergences"]) == 2
    assert len(diag["step_size"]) == 2
    assert "r_hat" in diag and "ess" in diag

    summary = result.summary()
    assert {"mean", "sd", "q05", "q50", "q95", "r_hat", "ess"} <= set(summary.columns)
    assert summary.loc["alpha", "q05"] <= summary.loc["alpha", "q95"]
