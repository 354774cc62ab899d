from types import SimpleNamespace

import pytest

from bayesblp.config import Config, MAPConfig, PriorConfig, SamplerConfig, SimConfig, get_args

unit = pytest.mark.unit
integration = pytest.mark.integration


@unit
def test_sim_config_from_args_overrides_and_defaults():
    """Provided args override defaults; None falls back to dataclass defaults."""
    args = SimpleNamespace(n_draws=100, n_products=None, n_markets=7, seed=None)

    cfg = SimConfig.from_args(args)

    assert cfg.n_draws == 100
    assert cfg.n_markets == 7
    assert cfg.n_products == SimConfig().n_products
    assert cfg.seed == SimConfig().seed


@unit
@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_draws": 0},
        {"n_products": -1},
        {"lkj_concentration": 0.0},
        {"price_scale": -0.5},
        {"market_size_low": 10, "market_size_high": 5},
        {"seed": -1},
    ],
)
def test_sim_config_rejects_invalid_values(kwargs):
    """SimConfig validates dimensions, scales and bounds on construction."""
    with pytest.raises(ValueError):
        SimConfig(**kwargs)


@unit
def test_prior_config_requires_positive_scales():
    """Every prior scale must be positive; alpha_loc may be any real."""
    PriorConfig(alpha_loc=3.0)
    with pytest.raises(ValueError, match="tau_scale"):
        PriorConfig(tau_scale=0.0)


@unit
def test_sampler_config_validation():
    """Acceptance target lies in (0, 1); burn-in may be zero but not negative."""
    SamplerConfig(num_burnin_steps=0)
    with pytest.raises(ValueError):
        SamplerConfig(target_accept_prob=1.0)
    with pytest.raises(ValueError):
        SamplerConfig(num_burnin_steps=-1)
    with pytest.raises(ValueError):
        SamplerConfig(step_size=0.0)


@unit
def test_map_config_from_args_mixes_overrides():
    """MAPConfig.from_args keeps defaults for missing args."""
    cfg = MAPConfig.from_args(SimpleNamespace(max_iterations=20))
    assert cfg.max_iterations == 20
    assert cfg.tolerance == MAPConfig().tolerance


@unit
def test_config_rejects_unknown_method():
    """Only the two estimator strategies are accepted."""
    with pytest.raises(ValueError, match="method"):
        Config(method="gmm")


@unit
def test_get_args_builds_full_config():
    """CLI flags flow through get_args into every config section."""
    args = get_args(
        ["--method", "nuts", "--n_markets", "8", "--num_chains", "2", "--no-init_from_map", "--tolerance", "1e-6"]
    )
    cfg = Config.from_args(args)

    assert cfg.method == "nuts"
    assert cfg.sim.n_markets == 8
    assert cfg.sampler.num_chains == 2
    assert cfg.sampler.init_from_map is False
    assert cfg.map.tolerance == pytest.approx(1e-6)
    assert args.save_dir is None


@unit
def test_get_args_category_help_exits(capsys):
    """'--help nuts' prints only the sampler arguments."""
    with pytest.raises(SystemExit) as exc:
        get_args(["--help", "nuts"])
    assert exc.value.code == 0
    out = capsys.readouterr().out
    assert "SamplerConfig" in out
    assert "--max_tree_depth" in out
