import pytest

from configs.config_loader import PROFILE_ENV, load_planner_config
from explore.planner import PlannerConfig
from explore.publisher import Topics


def test_default_profile(monkeypatch):
    monkeypatch.delenv(PROFILE_ENV, raising=False)
    config, topics = load_planner_config()
    assert isinstance(config, PlannerConfig)
    assert config.sweep == "discretized"
    assert config.num_points == 5
    assert config.unknown_threshold == pytest.approx(0.1)
    assert topics == Topics()


def test_profile_is_layered_over_default(monkeypatch):
    monkeypatch.delenv(PROFILE_ENV, raising=False)
    config, _ = load_planner_config("quick")
    assert config.num_points == 3
    assert config.angular_steps == 8
    # untouched keys come from default
    assert config.poisson_rate == pytest.approx(2.0)


def test_env_var_selects_profile(monkeypatch):
    monkeypatch.setenv(PROFILE_ENV, "continuous")
    config, _ = load_planner_config()
    assert config.sweep == "continuous"


def test_unknown_profile_falls_back_to_default(monkeypatch):
    monkeypatch.delenv(PROFILE_ENV, raising=False)
    config, _ = load_planner_config("no-such-profile")
    assert config == load_planner_config("default")[0]


def test_unknown_setting_is_rejected(tmp_path):
    path = tmp_path / "planner.yaml"
    path.write_text("default:\n  num_points: 2\n  warp_speed: 9\n")
    with pytest.raises(ValueError):
        load_planner_config(path=path)


def test_unknown_sweep_is_rejected(tmp_path):
    path = tmp_path / "planner.yaml"
    path.write_text("default:\n  sweep: spiral\n")
    with pytest.raises(ValueError):
        load_planner_config(path=path)


def test_topics_can_be_renamed(tmp_path):
    path = tmp_path / "planner.yaml"
    path.write_text("default:\n  topics:\n    mi: /explorer/mi\n")
    _, topics = load_planner_config(path=path)
    assert topics.mi == "/explorer/mi"
    assert topics.trajectory == Topics().trajectory
