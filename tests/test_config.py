import os

import pytest

from firewatch.config import ConfigError, EngineConfig, load_config


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(os.environ):
        if name.startswith("FIREWATCH_") or name in ("MAPBOX_ACCESS_TOKEN", "NEWS_API_KEY"):
            monkeypatch.delenv(name, raising=False)
    yield
    # load_dotenv writes straight to os.environ
    for name in ("FIREWATCH_DEBOUNCE_S", "NEWS_API_KEY"):
        os.environ.pop(name, None)


def test_defaults():
    config = load_config(env_file=None)
    assert config == EngineConfig()
    assert config.debounce_s == 0.3
    assert config.circle_steps == 64
    assert config.mapbox_token is None


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("FIREWATCH_POLL_INTERVAL_S", "2.5")
    monkeypatch.setenv("FIREWATCH_CIRCLE_STEPS", "96")
    monkeypatch.setenv("FIREWATCH_VERBOSE", "yes")
    monkeypatch.setenv("MAPBOX_ACCESS_TOKEN", "pk.test")

    config = load_config()

    assert config.poll_interval_s == 2.5
    assert config.circle_steps == 96
    assert config.verbose is True
    assert config.mapbox_token == "pk.test"


def test_env_file_is_read(tmp_path):
    env_file = tmp_path / "firewatch.env"
    env_file.write_text("FIREWATCH_DEBOUNCE_S=0.5\nNEWS_API_KEY=news-key\n")

    config = load_config(env_file=str(env_file))

    assert config.debounce_s == 0.5
    assert config.news_api_key == "news-key"


def test_keyword_overrides_win(monkeypatch):
    monkeypatch.setenv("FIREWATCH_BASE_UNIT", "0.02")
    config = load_config(base_unit=0.005, fallback_seed=None)
    assert config.base_unit == 0.005
    assert config.fallback_seed is None


def test_unparseable_value(monkeypatch):
    monkeypatch.setenv("FIREWATCH_CIRCLE_STEPS", "many")
    with pytest.raises(ConfigError):
        load_config()


def test_unknown_override():
    with pytest.raises(ConfigError):
        load_config(zoom_speed=2)


@pytest.mark.parametrize(
    "overrides",
    [
        {"poll_interval_s": 0},
        {"debounce_s": -1},
        {"min_zoom": 10, "max_zoom": 5},
        {"circle_steps": 31},
        {"overlap_threshold": 1.0},
        {"news_limit": 4},
        {"circle_radius_km": float("nan")},
    ],
)
def test_invalid_values_rejected(overrides):
    with pytest.raises(ConfigError):
        EngineConfig(**overrides).validate()
