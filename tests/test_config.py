"""Tests for settings loading."""

from multibagger.screener import constants
from multibagger.screener.config import load_settings


def test_yaml_defaults(tmp_path, monkeypatch):
    for name in ("FMP_API_KEY", "GEMINI_API_KEY", "ALPHAVANTAGE_API_KEY", "SEC_USER_AGENT"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings({"data_dir": tmp_path})
    assert settings.data_dir == tmp_path
    assert settings.freshness_hours == constants.FRESHNESS_HOURS
    assert settings.fmp_api_key is None
    assert settings.policy("alphavantage").daily_budget == 25
    assert settings.policy("fmp").max_concurrency == 5
    assert settings.exchange_allowlist == ["NASDAQ", "NYSE"]


def test_environment_keys(tmp_path, monkeypatch):
    monkeypatch.setenv("FMP_API_KEY", "fmp-key")
    monkeypatch.setenv("GEMINI_API_KEY", "gemini-key")
    monkeypatch.setenv("SEC_USER_AGENT", "Research desk ops@example.com")
    settings = load_settings({"data_dir": tmp_path})
    assert settings.fmp_api_key == "fmp-key"
    assert settings.gemini_api_key == "gemini-key"
    assert settings.sec_user_agent == "Research desk ops@example.com"


def test_overrides_win_over_environment(tmp_path, monkeypatch):
    monkeypatch.setenv("FMP_API_KEY", "from-env")
    settings = load_settings({"data_dir": tmp_path, "fmp_api_key": "explicit"})
    assert settings.fmp_api_key == "explicit"


def test_default_data_dir_uses_env_override(tmp_path, monkeypatch):
    monkeypatch.setenv("MULTIBAGGER_DATA_DIR", str(tmp_path))
    settings = load_settings()
    assert settings.data_dir == tmp_path / constants.DATA_DIR_NAME
