"""Load screener configuration files and environment settings."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field

from multibagger.utils.env import ensure_system_env_dir
from multibagger.utils.path import get_python_root_path

from . import constants


def get_screener_config_dir() -> Path:
    """Return the directory containing screener configs."""
    return Path(get_python_root_path()) / "configs" / "screener"


def load_screener_config(name: str) -> dict[str, Any]:
    """Load a screener configuration YAML file by name."""
    config_path = get_screener_config_dir() / f"{name}.yaml"
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as file:
        return yaml.safe_load(file) or {}


class RateLimitPolicy(BaseModel):
    """Pacing policy for one upstream provider."""

    max_concurrency: int = Field(..., ge=1, description="Maximum in-flight calls")
    min_interval_s: float = Field(..., ge=0, description="Minimum spacing between calls")
    daily_budget: Optional[int] = Field(
        default=None, ge=0, description="Hard cap on calls per rolling day"
    )


def _default_policies() -> dict[str, RateLimitPolicy]:
    return {
        "fmp": RateLimitPolicy(
            max_concurrency=constants.FMP_MAX_CONCURRENCY,
            min_interval_s=constants.FMP_MIN_INTERVAL_S,
        ),
        "gemini": RateLimitPolicy(
            max_concurrency=constants.GEMINI_MAX_CONCURRENCY,
            min_interval_s=constants.GEMINI_MIN_INTERVAL_S,
        ),
        "yahoo": RateLimitPolicy(
            max_concurrency=constants.YAHOO_MAX_CONCURRENCY,
            min_interval_s=constants.YAHOO_MIN_INTERVAL_S,
        ),
        "edgar": RateLimitPolicy(
            max_concurrency=constants.EDGAR_MAX_CONCURRENCY,
            min_interval_s=constants.EDGAR_MIN_INTERVAL_S,
        ),
        "alphavantage": RateLimitPolicy(
            max_concurrency=constants.ALPHAVANTAGE_MAX_CONCURRENCY,
            min_interval_s=constants.ALPHAVANTAGE_MIN_INTERVAL_S,
            daily_budget=constants.ALPHAVANTAGE_DAILY_BUDGET,
        ),
    }


class ScreenerSettings(BaseModel):
    """Runtime settings assembled once at process start."""

    data_dir: Path = Field(..., description="Root directory for the record store")
    freshness_hours: float = Field(
        default=constants.FRESHNESS_HOURS, gt=0, description="Cache freshness window"
    )
    http_timeout_s: float = Field(default=constants.HTTP_TIMEOUT_S, gt=0)
    fmp_api_key: Optional[str] = Field(default=None, description="FMP API key")
    gemini_api_key: Optional[str] = Field(default=None, description="Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash")
    alphavantage_api_key: Optional[str] = Field(
        default=None, description="Alpha Vantage API key"
    )
    alphavantage_budget_margin: int = Field(
        default=constants.ALPHAVANTAGE_BUDGET_MARGIN, ge=0
    )
    sec_user_agent: str = Field(
        default="MultibaggerScreener/0.1 (research@example.com)",
        description="Descriptive client identification required by SEC",
    )
    edgar_max_retries: int = Field(default=constants.EDGAR_MAX_RETRIES, ge=0)
    edgar_initial_backoff_s: float = Field(
        default=constants.EDGAR_INITIAL_BACKOFF_S, ge=0
    )
    exchange_allowlist: list[str] = Field(default_factory=lambda: ["NASDAQ", "NYSE"])
    log_level: str = Field(default="INFO")
    rate_limits: dict[str, RateLimitPolicy] = Field(default_factory=_default_policies)

    def policy(self, provider: str) -> RateLimitPolicy:
        return self.rate_limits.get(provider) or _default_policies()[provider]


def load_settings(overrides: Optional[dict[str, Any]] = None) -> ScreenerSettings:
    """Build settings from ``providers.yaml``, the environment and overrides.

    Environment variables win over the YAML file; explicit ``overrides`` win
    over both.
    """
    payload: dict[str, Any] = dict(load_screener_config("providers"))
    policies = _default_policies()
    for name, raw_policy in (payload.pop("rate_limits", None) or {}).items():
        base = policies.get(name)
        merged = {**(base.model_dump() if base else {}), **(raw_policy or {})}
        policies[name] = RateLimitPolicy(**merged)
    payload["rate_limits"] = policies

    env_map = {
        "fmp_api_key": "FMP_API_KEY",
        "gemini_api_key": "GEMINI_API_KEY",
        "alphavantage_api_key": "ALPHAVANTAGE_API_KEY",
        "sec_user_agent": "SEC_USER_AGENT",
        "log_level": "MULTIBAGGER_LOG_LEVEL",
    }
    for field_name, env_name in env_map.items():
        value = os.environ.get(env_name)
        if value:
            payload[field_name] = value

    if overrides:
        payload.update(overrides)
    if "data_dir" not in payload or payload["data_dir"] is None:
        payload["data_dir"] = ensure_system_env_dir() / constants.DATA_DIR_NAME
    return ScreenerSettings(**payload)
