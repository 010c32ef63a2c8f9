"""
Environment-driven configuration.

Settings are read once per Lambda container and handed to every handler
through the App container (see app.py).
"""

import os
import string
from dataclasses import dataclass
from typing import Tuple

DEFAULT_GEOLOCATION_URL = "http://ip-api.com/json/{ip}"
DEFAULT_ALLOWED_ORIGINS = "null,localhost,127.0.0.1"


def _get_env_int(key: str, default: int) -> int:
    val = os.environ.get(key)
    return int(val) if val else default


def _get_env_float(key: str, default: float) -> float:
    val = os.environ.get(key)
    return float(val) if val else default


def _template_fields(template: str) -> set:
    try:
        return {name for _, name, _, _ in string.Formatter().parse(template) if name is not None}
    except ValueError:
        return set()


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


@dataclass(frozen=True)
class Settings:
    """Application configuration from environment variables."""

    env: str = "dev"
    app_name: str = "page-analytics"
    log_level: str = "INFO"
    events_table: str | None = None
    aggregates_table: str | None = None
    dynamodb_endpoint_url: str | None = None
    geolocation_url: str = DEFAULT_GEOLOCATION_URL
    geolocation_timeout: float = 3.0
    local_placeholder_ip: str = "127.0.0.1"
    allowed_origins: Tuple[str, ...] = _split_csv(DEFAULT_ALLOWED_ORIGINS)
    events_list_limit: int = 100
    rollup_lookback_days: int = 2

    @classmethod
    def from_env(cls) -> "Settings":
        settings = cls(
            env=os.environ.get("ENV", "dev"),
            app_name=os.environ.get("APP_NAME", "page-analytics"),
            log_level=os.environ.get("LOG_LEVEL", "INFO"),
            events_table=os.environ.get("EVENTS_TABLE") or None,
            aggregates_table=os.environ.get("AGGREGATES_TABLE") or None,
            dynamodb_endpoint_url=os.environ.get("DYNAMODB_ENDPOINT_URL") or None,
            geolocation_url=os.environ.get("GEOLOCATION_URL", DEFAULT_GEOLOCATION_URL),
            geolocation_timeout=_get_env_float("GEOLOCATION_TIMEOUT", 3.0),
            local_placeholder_ip=os.environ.get("LOCAL_PLACEHOLDER_IP", "127.0.0.1"),
            allowed_origins=_split_csv(os.environ.get("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS)),
            events_list_limit=_get_env_int("EVENTS_LIST_LIMIT", 100),
            rollup_lookback_days=_get_env_int("ROLLUP_LOOKBACK_DAYS", 2),
        )
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.geolocation_timeout <= 0:
            raise ValueError(f"GEOLOCATION_TIMEOUT must be positive, got {self.geolocation_timeout}")
        if self.events_list_limit < 1:
            raise ValueError(f"EVENTS_LIST_LIMIT must be at least 1, got {self.events_list_limit}")
        if self.rollup_lookback_days < 1:
            raise ValueError(f"ROLLUP_LOOKBACK_DAYS must be at least 1, got {self.rollup_lookback_days}")
        if _template_fields(self.geolocation_url) != {"ip"}:
            raise ValueError("GEOLOCATION_URL must contain an {ip} placeholder and no other fields")
