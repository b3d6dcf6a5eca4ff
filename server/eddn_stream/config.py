"""
EDDN Stream Configuration

Centralized configuration for the stream service and the API adapters.
All environment variables MUST be defined here. No os.getenv() calls allowed elsewhere.
"""
from __future__ import annotations

import os
from dataclasses import dataclass


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def _optional_env(name: str, default: str = "") -> str:
    """Get an optional environment variable with a default."""
    return os.environ.get(name, default)


def _optional_env_int(name: str, default: int) -> int:
    """Get an optional integer environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"Invalid integer value for {name}: {value}")


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        return float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid number value for {name}: {value}")


def _non_negative(name: str, value: float) -> None:
    if value < 0:
        raise ConfigurationError(f"{name} must be >= 0, got {value}")


@dataclass(frozen=True)
class EDDNConfig:
    """EDDN relay subscription configuration."""
    relay_url: str = "tcp://eddn.edcd.io:9500"
    reconnect_interval_ms: int = 30000
    reconnect_max_interval_ms: int = 300000
    reconnect_backoff: float = 1.0  # 1.0 = fixed interval
    receive_timeout_ms: int = 600000  # 0 = never time out
    stats_every: int = 1000
    classifier_rules_path: str = ""  # empty = packaged default rules

    @property
    def reconnect_interval_seconds(self) -> float:
        return self.reconnect_interval_ms / 1000.0

    @property
    def reconnect_max_interval_seconds(self) -> float:
        return self.reconnect_max_interval_ms / 1000.0

    @property
    def receive_timeout_seconds(self) -> float | None:
        if not self.receive_timeout_ms:
            return None
        return self.receive_timeout_ms / 1000.0


@dataclass(frozen=True)
class RedisConfig:
    """Redis broadcast configuration. An empty URL disables broadcasting."""
    url: str = ""

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class EDSMConfig:
    """EDSM REST API configuration."""
    api_url: str = "https://www.edsm.net/api-v1/"
    api_key: str = ""
    min_delay_ms: int = 500


@dataclass(frozen=True)
class InaraConfig:
    """Inara REST API configuration."""
    api_url: str = "https://inara.cz/inapi/v1/"
    api_key: str = ""
    app_name: str = "EliteMiningDataServer"
    app_version: str = "1.0.0"
    min_delay_ms: int = 1000


@dataclass(frozen=True)
class HttpConfig:
    """Shared outbound HTTP settings."""
    timeout_seconds: float = 30.0
    user_agent: str = "EliteMiningDataServer/1.0.0"


@dataclass(frozen=True)
class Settings:
    """Root configuration container."""
    eddn: EDDNConfig
    redis: RedisConfig
    edsm: EDSMConfig
    inara: InaraConfig
    http: HttpConfig
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Load all settings from environment variables."""
    eddn = EDDNConfig(
        relay_url=_optional_env("EDDN_RELAY_URL", "tcp://eddn.edcd.io:9500"),
        reconnect_interval_ms=_optional_env_int("EDDN_RECONNECT_INTERVAL_MS", 30000),
        reconnect_max_interval_ms=_optional_env_int("EDDN_RECONNECT_MAX_INTERVAL_MS", 300000),
        reconnect_backoff=_optional_env_float("EDDN_RECONNECT_BACKOFF", 1.0),
        receive_timeout_ms=_optional_env_int("EDDN_RECEIVE_TIMEOUT_MS", 600000),
        stats_every=_optional_env_int("EDDN_STATS_EVERY", 1000),
        classifier_rules_path=_optional_env("EDDN_CLASSIFIER_RULES", ""),
    )
    _non_negative("EDDN_RECONNECT_INTERVAL_MS", eddn.reconnect_interval_ms)
    _non_negative("EDDN_RECEIVE_TIMEOUT_MS", eddn.receive_timeout_ms)
    if eddn.reconnect_backoff < 1.0:
        raise ConfigurationError(
            f"EDDN_RECONNECT_BACKOFF must be >= 1.0, got {eddn.reconnect_backoff}"
        )
    if eddn.stats_every < 1:
        raise ConfigurationError(f"EDDN_STATS_EVERY must be >= 1, got {eddn.stats_every}")

    edsm = EDSMConfig(
        api_url=_optional_env("EDSM_API_URL", "https://www.edsm.net/api-v1/"),
        api_key=_optional_env("EDSM_API_KEY", ""),
        min_delay_ms=_optional_env_int("EDSM_MIN_DELAY_MS", 500),
    )
    _non_negative("EDSM_MIN_DELAY_MS", edsm.min_delay_ms)

    inara = InaraConfig(
        api_url=_optional_env("INARA_API_URL", "https://inara.cz/inapi/v1/"),
        api_key=_optional_env("INARA_API_KEY", ""),
        app_name=_optional_env("INARA_APP_NAME", "EliteMiningDataServer"),
        app_version=_optional_env("INARA_APP_VERSION", "1.0.0"),
        min_delay_ms=_optional_env_int("INARA_MIN_DELAY_MS", 1000),
    )
    _non_negative("INARA_MIN_DELAY_MS", inara.min_delay_ms)

    http = HttpConfig(
        timeout_seconds=_optional_env_float("HTTP_TIMEOUT_SECONDS", 30.0),
        user_agent=_optional_env("HTTP_USER_AGENT", "EliteMiningDataServer/1.0.0"),
    )
    if http.timeout_seconds <= 0:
        raise ConfigurationError(f"HTTP_TIMEOUT_SECONDS must be > 0, got {http.timeout_seconds}")

    return Settings(
        eddn=eddn,
        redis=RedisConfig(url=_optional_env("REDIS_URL", "")),
        edsm=edsm,
        inara=inara,
        http=http,
        log_level=_optional_env("LOG_LEVEL", "INFO").upper(),
    )
