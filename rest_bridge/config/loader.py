import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from rest_bridge.config.schema import (
    AppConfig,
    BackendConfig,
    CacheConfig,
    LoggingConfig,
    RateLimitConfig,
    RetryConfig,
    ServerConfig,
)

_SECTION_CLASSES = {
    "backend": BackendConfig,
    "retry": RetryConfig,
    "rate_limit": RateLimitConfig,
    "cache": CacheConfig,
    "server": ServerConfig,
    "logging": LoggingConfig,
}

_ENV_OVERRIDES: dict[str, tuple[str, str, Callable[[str], Any]]] = {
    "REST_BASE_URL": ("backend", "base_url", str),
    "REST_TIMEOUT_SECONDS": ("backend", "timeout_seconds", float),
    "REST_MAX_CONCURRENT": ("rate_limit", "max_concurrent", int),
    "REST_CACHE_TTL_SECONDS": ("cache", "ttl_seconds", float),
    "LOG_LEVEL": ("logging", "level", str),
}


def _apply_env_overrides(data: dict[str, Any]) -> None:
    """Override YAML values with environment variables where mapped."""
    for env_var, (section, key, convert) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value is None or value == "":
            continue
        try:
            data.setdefault(section, {})[key] = convert(value)
        except ValueError as e:
            raise ValueError(f"Invalid value for {env_var}: {value!r}") from e


def _normalize(data: dict[str, Any]) -> None:
    # YAML gives lists; the frozen config wants hashable tuples
    retry = data.get("retry")
    if retry and "retryable_statuses" in retry:
        retry["retryable_statuses"] = tuple(int(s) for s in retry["retryable_statuses"])


def load_config(
    config_path: Path = Path("config.yaml"),
    env_path: Path = Path(".env"),
) -> AppConfig:
    """Load YAML config, merge .env and environment overrides, return frozen AppConfig."""
    load_dotenv(env_path)

    data: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}

    _apply_env_overrides(data)
    _normalize(data)

    sections: dict[str, Any] = {}
    for name, cls in _SECTION_CLASSES.items():
        section_data = data.get(name, {})
        if section_data:
            sections[name] = cls(**section_data)
        else:
            sections[name] = cls()

    return AppConfig(**sections)
