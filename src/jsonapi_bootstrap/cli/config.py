"""Configuration helpers for the jsonapi-bootstrap CLI."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from jsonapi_bootstrap.bootstrap import (
    DEFAULT_APP_NAME,
    DEFAULT_CLIENT_VERSION,
    DEFAULT_PLATFORM,
    DEFAULT_PROFILE_NAME,
)
from jsonapi_bootstrap.commands import DEFAULT_GRPC_ADDR
from jsonapi_bootstrap.spaces import DEFAULT_JSONAPI_ADDR, DEFAULT_POLL_INTERVAL

DEFAULT_CONFIG_PATH = Path.home() / ".jsonapi_bootstrap" / "config.toml"
DEFAULT_TIMEOUT_SECONDS = 120.0
DEFAULT_WAIT_SPACES_SECONDS = 120.0
GRPC_ADDR_ENV_VAR = "JSONAPI_BOOTSTRAP_GRPC_ADDR"
JSONAPI_ADDR_ENV_VAR = "JSONAPI_BOOTSTRAP_JSONAPI_ADDR"

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|h|m|s)")
_DURATION_UNITS = {"h": 3600.0, "m": 60.0, "s": 1.0, "ms": 0.001}


@dataclass(frozen=True)
class CLIConfig:
    grpc_addr: str = DEFAULT_GRPC_ADDR
    jsonapi_addr: str = DEFAULT_JSONAPI_ADDR
    app_name: str = DEFAULT_APP_NAME
    profile_name: str = DEFAULT_PROFILE_NAME
    platform: str = DEFAULT_PLATFORM
    client_version: str = DEFAULT_CLIENT_VERSION
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    wait_spaces: float = DEFAULT_WAIT_SPACES_SECONDS
    poll_interval: float = DEFAULT_POLL_INTERVAL


class ConfigError(ValueError):
    """Raised when CLI config is invalid."""


def parse_duration(value: Any, field_name: str = "duration") -> float:
    """Parse ``90``, ``"90s"``, ``"2m"`` or ``"1m30s"`` into seconds."""
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be a duration")
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip().lower()
        try:
            seconds = float(text)
        except ValueError:
            parts = _DURATION_PART.findall(text)
            if not text or "".join(n + u for n, u in parts) != text:
                raise ConfigError(f"{field_name} must be a duration like 90s or 2m (got {value!r})")
            seconds = sum(float(number) * _DURATION_UNITS[unit] for number, unit in parts)
    else:
        raise ConfigError(f"{field_name} must be a duration")
    if seconds < 0:
        raise ConfigError(f"{field_name} must not be negative")
    return seconds


def _load_toml(path: Path) -> dict[str, Any]:
    raw = path.read_text(encoding="utf-8")

    try:  # Python 3.11+
        import tomllib  # type: ignore[attr-defined]
        try:
            return tomllib.loads(raw)
        except tomllib.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc
    except ModuleNotFoundError:
        try:
            import tomli
        except ModuleNotFoundError as exc:
            raise ConfigError("toml parser unavailable; install tomli for Python < 3.11") from exc
        try:
            return tomli.loads(raw)
        except tomli.TOMLDecodeError as exc:
            raise ConfigError(f"invalid TOML in {path}: {exc}") from exc


def _non_empty(source: dict[str, Any], key: str, default: str) -> str:
    value = str(source.get(key, default)).strip()
    if not value:
        raise ConfigError(f"{key} must not be empty")
    return value


def load_cli_config(path: str | Path | None = None) -> CLIConfig:
    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    source: dict[str, Any] = {}
    if config_path.exists():
        parsed = _load_toml(config_path)
        section = parsed.get("bootstrap")
        if isinstance(section, dict):
            source = section
        elif section is None:
            source = parsed
        else:
            raise ConfigError("[bootstrap] must be a table")

    env_grpc_addr = os.getenv(GRPC_ADDR_ENV_VAR)
    grpc_addr = (
        env_grpc_addr.strip()
        if env_grpc_addr and env_grpc_addr.strip()
        else _non_empty(source, "grpc_addr", DEFAULT_GRPC_ADDR)
    )
    env_jsonapi_addr = os.getenv(JSONAPI_ADDR_ENV_VAR)
    jsonapi_addr = (
        env_jsonapi_addr.strip()
        if env_jsonapi_addr and env_jsonapi_addr.strip()
        else _non_empty(source, "jsonapi_addr", DEFAULT_JSONAPI_ADDR)
    )

    poll_interval = parse_duration(source.get("poll_interval", DEFAULT_POLL_INTERVAL), "poll_interval")
    if poll_interval <= 0:
        raise ConfigError("poll_interval must be positive")

    return CLIConfig(
        grpc_addr=grpc_addr,
        jsonapi_addr=jsonapi_addr,
        app_name=_non_empty(source, "app_name", DEFAULT_APP_NAME),
        profile_name=_non_empty(source, "profile_name", DEFAULT_PROFILE_NAME),
        platform=_non_empty(source, "platform", DEFAULT_PLATFORM),
        client_version=_non_empty(source, "client_version", DEFAULT_CLIENT_VERSION),
        timeout=parse_duration(source.get("timeout", DEFAULT_TIMEOUT_SECONDS), "timeout"),
        wait_spaces=parse_duration(source.get("wait_spaces", DEFAULT_WAIT_SPACES_SECONDS), "wait_spaces"),
        poll_interval=poll_interval,
    )
