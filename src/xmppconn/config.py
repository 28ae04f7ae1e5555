"""Configuration: YAML + env overlay."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from xmppconn.core.constants import DEFAULT_PORT
from xmppconn.core.errors import XMPPConfigurationError

# env var -> (config key, converter)
_ENV_KEYS: dict[str, tuple[str, type]] = {
    "XMPP_PORT": ("port", int),
    "XMPP_CONNECT_TIMEOUT": ("connect_timeout_seconds", float),
    "XMPP_READ_CHUNK_SIZE": ("read_chunk_size", int),
    "XMPP_ERROR_QUEUE_SIZE": ("error_queue_size", int),
}


def _deep_update(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_update(result[key], value)
        else:
            result[key] = value
    return result


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_name, (key, convert) in _ENV_KEYS.items():
        raw = os.environ.get(env_name)
        if raw is None or raw == "":
            continue
        try:
            overrides[key] = convert(raw)
        except ValueError as exc:
            raise XMPPConfigurationError(
                f"Invalid value for {env_name}: {raw!r}",
                details={"env": env_name},
                original_error=exc,
            ) from exc
    return overrides


def load_config(path: str | Path) -> dict[str, Any]:
    """Load config from YAML file. Use SafeLoader. Returns raw dict."""
    path = Path(path)
    if not path.exists():
        return {}

    with open(path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise XMPPConfigurationError(
                f"Invalid YAML in {path}", details={"path": str(path)}, original_error=exc
            ) from exc
    return data if isinstance(data, dict) else {}


def load_config_with_env(path: str | Path) -> dict[str, Any]:
    """Load config from YAML and overlay XMPP_* env vars.

    Loads .env via python-dotenv when present; env values win over the file.
    """
    from dotenv import load_dotenv

    load_dotenv()
    return _deep_update(load_config(path), _env_overrides())


class Config:
    """Config accessor with attribute-style access for nested keys."""

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data = data or {}

    def reload(self, data: dict[str, Any]) -> None:
        """Replace config data."""
        self._data = data or {}

    @property
    def raw(self) -> dict[str, Any]:
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        """Get value by dot-separated path (e.g. 'tls.ca_file')."""
        parts = key.split(".")
        obj: Any = self._data
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __contains__(self, key: str) -> bool:
        return key in self._data

    @property
    def port(self) -> int:
        """Client port used by dial()."""
        return int(self._data.get("port", DEFAULT_PORT))

    @property
    def connect_timeout_seconds(self) -> float:
        """Timeout for the TCP connect in dial()."""
        return float(self._data.get("connect_timeout_seconds", 30.0))

    @property
    def read_chunk_size(self) -> int:
        """Bytes requested per transport read by the stream decoder."""
        return int(self._data.get("read_chunk_size", 4096))

    @property
    def error_queue_size(self) -> int:
        """Default capacity of QueueErrorSink."""
        return int(self._data.get("error_queue_size", 100))


# Global config instance (callers may reload it)
cfg: Config = Config({})
