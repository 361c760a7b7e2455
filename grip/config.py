"""
GRIP Configuration

Parses GRIP control URIs and loads publisher settings from the environment.
Environment variables are read only here, never elsewhere in the package.

GRIP URI format:
  https://api.example.com/realm/abc?iss=abc&key=base64:c2VjcmV0
    -> {"control_uri": "https://api.example.com/realm/abc",
        "control_iss": "abc",
        "key": b"secret"}
"""
from __future__ import annotations

import base64
import binascii
import os
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


def parse_grip_uri(uri: str) -> dict[str, Any]:
    """
    Split a GRIP URI into a client config entry.

    The iss and key query parameters are removed from the control URI; any
    other query parameters are kept. A key prefixed with ``base64:`` is
    decoded to bytes.
    """
    parts = urlsplit(uri)
    if parts.scheme not in ("http", "https") or not parts.netloc:
        raise ConfigurationError(f"Invalid GRIP URI: {uri!r}")

    iss = None
    key: str | bytes | None = None
    remaining = []
    for name, value in parse_qsl(parts.query, keep_blank_values=True):
        if name == "iss":
            iss = value
        elif name == "key":
            key = value
        else:
            remaining.append((name, value))

    if isinstance(key, str) and key.startswith("base64:"):
        try:
            key = base64.b64decode(key[len("base64:"):], validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ConfigurationError(f"Invalid base64 key in GRIP URI: {exc}") from exc

    path = parts.path[:-1] if parts.path.endswith("/") else parts.path
    control_uri = urlunsplit((parts.scheme, parts.netloc, path, urlencode(remaining), ""))

    out: dict[str, Any] = {"control_uri": control_uri}
    if iss is not None:
        out["control_iss"] = iss
    if key is not None:
        out["key"] = key
    return out


def _require_env(name: str, description: str) -> str:
    """Get a required environment variable or raise ConfigurationError."""
    value = os.environ.get(name)
    if not value:
        raise ConfigurationError(
            f"Missing required environment variable: {name}\n"
            f"Description: {description}"
        )
    return value


def _optional_env_float(name: str, default: float) -> float:
    """Get an optional float environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    try:
        parsed = float(value)
    except ValueError:
        raise ConfigurationError(f"Invalid number for {name}: {value}")
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return parsed


def _optional_env_bool(name: str, default: bool) -> bool:
    """Get an optional boolean environment variable with a default."""
    value = os.environ.get(name)
    if not value:
        return default
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes"):
        return True
    if lowered in ("false", "0", "no"):
        return False
    raise ConfigurationError(f"Invalid boolean value for {name}: {value}")


@dataclass(frozen=True)
class GripSettings:
    """Publisher settings for one GRIP control endpoint."""
    url: str
    timeout_seconds: float = 10.0
    verify_ssl: bool = True

    def client_config(self) -> dict[str, Any]:
        """Get the parsed config entry for this endpoint."""
        return parse_grip_uri(self.url)


def load_settings() -> GripSettings:
    """Load GripSettings from GRIP_URL, GRIP_TIMEOUT_SECONDS and GRIP_VERIFY_SSL."""
    url = _require_env("GRIP_URL", "GRIP control URI, e.g. https://host/realm/x?iss=x&key=...")
    settings = GripSettings(
        url=url,
        timeout_seconds=_optional_env_float("GRIP_TIMEOUT_SECONDS", 10.0),
        verify_ssl=_optional_env_bool("GRIP_VERIFY_SSL", True),
    )
    # validate the URI now
    settings.client_config()
    return settings
