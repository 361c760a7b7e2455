"""
Publish Payload

Builds the JSON envelope POSTed to the GRIP publish endpoint.

Wire format (envelope):
  {
    "items": [
      { ...item export..., "channel": "<name>" },
      ...
    ]
  }

Each item export keeps its own key order; "channel" is always appended last.
"""
from __future__ import annotations

import json
from typing import Any, Sequence

from .data import Item


class SerializationError(Exception):
    """Raised when a payload cannot be encoded as JSON."""


def build_payload(channel: str, items: Sequence[Item]) -> dict[str, Any]:
    """
    Combine a channel name and items into the publish envelope.

    The caller's items are never mutated; each export is a fresh dict.
    Raises ValueError if items is empty.
    """
    if not items:
        raise ValueError("At least one item is required to publish")

    exports = []
    for item in items:
        export = dict(item.export())
        export.pop("channel", None)
        export["channel"] = channel
        exports.append(export)

    return {"items": exports}


def serialize_payload(payload: dict[str, Any]) -> bytes:
    """
    Encode a payload as compact UTF-8 JSON.

    The returned bytes are what goes on the wire, so len() of the result is
    the Content-Length. Raises SerializationError if encoding fails.
    """
    try:
        return json.dumps(payload, separators=(",", ":")).encode("utf-8")
    except (TypeError, ValueError) as exc:
        raise SerializationError(f"Failed to serialize publish payload: {exc}") from exc
