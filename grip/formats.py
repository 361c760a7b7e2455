"""
Built-in Formats

Concrete formats understood by GRIP gateways. Binary content is carried
base64-encoded under a "-bin" suffixed key.
"""
from __future__ import annotations

import base64
from typing import Any

from .data import FormatBase


def _content_field(key: str, value: str | bytes) -> dict[str, str]:
    if isinstance(value, bytes):
        return {f"{key}-bin": base64.b64encode(value).decode("ascii")}
    return {key: value}


class HttpResponseFormat(FormatBase):
    """Full HTTP response delivered to held long-polling requests."""

    def __init__(
        self,
        code: int | None = None,
        reason: str | None = None,
        headers: dict[str, str] | None = None,
        body: str | bytes | None = None,
    ) -> None:
        self.code = code
        self.reason = reason
        self.headers = headers
        self.body = body

    def name(self) -> str:
        return "http-response"

    def export(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.code is not None:
            out["code"] = self.code
        if self.reason is not None:
            out["reason"] = self.reason
        if self.headers:
            out["headers"] = dict(self.headers)
        if self.body is not None:
            out.update(_content_field("body", self.body))
        return out


class HttpStreamFormat(FormatBase):
    """Chunk appended to open HTTP streaming responses, or a close action."""

    def __init__(self, content: str | bytes | None = None, close: bool = False) -> None:
        if not close and content is None:
            raise ValueError("HttpStreamFormat requires content unless close=True")
        self.content = content
        self.close = close

    def name(self) -> str:
        return "http-stream"

    def export(self) -> dict[str, Any]:
        if self.close:
            return {"action": "close"}
        return _content_field("content", self.content)


class WebSocketMessageFormat(FormatBase):
    """Message sent to subscribed WebSocket connections."""

    def __init__(self, content: str | bytes) -> None:
        self.content = content

    def name(self) -> str:
        return "ws-message"

    def export(self) -> dict[str, Any]:
        return _content_field("content", self.content)
