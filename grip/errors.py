"""
Publish Errors

Every failed publish surfaces as a single PublishError carrying a message
and a data dict. Callers discriminate the failure kind on the data:

  TransportFailure  {"status_code": -1}
  HttpFailure       {"status_code": <code>}             message = body text
  BodyReadFailure   {"status_code": <2xx>, "http_body": <exception>}
"""
from __future__ import annotations

from typing import Any

# status_code used when no HTTP response was ever obtained
NO_RESPONSE = -1

CONNECTION_CLOSED_MESSAGE = "Connection Closed Unexpectedly"


class PublishError(Exception):
    """Raised when a publish call fails."""

    def __init__(self, message: str, data: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.data = data if data is not None else {"status_code": NO_RESPONSE}

    @property
    def status_code(self) -> int:
        return self.data["status_code"]

    @property
    def is_transport_failure(self) -> bool:
        return self.status_code == NO_RESPONSE

    @property
    def is_body_read_failure(self) -> bool:
        return "http_body" in self.data

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"PublishError(message={self.message!r}, data={self.data!r})"
