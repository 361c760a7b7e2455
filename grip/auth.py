"""
Authorization Credentials

Each credential renders a complete Authorization header value. Rendering is
pure: no network or file I/O.

Usage:
    BasicAuth("user", "pass").render_header()        # "Basic dXNlcjpwYXNz"
    JwtAuth(claim={"iss": "realm"}, key="secret").render_header()
    JwtAuth(token="abc").render_header()              # "Bearer abc"
"""
from __future__ import annotations

import base64
from typing import Any, Callable, Mapping, Protocol, runtime_checkable

import jwt

Signer = Callable[[Mapping[str, Any], "str | bytes"], str]


@runtime_checkable
class AuthCredential(Protocol):
    """Renders itself into an Authorization header value."""

    def render_header(self) -> str: ...


def sign_hs256(claim: Mapping[str, Any], key: str | bytes) -> str:
    """Sign a claim with HS256. Same claim and key always yield the same token."""
    return jwt.encode(dict(claim), key, algorithm="HS256")


class BasicAuth:
    """HTTP Basic credentials."""

    def __init__(self, user: str, pass_: str) -> None:
        self.user = user
        self.pass_ = pass_

    def render_header(self) -> str:
        raw = f"{self.user}:{self.pass_}".encode("utf-8")
        return "Basic " + base64.b64encode(raw).decode("ascii")

    def __repr__(self) -> str:
        return f"BasicAuth(user={self.user!r})"


class JwtAuth:
    """
    Bearer credentials, either a pre-issued token or a claim signed on demand.

    Exactly one mode must be given: ``token``, or both ``claim`` and ``key``.
    The claim is signed each time render_header() is called, never at
    construction.

    Raises:
        ValueError: If neither or both modes are supplied.
    """

    def __init__(
        self,
        claim: Mapping[str, Any] | None = None,
        key: str | bytes | None = None,
        token: str | None = None,
        signer: Signer = sign_hs256,
    ) -> None:
        has_claim = claim is not None or key is not None
        if token is not None and has_claim:
            raise ValueError("JwtAuth takes either a token or a claim and key, not both")
        if token is None and (claim is None or key is None):
            raise ValueError("JwtAuth requires a token, or both a claim and a key")

        self.claim = dict(claim) if claim is not None else None
        self.key = key
        self.token = token
        self._signer = signer

    def render_header(self) -> str:
        if self.token is not None:
            return "Bearer " + self.token
        return "Bearer " + self._signer(self.claim, self.key)

    def __repr__(self) -> str:
        mode = "token" if self.token is not None else "claim"
        return f"JwtAuth(mode={mode!r})"
