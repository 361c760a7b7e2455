"""
HTTP Transport

The publisher depends only on the Transport protocol below. AiohttpTransport
is the default implementation; tests and embedding applications may inject
any object with the same shape.

A transport either returns a response (whose body is read separately and may
still fail) or raises TransportError when no response was obtained at all.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import aiohttp

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Raised when no HTTP response could be obtained."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


@dataclass(frozen=True)
class PublishRequest:
    """A fully assembled HTTP request."""

    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


@runtime_checkable
class TransportResponse(Protocol):
    """An HTTP response whose status line has already arrived."""

    status_code: int

    async def text(self) -> str:
        """Drain the body and decode it. May raise independently of the status."""
        ...


@runtime_checkable
class Transport(Protocol):
    """Sends requests; safe for concurrent use by several publish calls."""

    async def send(self, request: PublishRequest) -> TransportResponse:
        """
        Send *request* and return once the status line is available.

        Raises TransportError if no response was obtained.
        """
        ...

    async def close(self) -> None:
        """Release any pooled connections."""
        ...


class AiohttpResponse:
    """TransportResponse backed by an aiohttp.ClientResponse."""

    def __init__(self, response: aiohttp.ClientResponse) -> None:
        self._response = response
        self.status_code = response.status

    async def text(self) -> str:
        try:
            raw = await self._response.read()
        finally:
            self._response.release()

        # the body is fully read here; undecodable bytes are replaced
        encoding = self._response.charset or "utf-8"
        try:
            return raw.decode(encoding, errors="replace")
        except LookupError:
            return raw.decode("utf-8", errors="replace")


class AiohttpTransport:
    """
    Transport backed by one shared aiohttp.ClientSession.

    The session is created lazily inside the running event loop and
    recreated if the transport is later used from a different loop.

    Args:
        timeout_seconds: Total time allowed per request, body included.
        verify_ssl:      Verify TLS certificates of the publish endpoint.
    """

    def __init__(self, timeout_seconds: float = 10.0, verify_ssl: bool = True) -> None:
        self._timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self._verify_ssl = verify_ssl
        self._session: aiohttp.ClientSession | None = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def _get_session(self) -> aiohttp.ClientSession:
        loop = asyncio.get_running_loop()
        if self._session is not None and not self._session.closed and self._loop is loop:
            return self._session

        if self._session is not None and not self._session.closed:
            logger.warning(
                "AiohttpTransport used from a new event loop; the previous session "
                "cannot be closed from here and is abandoned"
            )

        connector = aiohttp.TCPConnector(ssl=self._verify_ssl)
        self._session = aiohttp.ClientSession(timeout=self._timeout, connector=connector)
        self._loop = loop
        logger.debug("AiohttpTransport opened session")
        return self._session

    async def send(self, request: PublishRequest) -> TransportResponse:
        session = self._get_session()
        try:
            response = await session.request(
                request.method,
                request.url,
                headers=request.headers,
                data=request.body,
            )
        except asyncio.TimeoutError as exc:
            raise TransportError(f"Request to {request.url} timed out") from exc
        except aiohttp.ClientError as exc:
            raise TransportError(str(exc) or type(exc).__name__) from exc

        return AiohttpResponse(response)

    async def close(self) -> None:
        if self._session is not None:
            if not self._session.closed and self._loop is asyncio.get_running_loop():
                await self._session.close()
                logger.debug("AiohttpTransport closed session")
            elif not self._session.closed:
                logger.warning(
                    "AiohttpTransport closed from a different event loop; session abandoned"
                )
            self._session = None
            self._loop = None
