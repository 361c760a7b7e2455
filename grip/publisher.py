"""
GRIP Publisher

PublisherClient POSTs items to one GRIP control endpoint and turns every
failure into a PublishError. Publisher fans the same items out to several
endpoints.

Usage:
    client = PublisherClient("https://api.example.com/realm/abc")
    client.set_auth_jwt({"iss": "abc"}, b"secret")
    await client.publish("updates", Item(WebSocketMessageFormat("hello")))
    await client.close()

Context manager usage:
    async with Publisher(parse_grip_uri(url)) as pub:
        await pub.publish_http_stream("updates", "chunk\\n")

Synchronous callers:
    client.publish_sync("updates", item)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Iterable, Mapping, Union

from .auth import AuthCredential, BasicAuth, JwtAuth
from .config import ConfigurationError, GripSettings
from .data import Format, Item
from .errors import CONNECTION_CLOSED_MESSAGE, NO_RESPONSE, PublishError
from .formats import HttpResponseFormat, HttpStreamFormat
from .payload import build_payload, serialize_payload
from .transport import AiohttpTransport, PublishRequest, Transport, TransportError

logger = logging.getLogger(__name__)

Items = Union[Item, Iterable[Item]]


def _as_item_list(items: Items) -> list[Item]:
    if isinstance(items, Item):
        return [items]
    return list(items)


class PublisherClient:
    """
    Publishes items to a single GRIP control endpoint.

    The client is reusable across any number of publish calls and stays
    usable after a failed one. Set the credential before publishing
    concurrently; it is not guarded by a lock.

    Args:
        uri:       Control endpoint base URI. One trailing slash is stripped.
        transport: HTTP transport. Defaults to a new AiohttpTransport.
    """

    def __init__(self, uri: str, transport: Transport | None = None) -> None:
        self.uri = uri[:-1] if uri.endswith("/") else uri
        self.auth: AuthCredential | None = None
        self.transport: Transport = transport if transport is not None else AiohttpTransport()

    @classmethod
    def from_config(
        cls, entry: Mapping[str, Any], transport: Transport | None = None
    ) -> PublisherClient:
        """
        Build a client from a config entry such as parse_grip_uri() returns.

        Recognized keys: control_uri (required), control_iss + key for a
        signed JWT, key alone for a bearer token, user + pass for Basic auth.
        """
        if "control_uri" not in entry:
            raise ConfigurationError("GRIP config entry is missing control_uri")

        client = cls(entry["control_uri"], transport)
        if "control_iss" in entry:
            if "key" not in entry:
                raise ConfigurationError("GRIP config entry has control_iss but no key")
            client.set_auth_jwt({"iss": entry["control_iss"]}, entry["key"])
        elif "key" in entry:
            key = entry["key"]
            if isinstance(key, bytes):
                try:
                    key = key.decode("utf-8")
                except UnicodeDecodeError as exc:
                    raise ConfigurationError(
                        "GRIP config key without control_iss must be a text token"
                    ) from exc
            client.set_auth_jwt(key)
        elif "user" in entry:
            client.set_auth_basic(entry["user"], entry.get("pass", ""))
        return client

    @classmethod
    def from_settings(cls, settings: GripSettings) -> PublisherClient:
        """Build a client, with its own AiohttpTransport, from loaded settings."""
        transport = AiohttpTransport(
            timeout_seconds=settings.timeout_seconds,
            verify_ssl=settings.verify_ssl,
        )
        return cls.from_config(settings.client_config(), transport)

    @property
    def publish_url(self) -> str:
        return self.uri + "/publish/"

    # ── Auth ──────────────────────────────────────────────────────────────────

    def set_auth_basic(self, user: str, pass_: str) -> None:
        """Use HTTP Basic credentials for subsequent publishes."""
        self.auth = BasicAuth(user, pass_)

    def set_auth_jwt(
        self, claim_or_token: Mapping[str, Any] | str, key: str | bytes | None = None
    ) -> None:
        """
        Use bearer credentials for subsequent publishes.

        A mapping is treated as a claim signed with *key* at publish time;
        a string is used as a ready-made token.
        """
        if isinstance(claim_or_token, str):
            self.auth = JwtAuth(token=claim_or_token)
        else:
            self.auth = JwtAuth(claim=claim_or_token, key=key)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def close(self) -> None:
        """Release the transport's connections."""
        await self.transport.close()

    async def __aenter__(self) -> PublisherClient:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    # ── Publish ───────────────────────────────────────────────────────────────

    def build_request(self, channel: str, items: Items) -> PublishRequest:
        """Assemble the POST request for *items* without sending it."""
        body = serialize_payload(build_payload(channel, _as_item_list(items)))
        headers = {
            "Content-Type": "application/json",
            "Content-Length": str(len(body)),
        }
        if self.auth is not None:
            headers["Authorization"] = self.auth.render_header()
        return PublishRequest(method="POST", url=self.publish_url, headers=headers, body=body)

    async def publish(self, channel: str, items: Items) -> None:
        """
        Publish one item, or several in a single request, to *channel*.

        Raises:
            PublishError: If the request could not be sent
                (status_code -1), the endpoint answered outside 2xx, or a
                2xx response body could not be read (http_body set).
            SerializationError: If an item export is not JSON-serializable.
        """
        item_list = _as_item_list(items)
        request = self.build_request(channel, item_list)

        try:
            response = await self.transport.send(request)
        except TransportError as exc:
            logger.warning("Publish to '%s' failed before a response: %s", channel, exc.message)
            raise PublishError(exc.message, {"status_code": NO_RESPONSE}) from exc

        status_code = response.status_code
        success = 200 <= status_code < 300
        read_error: Exception | None = None
        try:
            body = await response.text()
        except Exception as exc:
            read_error = exc
            body = str(exc)

        if read_error is not None and success:
            logger.warning(
                "Publish to '%s' got %d but the body could not be read: %r",
                channel,
                status_code,
                read_error,
            )
            raise PublishError(
                CONNECTION_CLOSED_MESSAGE,
                {"status_code": status_code, "http_body": read_error},
            ) from read_error

        if not success:
            logger.warning("Publish to '%s' rejected with status %d", channel, status_code)
            raise PublishError(body, {"status_code": status_code})

        logger.debug("Published %d item(s) to '%s'", len(item_list), channel)

    def publish_sync(self, channel: str, items: Items) -> None:
        """
        Publish and block until done. Must not be called from a running loop.

        The transport is closed afterwards; it reopens on the next publish.
        """
        async def _run() -> None:
            try:
                await self.publish(channel, items)
            finally:
                await self.transport.close()

        asyncio.run(_run())


class Publisher:
    """
    Publishes the same items to every configured GRIP endpoint.

    Clients built from config share one transport unless a client is added
    with its own.

    Args:
        config:    One config entry or a list of them (see parse_grip_uri).
        transport: Transport shared by clients built from config.
    """

    def __init__(
        self,
        config: Mapping[str, Any] | Iterable[Mapping[str, Any]] | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.clients: list[PublisherClient] = []
        self._transport: Transport = transport if transport is not None else AiohttpTransport()
        if config is not None:
            self.apply_config(config)

    def apply_config(self, config: Mapping[str, Any] | Iterable[Mapping[str, Any]]) -> None:
        entries = [config] if isinstance(config, Mapping) else list(config)
        for entry in entries:
            self.add_client(PublisherClient.from_config(entry, self._transport))

    def add_client(self, client: PublisherClient) -> None:
        self.clients.append(client)

    async def close(self) -> None:
        """Close the shared transport and any client-owned ones."""
        transports = {id(self._transport): self._transport}
        for client in self.clients:
            transports.setdefault(id(client.transport), client.transport)
        for transport in transports.values():
            await transport.close()

    async def __aenter__(self) -> Publisher:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()

    async def publish(self, channel: str, items: Items) -> None:
        """
        Publish to all clients concurrently.

        Every client is attempted; the first PublishError (in client order)
        is raised once all have finished.
        """
        item_list = _as_item_list(items)
        if not self.clients:
            logger.debug("Publisher has no clients, dropping publish to '%s'", channel)
            return

        results = await asyncio.gather(
            *(client.publish(channel, item_list) for client in self.clients),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            logger.warning(
                "Publish to '%s' failed on %d of %d client(s)",
                channel,
                len(failures),
                len(self.clients),
            )
            raise failures[0]

    async def publish_http_response(
        self,
        channel: str,
        data: str | bytes | Format,
        id: str | None = None,
        prev_id: str | None = None,
    ) -> None:
        """Publish a full HTTP response body (or a ready format)."""
        fmt = data if isinstance(data, Format) else HttpResponseFormat(body=data)
        await self.publish(channel, Item(fmt, id=id, prev_id=prev_id))

    async def publish_http_stream(
        self,
        channel: str,
        data: str | bytes | Format,
        id: str | None = None,
        prev_id: str | None = None,
    ) -> None:
        """Publish an HTTP stream chunk (or a ready format)."""
        fmt = data if isinstance(data, Format) else HttpStreamFormat(content=data)
        await self.publish(channel, Item(fmt, id=id, prev_id=prev_id))
