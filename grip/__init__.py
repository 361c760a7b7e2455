"""
grip: Publish client for GRIP proxies.

Public API:
    PublisherClient : publish items to one GRIP control endpoint
    Publisher       : fan the same items out to several endpoints
    Item, Format    : message wrapper and the format protocol it holds
    PublishError    : raised for every failed publish
    parse_grip_uri  : GRIP URI -> client config entry
"""
from .auth import AuthCredential, BasicAuth, JwtAuth
from .config import ConfigurationError, GripSettings, load_settings, parse_grip_uri
from .data import Format, FormatBase, Item
from .errors import PublishError
from .formats import HttpResponseFormat, HttpStreamFormat, WebSocketMessageFormat
from .payload import SerializationError, build_payload, serialize_payload
from .publisher import Publisher, PublisherClient
from .transport import AiohttpTransport, PublishRequest, Transport, TransportError

__all__ = [
    "AuthCredential",
    "BasicAuth",
    "JwtAuth",
    "ConfigurationError",
    "GripSettings",
    "load_settings",
    "parse_grip_uri",
    "Format",
    "FormatBase",
    "Item",
    "PublishError",
    "HttpResponseFormat",
    "HttpStreamFormat",
    "WebSocketMessageFormat",
    "SerializationError",
    "build_payload",
    "serialize_payload",
    "Publisher",
    "PublisherClient",
    "AiohttpTransport",
    "PublishRequest",
    "Transport",
    "TransportError",
]
