"""Publish relational data from a SQL source as typed, schema-aware record streams."""

from .connection import ConnectionOwner
from .contracts import (
    ConnectRequest,
    ConnectResponse,
    Count,
    CountKind,
    DisconnectRequest,
    DisconnectResponse,
    DiscoverMode,
    DiscoverShapesRequest,
    DiscoverShapesResponse,
    Property,
    PropertyType,
    PublishRequest,
    Record,
    RecordAction,
    Shape,
)
from .errors import (
    ConnectionFailedError,
    DiscoveryError,
    NotConnectedError,
    PublishError,
    PublisherError,
    SettingsError,
)
from .server import Server
from .settings import Settings

__all__ = [
    "ConnectionOwner",
    "Server",
    "Settings",
    "ConnectRequest",
    "ConnectResponse",
    "Count",
    "CountKind",
    "DisconnectRequest",
    "DisconnectResponse",
    "DiscoverMode",
    "DiscoverShapesRequest",
    "DiscoverShapesResponse",
    "Property",
    "PropertyType",
    "PublishRequest",
    "Record",
    "RecordAction",
    "Shape",
    "PublisherError",
    "SettingsError",
    "ConnectionFailedError",
    "NotConnectedError",
    "DiscoveryError",
    "PublishError",
]
