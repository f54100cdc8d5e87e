"""The four operations exposed to the transport: connect, discover, publish, disconnect."""

from threading import Event

from ._logging import get_logger, redact_config
from .connection import ConnectionOwner
from .contracts import (
    ConnectRequest,
    ConnectResponse,
    DisconnectRequest,
    DisconnectResponse,
    DiscoverShapesRequest,
    DiscoverShapesResponse,
    PublishRequest,
)
from .discovery.count import COUNT_TIMEOUT_SECONDS
from .discovery.shapes import discover_shapes
from .publish.stream import RecordSink, publish_stream
from .settings import Settings

LOGGER = get_logger("server")


class Server:
    def __init__(self, owner: ConnectionOwner | None = None, *, count_timeout: float = COUNT_TIMEOUT_SECONDS) -> None:
        self.owner = owner or ConnectionOwner()
        self.count_timeout = count_timeout

    @property
    def connected(self) -> bool:
        return self.owner.connected

    def connect(self, request: ConnectRequest) -> ConnectResponse:
        """Decode and validate settings, then open and ping the database."""
        LOGGER.debug("Connecting...")
        self.owner.disconnect()

        settings = Settings.from_json(request.settings_json)
        LOGGER.debug("Connecting with settings %s", redact_config(settings.model_dump()))
        self.owner.connect(settings)

        LOGGER.debug("Connect completed successfully")
        return ConnectResponse()

    def discover_shapes(self, request: DiscoverShapesRequest) -> DiscoverShapesResponse:
        LOGGER.debug("Handling discover shapes request in mode %s", request.mode.value)
        return discover_shapes(self.owner, request, count_timeout=self.count_timeout)

    def publish_stream(self, request: PublishRequest, sink: RecordSink, cancel: Event | None = None) -> None:
        shape_id = request.shape.id if request.shape is not None else None
        LOGGER.debug("Got publish stream request for shape %s with limit %s", shape_id, request.limit)
        publish_stream(self.owner, request, sink, cancel)

    def disconnect(self, request: DisconnectRequest | None = None) -> DisconnectResponse:
        self.owner.disconnect()
        return DisconnectResponse()
