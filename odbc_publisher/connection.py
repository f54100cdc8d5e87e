"""Owner of the live SQLAlchemy engine, the connected flag and the disconnect event."""

from threading import Event
from typing import Callable

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

from ._logging import get_logger
from .errors import ConnectionFailedError, NotConnectedError
from .settings import Settings

LOGGER = get_logger("connection")

EngineFactory = Callable[[URL, Settings], Engine]


def create_source_engine(url: URL, settings: Settings) -> Engine:
    """Build the engine; every concurrent unit checks out its own pooled connection."""
    if url.get_backend_name() == "sqlite":
        return create_engine(url, pool_pre_ping=True, connect_args={"check_same_thread": False})

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=settings.max_concurrency,
        max_overflow=10,
    )


class ConnectionOwner:
    """
    Holds the engine for one connection at a time.

    `disconnected` is replaced on every successful connect and set on release, so
    row loops and counts started under one connection stop when it goes away,
    even if a new connection is opened in the meantime.
    """

    def __init__(self, engine_factory: EngineFactory = create_source_engine) -> None:
        self._engine_factory = engine_factory
        self.engine: Engine | None = None
        self.settings: Settings | None = None
        self.connected = False
        self.disconnected = Event()

    def connect(self, settings: Settings) -> None:
        """Validate settings, open the engine and ping it. Raises on any failure."""
        self._release()

        settings.validate_settings()
        url = settings.build_engine_url()

        try:
            engine = self._engine_factory(url, settings)
        except (SQLAlchemyError, ImportError) as exc:
            raise ConnectionFailedError(f"could not open connection: {exc}") from exc

        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            engine.dispose()
            raise ConnectionFailedError(f"could not ping: {exc}") from exc

        self.engine = engine
        self.settings = settings
        self.disconnected = Event()
        self.connected = True
        LOGGER.debug("Connected using %s", url.render_as_string(hide_password=True))

    def disconnect(self) -> None:
        """Dispose the engine and clear state. Safe to call when not connected."""
        self._release()
        LOGGER.debug("Disconnected")

    def require_connected(self) -> Engine:
        if not self.connected or self.engine is None:
            raise NotConnectedError()
        return self.engine

    def _release(self) -> None:
        engine = self.engine
        self.connected = False
        self.disconnected.set()
        self.settings = None
        self.engine = None
        if engine is not None:
            engine.dispose()
