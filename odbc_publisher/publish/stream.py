"""Full publish: pre-publish query, record stream to a sink, post-publish query."""

from threading import Event
from typing import Protocol

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .._logging import get_logger
from ..connection import ConnectionOwner
from ..contracts import PublishRequest, Record
from ..errors import PublishError
from .reader import read_records

LOGGER = get_logger("publish.stream")


class RecordSink(Protocol):
    def send(self, record: Record) -> None: ...


def _run_side_query(engine: Engine, query: str) -> None:
    with engine.begin() as connection:
        connection.exec_driver_sql(query)


def publish_stream(
    owner: ConnectionOwner,
    request: PublishRequest,
    sink: RecordSink,
    cancel: Event | None = None,
) -> None:
    """Stream the request's shape into `sink`; raises on query, decode, sink, or pre/post query failure."""
    engine = owner.require_connected()
    settings = owner.settings

    if request.shape is None:
        raise PublishError("publish request must include a shape")

    LOGGER.debug("Publishing shape %s with limit %s", request.shape.id, request.limit)

    if settings.pre_publish_query:
        try:
            _run_side_query(engine, settings.pre_publish_query)
        except SQLAlchemyError as exc:
            raise PublishError(f"error running pre-publish query: {exc}") from exc

    cancel = cancel or Event()
    error: Exception | None = None
    sent = 0

    records = read_records(owner, request.shape, request.limit, cancel)
    try:
        for record in records:
            try:
                sink.send(record)
            except Exception as exc:
                cancel.set()
                error = exc
                break
            sent += 1
    except Exception as exc:
        error = exc
    finally:
        records.close()

    LOGGER.debug("Sent %s records for shape %s", sent, request.shape.id)

    if settings.post_publish_query:
        try:
            _run_side_query(engine, settings.post_publish_query)
        except SQLAlchemyError as exc:
            message = str(exc)
            if error is not None:
                message = f"{message} (publish had already stopped with error: {error})"
            raise PublishError(f"error running post-publish query: {message}") from exc

    if error is not None:
        raise error
