"""Bounded-time row counting for a shape."""

from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from threading import Event, Thread

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .._logging import get_logger
from ..connection import ConnectionOwner
from ..contracts import Count, CountKind, Shape
from ..errors import DiscoveryError, NotConnectedError

LOGGER = get_logger("discovery.count")

COUNT_TIMEOUT_SECONDS = 1.0


def _count_rows(engine: Engine, query: str, abandoned: Event, disconnected: Event) -> int:
    with engine.connect() as connection:
        try:
            result = connection.exec_driver_sql(query)
        except SQLAlchemyError as exc:
            raise DiscoveryError(f"error executing query {query!r}: {exc}") from exc

        count = 0
        with result:
            for _ in result:
                if disconnected.is_set():
                    raise NotConnectedError()
                # nobody is waiting for the total any more; give the connection back
                if abandoned.is_set():
                    break
                count += 1
        return count


def estimate_count(owner: ConnectionOwner, shape: Shape, timeout: float = COUNT_TIMEOUT_SECONDS) -> Count:
    """
    Count the rows of the shape's query, giving up after `timeout` seconds.

    A count still running at the deadline is reported as UNAVAILABLE; its daemon
    thread stops at the next row and returns its pooled connection. Execution
    errors raised before the deadline propagate.
    """
    if not shape.query:
        raise DiscoveryError(f"query must be defined for shape: {shape.id}")

    engine = owner.require_connected()
    disconnected = owner.disconnected
    abandoned = Event()
    future: Future[int] = Future()

    def worker() -> None:
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(_count_rows(engine, shape.query, abandoned, disconnected))
        except Exception as exc:
            future.set_exception(exc)

    Thread(target=worker, name=f"count-{shape.id}", daemon=True).start()

    try:
        value = future.result(timeout=timeout)
    except FutureTimeoutError:
        abandoned.set()
        LOGGER.debug("Count for shape %s did not finish within %ss", shape.id, timeout)
        return Count(kind=CountKind.UNAVAILABLE)

    return Count(kind=CountKind.EXACT, value=value)
