"""Concurrent discovery of requested shapes: columns, count, and sample per shape."""

from concurrent.futures import ThreadPoolExecutor
from threading import Event

from sqlalchemy.exc import SQLAlchemyError

from .._logging import get_logger
from ..connection import ConnectionOwner
from ..contracts import DiscoverMode, DiscoverShapesRequest, DiscoverShapesResponse, Shape
from ..errors import PublisherError
from ..publish.reader import read_records
from .columns import populate_shape_columns
from .count import COUNT_TIMEOUT_SECONDS, estimate_count

LOGGER = get_logger("discovery.shapes")


def collect_sample(owner: ConnectionOwner, shape: Shape, sample_size: int, cancel: Event | None = None) -> None:
    """Append up to `sample_size` records to shape.sample; records read before a failure are kept."""
    for record in read_records(owner, shape, sample_size, cancel):
        shape.sample.append(record)


def discover_shape(
    owner: ConnectionOwner,
    shape: Shape,
    sample_size: int = 0,
    count_timeout: float = COUNT_TIMEOUT_SECONDS,
) -> Shape:
    """Populate one shape. Failures are recorded on shape.errors and end the shape's discovery."""
    LOGGER.debug("Getting details for shape %s", shape.id)
    try:
        populate_shape_columns(owner, shape)
    except (PublisherError, SQLAlchemyError) as exc:
        LOGGER.error("Error discovering columns for shape %s: %s", shape.id, exc)
        shape.errors.append(f"Could not discover columns: {exc}")
        return shape

    try:
        shape.count = estimate_count(owner, shape, timeout=count_timeout)
    except (PublisherError, SQLAlchemyError) as exc:
        LOGGER.error("Error getting row count for shape %s: %s", shape.id, exc)
        shape.errors.append(f"Could not get row count for shape: {exc}")
        return shape
    LOGGER.debug("Got count %s for shape %s", shape.count.format(), shape.id)

    if sample_size > 0:
        try:
            collect_sample(owner, shape, sample_size)
        except (PublisherError, SQLAlchemyError) as exc:
            LOGGER.error("Error collecting sample for shape %s: %s", shape.id, exc)
            shape.errors.append(f"Could not collect sample: {exc}")
            return shape
        LOGGER.debug("Got %s sample records for shape %s", len(shape.sample), shape.id)

    return shape


def discover_shapes(
    owner: ConnectionOwner,
    request: DiscoverShapesRequest,
    count_timeout: float = COUNT_TIMEOUT_SECONDS,
) -> DiscoverShapesResponse:
    """Discover every requested shape in parallel and return them sorted by id."""
    owner.require_connected()

    if request.mode == DiscoverMode.ALL:
        LOGGER.debug("Automatic shape discovery is not supported, returning no shapes")
        return DiscoverShapesResponse()

    shapes = list(request.to_refresh)
    LOGGER.debug("Refreshing %s shapes", len(shapes))
    if not shapes:
        return DiscoverShapesResponse()

    max_workers = min(len(shapes), owner.settings.max_concurrency)
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="discover") as executor:
        futures = [
            executor.submit(discover_shape, owner, shape, request.sample_size, count_timeout)
            for shape in shapes
        ]
        for future in futures:
            future.result()

    return DiscoverShapesResponse(shapes=sorted(shapes, key=lambda shape: shape.id))
