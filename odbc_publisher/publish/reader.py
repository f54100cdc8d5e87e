"""Row reader: runs a shape's query and yields one UPSERT record per row."""

from decimal import Decimal
from threading import Event
from typing import Any, Callable, Iterator, Sequence

from sqlalchemy import literal_column, select, text
from sqlalchemy.engine import Dialect
from sqlalchemy.exc import SQLAlchemyError

from .._logging import get_logger
from ..connection import ConnectionOwner
from ..contracts import Property, PropertyType, Record, RecordAction, Shape, column_property_names
from ..errors import PublishError

LOGGER = get_logger("publish.reader")


def _to_integer(value: Any) -> int:
    # int() would truncate 1.9 to 1
    if isinstance(value, float) and not value.is_integer():
        raise ValueError("value is not integral")
    if isinstance(value, Decimal) and value != value.to_integral_value():
        raise ValueError("value is not integral")
    return int(value)


_DECODERS: dict[PropertyType, Callable[[Any], Any]] = {
    PropertyType.FLOAT: float,
    PropertyType.INTEGER: _to_integer,
    # decimals travel as text to keep their precision
    PropertyType.DECIMAL: str,
}


def build_limited_query(dialect: Dialect, query: str, limit: int) -> str:
    """Wrap the query in a top-N selection rendered for the given dialect."""
    if limit <= 0:
        return query

    subquery = text(f"({query}) AS q".replace(":", "\\:"))
    statement = select(literal_column("*")).select_from(subquery).limit(limit)
    return str(statement.compile(dialect=dialect, compile_kwargs={"literal_binds": True}))


def decode_value(prop: Property, value: Any) -> Any:
    if value is None:
        return None

    if isinstance(value, (bytes, bytearray, memoryview)):
        value = bytes(value).decode("utf-8", errors="replace")

    decoder = _DECODERS.get(prop.type)
    if decoder is None:
        return value

    try:
        return decoder(value)
    except (TypeError, ValueError, ArithmeticError) as exc:
        raise PublishError(f"could not decode {value!r} as {prop.type.value} for property {prop.id}: {exc}") from exc


def column_properties(shape: Shape, column_names: Sequence[str | None]) -> list[Property]:
    """Match each result column to the shape property with the same id, in column order."""
    properties: list[Property] = []
    for name in column_property_names(column_names):
        prop = shape.find_property(f"[{name}]")
        if prop is None:
            raise PublishError(f"shape {shape.id} has no property for column [{name}]")
        properties.append(prop)
    return properties


def build_record(properties: Sequence[Property], row: Sequence[Any]) -> Record:
    """Encode one row; `properties` must be in the row's column order."""
    if len(row) != len(properties):
        raise PublishError(f"expected {len(properties)} columns per row, got {len(row)}")

    data = {prop.id: decode_value(prop, value) for prop, value in zip(properties, row)}
    try:
        return Record.from_data(RecordAction.UPSERT, data)
    except (TypeError, ValueError) as exc:
        raise PublishError(f"could not encode record: {exc}") from exc


def read_records(
    owner: ConnectionOwner,
    shape: Shape,
    limit: int = 0,
    cancel: Event | None = None,
) -> Iterator[Record]:
    """
    Yield records for every row of the shape's query.

    Rows are fetched only as fast as the caller consumes records. Before each row
    the cancel event and the owner's disconnect event are checked; either one
    stops the stream without an error.
    """
    engine = owner.require_connected()
    disconnected = owner.disconnected

    if not shape.query:
        raise PublishError("query cannot be empty")

    query = build_limited_query(engine.dialect, shape.query, limit)

    try:
        with engine.connect() as connection:
            try:
                result = connection.exec_driver_sql(query)
            except SQLAlchemyError as exc:
                raise PublishError(f"error executing query {query!r}: {exc}") from exc

            with result:
                properties = column_properties(shape, list(result.keys()))
                for row in result:
                    if (cancel is not None and cancel.is_set()) or disconnected.is_set():
                        LOGGER.debug("Stopped reading shape %s before the end of its rows", shape.id)
                        return
                    yield build_record(properties, row)
    except SQLAlchemyError as exc:
        raise PublishError(f"error reading rows for shape {shape.id}: {exc}") from exc
