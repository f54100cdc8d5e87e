"""Column discovery and portable type inference for a shape's query."""

from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy.exc import SQLAlchemyError

from .._logging import get_logger
from ..connection import ConnectionOwner
from ..contracts import Property, PropertyType, Shape, column_property_names
from ..errors import DiscoveryError

LOGGER = get_logger("discovery.columns")

TEXT_LENGTH_THRESHOLD = 1024

# DB-API type codes that identify the portable type without looking at data.
_DECLARED_TYPES: dict[type, PropertyType] = {
    bool: PropertyType.BOOL,
    int: PropertyType.INTEGER,
    float: PropertyType.FLOAT,
    Decimal: PropertyType.DECIMAL,
    str: PropertyType.STRING,
}


def infer_value_type(value: Any) -> PropertyType:
    """Infer a portable type from one decoded value."""
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return PropertyType.BOOL
    if isinstance(value, int):
        return PropertyType.INTEGER
    if isinstance(value, float):
        return PropertyType.FLOAT
    if isinstance(value, str):
        return PropertyType.STRING
    if isinstance(value, (bytes, bytearray, memoryview)):
        decoded = bytes(value).decode("utf-8", errors="replace")
        if len(decoded) > TEXT_LENGTH_THRESHOLD:
            return PropertyType.TEXT
        return PropertyType.STRING
    return PropertyType.STRING


def infer_property_type(value: Any, type_code: Any = None) -> PropertyType:
    """Prefer the driver's declared type code, fall back to the value itself."""
    if isinstance(type_code, type):
        declared = _DECLARED_TYPES.get(type_code)
        if declared is not None:
            return declared
    return infer_value_type(value)


def _type_name(type_code: Any) -> str:
    """
    Source type label for a column.

    DB-API drivers report a type code, not the declared column type. pyodbc and
    sqlite3 give the Python class (`str`, `Decimal`, ...) or nothing, so the
    label is that class name or an empty string.
    """
    if type_code is None:
        return ""
    if isinstance(type_code, type):
        return type_code.__name__
    return str(type_code)


def _nullable(column: Sequence[Any]) -> bool:
    null_ok = column[6] if len(column) > 6 else None
    if null_ok is None:
        return True
    return bool(null_ok)


def _resolve_property(shape: Shape, property_name: str) -> Property:
    """Find or append the property for a column."""
    property_id = f"[{property_name}]"
    prop = shape.find_property(property_id)
    if prop is None:
        prop = Property(id=property_id, name=property_name)
        shape.properties.append(prop)
    return prop


def populate_shape_columns(owner: ConnectionOwner, shape: Shape) -> None:
    """Run the shape's query and update shape.properties in place from its columns and first row."""
    if not shape.query:
        raise DiscoveryError(f"query must be defined for shape: {shape.id}")

    engine = owner.require_connected()
    query = shape.query.replace("'", "''")

    with engine.connect() as connection:
        try:
            result = connection.exec_driver_sql(query)
        except SQLAlchemyError as exc:
            raise DiscoveryError(f"error executing query {query!r}: {exc}") from exc

        description = result.cursor.description if result.returns_rows else None
        if not description:
            result.close()
            raise DiscoveryError(f"query did not return any columns: {query!r}")

        column_properties: list[Property] = []
        names = column_property_names([column[0] for column in description])
        for name, column in zip(names, description):
            prop = _resolve_property(shape, name)
            prop.type_at_source = _type_name(column[1])
            prop.is_nullable = _nullable(column)
            prop.is_key = False
            column_properties.append(prop)

        try:
            row = result.fetchone()
        except SQLAlchemyError as exc:
            raise DiscoveryError(f"error reading first row: {exc}") from exc
        finally:
            result.close()

    if row is None:
        LOGGER.debug("Shape %s returned no rows, defaulting column types", shape.id)
        for prop in column_properties:
            prop.type = PropertyType.STRING
        return

    for prop, value, column in zip(column_properties, row, description):
        prop.type = infer_property_type(value, column[1])
