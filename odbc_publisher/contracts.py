"""Data contracts exchanged with the caller: shapes, properties, counts, records, requests."""

import json
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PropertyType(str, Enum):
    STRING = "STRING"
    INTEGER = "INTEGER"
    FLOAT = "FLOAT"
    DECIMAL = "DECIMAL"
    BOOL = "BOOL"
    TEXT = "TEXT"


class CountKind(str, Enum):
    UNAVAILABLE = "UNAVAILABLE"
    ESTIMATE = "ESTIMATE"
    EXACT = "EXACT"


class RecordAction(str, Enum):
    UPSERT = "UPSERT"


class DiscoverMode(str, Enum):
    ALL = "ALL"
    REFRESH = "REFRESH"


class _Contract(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, alias_generator=to_camel)


class Property(_Contract):
    id: str = Field(min_length=1)
    name: str = ""
    type: PropertyType = PropertyType.STRING
    type_at_source: str = ""
    is_nullable: bool = True
    is_key: bool = False


class Count(_Contract):
    kind: CountKind = CountKind.UNAVAILABLE
    value: int = 0

    def format(self) -> str:
        if self.kind == CountKind.UNAVAILABLE:
            return "unavailable"
        if self.kind == CountKind.ESTIMATE:
            return f"~{self.value}"
        return str(self.value)


def _encode_value(value: Any) -> Any:
    """json.dumps fallback for values the driver hands back as non-JSON types."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value).decode("utf-8", errors="replace")
    if isinstance(value, UUID):
        return str(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class Record(_Contract):
    action: RecordAction = RecordAction.UPSERT
    data_json: str = "{}"

    @classmethod
    def from_data(cls, action: RecordAction, data: dict[str, Any]) -> "Record":
        return cls(action=action, data_json=json.dumps(data, default=_encode_value, ensure_ascii=False))

    def data(self) -> dict[str, Any]:
        return json.loads(self.data_json)


def column_property_names(column_names: list[str | None]) -> list[str]:
    """Property names for result columns; unnamed columns become UNKNOWN_0, UNKNOWN_1, ..."""
    names: list[str] = []
    unnamed_index = 0
    for column_name in column_names:
        if column_name:
            names.append(column_name)
        else:
            names.append(f"UNKNOWN_{unnamed_index}")
            unnamed_index += 1
    return names


class Shape(_Contract):
    id: str = Field(min_length=1)
    name: str = ""
    query: str = ""
    properties: list[Property] = Field(default_factory=list)
    count: Count | None = None
    sample: list[Record] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    def find_property(self, property_id: str) -> Property | None:
        for prop in self.properties:
            if prop.id == property_id:
                return prop
        return None


class ConnectRequest(_Contract):
    settings_json: str = ""

    @classmethod
    def from_settings(cls, settings: Any) -> "ConnectRequest":
        """Encode a Settings model (or a plain mapping) into a connect request."""
        if isinstance(settings, BaseModel):
            return cls(settings_json=settings.model_dump_json(by_alias=True))
        return cls(settings_json=json.dumps(settings))


class ConnectResponse(_Contract):
    pass


class DiscoverShapesRequest(_Contract):
    mode: DiscoverMode = DiscoverMode.ALL
    to_refresh: list[Shape] = Field(default_factory=list)
    sample_size: int = Field(default=0, ge=0)


class DiscoverShapesResponse(_Contract):
    shapes: list[Shape] = Field(default_factory=list)


class PublishRequest(_Contract):
    shape: Shape | None = None
    limit: int = Field(default=0, ge=0)


class DisconnectRequest(_Contract):
    pass


class DisconnectResponse(_Contract):
    pass
