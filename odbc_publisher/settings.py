"""Connection settings: decoding, validation, and connection string assembly."""

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from .errors import SettingsError

PASSWORD_PLACEHOLDER = "PASSWORD"


class Settings(BaseModel):
    """Connection information plus the optional pre/post publish queries."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    connection_string: str = Field(default="", alias="connectionString")
    password: str = ""
    pre_publish_query: str = Field(default="", alias="prePublishQuery")
    post_publish_query: str = Field(default="", alias="postPublishQuery")
    # Only used when connection_string is a raw ODBC string.
    dialect: str = Field(default="mssql+pyodbc", min_length=1)
    max_concurrency: int = Field(default=5, ge=1, le=64, alias="maxConcurrency")

    @classmethod
    def from_json(cls, settings_json: str) -> "Settings":
        try:
            return cls.model_validate_json(settings_json)
        except ValidationError as exc:
            raise SettingsError(f"could not decode settings: {exc}") from exc

    @classmethod
    def from_mapping(cls, values: dict) -> "Settings":
        try:
            return cls.model_validate(values)
        except ValidationError as exc:
            raise SettingsError(f"could not decode settings: {exc}") from exc

    def validate_settings(self) -> None:
        """Raise SettingsError unless both connection string and password are set."""
        if not self.connection_string:
            raise SettingsError("the connectionString property must be set")

        if not self.password:
            raise SettingsError("the password property must be set")

    def get_connection_string(self) -> str:
        """Substitute the first password placeholder with the actual password."""
        return self.connection_string.replace(PASSWORD_PLACEHOLDER, self.password, 1)

    def build_engine_url(self) -> URL:
        """Return a SQLAlchemy URL; raw ODBC strings are passed through odbc_connect."""
        connection_string = self.get_connection_string()
        if "://" not in connection_string:
            return URL.create(self.dialect, query={"odbc_connect": connection_string})

        try:
            return make_url(connection_string)
        except ArgumentError as exc:
            raise SettingsError(f"invalid connection URL: {exc}") from exc

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)
