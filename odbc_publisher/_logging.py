import logging
import os
import re
from threading import Lock
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.exc import ArgumentError

_SETUP_LOCK = Lock()
_SETUP_DONE = False
_SENSITIVE_KEYS = {
    "password",
    "pwd",
    "secret",
    "token",
}
_CONNECTION_STRING_KEYS = {
    "connectionstring",
    "connection_string",
}
# Pwd=...; / Password={...}; pairs inside an ODBC connection string
_ODBC_PASSWORD = re.compile(r"(?i)\b(pwd|password)\s*=\s*(\{[^}]*\}?|[^;]*)")


def _resolve_log_level() -> int:
    level_name = os.getenv("ODBC_PUBLISHER_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_name, logging.INFO)


def _setup_default_logging() -> None:
    global _SETUP_DONE
    if _SETUP_DONE:
        return

    with _SETUP_LOCK:
        if _SETUP_DONE:
            return

        root_logger = logging.getLogger()
        if not root_logger.handlers:
            logging.basicConfig(
                level=_resolve_log_level(),
                format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
            )

        _SETUP_DONE = True


def get_logger(name: str) -> logging.Logger:
    _setup_default_logging()
    return logging.getLogger(f"odbc_publisher.{name}")


def redact_connection_string(value: str) -> str:
    """Hide the password of a SQLAlchemy URL or the Pwd/Password pair of an ODBC string."""
    if "://" in value:
        try:
            return make_url(value).render_as_string(hide_password=True)
        except ArgumentError:
            pass
    return _ODBC_PASSWORD.sub(lambda match: f"{match.group(1)}=***", value)


def redact_config(values: dict[str, Any]) -> dict[str, Any]:
    redacted: dict[str, Any] = {}
    for key, value in values.items():
        if key.lower() in _SENSITIVE_KEYS and value is not None:
            redacted[key] = "***"
        elif key.lower() in _CONNECTION_STRING_KEYS and isinstance(value, str):
            redacted[key] = redact_connection_string(value)
        else:
            redacted[key] = value
    return redacted
