import json
import logging
import unittest

import pytest

from odbc_publisher._config import load_settings_config
from odbc_publisher._logging import redact_config, redact_connection_string
from odbc_publisher.errors import SettingsError
from odbc_publisher.settings import Settings


def _test_settings() -> Settings:
    return Settings(
        connection_string="Driver={SQL Server};Server=localhost;Database=w3;Uid=sa;Pwd=PASSWORD;",
        password="n5o_ADMIN",
    )


class ValidateTests(unittest.TestCase):
    def test_errors_when_connection_string_is_not_set(self):
        settings = _test_settings()
        settings.connection_string = ""
        with self.assertRaises(SettingsError):
            settings.validate_settings()

    def test_errors_when_password_is_not_set(self):
        settings = _test_settings()
        settings.password = ""
        with self.assertRaisesRegex(SettingsError, "password"):
            settings.validate_settings()

    def test_succeeds_when_settings_are_valid(self):
        _test_settings().validate_settings()

    def test_succeeds_with_optional_queries(self):
        settings = _test_settings()
        settings.pre_publish_query = "SELECT 1"
        settings.post_publish_query = ""
        settings.validate_settings()


class ConnectionStringTests(unittest.TestCase):
    def test_replaces_placeholder_with_password(self):
        self.assertEqual(
            _test_settings().get_connection_string(),
            "Driver={SQL Server};Server=localhost;Database=w3;Uid=sa;Pwd=n5o_ADMIN;",
        )

    def test_replaces_only_first_placeholder(self):
        settings = Settings(connection_string="Pwd=PASSWORD;Note=PASSWORD", password="pw")
        self.assertEqual(settings.get_connection_string(), "Pwd=pw;Note=PASSWORD")

    def test_returns_connection_string_unchanged_without_placeholder(self):
        settings = Settings(connection_string="DSN=warehouse;Uid=sa", password="pw")
        self.assertEqual(settings.get_connection_string(), "DSN=warehouse;Uid=sa")

    def test_raw_odbc_string_is_passed_through_odbc_connect(self):
        url = _test_settings().build_engine_url()
        self.assertEqual(url.drivername, "mssql+pyodbc")
        self.assertEqual(
            url.query["odbc_connect"],
            "Driver={SQL Server};Server=localhost;Database=w3;Uid=sa;Pwd=n5o_ADMIN;",
        )

    def test_sqlalchemy_url_is_used_as_is(self):
        settings = Settings(connection_string="postgresql+psycopg://etl:PASSWORD@db:5432/w3", password="s3cret")
        url = settings.build_engine_url()
        self.assertEqual(url.drivername, "postgresql+psycopg")
        self.assertEqual(url.password, "s3cret")
        self.assertEqual(url.database, "w3")


def test_from_json_reads_camel_case_keys():
    settings = Settings.from_json(
        json.dumps(
            {
                "connectionString": "DSN=w3;Pwd=PASSWORD",
                "password": "pw",
                "prePublishQuery": "DELETE FROM staging",
                "postPublishQuery": "EXEC refresh",
            }
        )
    )

    assert settings.connection_string == "DSN=w3;Pwd=PASSWORD"
    assert settings.pre_publish_query == "DELETE FROM staging"
    assert settings.post_publish_query == "EXEC refresh"
    assert settings.max_concurrency == 5


def test_from_json_rejects_malformed_payload():
    with pytest.raises(SettingsError):
        Settings.from_json("{")


def test_to_json_round_trips_through_from_json():
    original = _test_settings()
    assert Settings.from_json(original.to_json()) == original


def test_load_settings_config_merges_layers(tmp_path, monkeypatch):
    settings_file = tmp_path / "settings.json"
    settings_file.write_text(
        json.dumps({"connectionString": "DSN=file", "password": "file-pw", "prePublishQuery": "SELECT 1"}),
        encoding="utf-8",
    )
    monkeypatch.setenv("ODBCTEST_PASSWORD", "env-pw")

    merged = load_settings_config(
        {"postPublishQuery": "SELECT 2"},
        file_path=settings_file,
        env_prefix="ODBCTEST",
        overrides={"connectionString": None, "maxConcurrency": 2},
    )
    settings = Settings.from_mapping(merged)

    assert settings.connection_string == "DSN=file"
    assert settings.password == "env-pw"
    assert settings.pre_publish_query == "SELECT 1"
    assert settings.post_publish_query == "SELECT 2"
    assert settings.max_concurrency == 2


def test_load_settings_config_reads_yaml(tmp_path):
    settings_file = tmp_path / "settings.yaml"
    settings_file.write_text("connectionString: DSN=yaml\npassword: pw\n", encoding="utf-8")

    merged = load_settings_config(file_path=settings_file, env_prefix=None)

    assert merged == {"connectionString": "DSN=yaml", "password": "pw"}


def test_load_settings_config_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_settings_config(file_path=tmp_path / "missing.json", env_prefix=None)


def test_redact_config_masks_password():
    assert redact_config({"password": "pw", "connection_string": "DSN=w3"}) == {
        "password": "***",
        "connection_string": "DSN=w3",
    }


def test_redact_config_hides_password_inside_connection_string():
    redacted = redact_config(
        {
            "connectionString": "mssql+pyodbc://sa:TopSecret1@db/w3",
            "connection_string": "DSN=w3;Uid=sa;Pwd=TopSecret1;",
        }
    )

    assert redacted == {
        "connectionString": "mssql+pyodbc://sa:***@db/w3",
        "connection_string": "DSN=w3;Uid=sa;Pwd=***;",
    }


class RedactConnectionStringTests(unittest.TestCase):
    def test_odbc_password_in_braces(self):
        self.assertEqual(
            redact_connection_string("Driver={ODBC Driver 18};PASSWORD={a;b};Server=db"),
            "Driver={ODBC Driver 18};PASSWORD=***;Server=db",
        )

    def test_string_without_password_is_unchanged(self):
        self.assertEqual(redact_connection_string("sqlite:///w3.db"), "sqlite:///w3.db")
        self.assertEqual(redact_connection_string("DSN=w3"), "DSN=w3")


def test_load_settings_config_does_not_log_secrets(caplog):
    caplog.set_level(logging.INFO, logger="odbc_publisher")

    load_settings_config(
        {"connectionString": "mssql+pyodbc://sa:TopSecret1@db/w3", "password": "TopSecret1"},
        env_prefix=None,
    )

    assert "Settings resolved" in caplog.text
    assert "TopSecret1" not in caplog.text
