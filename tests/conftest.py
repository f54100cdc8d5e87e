import sys
from pathlib import Path

import pytest
from sqlalchemy import create_engine

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from odbc_publisher.contracts import ConnectRequest, Record  # noqa: E402
from odbc_publisher.server import Server  # noqa: E402
from odbc_publisher.settings import Settings  # noqa: E402

AGENTS = [
    ("A007", "Ramasundar", "Bangalore", 0.15, "077-25814763"),
    ("A003", "Alex", "London", 0.13, "075-12458969"),
    ("A008", "Alford", "New York", 0.12, "044-25874365"),
    ("A011", "Ravi Kumar", "Bangalore", 0.15, "077-45625874"),
    ("A010", "Santakumar", "Chennai", 0.14, "007-22388644"),
    ("A012", "Lucida", "San Jose", 0.12, "044-52981425"),
    ("A005", "Anderson", "Brisban", 0.13, "045-21447739"),
    ("A001", "Subbarao", "Bangalore", 0.14, "077-12346674"),
    ("A002", "Mukesh", "Mumbai", 0.11, "029-12358964"),
    ("A006", "McDen", "London", 0.15, "078-22255588"),
    ("A004", "Ivan", "Torento", 0.15, "008-22544166"),
    ("A009", "Benjamin", "Hampshair", 0.11, "008-22536178"),
]


@pytest.fixture
def database_path(tmp_path):
    path = tmp_path / "w3.db"
    engine = create_engine(f"sqlite:///{path}")
    with engine.begin() as connection:
        connection.exec_driver_sql(
            "CREATE TABLE Agents (AGENT_CODE TEXT NOT NULL, AGENT_NAME TEXT, WORKING_AREA TEXT, "
            "COMMISSION REAL, PHONE_NO TEXT)"
        )
        for agent in AGENTS:
            connection.exec_driver_sql("INSERT INTO Agents VALUES (?, ?, ?, ?, ?)", agent)

        connection.exec_driver_sql(
            "CREATE TABLE Types (i INTEGER, r REAL, t TEXT, b BLOB, big BLOB, n INTEGER)"
        )
        connection.exec_driver_sql(
            "INSERT INTO Types VALUES (?, ?, ?, ?, ?, ?)",
            (42, 1234.5678, "abc", b"cde", b"x" * 2048, None),
        )

        connection.exec_driver_sql("CREATE TABLE PrePost (Message TEXT)")
        connection.exec_driver_sql("INSERT INTO PrePost VALUES ('placeholder')")
    engine.dispose()
    return path


@pytest.fixture
def settings(database_path):
    return Settings(connection_string=f"sqlite:///{database_path}", password="n5o_ADMIN")


@pytest.fixture
def server(settings):
    sut = Server()
    sut.connect(ConnectRequest.from_settings(settings))
    yield sut
    sut.disconnect()


def fetch_messages(database_path) -> list[str]:
    engine = create_engine(f"sqlite:///{database_path}")
    try:
        with engine.connect() as connection:
            return [row[0] for row in connection.exec_driver_sql("SELECT Message FROM PrePost")]
    finally:
        engine.dispose()


class PublisherStream:
    """Record sink that collects records and can be told to fail."""

    def __init__(self, err: Exception | None = None):
        self.records: list[Record] = []
        self.err = err

    def send(self, record: Record) -> None:
        if self.err is not None:
            raise self.err
        self.records.append(record)
