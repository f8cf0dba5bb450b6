from __future__ import annotations

import pytest
from mysql.connector import errors as mysql_errors

from src.upastithi.upastithi.database import connection as connection_module
from src.upastithi.upastithi.database.connection import DatabaseConnection, DBConfig


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params=None):
        if self.conn.fail_with is not None:
            raise self.conn.fail_with
        self.conn.statements.append((sql, params))

    def close(self):
        self.conn.cursor_closed = True


class FakeConn:
    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.statements = []
        self.cursor_closed = False
        self.closed = False

    def cursor(self):
        return FakeCursor(self)

    def close(self):
        self.closed = True


def _factory(monkeypatch, conn, captured=None):
    def fake_connect(**kwargs):
        if captured is not None:
            captured.update(kwargs)
        return conn

    monkeypatch.setattr(connection_module.mysql.connector, "connect", fake_connect)
    return DatabaseConnection(DBConfig(host="db", port=3306, user="u", password="p", database="upastithi", timeout_seconds=5))


def test_connect_applies_session_timeouts(monkeypatch):
    conn = FakeConn()
    captured = {}
    factory = _factory(monkeypatch, conn, captured)

    assert factory.connect() is conn
    assert captured["connection_timeout"] == 5
    assert captured["autocommit"] is False
    assert [params for _, params in conn.statements] == [(5,), (5000,)]
    assert conn.cursor_closed and not conn.closed


def test_connect_closes_connection_when_session_setup_fails(monkeypatch):
    conn = FakeConn(fail_with=mysql_errors.DatabaseError(msg="Unknown system variable", errno=1193))
    factory = _factory(monkeypatch, conn)

    with pytest.raises(mysql_errors.DatabaseError):
        factory.connect()
    assert conn.cursor_closed
    assert conn.closed
