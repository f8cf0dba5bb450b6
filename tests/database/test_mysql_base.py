from __future__ import annotations

import pytest
from mysql.connector import errors as mysql_errors

from src.upastithi.upastithi.core.exceptions import StoreTimeoutError, StoreUnavailableError
from src.upastithi.upastithi.database.mysql_base import db_cursor, load_json


class FakeCursor:
    def __init__(self, conn):
        self.conn = conn

    def execute(self, sql, params=None):
        if self.conn.fail_with is not None:
            raise self.conn.fail_with
        self.conn.statements.append(sql)

    def close(self):
        pass


class FakeConn:
    def __init__(self, fail_with=None):
        self.fail_with = fail_with
        self.statements = []
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=True):
        return FakeCursor(self)

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, conn=None, connect_error=None):
        self.conn = conn
        self.connect_error = connect_error

    def connect(self):
        if self.connect_error is not None:
            raise self.connect_error
        return self.conn


def test_commits_and_closes_on_success():
    conn = FakeConn()
    with db_cursor(FakeFactory(conn)) as (_, cur):
        cur.execute("UPDATE sessions SET active=0")
    assert conn.committed and conn.closed and not conn.rolled_back


def test_lock_wait_timeout_becomes_store_timeout():
    conn = FakeConn(fail_with=mysql_errors.DatabaseError(msg="Lock wait timeout exceeded", errno=1205))
    with pytest.raises(StoreTimeoutError) as exc:
        with db_cursor(FakeFactory(conn), operation="request.decide", entity_id="r1") as (_, cur):
            cur.execute("UPDATE attendance_requests SET status='approved'")
    assert exc.value.operation == "request.decide"
    assert exc.value.entity_id == "r1"
    assert conn.rolled_back and not conn.committed and conn.closed


def test_lost_connection_becomes_store_unavailable():
    conn = FakeConn(fail_with=mysql_errors.OperationalError(msg="Lost connection", errno=2013))
    with pytest.raises(StoreUnavailableError):
        with db_cursor(FakeFactory(conn)) as (_, cur):
            cur.execute("SELECT 1")


def test_connect_failure_becomes_store_unavailable():
    factory = FakeFactory(connect_error=mysql_errors.InterfaceError(msg="Can't connect", errno=2003))
    with pytest.raises(StoreUnavailableError):
        with db_cursor(factory):
            pass


def test_other_driver_errors_propagate_unchanged():
    conn = FakeConn(fail_with=mysql_errors.ProgrammingError(msg="syntax", errno=1064))
    with pytest.raises(mysql_errors.ProgrammingError):
        with db_cursor(FakeFactory(conn)) as (_, cur):
            cur.execute("SELEC 1")
    assert conn.rolled_back


def test_non_driver_errors_roll_back():
    conn = FakeConn()
    with pytest.raises(ValueError):
        with db_cursor(FakeFactory(conn)):
            raise ValueError("boom")
    assert conn.rolled_back and not conn.committed


def test_load_json_accepts_str_bytes_and_decoded():
    assert load_json(None) is None
    assert load_json('{"a": 1}') == {"a": 1}
    assert load_json(b"[1, 2]") == [1, 2]
    assert load_json({"a": 1}) == {"a": 1}
