import pytest
from mysql.connector import errors

from src.field_attendance.field_attendance.core.exceptions import DatabaseError, DuplicateEntry, InvalidReference
from src.field_attendance.field_attendance.database.mysql_base import db_cursor, load_json, translate_integrity_error


class FakeCursor:
    def __init__(self, exc=None):
        self.exc = exc
        self.closed = False

    def execute(self, sql, params=None):
        if self.exc:
            raise self.exc

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, cursor):
        self._cursor = cursor
        self.committed = False
        self.rolled_back = False
        self.closed = False

    def cursor(self, dictionary=True):
        return self._cursor

    def commit(self):
        self.committed = True

    def rollback(self):
        self.rolled_back = True

    def close(self):
        self.closed = True


class FakeFactory:
    def __init__(self, conn):
        self.conn = conn

    def connect(self):
        return self.conn


@pytest.mark.parametrize(
    "errno, expected",
    [(1062, DuplicateEntry), (1452, InvalidReference), (1451, InvalidReference), (1048, DatabaseError)],
)
def test_translate_integrity_error(errno, expected):
    translated = translate_integrity_error(errors.IntegrityError(msg="constraint failed", errno=errno))

    assert type(translated) is expected
    assert translated.details["detail"] == "constraint failed"


def test_cursor_commits_and_closes_on_success():
    cur = FakeCursor()
    conn = FakeConnection(cur)

    with db_cursor(FakeFactory(conn)) as (_, c):
        c.execute("SELECT 1")

    assert conn.committed and conn.closed and cur.closed
    assert not conn.rolled_back


def test_cursor_rolls_back_and_translates_duplicates():
    cur = FakeCursor(errors.IntegrityError(msg="Duplicate entry '7' for key 'uq_attendance_one_active'", errno=1062))
    conn = FakeConnection(cur)

    with pytest.raises(DuplicateEntry):
        with db_cursor(FakeFactory(conn)) as (_, c):
            c.execute("INSERT INTO attendance ...")

    assert conn.rolled_back and conn.closed
    assert not conn.committed


def test_cursor_rolls_back_on_other_errors():
    conn = FakeConnection(FakeCursor(RuntimeError("boom")))

    with pytest.raises(RuntimeError):
        with db_cursor(FakeFactory(conn)) as (_, c):
            c.execute("UPDATE attendance ...")

    assert conn.rolled_back


@pytest.mark.parametrize("raw", [None, "", b'{"a": 1}', '{"a": 1}', {"a": 1}])
def test_load_json_normalizes_connector_values(raw):
    expected = {} if raw in (None, "") else {"a": 1}

    assert load_json(raw) == expected
