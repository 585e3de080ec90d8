"""
Mock connections for builder and queue tests.

A recording connection stands in for ConnectionWrapper: it reports a dialect
and remembers every statement it is asked to run, so tests can check what a
statement renders and sends without a database.

Usage:
    def test_exec(recording_connection):
        cn = recording_connection('sqlite')
        insert(cn=cn).table('t').values({'a': 1}).exec()
        assert cn.calls == [('execute_result', 'INSERT INTO t ("a") VALUES (?)', (1,))]
"""
import threading

import pytest


class RecordingConnection:
    """Duck-typed connection that records calls instead of running them."""

    def __init__(self, dialect='mysql', affected=1, last_id=None, error=None, rows=None):
        self.dialect = dialect
        self.affected = affected
        self.last_id = last_id
        self.error = error
        self.rows = rows if rows is not None else []
        self.calls = []
        self.executed = threading.Event()
        self._lock = threading.Lock()

    def _record(self, name, sql, args):
        with self._lock:
            self.calls.append((name, sql, args))
        if self.error is not None:
            raise self.error

    def execute_result(self, sql, *args):
        self._record('execute_result', sql, args)
        return self.affected, self.last_id

    def execute(self, sql, *args):
        try:
            self._record('execute', sql, args)
        finally:
            self.executed.set()
        return self.affected

    def select_rows(self, sql, *args):
        self._record('select_rows', sql, args)
        return list(self.rows)

    def select_row(self, sql, *args):
        self._record('select_row', sql, args)
        return self.rows[0]


@pytest.fixture
def recording_connection():
    """
    Fixture that provides a factory for recording connections.

    Returns
        Factory function taking the dialect and optional canned results
    """
    def factory(dialect='mysql', **kwargs):
        return RecordingConnection(dialect, **kwargs)

    return factory
