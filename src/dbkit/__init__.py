"""
Relational database access with a fluent SQL builder, for MySQL, PostgreSQL and SQLite.

Statements are built with the constructors and run on a connection:

    cn = dbkit.connect({'drivername': 'sqlite', 'database': 'app.db'})
    dbkit.insert(cn=cn).table('user').values({'name': 'Tom', 'age': 20}).exec()
    users = dbkit.select('id,name', cn=cn).from_('user').where('age > ?').query(18)

Plain SQL can be run either as:
- Module functions: dbkit.select_rows(cn, sql, *args)
- ConnectionWrapper methods: cn.select_rows(sql, *args)
"""
__version__ = '0.1.0'

from typing import Any

from dbkit.builder import Result, Statement, Values, delete, insert
from dbkit.builder import insert_or_update, select, update
from dbkit.cache import Cache
from dbkit.connection import ConnectionWrapper, connect, get_default_connection
from dbkit.connection import set_default_connection
from dbkit.exceptions import ConnectionFailure, DatabaseError, DbConnectionError
from dbkit.exceptions import DriverError, IntegrityError, NoRowsError
from dbkit.exceptions import OperationalError, ProgrammingError, QueryError
from dbkit.exceptions import TypeConversionError, UnsafeStatementError
from dbkit.exceptions import ValidationError
from dbkit.literals import inline_literals
from dbkit.options import DatabaseOptions, iterdict_data_loader
from dbkit.options import pandas_numpy_data_loader, pandas_pyarrow_data_loader
from dbkit.queue import QueueItem, StatementQueue
from dbkit.records import column
from dbkit.row import Row
from dbkit.types import Column, StatementKind, ValueCategory


def execute(cn: ConnectionWrapper, sql: str, *args: Any) -> int:
    """Execute a SQL statement and return affected row count.
    """
    return cn.execute(sql, *args)


def execute_result(cn: ConnectionWrapper, sql: str, *args: Any) -> tuple[int, int | None]:
    """Execute a SQL statement and return (affected row count, last inserted id).
    """
    return cn.execute_result(sql, *args)


def select_rows(cn: ConnectionWrapper, sql: str, *args: Any) -> list[dict[str, str]]:
    """Execute a query and return rows as column name to text value.
    """
    return cn.select_rows(sql, *args)


def select_row(cn: ConnectionWrapper, sql: str, *args: Any) -> Row:
    """Execute a query and return its first row.

    Raises NoRowsError if the query returns no rows.
    """
    return cn.select_row(sql, *args)


def select_maps(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    """Execute a query and return rows with values typed by column category.
    """
    return cn.select_maps(sql, *args)


def select_map(cn: ConnectionWrapper, sql: str, *args: Any) -> dict[str, Any]:
    """Execute a query and return its first row as a typed map.

    Raises NoRowsError if the query returns no rows.
    """
    return cn.select_map(sql, *args)


def select_record(cn: ConnectionWrapper, record_type: type, sql: str, *args: Any) -> Any:
    """Execute a query and build one record from its first row.

    Raises ValidationError for a non-record type before the query runs, and
    NoRowsError if the query returns no rows.
    """
    return cn.select_record(record_type, sql, *args)


def select_records(cn: ConnectionWrapper, record_type: type, sql: str, *args: Any) -> list:
    """Execute a query and build one record per row.
    """
    return cn.select_records(record_type, sql, *args)


def query_cursor(cn: ConnectionWrapper, sql: str, *args: Any) -> Any:
    """Execute a query and return the open cursor.
    """
    return cn.query_cursor(sql, *args)


__all__ = [
    'connect',
    'ConnectionWrapper',
    'DatabaseOptions',
    'set_default_connection',
    'get_default_connection',
    'Statement',
    'StatementKind',
    'Values',
    'Result',
    'insert',
    'delete',
    'update',
    'select',
    'insert_or_update',
    'inline_literals',
    'execute',
    'execute_result',
    'select_rows',
    'select_row',
    'select_maps',
    'select_map',
    'select_record',
    'select_records',
    'query_cursor',
    'column',
    'Row',
    'Column',
    'ValueCategory',
    'StatementQueue',
    'QueueItem',
    'Cache',
    'iterdict_data_loader',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
    'IntegrityError',
    'ProgrammingError',
    'OperationalError',
    'DbConnectionError',
    'DriverError',
    'ConnectionFailure',
    'ValidationError',
    'UnsafeStatementError',
    'DatabaseError',
    'QueryError',
    'NoRowsError',
    'TypeConversionError',
]
