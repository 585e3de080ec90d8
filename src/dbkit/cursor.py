"""
DB-API cursor wrapper.

Statements arrive written with `?` placeholders and are converted to the
driver's paramstyle here. Every execution is logged at DEBUG, timed, and
counted on the owning connection wrapper.
"""
import logging
import time
from collections.abc import Iterator
from functools import wraps
from typing import Any, Self

from dbkit.sql import prepare_query

logger = logging.getLogger(__name__)

FETCH_CHUNK = 5000


def dumpsql(func):
    """Log a statement and its arguments, and the statement again if it fails."""
    @wraps(func)
    def wrapper(self, operation: str, *args: Any, **kwargs: Any):
        logger.debug(f'SQL:\n{operation}\nargs: {args}')
        start = time.perf_counter()
        try:
            return func(self, operation, *args, **kwargs)
        except Exception as exc:
            logger.error(f'{type(exc).__name__} running SQL:\n{operation}\nargs: {args}')
            raise
        finally:
            elapsed = time.perf_counter() - start
            self.connwrapper.addcall(elapsed)
            logger.debug(f'Query time: {elapsed:.4f}s')
    return wrapper


def iter_chunks(cursor: Any, size: int = FETCH_CHUNK) -> Iterator[tuple]:
    """Yield rows, fetching `size` at a time."""
    while rows := cursor.fetchmany(size):
        yield from rows


class Cursor:
    """Cursor bound to the connection wrapper that opened it.

    Members not defined here are read from the driver's cursor.
    """

    def __init__(self, cursor: Any, connection_wrapper: Any) -> None:
        self.dbapi_cursor = cursor
        self.connwrapper = connection_wrapper

    def __getattr__(self, name: str) -> Any:
        return getattr(self.dbapi_cursor, name)

    def __iter__(self) -> Iterator[tuple]:
        return iter_chunks(self.dbapi_cursor)

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    @property
    def description(self) -> Any:
        return self.dbapi_cursor.description

    @property
    def rowcount(self) -> int:
        return self.dbapi_cursor.rowcount

    @property
    def column_names(self) -> list[str]:
        return [item[0] for item in self.description or ()]

    def close(self) -> None:
        self.dbapi_cursor.close()

    def fetchone(self) -> tuple | None:
        return self.dbapi_cursor.fetchone()

    def fetchmany(self, size: int = 1) -> list[tuple]:
        return self.dbapi_cursor.fetchmany(size)

    def fetchall(self) -> list[tuple]:
        return self.dbapi_cursor.fetchall()

    @dumpsql
    def execute(self, operation: str, args: tuple | list = ()) -> int:
        """Run a statement written with `?` placeholders.

        Arguments given to a statement without placeholders are dropped.

        Returns
            Row count reported by the driver
        """
        sql, params = prepare_query(operation, args, self.connwrapper.dialect)
        if params:
            self.dbapi_cursor.execute(sql, params)
        else:
            self.dbapi_cursor.execute(sql)
        return self.dbapi_cursor.rowcount
