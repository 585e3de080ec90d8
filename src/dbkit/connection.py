"""
Connections: opening them, running statements on them, converting results.

`connect()` resolves options (a `DatabaseOptions`, a dict, or a config
section name) into a SQLAlchemy engine and returns a `ConnectionWrapper`.
Engines are cached per option set and disposed at interpreter exit.

Statements run on the raw DB-API connection behind the SQLAlchemy one, so
the wrapper commits after every write itself:

    cn = connect({'drivername': 'sqlite', 'database': 'app.db'})
    cn.execute('UPDATE user SET age=? WHERE id=?', 21, 7)
    cn.select_rows('SELECT * FROM user')          # column -> text
    cn.select_maps('SELECT * FROM user')          # column -> typed value
    cn.select_records(User, 'SELECT * FROM user') # record dataclasses
"""
import atexit
import logging
import threading
from collections.abc import Callable
from dataclasses import fields
from typing import Any, Self

import sqlalchemy as sa
from dbkit.cursor import Cursor
from dbkit.exceptions import ConnectionFailure, NoRowsError
from dbkit.materialize import materialize_record, materialize_records
from dbkit.materialize import row_to_strings, rows_to_maps
from dbkit.options import DatabaseOptions, iterdict_data_loader
from dbkit.records import resolve_bindings
from dbkit.row import Row
from dbkit.strategy import get_db_strategy, get_strategy
from dbkit.types import Column
from dbkit.utils import ensure_commit, get_dialect_name
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool

from libb import load_options

__all__ = [
    'ConnectionWrapper',
    'connect',
    'configure_connection',
    'get_engine_for_options',
    'dispose_all_engines',
    'set_default_connection',
    'get_default_connection',
]

logger = logging.getLogger(__name__)

_engines: dict[tuple, Engine] = {}
_engines_lock = threading.RLock()

_default_connection: 'ConnectionWrapper | None' = None
_default_connection_lock = threading.Lock()


def set_default_connection(cn: 'ConnectionWrapper | None') -> None:
    """Bind the connection statements fall back to when they have none.
    """
    global _default_connection
    with _default_connection_lock:
        _default_connection = cn


def get_default_connection() -> 'ConnectionWrapper | None':
    return _default_connection


def _pool_kwargs(use_pool: bool, pool_size: int, pool_recycle: int,
                 pool_timeout: int) -> dict[str, Any]:
    if not use_pool:
        return {'poolclass': NullPool}
    return {
        'pool_size': pool_size,
        'pool_recycle': pool_recycle,
        'pool_timeout': pool_timeout,
        'max_overflow': 10,
        'pool_pre_ping': True,
        'pool_reset_on_return': 'rollback',
    }


def get_engine_for_options(options: DatabaseOptions, use_pool: bool = False,
                           pool_size: int = 5, pool_recycle: int = 300,
                           pool_timeout: int = 30,
                           engine_factory: Callable[..., Engine] = sa.create_engine,
                           **kwargs: Any) -> Engine:
    """Return the engine for an option set, creating it on first use.

    Args:
        options: Connection options; the dialect strategy builds the URL
        use_pool: QueuePool when True, otherwise a NullPool engine
        engine_factory: Callable with the `sa.create_engine` signature
        **kwargs: Extra `create_engine` arguments
    """
    key = (str(options), use_pool, pool_size, pool_recycle, pool_timeout)
    with _engines_lock:
        engine = _engines.get(key)
        if engine is not None:
            return engine

        strategy = get_strategy(options.drivername)
        engine_kwargs = {
            'echo': False,
            **strategy.get_engine_kwargs(options),
            **_pool_kwargs(use_pool, pool_size, pool_recycle, pool_timeout),
            **kwargs,
        }
        engine = _engines[key] = engine_factory(strategy.build_connection_url(options),
                                                **engine_kwargs)
        logger.debug(f'Created {options.drivername} engine (pooled={use_pool})')
        return engine


def dispose_all_engines() -> None:
    with _engines_lock:
        for engine in _engines.values():
            engine.dispose()
        _engines.clear()
    logger.debug('Disposed all engines')


atexit.register(dispose_all_engines)


class ConnectionWrapper:
    """SQLAlchemy connection with statement helpers and call accounting.

    Unknown attributes are looked up on the SQLAlchemy connection first and
    then on the raw DB-API connection.
    """

    def __init__(self, sa_connection: sa.engine.Connection | None = None,
                 options: DatabaseOptions | None = None) -> None:
        self.sa_connection = sa_connection
        self.engine = sa_connection.engine if sa_connection is not None else None
        self.dbapi_connection = sa_connection.connection if sa_connection is not None else None
        self.options = options
        self._dialect = get_dialect_name(sa_connection) if sa_connection is not None else None
        self.calls = 0
        self.time = 0

    def __enter__(self) -> Self:
        return self

    def __exit__(self, exc_type: type | None, exc_val: Exception | None,
                 exc_tb: Any | None) -> None:
        self.close()

    def __getattr__(self, name: str) -> Any:
        if name in {'sa_connection', 'dbapi_connection'}:
            raise AttributeError(name)
        if hasattr(self.sa_connection, name):
            return getattr(self.sa_connection, name)
        return getattr(self.dbapi_connection, name)

    @property
    def dialect(self) -> str:
        """Dialect name: 'mysql', 'postgresql' or 'sqlite'."""
        return self._dialect

    @property
    def is_pooled(self) -> bool:
        return not isinstance(self.engine.pool, NullPool)

    def _reopen(self) -> None:
        self.sa_connection = self.engine.connect()
        self.dbapi_connection = self.sa_connection.connection
        configure_connection(self.sa_connection)
        logger.debug('Reopened closed connection')

    def cursor(self) -> Cursor:
        """Open a cursor, reconnecting first if the connection was closed.

        Raises
            ConnectionFailure: If the wrapper was never connected
        """
        if self.sa_connection is None:
            raise ConnectionFailure('connection is not open')
        if self.sa_connection.closed:
            self._reopen()
        return Cursor(self.dbapi_connection.cursor(), self)

    def addcall(self, elapsed: float) -> None:
        self.calls += 1
        self.time += elapsed

    def commit(self) -> None:
        self.dbapi_connection.commit()

    def rollback(self) -> None:
        self.dbapi_connection.rollback()

    def close(self) -> None:
        """Commit outstanding work and release the connection.
        """
        if self.sa_connection is None or self.sa_connection.closed:
            return
        ensure_commit(self.dbapi_connection)
        self.sa_connection.close()
        if get_default_connection() is self:
            set_default_connection(None)
        logger.debug(f'Connection closed after {self.calls} queries in {self.time:.2f}s')

    # writes

    def execute_result(self, sql: str, *args: Any) -> tuple[int, int | None]:
        """Run a statement and commit it.

        The transaction is rolled back and the driver error re-raised on
        failure.

        Returns
            Tuple of (affected row count, generated id or None)
        """
        strategy = get_db_strategy(self)
        with self.cursor() as cursor:
            try:
                affected = cursor.execute(sql, args)
                last_id = strategy.last_insert_id(cursor.dbapi_cursor)
                self.commit()
            except Exception:
                self.rollback()
                raise
        return affected, last_id

    def execute(self, sql: str, *args: Any) -> int:
        """Run a statement and return the affected row count.
        """
        return self.execute_result(sql, *args)[0]

    def insert(self, sql: str, *args: Any) -> int | None:
        """Run an INSERT and return the generated id where the driver reports one.
        """
        return self.execute_result(sql, *args)[1]

    update = execute
    delete = execute

    # reads

    def _fetch(self, sql: str, args: tuple) -> tuple[Any, list[tuple]]:
        with self.cursor() as cursor:
            cursor.execute(sql, args)
            description, rows = cursor.description, cursor.fetchall()
        ensure_commit(self.dbapi_connection)
        return description, rows

    def query_cursor(self, sql: str, *args: Any) -> Cursor:
        """Run a query and hand back its open cursor. The caller closes it.
        """
        cursor = self.cursor()
        try:
            cursor.execute(sql, args)
        except Exception:
            cursor.close()
            raise
        return cursor

    def select_rows(self, sql: str, *args: Any) -> list[dict[str, str]]:
        """Rows as column name to text value; NULL becomes ''.
        """
        description, rows = self._fetch(sql, args)
        names = [item[0] for item in description or ()]
        return [row_to_strings(names, row) for row in rows]

    def select_row(self, sql: str, *args: Any) -> Row:
        """First row of a query as a `Row`.

        Raises
            NoRowsError: If the query returns no rows
        """
        rows = self.select_rows(sql, *args)
        if not rows:
            raise NoRowsError(f'No rows returned: {sql}')
        return Row(rows[0])

    def _typed_maps(self, sql: str, args: tuple) -> tuple[list[Column], list[dict]]:
        description, rows = self._fetch(sql, args)
        columns = get_db_strategy(self).describe_columns(description, rows)
        return columns, rows_to_maps(columns, rows)

    def select_maps(self, sql: str, *args: Any) -> Any:
        """Rows with values typed by column category, shaped by `options.data_loader`.
        """
        columns, data = self._typed_maps(sql, args)
        loader = getattr(self.options, 'data_loader', None) or iterdict_data_loader
        return loader(data, columns)

    def select_map(self, sql: str, *args: Any) -> dict[str, Any]:
        """First row of a query as a typed map, whatever loader is configured.

        Raises
            NoRowsError: If the query returns no rows
        """
        _, data = self._typed_maps(sql, args)
        if not data:
            raise NoRowsError(f'No rows returned: {sql}')
        return data[0]

    def select_record(self, record_type: type, sql: str, *args: Any) -> Any:
        """Build one record from the first row of a query.

        Raises
            ValidationError: If `record_type` is not a record type, before
                the query runs
            NoRowsError: If the query returns no rows
        """
        bindings = resolve_bindings(record_type)
        with self.cursor() as cursor:
            cursor.execute(sql, args)
            row, names = cursor.fetchone(), cursor.column_names
        ensure_commit(self.dbapi_connection)
        if row is None:
            raise NoRowsError(f'No rows returned: {sql}')
        return materialize_record(record_type, names, row, bindings)

    def select_records(self, record_type: type, sql: str, *args: Any) -> list:
        bindings = resolve_bindings(record_type)
        description, rows = self._fetch(sql, args)
        return materialize_records(record_type, [item[0] for item in description or ()],
                                   rows, bindings)


def configure_connection(sa_connection: sa.engine.Connection) -> None:
    """Install the dialect's driver-level type adapters on a new connection.
    """
    get_db_strategy(sa_connection).register_type_adapters(sa_connection.connection)


@load_options(cls=DatabaseOptions)
def connect(options: DatabaseOptions | dict[str, Any] | str,
            config: Any | None = None, **kw: Any) -> ConnectionWrapper:
    """Open a connection.

    Args:
        options: `DatabaseOptions`, a dict of options, or the name of a
            section in `config`
        config: Module or object holding named option sections
        **kw: Overrides for individual options

    Returns
        ConnectionWrapper bound to a new SQLAlchemy connection
    """
    if isinstance(options, DatabaseOptions):
        for field in fields(options):
            kw.pop(field.name, None)
    else:
        options = load_options(cls=DatabaseOptions)(lambda o, c: o)(options, config, **kw)

    engine = get_engine_for_options(options, use_pool=options.use_pool,
                                    pool_size=options.pool_max_connections,
                                    pool_recycle=options.pool_max_idle_time,
                                    pool_timeout=options.pool_wait_timeout)
    sa_connection = engine.connect()
    configure_connection(sa_connection)
    logger.debug(f'Connected to {options.drivername} database {options.database}')
    return ConnectionWrapper(sa_connection, options)
