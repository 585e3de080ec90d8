"""Connection helpers that import nothing else from dbkit.

They accept any connection-like object: a ConnectionWrapper, a SQLAlchemy
connection or engine, or a raw DB-API connection.
"""
import logging
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_DIALECT = 'mysql'

# driver module name -> dialect
_DRIVER_DIALECTS = {
    'pymysql': 'mysql',
    'psycopg': 'postgresql',
    'sqlite3': 'sqlite',
}


def get_dialect_name(obj: Any) -> str:
    """Dialect name of a connection, engine or wrapper.

    Raises
        AttributeError: If nothing about the object names a dialect
    """
    dialect = getattr(obj, 'dialect', None)
    if isinstance(dialect, str):
        return dialect.lower()
    if dialect is not None:
        return str(dialect.name).lower()

    for attr in ('engine', 'sa_connection', 'dbapi_connection'):
        inner = getattr(obj, attr, None)
        if inner is not None:
            return get_dialect_name(inner)

    module = type(obj).__module__.split('.')[0]
    if module in _DRIVER_DIALECTS:
        return _DRIVER_DIALECTS[module]
    raise AttributeError(f'Cannot determine dialect for {type(obj)}')


def ensure_commit(connection: Any) -> None:
    """Commit pending work if the connection supports it.

    Failures are logged at DEBUG; a connection in autocommit mode or without
    an open transaction is not an error.
    """
    for target in (connection, getattr(connection, 'driver_connection', None)):
        commit = getattr(target, 'commit', None)
        if commit is None:
            continue
        try:
            commit()
            return
        except Exception as exc:
            logger.debug(f'Commit skipped on {type(target).__name__}: {exc}')
