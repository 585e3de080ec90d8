"""
PostgreSQL-specific strategy implementation.

PostgreSQL differs from the builder's native dialect in that:
- The ignore form is `ON CONFLICT DO NOTHING` appended to the INSERT
- Upserts need an explicit conflict target
- LIMIT is written `count OFFSET offset` and only applies to SELECT
- There is no cursor-level last insert id
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import psycopg
import sqlalchemy as sa
from dbkit.strategy.base import DatabaseStrategy, register_strategy
from dbkit.types import Column, ValueCategory

if TYPE_CHECKING:
    from dbkit.options import DatabaseOptions

logger = logging.getLogger(__name__)

DEFAULT_PORT = 5432

_CATEGORY_BY_NAME = {
    'int2': ValueCategory.INTEGER,
    'int4': ValueCategory.INTEGER,
    'int8': ValueCategory.INTEGER,
    'oid': ValueCategory.INTEGER,
    'bool': ValueCategory.INTEGER,
    'float4': ValueCategory.FLOAT,
    'float8': ValueCategory.FLOAT,
    'numeric': ValueCategory.TEXT,
    'text': ValueCategory.TEXT,
    'varchar': ValueCategory.TEXT,
    'bpchar': ValueCategory.TEXT,
    'name': ValueCategory.TEXT,
    'bytea': ValueCategory.TEXT,
    'date': ValueCategory.TEXT,
    'time': ValueCategory.TEXT,
    'timetz': ValueCategory.TEXT,
    'timestamp': ValueCategory.TEXT,
    'timestamptz': ValueCategory.TEXT,
    'json': ValueCategory.TEXT,
    'jsonb': ValueCategory.TEXT,
}


def postgres_type(oid: int) -> tuple[str, ValueCategory]:
    """Type name and category for a PostgreSQL type OID.

    >>> postgres_type(psycopg.postgres.types.get('numeric').oid)
    ('NUMERIC', <ValueCategory.TEXT: 'text'>)
    """
    info = psycopg.postgres.types.get(oid)
    if info is None:
        return '', ValueCategory.OTHER
    return info.name.upper(), _CATEGORY_BY_NAME.get(info.name, ValueCategory.OTHER)


@register_strategy('postgresql')
class PostgresStrategy(DatabaseStrategy):
    """PostgreSQL-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for PostgreSQL."""
        return 'postgresql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for PostgreSQL."""
        query = {}
        if options.timeout:
            query['connect_timeout'] = str(options.timeout)
        if options.appname:
            query['application_name'] = options.appname
        return sa.URL.create(
            drivername='postgresql+psycopg',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or DEFAULT_PORT,
            database=options.database,
            query=query,
        )

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for PostgreSQL connections."""
        return ['hostname', 'username', 'password', 'database']

    def ignore_suffix(self, ignore: bool = False) -> str:
        return ' ON CONFLICT DO NOTHING' if ignore else ''

    def upsert_clause(self, update_columns: Sequence[str],
                      conflict: Sequence[str] | None = None) -> str:
        self._require_conflict(conflict)
        target = self._conflict_target(conflict)
        return f'ON CONFLICT {target} DO UPDATE SET {self.assignments(update_columns)}'

    def render_limit(self, count: int, offset: int | None = None) -> str:
        if offset is None:
            return str(count)
        return f'{count} OFFSET {offset}'

    def describe_columns(self, description: Sequence[Any] | None,
                         rows: Sequence[Sequence[Any]] = ()) -> list[Column]:
        """Classify columns by type OID.
        """
        columns = []
        for item in description or ():
            type_name, category = postgres_type(item[1])
            columns.append(Column.from_cursor_description(item, type_name, category))
        return columns

    def last_insert_id(self, cursor: Any) -> int | None:
        """psycopg has no lastrowid; use RETURNING to read generated keys."""
        return None
