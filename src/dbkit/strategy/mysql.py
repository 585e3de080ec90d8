"""
MySQL-specific strategy implementation.

MySQL is the builder's native dialect: backtick identifiers, `INSERT IGNORE`,
`ON DUPLICATE KEY UPDATE`, and `LIMIT offset,count` on SELECT, UPDATE and
DELETE alike. Connections go through PyMySQL.
"""
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from dbkit.strategy.base import DatabaseStrategy, register_strategy
from dbkit.types import Column, StatementKind, ValueCategory
from pymysql.constants import FIELD_TYPE

if TYPE_CHECKING:
    from dbkit.options import DatabaseOptions

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306

# FIELD_TYPE code -> (type name, category)
mysql_types: dict[int, tuple[str, ValueCategory]] = {
    FIELD_TYPE.DECIMAL: ('DECIMAL', ValueCategory.TEXT),
    FIELD_TYPE.NEWDECIMAL: ('NEWDECIMAL', ValueCategory.TEXT),
    FIELD_TYPE.TINY: ('TINYINT', ValueCategory.INTEGER),
    FIELD_TYPE.SHORT: ('SMALLINT', ValueCategory.INTEGER),
    FIELD_TYPE.LONG: ('INT', ValueCategory.INTEGER),
    FIELD_TYPE.LONGLONG: ('BIGINT', ValueCategory.INTEGER),
    FIELD_TYPE.INT24: ('MEDIUMINT', ValueCategory.INTEGER),
    FIELD_TYPE.YEAR: ('YEAR', ValueCategory.INTEGER),
    FIELD_TYPE.FLOAT: ('FLOAT', ValueCategory.FLOAT),
    FIELD_TYPE.DOUBLE: ('DOUBLE', ValueCategory.FLOAT),
    FIELD_TYPE.TIMESTAMP: ('TIMESTAMP', ValueCategory.TEXT),
    FIELD_TYPE.DATE: ('DATE', ValueCategory.TEXT),
    FIELD_TYPE.NEWDATE: ('DATE', ValueCategory.TEXT),
    FIELD_TYPE.TIME: ('TIME', ValueCategory.TEXT),
    FIELD_TYPE.DATETIME: ('DATETIME', ValueCategory.TEXT),
    FIELD_TYPE.VARCHAR: ('VARCHAR', ValueCategory.TEXT),
    FIELD_TYPE.VAR_STRING: ('VARCHAR', ValueCategory.TEXT),
    FIELD_TYPE.STRING: ('CHAR', ValueCategory.TEXT),
    FIELD_TYPE.ENUM: ('ENUM', ValueCategory.TEXT),
    FIELD_TYPE.SET: ('SET', ValueCategory.TEXT),
    FIELD_TYPE.TINY_BLOB: ('TINYBLOB', ValueCategory.TEXT),
    FIELD_TYPE.MEDIUM_BLOB: ('MEDIUMBLOB', ValueCategory.TEXT),
    FIELD_TYPE.LONG_BLOB: ('LONGBLOB', ValueCategory.TEXT),
    FIELD_TYPE.BLOB: ('BLOB', ValueCategory.TEXT),
    FIELD_TYPE.JSON: ('JSON', ValueCategory.TEXT),
    FIELD_TYPE.BIT: ('BIT', ValueCategory.OTHER),
    FIELD_TYPE.GEOMETRY: ('GEOMETRY', ValueCategory.OTHER),
    FIELD_TYPE.NULL: ('NULL', ValueCategory.OTHER),
}


@register_strategy('mysql')
class MySQLStrategy(DatabaseStrategy):
    """MySQL-specific operations.
    """

    limit_kinds = frozenset(StatementKind)

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for MySQL."""
        return 'mysql'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for MySQL over PyMySQL."""
        query = {}
        if options.charset:
            query['charset'] = options.charset
        return sa.URL.create(
            drivername='mysql+pymysql',
            username=options.username,
            password=options.password,
            host=options.hostname,
            port=options.port or DEFAULT_PORT,
            database=options.database,
            query=query,
        )

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for MySQL."""
        if options.timeout:
            return {'connect_args': {'connect_timeout': options.timeout}}
        return {}

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for MySQL connections."""
        return ['hostname', 'username', 'database']

    def insert_keyword(self, ignore: bool = False) -> str:
        return 'INSERT IGNORE INTO' if ignore else 'INSERT INTO'

    def upsert_clause(self, update_columns: Sequence[str],
                      conflict: Sequence[str] | None = None) -> str:
        """MySQL resolves conflicts on any unique key, so `conflict` is ignored.
        """
        return f'ON DUPLICATE KEY UPDATE {self.assignments(update_columns)}'

    def describe_columns(self, description: Sequence[Any] | None,
                         rows: Sequence[Sequence[Any]] = ()) -> list[Column]:
        """Classify columns by PyMySQL field type code.
        """
        columns = []
        for item in description or ():
            type_name, category = mysql_types.get(item[1], ('', ValueCategory.OTHER))
            columns.append(Column.from_cursor_description(item, type_name, category))
        return columns
