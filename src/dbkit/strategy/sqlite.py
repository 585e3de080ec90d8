"""
SQLite-specific strategy implementation.

SQLite handles a few things its own way:
- `INSERT OR IGNORE` and `ON CONFLICT ... DO UPDATE` for the ignore and upsert forms
- LIMIT only on SELECT (the UPDATE/DELETE LIMIT extension is a compile-time option)
- No column types in cursor descriptions, so categories come from the values;
  a column that is NULL in every fetched row has no value to go by and is text
"""
import datetime
import logging
import sqlite3
from collections.abc import Sequence
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

import dateutil.parser
import sqlalchemy as sa
from dbkit.strategy.base import DatabaseStrategy, register_strategy
from dbkit.types import Column, ValueCategory

if TYPE_CHECKING:
    from dbkit.options import DatabaseOptions

logger = logging.getLogger(__name__)


def convert_date(val: bytes) -> datetime.date:
    """Convert ISO 8601 date string to date object."""
    return dateutil.parser.isoparse(val.decode()).date()


def convert_datetime(val: bytes) -> datetime.datetime:
    """Convert ISO 8601 datetime string to datetime object."""
    return dateutil.parser.isoparse(val.decode())


def convert_decimal(val: bytes) -> Decimal | str:
    """Convert a DECIMAL/NUMERIC column value to Decimal.

    NUMERIC affinity keeps text that is not a number; it is returned as is.
    """
    text = val.decode()
    try:
        return Decimal(text)
    except InvalidOperation:
        return text


def _infer_type(value: Any) -> tuple[str, ValueCategory]:
    """Type name and category of a column from one of its non-null values.

    >>> _infer_type(3)
    ('INTEGER', <ValueCategory.INTEGER: 'integer'>)
    >>> _infer_type(Decimal('1.5'))
    ('DECIMAL', <ValueCategory.TEXT: 'text'>)
    """
    if isinstance(value, bool | int):
        return 'INTEGER', ValueCategory.INTEGER
    if isinstance(value, float):
        return 'REAL', ValueCategory.FLOAT
    if isinstance(value, Decimal):
        return 'DECIMAL', ValueCategory.TEXT
    if isinstance(value, bytes | bytearray | memoryview):
        return 'BLOB', ValueCategory.TEXT
    if isinstance(value, datetime.datetime):
        return 'DATETIME', ValueCategory.TEXT
    if isinstance(value, datetime.date):
        return 'DATE', ValueCategory.TEXT
    if isinstance(value, str):
        return 'TEXT', ValueCategory.TEXT
    return '', ValueCategory.OTHER


@register_strategy('sqlite')
class SQLiteStrategy(DatabaseStrategy):
    """SQLite-specific operations.
    """

    @property
    def dialect_name(self) -> str:
        """Return the dialect identifier for SQLite."""
        return 'sqlite'

    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL for SQLite."""
        return sa.URL.create(drivername='sqlite', database=options.database)

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for SQLite."""
        return {
            'connect_args': {
                'detect_types': sqlite3.PARSE_DECLTYPES | sqlite3.PARSE_COLNAMES
            }
        }

    def register_type_adapters(self, connection: Any) -> None:
        """Register date/datetime adapters and converters for SQLite.
        """
        # Adapters (Python -> SQLite)
        sqlite3.register_adapter(datetime.datetime, lambda v: v.isoformat(sep=' '))
        sqlite3.register_adapter(datetime.date, lambda v: v.isoformat())
        sqlite3.register_adapter(Decimal, str)

        # Converters (SQLite -> Python)
        sqlite3.register_converter('date', convert_date)
        sqlite3.register_converter('datetime', convert_datetime)
        sqlite3.register_converter('decimal', convert_decimal)
        sqlite3.register_converter('numeric', convert_decimal)

    @classmethod
    def get_required_options(cls) -> list[str]:
        """Return required options for SQLite connections."""
        return ['database']

    def insert_keyword(self, ignore: bool = False) -> str:
        return 'INSERT OR IGNORE INTO' if ignore else 'INSERT INTO'

    def upsert_clause(self, update_columns: Sequence[str],
                      conflict: Sequence[str] | None = None) -> str:
        target = self._conflict_target(conflict)
        on_conflict = f'ON CONFLICT{target}' if target else 'ON CONFLICT'
        return f'{on_conflict} DO UPDATE SET {self.assignments(update_columns)}'

    def describe_columns(self, description: Sequence[Any] | None,
                         rows: Sequence[Sequence[Any]] = ()) -> list[Column]:
        """Classify columns from the first non-null value in each.

        Columns that are null in every row are treated as text, whatever
        their declared type, so a null DECIMAL or INTEGER cell comes back
        as '' when no other row of the result holds a value.
        """
        columns = []
        for index, item in enumerate(description or ()):
            type_name, category = 'TEXT', ValueCategory.TEXT
            for row in rows:
                if row[index] is not None:
                    type_name, category = _infer_type(row[index])
                    break
            columns.append(Column.from_cursor_description(item, type_name, category))
        return columns


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
