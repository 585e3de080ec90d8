"""
Base strategy interface for dialect-specific behavior.

Each strategy owns the parts of statement rendering and result handling that
differ between databases: identifier quoting, the ignore and upsert forms of
INSERT, LIMIT support, column type classification, and how a connection URL
and engine are built. Statements are always rendered with `?` placeholders;
conversion to the driver's paramstyle happens at execution.
"""
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

import sqlalchemy as sa
from dbkit.exceptions import ValidationError
from dbkit.sql import PLACEHOLDER, dialect_placeholder
from dbkit.sql import quote_identifier as sql_quote_identifier
from dbkit.types import Column, StatementKind

if TYPE_CHECKING:
    from dbkit.options import DatabaseOptions

# Registry of dialect name -> strategy class
# Defined here to avoid circular imports (concrete strategies import from base)
_STRATEGY_REGISTRY: dict[str, type['DatabaseStrategy']] = {}


def register_strategy(dialect: str):
    """Decorator to register a strategy class for a dialect.

    Usage:
        @register_strategy('mysql')
        class MySQLStrategy(DatabaseStrategy):
            ...
    """
    def decorator(cls: type['DatabaseStrategy']) -> type['DatabaseStrategy']:
        _STRATEGY_REGISTRY[dialect] = cls
        return cls
    return decorator


class DatabaseStrategy(ABC):
    """Base class for database-specific operations.
    """

    # Statement kinds that accept a LIMIT clause
    limit_kinds: frozenset[StatementKind] = frozenset({StatementKind.SELECT})

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the dialect identifier.
        """

    @abstractmethod
    def build_connection_url(self, options: 'DatabaseOptions') -> sa.URL:
        """Build the SQLAlchemy connection URL.
        """

    def get_engine_kwargs(self, options: 'DatabaseOptions') -> dict[str, Any]:
        """Return SQLAlchemy create_engine kwargs for this dialect.
        """
        return {}

    def register_type_adapters(self, connection: Any) -> None:
        """Register dialect-specific type adapters on a raw DBAPI connection.
        """

    @classmethod
    @abstractmethod
    def get_required_options(cls) -> list[str]:
        """Return list of required option field names for this dialect.

        Returns
            List of field names that must have non-None/non-zero values
        """

    @classmethod
    def validate_options(cls, options: 'DatabaseOptions') -> None:
        """Validate options for this dialect.

        Args:
            options: DatabaseOptions to validate

        Raises
            ValueError: If any required field is None or 0
        """
        for field in cls.get_required_options():
            if not getattr(options, field):
                raise ValueError(f'field {field} cannot be None or 0')

    def quote_identifier(self, identifier: str) -> str:
        """Quote a table or column name with the dialect's identifier quote.
        """
        return sql_quote_identifier(identifier, self.dialect_name)

    def placeholder(self) -> str:
        """Return the driver's positional placeholder.
        """
        return dialect_placeholder(self.dialect_name)

    def insert_keyword(self, ignore: bool = False) -> str:
        """Leading keywords of an INSERT statement.
        """
        return 'INSERT INTO'

    def ignore_suffix(self, ignore: bool = False) -> str:
        """Text appended to an INSERT statement for the ignore form.
        """
        return ''

    def assignments(self, columns: Sequence[str]) -> str:
        """Render `c1=?,c2=?` for an UPDATE SET list.
        """
        return ','.join(f'{self.quote_identifier(col)}={PLACEHOLDER}' for col in columns)

    @abstractmethod
    def upsert_clause(self, update_columns: Sequence[str],
                      conflict: Sequence[str] | None = None) -> str:
        """Clause appended to an INSERT to update existing rows on key conflict.

        Args:
            update_columns: Columns assigned in the update branch
            conflict: Conflict target columns, when the dialect uses one

        Raises
            ValidationError: When the dialect requires a conflict target and
                none was given
        """

    def supports_limit(self, kind: StatementKind) -> bool:
        """Whether a LIMIT clause is rendered for this statement kind.
        """
        return kind in self.limit_kinds

    def render_limit(self, count: int, offset: int | None = None) -> str:
        """Render the body of a LIMIT clause.

        >>> from dbkit.strategy import get_strategy
        >>> get_strategy('mysql').render_limit(10, 20)
        '20,10'
        >>> get_strategy('postgresql').render_limit(10, 20)
        '10 OFFSET 20'
        """
        if offset is None:
            return str(count)
        return f'{offset},{count}'

    def _conflict_target(self, conflict: Sequence[str] | None) -> str:
        if not conflict:
            return ''
        return '(' + ','.join(self.quote_identifier(col) for col in conflict) + ')'

    @abstractmethod
    def describe_columns(self, description: Sequence[Any] | None,
                         rows: Sequence[Sequence[Any]] = ()) -> list[Column]:
        """Build column metadata from a cursor description.

        Args:
            description: DB-API cursor description
            rows: Fetched rows, for dialects that report no column types

        Returns
            Columns with type name and value category filled in
        """

    def last_insert_id(self, cursor: Any) -> int | None:
        """Identifier generated by the last INSERT on a cursor.
        """
        return getattr(cursor, 'lastrowid', None)

    def _require_conflict(self, conflict: Sequence[str] | None) -> None:
        if not conflict:
            raise ValidationError(f'{self.dialect_name} upsert requires a conflict target')
