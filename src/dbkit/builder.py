"""
Fluent SQL statement builder.

A statement is created by one of the constructors, configured with chained
setters, and rendered to `?`-placeholder SQL plus positional arguments:

>>> sql, args = select('id,name').from_('user').where('age > 18').limit(10).render()
>>> sql, args
('SELECT id,name FROM user WHERE age > 18 LIMIT 10', [])
>>> insert().table('user').values({'name': 'Tom', 'age': 20}).render()
('INSERT INTO user (`name`,`age`) VALUES (?,?)', ['Tom', 20])

Table names and the where/group/order fragments are written verbatim;
column names taken from values are quoted with the dialect's identifier
quote. The dialect comes from the bound connection, else the default
connection, else MySQL.
"""
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Self

from dbkit.connection import get_default_connection
from dbkit.exceptions import ConnectionFailure, DatabaseError, DriverError
from dbkit.exceptions import UnsafeStatementError, ValidationError
from dbkit.literals import inline_literals
from dbkit.row import Row
from dbkit.sql import PLACEHOLDER
from dbkit.strategy import DatabaseStrategy, get_strategy
from dbkit.types import StatementKind
from dbkit.utils import DEFAULT_DIALECT

logger = logging.getLogger(__name__)

__all__ = [
    'Values',
    'Result',
    'Statement',
    'insert',
    'delete',
    'update',
    'select',
    'insert_or_update',
]


class Values(dict):
    """Column name to value mapping used for INSERT and UPDATE.

    >>> v = Values(name='Tom')
    >>> v.add('age', 20)
    >>> v.get_int('age'), v.get_str('age'), v.exists('name')
    (20, '', True)
    """

    def add(self, key: str, value: Any) -> None:
        self[key] = value

    def remove(self, key: str) -> None:
        self.pop(key, None)

    def exists(self, key: str) -> bool:
        return key in self

    def get_str(self, key: str, default: str = '') -> str:
        """Value of `key` when it is a str, otherwise `default`.
        """
        value = self.get(key)
        return value if isinstance(value, str) else default

    def get_int(self, key: str, default: int = 0) -> int:
        """Value of `key` when it is an int, otherwise `default`.
        """
        value = self.get(key)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Value of `key` when it is a float, otherwise `default`.
        """
        value = self.get(key)
        return value if isinstance(value, float) else default


@dataclass
class Result:
    """Outcome of `Statement.exec`.

    `last_id` is set for INSERT on drivers that report one; `affected` for
    UPDATE, DELETE and INSERT_OR_UPDATE.
    """
    success: bool = False
    error: Exception | None = None
    last_id: int | None = None
    affected: int = 0
    sql: str = ''

    def __bool__(self) -> bool:
        return self.success

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class Statement:
    """Accumulated description of one SQL statement.
    """

    def __init__(self, kind: StatementKind, fields: str = '*', ignore: bool = False,
                 cn: Any = None, dialect: str | None = None) -> None:
        self.kind = kind
        self._table = ''
        self._fields = fields
        self._where = ''
        self._group = ''
        self._order = ''
        self._limit: tuple[int, int | None] | None = None
        self._values = Values()
        self._update_values = Values()
        self._conflict: list[str] = []
        self._ignore = ignore
        self._unsafe = False
        self._debug = False
        self._full_sql = False
        self._cn = cn
        self._dialect = dialect
        self._args: list = []

    def __repr__(self) -> str:
        return f'Statement({self.kind.name}, table={self._table!r})'

    # setters

    def table(self, name: str) -> Self:
        self._table = name
        return self

    def from_(self, name: str) -> Self:
        """Alias of `table` for SELECT statements.
        """
        return self.table(name)

    def fields(self, fields: str | Sequence[str]) -> Self:
        """Set the SELECT projection, verbatim text or a list of expressions.
        """
        self._fields = fields if isinstance(fields, str) else ','.join(fields)
        return self

    def where(self, clause: str) -> Self:
        self._where = clause
        return self

    def group(self, clause: str) -> Self:
        self._group = clause
        return self

    def order(self, clause: str) -> Self:
        self._order = clause
        return self

    def limit(self, count: int, offset: int | None = None) -> Self:
        self._limit = (int(count), None if offset is None else int(offset))
        return self

    def values(self, values: Mapping[str, Any]) -> Self:
        """Replace the column values of an INSERT, UPDATE or INSERT_OR_UPDATE.
        """
        self._values = Values(values)
        return self

    def update_values(self, values: Mapping[str, Any]) -> Self:
        """Replace the values assigned when an INSERT_OR_UPDATE hits an existing row.
        """
        self._update_values = Values(values)
        return self

    def add_value(self, key: str, value: Any) -> Self:
        self._values.add(key, value)
        return self

    def add_update_value(self, key: str, value: Any) -> Self:
        self._update_values.add(key, value)
        return self

    def conflict(self, *columns: str) -> Self:
        """Set the conflict target of an INSERT_OR_UPDATE on dialects that use one.
        """
        self._conflict = list(columns)
        return self

    def ignore(self, yes: bool = True) -> Self:
        self._ignore = yes
        return self

    def unsafe(self, yes: bool = True) -> Self:
        """Allow UPDATE and DELETE without a WHERE clause.
        """
        self._unsafe = yes
        return self

    def debug(self, yes: bool = True) -> Self:
        """Log the rendered SQL and arguments at INFO before running.
        """
        self._debug = yes
        return self

    def full_sql(self, yes: bool = True) -> Self:
        """Inline arguments as literals and send the statement without parameters.
        """
        self._full_sql = yes
        return self

    def db(self, cn: Any) -> Self:
        """Bind the statement to a connection.
        """
        self._cn = cn
        return self

    @property
    def args(self) -> list:
        """Positional arguments produced by the last render.
        """
        return list(self._args)

    # rendering

    def _connection(self) -> Any:
        return self._cn if self._cn is not None else get_default_connection()

    @property
    def dialect(self) -> str:
        if self._dialect:
            return self._dialect
        cn = self._connection()
        if cn is not None:
            return cn.dialect
        return DEFAULT_DIALECT

    @property
    def strategy(self) -> DatabaseStrategy:
        return get_strategy(self.dialect)

    def _columns_clause(self, strategy: DatabaseStrategy) -> str:
        columns = ','.join(strategy.quote_identifier(col) for col in self._values)
        placeholders = ','.join([PLACEHOLDER] * len(self._values))
        self._args.extend(self._values.values())
        return f'({columns}) VALUES ({placeholders})'

    def _set_clause(self, strategy: DatabaseStrategy, values: Values) -> str:
        self._args.extend(values.values())
        return strategy.assignments(list(values))

    def _limit_clause(self, strategy: DatabaseStrategy) -> str:
        if self._limit is None or not strategy.supports_limit(self.kind):
            return ''
        return ' LIMIT ' + strategy.render_limit(*self._limit)

    def _filter_clause(self) -> str:
        return f' WHERE {self._where}' if self._where else ''

    def _check_safe(self, action: str) -> None:
        if not self._where and not self._unsafe:
            raise UnsafeStatementError(f'{action} all data is not safe')

    def _require_values(self, values: Values) -> None:
        if not values:
            raise ValidationError('values cannot be empty')

    def render(self, inline: bool = False) -> tuple[str, list]:
        """Render the statement.

        Returns
            Tuple of (sql, args). UPDATE, DELETE and INSERT_OR_UPDATE without
            a table render as an empty string.

        Raises
            ValidationError: For missing table or values
            UnsafeStatementError: For UPDATE or DELETE without a WHERE clause
                unless marked unsafe
        """
        self._args = []
        strategy = self.strategy
        kind = self.kind

        if kind is StatementKind.INSERT:
            if not self._table:
                raise ValidationError('table cannot be empty')
            self._require_values(self._values)
            sql = (f'{strategy.insert_keyword(self._ignore)} {self._table} '
                   f'{self._columns_clause(strategy)}{strategy.ignore_suffix(self._ignore)}')

        elif kind is StatementKind.DELETE:
            if not self._table:
                return '', []
            self._check_safe('deleting')
            sql = f'DELETE FROM {self._table}{self._filter_clause()}{self._limit_clause(strategy)}'

        elif kind is StatementKind.UPDATE:
            if not self._table:
                return '', []
            self._check_safe('updating')
            self._require_values(self._values)
            sql = (f'UPDATE {self._table} SET {self._set_clause(strategy, self._values)}'
                   f'{self._filter_clause()}{self._limit_clause(strategy)}')

        elif kind is StatementKind.INSERT_OR_UPDATE:
            if not self._table:
                return '', []
            self._require_values(self._values)
            self._require_values(self._update_values)
            sql = f'INSERT INTO {self._table} {self._columns_clause(strategy)}'
            clause = strategy.upsert_clause(list(self._update_values), self._conflict)
            self._args.extend(self._update_values.values())
            sql = f'{sql} {clause}{self._limit_clause(strategy)}'

        else:
            parts = [f'SELECT {self._fields}']
            if self._table:
                parts.append(f'FROM {self._table}')
            if self._where:
                parts.append(f'WHERE {self._where}')
            if self._group:
                parts.append(f'GROUP BY {self._group}')
            if self._order:
                parts.append(f'ORDER BY {self._order}')
            sql = ' '.join(parts) + self._limit_clause(strategy)

        if inline:
            return inline_literals(sql, self._args), list(self._args)
        return sql, list(self._args)

    def to_sql(self, inline: bool = False) -> str:
        sql, _ = self.render(inline)
        return sql

    # execution

    def _prepare(self, extra: tuple) -> tuple[str, list]:
        """Render for execution, appending `extra` to the statement's own args.
        """
        sql, args = self.render()
        args = [*args, *extra]
        if self._debug:
            logger.info(f'SQL prepare statement:\n{sql}\nargs: {args}')
        if self._full_sql and sql:
            return inline_literals(sql, args), []
        return sql, args

    def _require_connection(self) -> Any:
        cn = self._connection()
        if cn is None:
            raise ConnectionFailure('no connection bound and no default connection set')
        return cn

    def exec(self, *args: Any) -> Result:
        """Execute an INSERT, UPDATE, DELETE or INSERT_OR_UPDATE.

        Errors are stored on the returned `Result`, never raised. A statement
        that renders empty succeeds without touching the database.
        """
        result = Result()
        try:
            result.sql, params = self._prepare(args)
            if not result.sql:
                result.success = True
                return result
            affected, last_id = self._require_connection().execute_result(result.sql, *params)
        except (DatabaseError, *DriverError) as exc:
            logger.debug(f'Statement failed: {exc}')
            result.error = exc
            return result

        result.success = True
        if self.kind is StatementKind.INSERT:
            result.last_id = last_id
        elif self.kind is not StatementKind.SELECT:
            result.affected = affected
        return result

    def query(self, *args: Any) -> list[dict[str, str]]:
        """Run the statement and return rows as column name to text value.
        """
        sql, params = self._prepare(args)
        return self._require_connection().select_rows(sql, *params)

    def query_one(self, *args: Any) -> Row:
        """Run the statement limited to one row and return it as a `Row`.

        The limit applies to this call only; a configured offset is kept.

        Raises
            NoRowsError: If no row matches
        """
        saved = self._limit
        self._limit = (1, saved[1] if saved else None)
        try:
            sql, params = self._prepare(args)
        finally:
            self._limit = saved
        return self._require_connection().select_row(sql, *params)

    def query_maps(self, *args: Any) -> Any:
        sql, params = self._prepare(args)
        return self._require_connection().select_maps(sql, *params)

    def query_map(self, *args: Any) -> dict[str, Any]:
        sql, params = self._prepare(args)
        return self._require_connection().select_map(sql, *params)

    def query_record(self, record_type: type, *args: Any) -> Any:
        """Run the statement and build one record from the first row.

        Raises
            NoRowsError: If no row matches
        """
        sql, params = self._prepare(args)
        return self._require_connection().select_record(record_type, sql, *params)

    def query_records(self, record_type: type, *args: Any) -> list:
        sql, params = self._prepare(args)
        return self._require_connection().select_records(record_type, sql, *params)

    def query_cursor(self, *args: Any) -> Any:
        """Run the statement and return the open cursor; the caller closes it.
        """
        sql, params = self._prepare(args)
        return self._require_connection().query_cursor(sql, *params)

    def enqueue(self, queue: Any, *args: Any) -> None:
        """Render now and hand the statement to a `StatementQueue`.
        """
        sql, params = self._prepare(args)
        if not sql:
            return
        queue.enqueue(self._require_connection(), sql, *params)


def insert(ignore: bool = False, cn: Any = None, dialect: str | None = None) -> Statement:
    return Statement(StatementKind.INSERT, ignore=ignore, cn=cn, dialect=dialect)


def delete(cn: Any = None, dialect: str | None = None) -> Statement:
    return Statement(StatementKind.DELETE, cn=cn, dialect=dialect)


def update(cn: Any = None, dialect: str | None = None) -> Statement:
    return Statement(StatementKind.UPDATE, cn=cn, dialect=dialect)


def select(fields: str | Sequence[str] = '*', cn: Any = None,
           dialect: str | None = None) -> Statement:
    return Statement(StatementKind.SELECT, cn=cn, dialect=dialect).fields(fields)


def insert_or_update(cn: Any = None, dialect: str | None = None) -> Statement:
    """INSERT that updates the existing row on a key conflict.
    """
    return Statement(StatementKind.INSERT_OR_UPDATE, cn=cn, dialect=dialect)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
