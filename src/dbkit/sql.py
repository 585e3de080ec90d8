"""
SQL text processing for statement execution.

Statements are rendered with `?` placeholders. Before they reach a driver the
text is split once into segments (plain SQL, string literals, quoted
identifiers, placeholders) and rewritten:

    SQL + Args → Segment → Rewrite placeholders → Escape percent signs

Main entry points:
- `prepare_query(sql, args, dialect)` - Convert placeholders and arguments for a driver
- `standardize_placeholders()` - Convert %s ↔ ? for dialect
- `escape_percent_signs()` - Double stray % for pyformat drivers
- `has_placeholders()` - Check if SQL has placeholders
- `quote_identifier()` - Quote table/column names
"""
import re
from collections.abc import Iterator
from enum import Enum, auto

from dbkit.types import to_driver_args

PLACEHOLDER = '?'

IDENTIFIER_QUOTES = {
    'mysql': '`',
    'postgresql': '"',
    'sqlite': '"',
}


class Segment(Enum):
    """Kinds of SQL text told apart when rewriting a statement."""
    TEXT = auto()
    LITERAL = auto()
    IDENTIFIER = auto()
    PLACEHOLDER = auto()


_SEGMENTS = re.compile(r"""
    (?P<literal>'(?:[^'\\]|\\.|'')*'|"(?:[^"\\]|\\.|"")*")
    |(?P<identifier>`(?:[^`]|``)*`)
    |(?P<placeholder>%\([^)]+\)s|%s|\?)
""", re.VERBOSE)

_STRAY_PERCENT = re.compile(r'(?<!%)%(?![%s(])')

_ANY_PLACEHOLDER = re.compile(r'%s|\?|%\([^)]+\)s')


def split_sql(sql: str) -> Iterator[tuple[Segment, str]]:
    """Split SQL into consecutive (kind, text) segments that join back to `sql`.

    >>> [kind.name for kind, _ in split_sql("a = ? AND b = 'x?'")]
    ['TEXT', 'PLACEHOLDER', 'TEXT', 'LITERAL']
    """
    pos = 0
    for match in _SEGMENTS.finditer(sql):
        if match.start() > pos:
            yield Segment.TEXT, sql[pos:match.start()]
        yield Segment[match.lastgroup.upper()], match.group()
        pos = match.end()
    if pos < len(sql):
        yield Segment.TEXT, sql[pos:]


def dialect_placeholder(dialect: str) -> str:
    """Return the driver placeholder for a dialect."""
    return '?' if dialect == 'sqlite' else '%s'


def has_placeholders(sql: str | None) -> bool:
    """Check if SQL has any parameter placeholders.

    >>> has_placeholders('SELECT 1'), has_placeholders('a = %(a)s')
    (False, True)
    """
    return bool(sql) and _ANY_PLACEHOLDER.search(sql) is not None


def standardize_placeholders(sql: str, dialect: str = 'mysql') -> str:
    """Rewrite positional placeholders to the dialect's form.

    Placeholder characters inside string literals and quoted identifiers are
    left alone.

    >>> standardize_placeholders("a = ? AND b = '?'", 'postgresql')
    "a = %s AND b = '?'"
    """
    if not sql:
        return sql
    target = dialect_placeholder(dialect)
    source = '%s' if target == '?' else '?'
    if source not in sql:
        return sql
    return ''.join(target if kind is Segment.PLACEHOLDER and text == source else text
                   for kind, text in split_sql(sql))


def escape_percent_signs(sql: str) -> str:
    """Double percent signs that are not placeholders.

    pyformat drivers (PyMySQL, psycopg) interpolate the statement when
    parameters are sent, so a literal `%` must be written as `%%`.

    >>> escape_percent_signs("SELECT * FROM t WHERE a LIKE 'x%' AND b = %s")
    "SELECT * FROM t WHERE a LIKE 'x%%' AND b = %s"
    """
    if not sql or '%' not in sql:
        return sql
    return ''.join(_STRAY_PERCENT.sub('%%', text) if kind in {Segment.TEXT, Segment.LITERAL} else text
                   for kind, text in split_sql(sql))


def prepare_query(sql: str, args: tuple | list, dialect: str) -> tuple[str, tuple]:
    """Convert a statement and its positional arguments for a dialect's driver.

    Arguments are dropped when the statement has no placeholders. NumPy and
    Pandas values are unwrapped to Python ones.

    Returns
        Tuple of (processed_sql, processed_args)
    """
    if not sql or not args or not has_placeholders(sql):
        return sql, ()

    args = to_driver_args(args)

    sql = standardize_placeholders(sql, dialect)
    if dialect_placeholder(dialect) == '%s':
        sql = escape_percent_signs(sql)
    return sql, args


def quote_identifier(identifier: str, dialect: str = 'mysql') -> str:
    """Quote a table or column name, doubling any embedded quote character.

    Raises
        ValueError: If dialect is unsupported

    >>> quote_identifier('name')
    '`name`'
    >>> quote_identifier('we"ird', 'postgresql')
    '"we""ird"'
    """
    try:
        quote = IDENTIFIER_QUOTES[dialect]
    except KeyError:
        raise ValueError(f'Unknown dialect: {dialect}') from None
    return f'{quote}{identifier.replace(quote, quote * 2)}{quote}'


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
