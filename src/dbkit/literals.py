"""
Literal SQL rendering.

Replaces `?` placeholders with literal values, producing a statement that
can be logged or sent to a driver without parameters. Every argument is
first classified into a closed set of value kinds; anything outside that set
is rejected with the offending type, value and statement.

>>> inline_literals('age > ?', [18])
'age > 18'
>>> inline_literals('name = ? AND ok = ?', ["O'Brien", True])
"name = 'OBrien' AND ok = true"
"""
import logging
import math
from decimal import Decimal
from enum import Enum
from typing import Any

import numpy as np
import pandas as pd
from dbkit.exceptions import TypeConversionError
from dbkit.sql import PLACEHOLDER
from more_itertools import roundrobin

logger = logging.getLogger(__name__)

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1


class ValueKind(Enum):
    """Kinds of argument values that can be written as SQL literals."""
    INTEGER = 'integer'
    UNSIGNED = 'unsigned'
    BIG_INTEGER = 'big_integer'
    FLOAT = 'float'
    BOOL = 'bool'
    STRING = 'string'
    BYTES = 'bytes'
    NULL = 'null'


def classify_value(value: Any) -> ValueKind | None:
    """Return the kind of an argument, or None when it has no literal form.

    >>> classify_value(2 ** 70)
    <ValueKind.BIG_INTEGER: 'big_integer'>
    >>> classify_value(np.uint8(7))
    <ValueKind.UNSIGNED: 'unsigned'>
    >>> classify_value(object()) is None
    True
    """
    if value is None or value is pd.NA or value is pd.NaT:
        return ValueKind.NULL
    if isinstance(value, bool | np.bool_):
        return ValueKind.BOOL
    if isinstance(value, np.unsignedinteger):
        return ValueKind.UNSIGNED
    if isinstance(value, int | np.integer):
        if INT64_MIN <= int(value) <= INT64_MAX:
            return ValueKind.INTEGER
        return ValueKind.BIG_INTEGER
    if isinstance(value, float | np.floating | Decimal):
        return ValueKind.FLOAT
    if isinstance(value, str):
        return ValueKind.STRING
    if isinstance(value, bytes | bytearray | memoryview):
        return ValueKind.BYTES
    return None


def format_float(value: float | np.floating | Decimal) -> str:
    """Shortest positional decimal text that reads back as the same number.

    >>> format_float(0.1), format_float(1.0), format_float(1e20)
    ('0.1', '1', '100000000000000000000')
    >>> format_float(Decimal('12.50'))
    '12.50'
    """
    if isinstance(value, Decimal):
        return format(value, 'f')
    return np.format_float_positional(value, trim='-')


def quote_string(value: str) -> str:
    """Wrap a string in single quotes after stripping quotes and escaping backslashes.

    >>> quote_string("O'Brien")
    "'OBrien'"
    """
    return "'" + value.replace("'", '').replace('\\', '\\\\') + "'"


def format_literal(value: Any, sql: str = '') -> str:
    """Render one argument as SQL literal text.

    Raises
        TypeConversionError: For values with no literal form and infinite floats
    """
    kind = classify_value(value)

    if kind is None:
        raise TypeConversionError(
            f'invalid sql argument type: {type(value).__name__} => {value!r} (sql: {sql})')

    if kind is ValueKind.NULL:
        return 'NULL'
    if kind is ValueKind.BOOL:
        return 'true' if value else 'false'
    if kind in {ValueKind.INTEGER, ValueKind.UNSIGNED, ValueKind.BIG_INTEGER}:
        return str(int(value))
    if kind is ValueKind.FLOAT:
        number = float(value)
        if math.isnan(number):
            return 'NULL'
        if math.isinf(number):
            raise TypeConversionError(f'infinite value has no sql literal: {value!r} (sql: {sql})')
        return format_float(value)
    if kind is ValueKind.STRING:
        return quote_string(value)
    return "X'" + bytes(value).hex().upper() + "'"


def inline_literals(sql: str, args: list | tuple) -> str:
    """Substitute each `?` in order with the literal text of the next argument.

    Arguments beyond the number of placeholders are ignored. When there are
    fewer arguments than placeholders, the remaining segments are joined
    without substitution.
    """
    if PLACEHOLDER not in sql:
        return sql

    segments = sql.split(PLACEHOLDER)
    slots = len(segments) - 1

    if len(args) != slots:
        logger.warning(f'Inlining {len(args)} arguments into {slots} placeholders: {sql}')

    literals = [format_literal(arg, sql) for arg in list(args)[:slots]]
    return ''.join(roundrobin(segments, literals))


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
