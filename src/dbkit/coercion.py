"""
Conversion of raw cell values into target types.

Drivers hand back cells already typed per column (int, float, Decimal, str,
bytes, datetime) or None for SQL NULL. Two rule tables apply:

- Record fields: the destination field kind decides the rule
  (`coerce_field`). A parse failure leaves the field's current value.
- Generic maps: the column's reported category decides the rule
  (`coerce_generic`). A parse failure yields the zero value.

Neither table raises on bad cell content.
"""
import datetime
import logging
from decimal import Decimal
from enum import Enum
from typing import Any

from dbkit.literals import format_float
from dbkit.types import Column, ValueCategory

logger = logging.getLogger(__name__)


class FieldKind(Enum):
    """Destination kinds a record field can be bound as."""
    BOOL = 'bool'
    STRING = 'string'
    FLOAT = 'float'
    BYTES = 'bytes'
    INTEGER = 'integer'


ZERO_VALUES = {
    FieldKind.BOOL: False,
    FieldKind.STRING: '',
    FieldKind.FLOAT: 0.0,
    FieldKind.BYTES: b'',
    FieldKind.INTEGER: 0,
}


def raw_text(value: Any) -> str:
    """Text form of a raw cell value.

    >>> raw_text(b'abc'), raw_text(None), raw_text(False), raw_text(2.5)
    ('abc', '', 'false', '2.5')
    >>> raw_text(datetime.datetime(2024, 1, 2, 3, 4, 5))
    '2024-01-02 03:04:05'
    """
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value).decode('utf-8', errors='replace')
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, float):
        return format_float(value)
    if isinstance(value, Decimal):
        return format(value, 'f')
    if isinstance(value, datetime.datetime):
        return value.isoformat(sep=' ')
    if isinstance(value, datetime.date | datetime.time):
        return value.isoformat()
    return str(value)


def raw_bytes(value: Any) -> bytes:
    """Byte form of a raw cell value."""
    if isinstance(value, bytes | bytearray | memoryview):
        return bytes(value)
    return raw_text(value).encode('utf-8')


def parse_int(value: Any) -> int:
    """Base-10 integer from a raw cell value.

    Raises
        ValueError: When the text is not a base-10 integer
    """
    if isinstance(value, int):
        return int(value)
    return int(raw_text(value).strip(), 10)


def parse_float(value: Any) -> float:
    """Float from a raw cell value.

    Raises
        ValueError: When the text is not a number
    """
    if isinstance(value, int | float | Decimal) and not isinstance(value, bool):
        return float(value)
    return float(raw_text(value).strip())


def coerce_field(kind: FieldKind, value: Any, current: Any) -> Any:
    """Value a record field of `kind` takes for raw cell `value`.

    `current` is returned where the rules leave the field unchanged.

    >>> coerce_field(FieldKind.BOOL, b'false', True)
    False
    >>> coerce_field(FieldKind.FLOAT, b'n/a', 1.5)
    1.5
    >>> coerce_field(FieldKind.BYTES, None, b'keep')
    b'keep'
    >>> coerce_field(FieldKind.INTEGER, None, 7)
    0
    """
    if kind is FieldKind.BOOL:
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        return raw_text(value) != 'false'

    if kind is FieldKind.STRING:
        return raw_text(value)

    if kind is FieldKind.FLOAT:
        if value is None:
            return 0.0
        try:
            return parse_float(value)
        except ValueError:
            return current

    if kind is FieldKind.BYTES:
        if value is None:
            return current
        return raw_bytes(value)

    if value is None:
        return 0
    try:
        return parse_int(value)
    except ValueError:
        return current


def coerce_generic(column: Column, value: Any) -> Any:
    """Value stored in a generic map for raw cell `value` of `column`.

    >>> coerce_generic(Column('price', type_name='DECIMAL', category=ValueCategory.TEXT), None)
    0.0
    >>> coerce_generic(Column('name', type_name='VARCHAR', category=ValueCategory.TEXT), None)
    ''
    """
    category = column.category

    if category is ValueCategory.TEXT:
        if column.is_decimal:
            return _float_or_zero(value)
        return raw_text(value)

    if category is ValueCategory.FLOAT:
        return _float_or_zero(value)

    if category is ValueCategory.INTEGER:
        if value is None:
            return 0
        try:
            return parse_int(value)
        except ValueError:
            return 0

    return raw_text(value)


def _float_or_zero(value: Any) -> float:
    if value is None:
        return 0.0
    try:
        return parse_float(value)
    except ValueError:
        return 0.0


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
