"""
Type handling shared by statement rendering and row conversion.

This module provides:
- ValueCategory: Semantic category a dialect reports for a result column
- StatementKind: Statement kinds rendered by the builder
- Column: Column metadata from cursor descriptions
- to_driver_value / to_driver_args: Unwrap NumPy and Pandas values before they reach a driver
"""
import dataclasses
import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

DECIMAL_TYPE_NAMES = frozenset({'DECIMAL', 'NEWDECIMAL', 'NUMERIC'})


class ValueCategory(Enum):
    """Coercion family selected for a column during generic map conversion.

    TEXT covers temporal, raw byte and (nullable) string columns, FLOAT and
    INTEGER cover every width and nullability of those numbers, OTHER is
    anything a dialect does not classify.
    """
    TEXT = 'text'
    FLOAT = 'float'
    INTEGER = 'integer'
    OTHER = 'other'


class StatementKind(Enum):
    """Kinds of statement the builder renders."""
    INSERT = 'INSERT'
    DELETE = 'DELETE'
    UPDATE = 'UPDATE'
    SELECT = 'SELECT'
    INSERT_OR_UPDATE = 'INSERT_OR_UPDATE'


@dataclass(repr=False)
class Column:
    """Result column with the type its dialect reported.

    The dialect strategy fills in `type_name` (stored upper case) and
    `category`; generic map conversion picks a coercion rule from them.
    """
    name: str
    type_code: Any = None
    type_name: str = ''
    category: ValueCategory = ValueCategory.OTHER
    display_size: int | None = None
    internal_size: int | None = None
    precision: int | None = None
    scale: int | None = None
    nullable: bool | None = None

    def __post_init__(self):
        self.type_name = (self.type_name or '').upper()

    def __repr__(self) -> str:
        return (f'Column(name={self.name!r}, type_name={self.type_name!r}, '
                f'category={self.category.name})')

    @classmethod
    def from_cursor_description(cls, item: Any, type_name: str = '',
                                category: ValueCategory = ValueCategory.OTHER) -> Self:
        """Column from one DB-API description entry.

        Plain 7-tuples (sqlite3, PyMySQL) and psycopg's Column objects are
        both sequences; short entries are padded with None.
        """
        name, type_code, display, internal, precision, scale, nullable = \
            (tuple(item) + (None,) * 7)[:7]
        return cls(str(name), type_code, type_name, category, display, internal,
                   precision, scale, None if nullable is None else bool(nullable))

    @property
    def is_decimal(self) -> bool:
        """True for database DECIMAL/NUMERIC columns."""
        return self.type_name in DECIMAL_TYPE_NAMES

    def to_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self) | {'category': self.category.value}

    @staticmethod
    def get_names(columns: list[Self]) -> list[str]:
        return [col.name for col in columns]

    @staticmethod
    def get_column_types_dict(columns: list[Self]) -> dict[str, dict[str, Any]]:
        """Column metadata keyed by name, as stored in DataFrame attrs.
        """
        return {col.name: col.to_dict() for col in columns}


def to_driver_value(value: Any) -> Any:
    """Python value a driver accepts for `value`.

    NumPy scalars are unwrapped, NaN/NaT/NA become None, Pandas timestamps
    become datetimes. Anything else is returned unchanged.

    >>> to_driver_value(np.int16(3)), to_driver_value(float('nan')), to_driver_value(pd.NA)
    (3, None, None)
    """
    if value is None or value is pd.NA or value is pd.NaT:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, np.datetime64):
        return None if np.isnat(value) else pd.Timestamp(value).to_pydatetime()
    if isinstance(value, np.floating) and np.isnan(value):
        return None
    if isinstance(value, np.generic):
        return value.item()
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def to_driver_args(args: tuple | list) -> tuple:
    """Positional arguments with every value passed through `to_driver_value`.
    """
    return tuple(to_driver_value(arg) for arg in args)


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
