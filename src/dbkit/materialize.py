"""
Conversion of fetched rows into records, typed maps and string maps.

Rows are DB-API tuples in column order; each function reads a row once and
keeps nothing from it.
"""
import logging
from collections.abc import Iterable, Sequence
from typing import Any

from dbkit.coercion import coerce_field, coerce_generic, raw_text
from dbkit.records import FieldBinding, initial_values, resolve_bindings
from dbkit.types import Column, ValueCategory

logger = logging.getLogger(__name__)


def materialize_record(record_type: type, names: Sequence[str], row: Sequence[Any],
                       bindings: dict[str, FieldBinding] | None = None) -> Any:
    """Build one record instance from a row.

    Columns without a bound field are skipped. Bound fields without a column
    keep their initial value.
    """
    if bindings is None:
        bindings = resolve_bindings(record_type)
    values = initial_values(record_type, bindings)
    for name, value in zip(names, row):
        binding = bindings.get(name)
        if binding is None:
            continue
        values[binding.name] = coerce_field(binding.kind, value, values[binding.name])
    return record_type(**values)


def materialize_records(record_type: type, names: Sequence[str],
                        rows: Iterable[Sequence[Any]],
                        bindings: dict[str, FieldBinding] | None = None) -> list:
    """Build one record per row, in row order.
    """
    if bindings is None:
        bindings = resolve_bindings(record_type)
    return [materialize_record(record_type, names, row, bindings) for row in rows]


def row_to_map(columns: Sequence[Column], row: Sequence[Any],
               warned: set[str] | None = None) -> dict[str, Any]:
    """Ordered column-to-value mapping with values coerced by column category.

    `warned` collects names of columns already reported as unhandled.
    """
    if warned is None:
        warned = set()
    result = {}
    for column, value in zip(columns, row):
        if column.category is ValueCategory.OTHER and column.name not in warned:
            logger.warning(f'Unhandled type {column.type_name or column.type_code!r} '
                           f'for column {column.name}, using text')
            warned.add(column.name)
        result[column.name] = coerce_generic(column, value)
    return result


def rows_to_maps(columns: Sequence[Column], rows: Iterable[Sequence[Any]]) -> list[dict[str, Any]]:
    warned: set[str] = set()
    return [row_to_map(columns, row, warned) for row in rows]


def row_to_strings(names: Sequence[str], row: Sequence[Any]) -> dict[str, str]:
    """Map every column to its text form, NULL as an empty string.
    """
    return {name: raw_text(value) for name, value in zip(names, row)}
