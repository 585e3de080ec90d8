"""
Column bindings declared on record dataclasses.

A record is a dataclass whose fields name the result column they receive:

    @dataclass
    class User:
        id: int = column('id')
        name: str = column('name', default='')
        score: float | None = column('score', default=None)

Fields without a column declaration, fields excluded from `__init__`, and
fields whose annotation is not one of bool, str, float, bytes or int
(optionally `| None`) are not bound.
"""
import dataclasses
import logging
import types
import typing
from dataclasses import dataclass
from typing import Any

from dbkit.coercion import ZERO_VALUES, FieldKind
from dbkit.exceptions import ValidationError

logger = logging.getLogger(__name__)

COLUMN_METADATA_KEY = 'db'

_KIND_BY_TYPE = {
    bool: FieldKind.BOOL,
    str: FieldKind.STRING,
    float: FieldKind.FLOAT,
    bytes: FieldKind.BYTES,
    int: FieldKind.INTEGER,
}


def column(name: str, **kwargs: Any) -> Any:
    """Declare the result column a dataclass field is populated from.

    Accepts the keyword arguments of `dataclasses.field`.
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[COLUMN_METADATA_KEY] = name
    return dataclasses.field(metadata=metadata, **kwargs)


@dataclass(frozen=True)
class FieldBinding:
    """A record field bound to a result column."""
    name: str
    index: int
    kind: FieldKind


def field_kind(annotation: Any) -> FieldKind | None:
    """Return the binding kind of a field annotation, or None when unsupported.

    >>> field_kind(int | None)
    <FieldKind.INTEGER: 'integer'>
    >>> field_kind(list) is None
    True
    """
    origin = typing.get_origin(annotation)
    if origin is typing.Union or origin is types.UnionType:
        members = [arg for arg in typing.get_args(annotation) if arg is not type(None)]
        if len(members) != 1:
            return None
        annotation = members[0]
    return _KIND_BY_TYPE.get(annotation)


def is_record_type(record_type: Any) -> bool:
    return isinstance(record_type, type) and dataclasses.is_dataclass(record_type)


def resolve_bindings(record_type: type) -> dict[str, FieldBinding]:
    """Map each declared column name to the field it populates.

    Raises
        ValidationError: When `record_type` is not a dataclass or two fields
            declare the same column
    """
    if not is_record_type(record_type):
        raise ValidationError(f'{record_type!r} is not a record type')

    hints = typing.get_type_hints(record_type)
    bindings: dict[str, FieldBinding] = {}

    for index, field in enumerate(dataclasses.fields(record_type)):
        name = field.metadata.get(COLUMN_METADATA_KEY)
        if not name or not field.init:
            continue
        kind = field_kind(hints.get(field.name, field.type))
        if kind is None:
            logger.debug(f'Skipping {record_type.__name__}.{field.name}: unsupported type {field.type!r}')
            continue
        if name in bindings:
            raise ValidationError(
                f'column {name!r} is bound to both {bindings[name].name!r} '
                f'and {field.name!r} on {record_type.__name__}')
        bindings[name] = FieldBinding(field.name, index, kind)

    return bindings


def initial_values(record_type: type, bindings: dict[str, FieldBinding]) -> dict[str, Any]:
    """Starting constructor arguments for a record before any column is applied.

    Fields take their declared default, bound fields without one take the
    zero value of their kind, and any other field without a default is None.
    """
    kinds = {binding.name: binding.kind for binding in bindings.values()}
    values = {}
    for field in dataclasses.fields(record_type):
        if not field.init:
            continue
        if field.default is not dataclasses.MISSING:
            values[field.name] = field.default
        elif field.default_factory is not dataclasses.MISSING:
            values[field.name] = field.default_factory()
        elif field.name in kinds:
            values[field.name] = ZERO_VALUES[kinds[field.name]]
        else:
            values[field.name] = None
    return values


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
