"""
Dialect strategies.

Each supported dialect registers one `DatabaseStrategy` subclass under its
name; strategies are stateless, so one shared instance per dialect is kept.
"""
from functools import cache

from dbkit.exceptions import ValidationError
from dbkit.strategy.base import _STRATEGY_REGISTRY
from dbkit.strategy.base import DatabaseStrategy as DatabaseStrategy
from dbkit.strategy.base import register_strategy as register_strategy
from dbkit.strategy.mysql import MySQLStrategy as MySQLStrategy
from dbkit.strategy.postgres import PostgresStrategy as PostgresStrategy
from dbkit.strategy.sqlite import SQLiteStrategy as SQLiteStrategy
from dbkit.utils import get_dialect_name


def get_strategy_class(dialect: str) -> type[DatabaseStrategy]:
    """Strategy class registered for a dialect name.

    Raises
        ValidationError: If no strategy is registered under `dialect`
    """
    try:
        return _STRATEGY_REGISTRY[dialect]
    except KeyError:
        raise ValidationError(f'Unsupported dialect: {dialect}. '
                              f'Available: {get_available_dialects()}') from None


@cache
def get_strategy(dialect: str) -> DatabaseStrategy:
    """Shared strategy instance for a dialect name.
    """
    return get_strategy_class(dialect)()


def get_db_strategy(cn) -> DatabaseStrategy:
    """Strategy for whatever dialect a connection reports."""
    return get_strategy(get_dialect_name(cn))


def get_available_dialects() -> list[str]:
    return list(_STRATEGY_REGISTRY)


def is_supported_dialect(dialect: str) -> bool:
    return dialect in _STRATEGY_REGISTRY
