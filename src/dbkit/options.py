"""
Connection options and result loaders.

A loader receives the typed maps produced by `select_maps` together with the
result's column metadata and returns whatever shape the caller configured:

- `iterdict_data_loader`: the maps themselves (default)
- `pandas_numpy_data_loader`: DataFrame with NumPy dtypes picked per column category
- `pandas_pyarrow_data_loader`: DataFrame backed by Arrow arrays
"""
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd
import pyarrow as pa
from dbkit.strategy import get_available_dialects, get_strategy_class
from dbkit.strategy import is_supported_dialect
from dbkit.types import Column, ValueCategory

from libb import ConfigOptions, scriptname

__all__ = [
    'DatabaseOptions',
    'iterdict_data_loader',
    'pandas_numpy_data_loader',
    'pandas_pyarrow_data_loader',
]

_NUMPY_DTYPES = {
    ValueCategory.INTEGER: 'int64',
    ValueCategory.FLOAT: 'float64',
}

_ARROW_TYPES = {
    ValueCategory.INTEGER: pa.int64(),
    ValueCategory.FLOAT: pa.float64(),
    ValueCategory.TEXT: pa.string(),
    ValueCategory.OTHER: pa.string(),
}


def _value_category(column: Column) -> ValueCategory:
    """Category of the values a typed map holds for this column.

    Decimal columns are reported as text but their map values are floats.
    """
    if column.category is ValueCategory.TEXT and column.is_decimal:
        return ValueCategory.FLOAT
    return column.category


def iterdict_data_loader(data: Sequence[dict], columns: Sequence[Column], **kwargs) -> list[dict]:
    """Return the typed maps as a list.
    """
    return list(data or [])


def _with_column_types(df: pd.DataFrame, columns: Sequence[Column]) -> pd.DataFrame:
    df.attrs['column_types'] = Column.get_column_types_dict(list(columns))
    return df


def pandas_numpy_data_loader(data: Sequence[dict], columns: Sequence[Column],
                             **kwargs) -> pd.DataFrame:
    """DataFrame with int64/float64 columns for numeric categories, object otherwise.

    Column metadata is kept in `df.attrs['column_types']`; an empty result
    still carries its column names.
    """
    names = Column.get_names(list(columns))
    df = pd.DataFrame.from_records(list(data or []), columns=names)
    dtypes = {col.name: _NUMPY_DTYPES[cat] for col in columns
              if (cat := _value_category(col)) in _NUMPY_DTYPES}
    return _with_column_types(df.astype(dtypes), columns)


def pandas_pyarrow_data_loader(data: Sequence[dict], columns: Sequence[Column],
                               **kwargs) -> pd.DataFrame:
    """DataFrame backed by `pd.ArrowDtype` columns.
    """
    schema = pa.schema([(col.name, _ARROW_TYPES[_value_category(col)]) for col in columns])
    table = pa.Table.from_pylist(list(data or []), schema=schema)
    return _with_column_types(table.to_pandas(types_mapper=pd.ArrowDtype), columns)


@dataclass
class DatabaseOptions(ConfigOptions):
    """Connection options

    supported driver names: `mysql` (default), `postgresql`, `sqlite`

    `data_loader` shapes `select_maps` results; the default returns a list
    of dicts. `charset` applies to MySQL only.

    Pooling (SQLAlchemy QueuePool, off by default):
    - use_pool: Pool connections instead of opening one per `connect`
    - pool_max_connections: Pool size
    - pool_max_idle_time: Seconds before a pooled connection is recycled
    - pool_wait_timeout: Seconds to wait for a free connection
    """
    drivername: str = 'mysql'
    hostname: str = None
    username: str = None
    password: str = None
    database: str = None
    port: int = 0
    timeout: int = 0
    charset: str = 'utf8mb4'
    appname: str = None
    data_loader: Callable[..., Any] | None = None
    use_pool: bool = False
    pool_max_connections: int = 5
    pool_max_idle_time: int = 300
    pool_wait_timeout: int = 30

    def __post_init__(self):
        if not is_supported_dialect(self.drivername):
            raise ValueError(f'drivername must be one of: {get_available_dialects()}')
        get_strategy_class(self.drivername).validate_options(self)
        self.appname = self.appname or scriptname() or 'python_console'
        self.data_loader = self.data_loader or iterdict_data_loader
