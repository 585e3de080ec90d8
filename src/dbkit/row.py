"""Single-row string map returned by `select_row` and `Statement.query_one`."""
from libb import attrdict


class Row(attrdict):
    """Column name to text value, with attribute access and typed getters.

    >>> row = Row(id='7', name='Tom', score='n/a')
    >>> row.name, row.get_int('id'), row.get_float('score', 1.5)
    ('Tom', 7, 1.5)
    >>> row.exists('age'), row.get_int('age')
    (False, 0)
    """

    def exists(self, key: str) -> bool:
        return key in self

    def get_int(self, key: str, default: int = 0) -> int:
        """Base-10 integer value of `key`, `default` when missing or unparsable.
        """
        try:
            return int(self[key], 10)
        except (KeyError, TypeError, ValueError):
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Float value of `key`, `default` when missing or unparsable.
        """
        try:
            return float(self[key])
        except (KeyError, TypeError, ValueError):
            return default


if __name__ == '__main__':
    __import__('doctest').testmod(optionflags=4 | 8 | 32)
