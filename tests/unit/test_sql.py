"""Unit tests for SQL parameter processing.

Tests the public API:
- prepare_query(sql, args, dialect) - Main entry point
- quote_identifier(name, dialect) - Quote table/column names
- has_placeholders(sql) - Check for parameter placeholders
- standardize_placeholders(sql, dialect) - Convert %s <-> ?
- escape_percent_signs(sql) - Double literal percent signs
"""
import datetime

import numpy as np
import pytest
from dbkit.sql import escape_percent_signs, has_placeholders, prepare_query
from dbkit.sql import quote_identifier, standardize_placeholders


class TestPrepareQuery:

    def test_mysql_converts_qmarks(self):
        sql, args = prepare_query('SELECT * FROM t WHERE a = ? AND b = ?', (1, 'x'), 'mysql')
        assert sql == 'SELECT * FROM t WHERE a = %s AND b = %s'
        assert args == (1, 'x')

    def test_sqlite_keeps_qmarks(self):
        sql, args = prepare_query('SELECT * FROM t WHERE a = ?', [1], 'sqlite')
        assert sql == 'SELECT * FROM t WHERE a = ?'
        assert args == (1,)

    def test_sqlite_converts_percent_s(self):
        sql, _ = prepare_query('SELECT * FROM t WHERE a = %s', (1,), 'sqlite')
        assert sql == 'SELECT * FROM t WHERE a = ?'

    def test_postgres_escapes_literal_percent(self):
        sql, _ = prepare_query("SELECT * FROM t WHERE a LIKE 'x%' AND b = ?", (1,), 'postgresql')
        assert sql == "SELECT * FROM t WHERE a LIKE 'x%%' AND b = %s"

    def test_sqlite_leaves_percent(self):
        sql, _ = prepare_query("SELECT * FROM t WHERE a LIKE 'x%' AND b = ?", (1,), 'sqlite')
        assert sql == "SELECT * FROM t WHERE a LIKE 'x%' AND b = ?"

    def test_no_args(self):
        assert prepare_query('SELECT 1', (), 'mysql') == ('SELECT 1', ())

    def test_args_without_placeholders_dropped(self):
        assert prepare_query('SELECT 1', (1,), 'mysql') == ('SELECT 1', ())

    def test_values_normalized(self):
        _, args = prepare_query('SELECT ?, ?, ?', (np.int64(3), float('nan'), datetime.date(2025, 1, 1)),
                                'mysql')
        assert args == (3, None, datetime.date(2025, 1, 1))
        assert type(args[0]) is int

    def test_placeholder_inside_literal_untouched(self):
        sql, _ = prepare_query("SELECT '?' AS q, a FROM t WHERE b = ?", (1,), 'mysql')
        assert sql == "SELECT '?' AS q, a FROM t WHERE b = %s"


@pytest.mark.parametrize(('sql', 'expected'), [
    ('SELECT 1', False),
    ('SELECT * FROM t WHERE a = ?', True),
    ('SELECT * FROM t WHERE a = %s', True),
    ('SELECT * FROM t WHERE a = %(a)s', True),
    ('', False),
    (None, False),
])
def test_has_placeholders(sql, expected):
    assert has_placeholders(sql) is expected


def test_standardize_placeholders_round():
    assert standardize_placeholders('a = ? AND b = ?', 'postgresql') == 'a = %s AND b = %s'
    assert standardize_placeholders('a = %s', 'sqlite') == 'a = ?'
    assert standardize_placeholders('a = ?', 'sqlite') == 'a = ?'


def test_escape_percent_signs_keeps_placeholders():
    assert escape_percent_signs('a = %s AND b = %(b)s') == 'a = %s AND b = %(b)s'
    assert escape_percent_signs('a %% b') == 'a %% b'
    assert escape_percent_signs('50% off') == '50%% off'


@pytest.mark.parametrize(('name', 'dialect', 'expected'), [
    ('user', 'mysql', '`user`'),
    ('user', 'sqlite', '"user"'),
    ('order by', 'postgresql', '"order by"'),
    ('a`b', 'mysql', '`a``b`'),
])
def test_quote_identifier(name, dialect, expected):
    assert quote_identifier(name, dialect) == expected


def test_quote_identifier_unknown_dialect():
    with pytest.raises(ValueError, match='Unknown dialect'):
        quote_identifier('a', 'oracle')


if __name__ == '__main__':
    __import__('pytest').main([__file__])
