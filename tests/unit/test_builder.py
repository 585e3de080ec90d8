"""
Unit tests for statement rendering and execution through the builder.
"""
import pytest
from dbkit import Result, StatementKind, Values, delete, insert, insert_or_update
from dbkit import select, set_default_connection, update
from dbkit.exceptions import ConnectionFailure, TypeConversionError
from dbkit.exceptions import UnsafeStatementError, ValidationError
from dbkit.literals import inline_literals


class TestRenderSelect:
    """SELECT rendering."""

    def test_select_with_where_and_limit(self):
        sql, args = select('id,name').from_('user').where('age > 18').limit(10).render()
        assert sql == 'SELECT id,name FROM user WHERE age > 18 LIMIT 10'
        assert args == []

    def test_default_fields(self):
        assert select().from_('user').to_sql() == 'SELECT * FROM user'

    def test_fields_from_list(self):
        assert select(['id', 'COUNT(*)']).from_('user').to_sql() == 'SELECT id,COUNT(*) FROM user'

    def test_select_without_table(self):
        assert select('1').to_sql() == 'SELECT 1'

    def test_all_clauses_in_order(self):
        sql = (select('age,COUNT(*)').from_('user').where('active = 1')
               .group('age').order('age DESC').limit(5, 10).to_sql())
        assert sql == 'SELECT age,COUNT(*) FROM user WHERE active = 1 GROUP BY age ORDER BY age DESC LIMIT 10,5'

    @pytest.mark.parametrize(('dialect', 'expected'), [
        ('mysql', 'SELECT * FROM t LIMIT 20,10'),
        ('sqlite', 'SELECT * FROM t LIMIT 20,10'),
        ('postgresql', 'SELECT * FROM t LIMIT 10 OFFSET 20'),
    ])
    def test_limit_offset_per_dialect(self, dialect, expected):
        assert select(dialect=dialect).from_('t').limit(10, 20).to_sql() == expected


class TestRenderInsert:
    """INSERT rendering."""

    def test_insert_quotes_columns_and_pairs_args(self):
        stmt = insert().table('user').values({'name': 'Tom', 'age': 20})
        sql, args = stmt.render()
        assert sql == 'INSERT INTO user (`name`,`age`) VALUES (?,?)'
        assert args == ['Tom', 20]
        assert stmt.args == ['Tom', 20]

    def test_placeholder_count_matches_values(self):
        values = {f'c{i}': i for i in range(7)}
        sql, args = insert().table('t').values(values).render()
        assert sql.count('?') == len(values) == len(args)

    @pytest.mark.parametrize(('dialect', 'expected'), [
        ('mysql', 'INSERT IGNORE INTO t (`a`) VALUES (?)'),
        ('sqlite', 'INSERT OR IGNORE INTO t ("a") VALUES (?)'),
        ('postgresql', 'INSERT INTO t ("a") VALUES (?) ON CONFLICT DO NOTHING'),
    ])
    def test_ignore_per_dialect(self, dialect, expected):
        assert insert(ignore=True, dialect=dialect).table('t').add_value('a', 1).to_sql() == expected

    def test_missing_table(self):
        with pytest.raises(ValidationError, match='table cannot be empty'):
            insert().values({'a': 1}).render()

    def test_missing_values(self):
        with pytest.raises(ValidationError, match='values cannot be empty'):
            insert().table('t').render()

    def test_render_regenerates_args(self):
        stmt = insert().table('t').values({'a': 1})
        stmt.render()
        stmt.add_value('b', 2)
        _, args = stmt.render()
        assert args == [1, 2]


class TestRenderUpdateDelete:
    """UPDATE/DELETE rendering and the no-WHERE guard."""

    def test_update_without_where_raises(self):
        with pytest.raises(UnsafeStatementError, match='updating all data is not safe'):
            update().table('user').values({'age': 1}).render()

    def test_delete_without_where_raises(self):
        with pytest.raises(UnsafeStatementError, match='deleting all data is not safe'):
            delete().table('user').render()

    def test_unsafe_update_renders(self):
        sql, args = update().table('user').values({'age': 1}).unsafe().render()
        assert sql == 'UPDATE user SET `age`=?'
        assert args == [1]

    def test_unsafe_delete_renders(self):
        assert delete().table('user').unsafe().to_sql() == 'DELETE FROM user'

    def test_update_with_where_and_limit(self):
        sql, args = (update().table('user').values({'name': 'Tom', 'age': 21})
                     .where('id = ?').limit(1).render())
        assert sql == 'UPDATE user SET `name`=?,`age`=? WHERE id = ? LIMIT 1'
        assert args == ['Tom', 21]

    def test_delete_with_where(self):
        assert delete().table('user').where('id = 3').to_sql() == 'DELETE FROM user WHERE id = 3'

    @pytest.mark.parametrize('dialect', ['sqlite', 'postgresql'])
    def test_limit_dropped_outside_mysql(self, dialect):
        sql = delete(dialect=dialect).table('user').where('id = 3').limit(1).to_sql()
        assert sql == 'DELETE FROM user WHERE id = 3'

    @pytest.mark.parametrize('stmt', [delete(), update().values({'a': 1}), insert_or_update()],
                             ids=['delete', 'update', 'upsert'])
    def test_empty_table_renders_empty(self, stmt):
        assert stmt.render() == ('', [])

    def test_update_requires_values(self):
        with pytest.raises(ValidationError, match='values cannot be empty'):
            update().table('user').where('id = 1').render()

    def test_guard_is_unsafe_subclass_of_validation(self):
        with pytest.raises(ValidationError):
            delete().table('user').render()


class TestRenderUpsert:
    """INSERT_OR_UPDATE rendering."""

    def test_mysql_duplicate_key(self):
        sql, args = (insert_or_update().table('counter')
                     .values({'id': 1, 'hits': 1}).update_values({'hits': 5}).render())
        assert sql == 'INSERT INTO counter (`id`,`hits`) VALUES (?,?) ON DUPLICATE KEY UPDATE `hits`=?'
        assert args == [1, 1, 5]

    def test_sqlite_with_conflict_target(self):
        sql = (insert_or_update(dialect='sqlite').table('counter')
               .values({'id': 1, 'hits': 1}).add_update_value('hits', 2).conflict('id').to_sql())
        assert sql == 'INSERT INTO counter ("id","hits") VALUES (?,?) ON CONFLICT("id") DO UPDATE SET "hits"=?'

    def test_postgres_requires_conflict_target(self):
        stmt = insert_or_update(dialect='postgresql').table('t').values({'id': 1}).update_values({'v': 2})
        with pytest.raises(ValidationError, match='conflict target'):
            stmt.render()

    def test_postgres_with_conflict_target(self):
        sql = (insert_or_update(dialect='postgresql').table('t')
               .values({'id': 1, 'v': 1}).update_values({'v': 2}).conflict('id').to_sql())
        assert sql == 'INSERT INTO t ("id","v") VALUES (?,?) ON CONFLICT ("id") DO UPDATE SET "v"=?'

    def test_requires_update_values(self):
        with pytest.raises(ValidationError):
            insert_or_update().table('t').values({'id': 1}).render()


class TestInlineRender:
    """Rendering with literals inlined."""

    def test_inline_equals_formatting_args(self):
        stmt = insert().table('user').values({'name': "O'Brien", 'age': 20, 'score': 1.5})
        sql, args = stmt.render()
        inlined, _ = stmt.render(inline=True)
        assert inlined == inline_literals(sql, args)
        assert inlined == "INSERT INTO user (`name`,`age`,`score`) VALUES ('OBrien',20,1.5)"

    def test_inline_unsupported_value(self):
        with pytest.raises(TypeConversionError):
            insert().table('t').values({'a': object()}).to_sql(inline=True)


class TestDialectResolution:
    """Statements follow the bound or default connection's dialect."""

    def test_default_is_mysql(self):
        assert select().dialect == 'mysql'

    def test_default_connection(self, recording_connection):
        set_default_connection(recording_connection('sqlite'))
        assert insert().table('t').add_value('a', 1).to_sql() == 'INSERT INTO t ("a") VALUES (?)'

    def test_bound_connection_wins(self, recording_connection):
        set_default_connection(recording_connection('sqlite'))
        stmt = insert().db(recording_connection('mysql')).table('t').add_value('a', 1)
        assert stmt.to_sql() == 'INSERT INTO t (`a`) VALUES (?)'


class TestExec:
    """Execution through a connection."""

    def test_insert_reports_last_id(self, recording_connection):
        cn = recording_connection('mysql', affected=1, last_id=42)
        result = insert(cn=cn).table('t').values({'a': 1}).exec()
        assert result.success
        assert result.last_id == 42
        assert result.affected == 0
        assert cn.calls == [('execute_result', 'INSERT INTO t (`a`) VALUES (?)', (1,))]

    def test_update_reports_affected_and_appends_args(self, recording_connection):
        cn = recording_connection('mysql', affected=3)
        result = update(cn=cn).table('t').values({'a': 1}).where('b = ?').exec(9)
        assert result.affected == 3
        assert result.last_id is None
        assert cn.calls[0][2] == (1, 9)

    def test_full_sql_sends_without_params(self, recording_connection):
        cn = recording_connection('mysql')
        update(cn=cn).table('t').values({'name': 'Tom'}).where('id = ?').full_sql().exec(5)
        assert cn.calls == [('execute_result', "UPDATE t SET `name`='Tom' WHERE id = 5", ())]

    def test_configuration_error_stored(self, recording_connection):
        cn = recording_connection('mysql')
        result = delete(cn=cn).table('t').exec()
        assert not result.success
        assert isinstance(result.error, UnsafeStatementError)
        assert cn.calls == []
        with pytest.raises(UnsafeStatementError):
            result.raise_for_error()

    def test_driver_error_stored(self, recording_connection):
        import sqlite3
        cn = recording_connection('sqlite', error=sqlite3.OperationalError('no such table: t'))
        result = insert(cn=cn).table('t').values({'a': 1}).exec()
        assert not result
        assert isinstance(result.error, sqlite3.OperationalError)
        assert result.sql == 'INSERT INTO t ("a") VALUES (?)'

    def test_empty_statement_succeeds_without_connection_call(self, recording_connection):
        cn = recording_connection('mysql')
        result = delete(cn=cn).exec()
        assert result == Result(success=True, sql='')
        assert cn.calls == []

    def test_no_connection(self):
        result = insert().table('t').values({'a': 1}).exec()
        assert isinstance(result.error, ConnectionFailure)

    def test_unknown_dialect_stored(self, recording_connection):
        cn = recording_connection('mysql')
        result = insert(cn=cn, dialect='oracle').table('t').values({'a': 1}).exec()
        assert not result.success
        assert isinstance(result.error, ValidationError)
        assert 'Unsupported dialect' in str(result.error)
        assert cn.calls == []

    def test_debug_logs_at_info(self, recording_connection, caplog):
        cn = recording_connection('mysql')
        with caplog.at_level('INFO', logger='dbkit.builder'):
            insert(cn=cn).table('t').values({'a': 1}).debug().exec()
        assert 'INSERT INTO t (`a`) VALUES (?)' in caplog.text


class TestQuery:
    """Query helpers delegate to the connection."""

    def test_query_one_forces_limit(self, recording_connection):
        cn = recording_connection('mysql', rows=[{'id': '1'}])
        row = select('id', cn=cn).from_('t').where('a = ?').query_one(3)
        assert row == {'id': '1'}
        assert cn.calls == [('select_row', 'SELECT id FROM t WHERE a = ? LIMIT 1', (3,))]

    def test_query_one_keeps_configured_limit(self, recording_connection):
        cn = recording_connection('mysql', rows=[{'id': '1'}])
        stmt = select('id', cn=cn).from_('t').limit(5, 10)
        stmt.query_one()
        stmt.query()
        assert [call[1] for call in cn.calls] == [
            'SELECT id FROM t LIMIT 10,1',
            'SELECT id FROM t LIMIT 10,5',
        ]

    def test_query(self, recording_connection):
        cn = recording_connection('sqlite', rows=[{'id': '1'}, {'id': '2'}])
        assert select('id', cn=cn).from_('t').query() == [{'id': '1'}, {'id': '2'}]
        assert cn.calls[0][1] == 'SELECT id FROM t'

    def test_enqueue(self, recording_connection):
        cn = recording_connection('mysql')
        pushed = []

        class Queue:
            def enqueue(self, cn, sql, *args):
                pushed.append((cn, sql, args))

        update(cn=cn).table('t').values({'a': 1}).where('id = ?').enqueue(Queue(), 7)
        assert pushed == [(cn, 'UPDATE t SET `a`=? WHERE id = ?', (1, 7))]


class TestValues:
    """Values mapping helpers."""

    def test_add_remove_exists(self):
        v = Values()
        v.add('a', 1)
        assert v.exists('a')
        v.remove('a')
        v.remove('missing')
        assert not v.exists('a')

    @pytest.mark.parametrize(('value', 'getter', 'expected'), [
        ('x', 'get_str', 'x'),
        (1, 'get_str', ''),
        (3, 'get_int', 3),
        (True, 'get_int', 0),
        ('3', 'get_int', 0),
        (2.5, 'get_float', 2.5),
        (2, 'get_float', 0.0),
    ])
    def test_typed_getters(self, value, getter, expected):
        assert getattr(Values(k=value), getter)('k') == expected

    def test_missing_key_default(self):
        assert Values().get_int('nope', 9) == 9


def test_statement_kinds():
    assert insert().kind is StatementKind.INSERT
    assert delete().kind is StatementKind.DELETE
    assert update().kind is StatementKind.UPDATE
    assert select().kind is StatementKind.SELECT
    assert insert_or_update().kind is StatementKind.INSERT_OR_UPDATE


if __name__ == '__main__':
    __import__('pytest').main([__file__])
