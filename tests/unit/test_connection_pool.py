import pytest
from dbkit.connection import ConnectionWrapper, dispose_all_engines
from dbkit.connection import get_engine_for_options
from dbkit.exceptions import ConnectionFailure
from dbkit.options import DatabaseOptions
from sqlalchemy.pool import NullPool


@pytest.fixture
def mock_db_options():
    """Create database options for testing"""
    return DatabaseOptions(hostname='db', username='u', password='p', database='pool_test')


@pytest.fixture(autouse=True)
def clean_registry():
    dispose_all_engines()
    yield
    dispose_all_engines()


def test_engine_without_pool(mocker, mock_db_options):
    factory = mocker.Mock()
    engine = get_engine_for_options(mock_db_options, engine_factory=factory)
    assert engine is factory.return_value
    url, = factory.call_args.args
    assert url.drivername == 'mysql+pymysql'
    assert factory.call_args.kwargs['poolclass'] is NullPool


def test_engine_with_pool(mocker, mock_db_options):
    factory = mocker.Mock()
    get_engine_for_options(mock_db_options, use_pool=True, pool_size=3, pool_recycle=60,
                           pool_timeout=10, engine_factory=factory)
    kwargs = factory.call_args.kwargs
    assert 'poolclass' not in kwargs
    assert kwargs['pool_size'] == 3
    assert kwargs['pool_recycle'] == 60
    assert kwargs['pool_timeout'] == 10
    assert kwargs['pool_pre_ping'] is True


def test_engine_reused(mocker, mock_db_options):
    factory = mocker.Mock()
    first = get_engine_for_options(mock_db_options, engine_factory=factory)
    second = get_engine_for_options(mock_db_options, engine_factory=factory)
    assert first is second
    assert factory.call_count == 1


def test_dispose_all_engines(mocker, mock_db_options):
    factory = mocker.Mock()
    engine = get_engine_for_options(mock_db_options, engine_factory=factory)
    dispose_all_engines()
    engine.dispose.assert_called_once()
    get_engine_for_options(mock_db_options, engine_factory=factory)
    assert factory.call_count == 2


def test_timeout_passed_to_driver(mocker):
    options = DatabaseOptions(hostname='db', username='u', database='pool_test', timeout=7)
    factory = mocker.Mock()
    get_engine_for_options(options, engine_factory=factory)
    assert factory.call_args.kwargs['connect_args'] == {'connect_timeout': 7}


def test_unopened_wrapper_has_no_cursor():
    with pytest.raises(ConnectionFailure):
        ConnectionWrapper().cursor()


if __name__ == '__main__':
    __import__('pytest').main([__file__])
