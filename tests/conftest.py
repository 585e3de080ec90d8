import pathlib
import site

import pytest
from dbkit.connection import set_default_connection

HERE = pathlib.Path(pathlib.Path(__file__).resolve()).parent
site.addsitedir(HERE)


@pytest.fixture(autouse=True)
def clear_default_connection():
    """Unbind the default connection before and after each test so statements render as MySQL."""
    set_default_connection(None)
    yield
    set_default_connection(None)


pytest_plugins = [
    'tests.fixtures.mocks',
    'tests.fixtures.sqlite',
]
