"""
Unit tests for the grouped cache.
"""
import time

from dbkit.cache import Cache


def test_set_get_default_group():
    cache = Cache()
    cache.set('a', 1)
    assert cache.get('a') == 1
    assert 'a' in cache
    assert cache.get('missing', default='x') == 'x'


def test_groups_are_independent():
    cache = Cache()
    cache.set('k', 'users', group='users')
    cache.set('k', 'orders', group='orders')
    assert cache.get('k', group='users') == 'users'
    assert cache.get('k', group='orders') == 'orders'
    assert cache.get('k') is None
    assert sorted(cache.groups()) == ['orders', 'users']
    assert len(cache) == 2


def test_overwrite():
    cache = Cache()
    cache.set('k', 1)
    cache.set('k', 2)
    assert cache.get('k') == 2
    assert len(cache) == 1


def test_delete():
    cache = Cache()
    cache.set('k', 1)
    cache.delete('k')
    cache.delete('k')
    cache.delete('k', group='never')
    assert 'k' not in cache


def test_clear_one_group():
    cache = Cache()
    cache.set('a', 1, group='g1')
    cache.set('b', 2, group='g2')
    cache.clear('g1')
    assert cache.get('a', group='g1') is None
    assert cache.get('b', group='g2') == 2


def test_clear_all():
    cache = Cache()
    cache.set('a', 1, group='g1')
    cache.set('b', 2)
    cache.clear()
    assert len(cache) == 0
    assert cache.groups() == []


def test_lru_eviction():
    cache = Cache(maxsize=2)
    cache.set('a', 1)
    cache.set('b', 2)
    cache.get('a')
    cache.set('c', 3)
    assert cache.get('b') is None
    assert cache.get('a') == 1
    assert cache.get('c') == 3


def test_ttl_expiry():
    cache = Cache(ttl=0.05)
    cache.set('a', 1)
    assert cache.get('a') == 1
    time.sleep(0.15)
    assert cache.get('a') is None


def test_none_value_is_cached():
    cache = Cache()
    cache.set('a', None)
    assert 'a' in cache


if __name__ == '__main__':
    __import__('pytest').main([__file__])
