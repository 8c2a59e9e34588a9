from types import SimpleNamespace

from bucketpath.fs.cache import AttributeCache, CacheConfig


def test_missing_snapshot_is_never_in_time():
    assert not AttributeCache(clock=lambda: 0.0).is_in_time(CacheConfig(60), None)


def test_ttl_boundary():
    cache = AttributeCache(clock=lambda: 160.0)
    config = CacheConfig(ttl=60)

    assert cache.is_in_time(config, SimpleNamespace(fetch_time=100.0))
    assert not cache.is_in_time(config, SimpleNamespace(fetch_time=99.0))


def test_zero_ttl_only_accepts_same_instant():
    cache = AttributeCache(clock=lambda: 5.0)

    assert cache.is_in_time(CacheConfig(ttl=0), SimpleNamespace(fetch_time=5.0))
    assert not cache.is_in_time(CacheConfig(ttl=0), SimpleNamespace(fetch_time=4.999))


def test_default_ttl():
    assert CacheConfig().ttl == 60.0
