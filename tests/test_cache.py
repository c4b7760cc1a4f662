import pytest

from cache import PageCache
from cms import ContentError


class Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


def test_serves_cached_props_until_stale(clock):
    cache = PageCache(revalidate_seconds=60, clock=clock)
    builds = []

    def build():
        builds.append(clock.now)
        return {"n": len(builds)}

    assert cache.get_or_build("/", build) == {"n": 1}
    clock.now += 59
    assert cache.get_or_build("/", build) == {"n": 1}
    clock.now += 2
    assert cache.get_or_build("/", build) == {"n": 2}
    assert len(builds) == 2


def test_failed_rebuild_serves_stale(clock):
    cache = PageCache(revalidate_seconds=60, clock=clock)
    cache.get_or_build("/blog", lambda: {"posts": ["a"]})
    clock.now += 120

    def broken():
        raise ContentError("cms down", 503)

    assert cache.get_or_build("/blog", broken) == {"posts": ["a"]}
    assert "/blog" in cache


def test_removed_page_drops_stale_entry(clock):
    cache = PageCache(revalidate_seconds=60, clock=clock)
    cache.get_or_build("/blog/gone", lambda: {"post": "gone"})
    clock.now += 120

    def missing():
        raise LookupError("gone")

    with pytest.raises(LookupError):
        cache.get_or_build("/blog/gone", missing)
    assert "/blog/gone" not in cache


def test_first_build_errors_propagate(clock):
    cache = PageCache(clock=clock)

    def broken():
        raise RuntimeError("cms down")

    with pytest.raises(RuntimeError):
        cache.get_or_build("/blog", broken)
    assert "/blog" not in cache


def test_invalidate(clock):
    cache = PageCache(clock=clock)
    for key in ("/projects", "/projects?page=1", "/projects-extra", "/me"):
        cache.get_or_build(key, dict)

    assert cache.invalidate("/projects") == 2
    assert "/projects-extra" in cache
    assert "/me" in cache
    assert cache.invalidate() == 2
    assert "/me" not in cache
