from solarsizing.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_entries_expire():
    clock = FakeClock()
    cache = TTLCache(ttl=10, clock=clock)
    cache.put("token", "abc")
    assert cache.get("token") == "abc"

    clock.now = 10
    assert cache.get("token") is None
    assert len(cache) == 0


def test_get_or_set_calls_factory_once():
    calls = []
    cache = TTLCache(clock=FakeClock())

    def factory():
        calls.append(1)
        return ["supply"]

    assert cache.get_or_set("supplies", factory) == ["supply"]
    assert cache.get_or_set("supplies", factory) == ["supply"]
    assert len(calls) == 1

    cache.invalidate("supplies")
    cache.get_or_set("supplies", factory)
    assert len(calls) == 2


def test_per_entry_ttl():
    clock = FakeClock()
    cache = TTLCache(ttl=100, clock=clock)
    cache.put("short", 1, ttl=1)
    cache.put("long", 2)
    clock.now = 5
    assert cache.get("short") is None
    assert cache.get("long") == 2
    cache.clear()
    assert cache.get("long") is None
