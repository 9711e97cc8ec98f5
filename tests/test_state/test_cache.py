"""Tests for the collection read cache."""

from refood.state.cache import CacheLayer


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_key_is_deterministic() -> None:
    """Test that filter order and blank filters do not change the key."""
    first = CacheLayer.make_key("prenotazioni", {"stato": "Prenotato", "centro_id": "2"})
    second = CacheLayer.make_key(
        "prenotazioni", {"centro_id": "2", "data_inizio": None, "stato": "Prenotato"}
    )

    assert first == second
    assert first != CacheLayer.make_key("prenotazioni", {"stato": "Confermato"})
    assert CacheLayer.make_key("prenotazioni") == "prenotazioni:{}"


def test_hit_within_freshness_window() -> None:
    clock = FakeClock()
    cache = CacheLayer(freshness_seconds=300, clock=clock)
    key = cache.make_key("prenotazioni", {"stato": "Prenotato"})

    cache.put(key, ["a"])
    clock.now += 299

    assert cache.get(key) == ["a"]


def test_stale_entry_is_a_miss() -> None:
    clock = FakeClock()
    cache = CacheLayer(freshness_seconds=300, clock=clock)
    cache.put("k", "v")

    clock.now += 300

    assert cache.get("k") is None
    assert len(cache) == 0


def test_invalidate_always_misses() -> None:
    """Test that invalidation drops entries regardless of their age."""
    clock = FakeClock()
    cache = CacheLayer(freshness_seconds=300, clock=clock)
    cache.put("a", 1)
    cache.put("b", 2)

    cache.invalidate()

    assert cache.get("a") is None
    assert cache.get("b") is None
    assert len(cache) == 0


def test_different_key_is_a_miss() -> None:
    cache = CacheLayer()
    cache.put(cache.make_key("prenotazioni", {"stato": "Prenotato"}), "cached")

    assert cache.get(cache.make_key("prenotazioni", {"stato": "Confermato"})) is None
