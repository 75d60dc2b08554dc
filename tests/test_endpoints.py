import random
import zlib

from tarsrpc.endpoints import EndpointSelector, crc_sorted
from tarsrpc.message import HashType, Message

EPS = ["tcp -h 10.0.0.1 -p 1", "tcp -h 10.0.0.2 -p 2", "tcp -h 10.0.0.3 -p 3"]


def _crc(s):
    return zlib.crc32(s.encode("utf-8"))


def test_crc_sorted_is_ordered_permutation():
    result = crc_sorted(EPS, str)
    assert sorted(result) == sorted(EPS)
    crcs = [_crc(e) for e in result]
    assert crcs == sorted(crcs)


def test_crc_sorted_uses_key():
    items = [("a", 1), ("b", 2), ("c", 3)]
    result = crc_sorted(items, key=lambda item: item[0])
    crcs = [_crc(item[0]) for item in result]
    assert crcs == sorted(crcs)


def test_direct_keeps_given_order():
    sel = EndpointSelector(EPS, direct=True)
    assert sel.all_endpoints() == EPS


def test_round_robin_starts_after_first():
    sel = EndpointSelector(["a", "b", "c"], direct=True)
    picks = [sel.select() for _ in range(4)]
    assert picks == ["b", "c", "a", "b"]


def test_mod_hash():
    sel = EndpointSelector(EPS, direct=True)
    msg = Message()
    msg.set_hash(7, HashType.MOD_HASH)
    assert sel.select(msg) == sel.all_endpoints()[7 % 3]
    assert sel.select(msg) == sel.select(msg)


def test_consistent_hash_stable_and_moves_on_remove():
    sel = EndpointSelector(EPS, direct=True)
    msg = Message()
    msg.set_hash(123456, HashType.CONSISTENT_HASH)
    first = sel.select(msg)
    assert first in EPS
    assert all(sel.select(msg) == first for _ in range(5))
    sel.remove(first)
    second = sel.select(msg)
    assert second != first
    assert second in EPS


def test_empty_direct_returns_none():
    assert EndpointSelector([], direct=True).select() is None


def test_registry_without_update_returns_none():
    assert EndpointSelector().select() is None


def test_update_sorts_and_ignores_empty():
    sel = EndpointSelector()
    assert sel.update(EPS, []) is True
    assert sel.all_endpoints() == crc_sorted(EPS)
    assert sel.update([], ["x"]) is False
    assert sel.all_endpoints() == crc_sorted(EPS)


def test_update_ignored_in_direct_mode():
    sel = EndpointSelector(["a"], direct=True)
    assert sel.update(EPS, []) is False
    assert sel.all_endpoints() == ["a"]


def test_unhealthy_left_out():
    sel = EndpointSelector(is_healthy=lambda ep: ep != EPS[1])
    sel.update(EPS, [])
    assert EPS[1] not in sel.all_endpoints()
    assert len(sel.all_endpoints()) == 2
    picks = {sel.select() for _ in range(10)}
    assert EPS[1] not in picks


def test_all_unhealthy_falls_back_to_random_registered():
    sel = EndpointSelector(is_healthy=lambda ep: False, rng=random.Random(1))
    sel.update(EPS, [])
    assert sel.all_endpoints() == []
    for _ in range(5):
        assert sel.select() in EPS


def test_add_alive_keeps_crc_order():
    sel = EndpointSelector(is_healthy=lambda ep: ep != EPS[0])
    sel.update(EPS, [])
    sel.add_alive(EPS[0])
    assert sel.all_endpoints() == crc_sorted(EPS)


def test_removed_never_selected():
    sel = EndpointSelector(EPS, direct=True)
    sel.remove(EPS[2])
    assert sel.all_endpoints() == EPS[:2]
    assert EPS[2] not in {sel.select() for _ in range(6)}