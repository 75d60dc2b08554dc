"""Choosing which endpoint of a remote object serves a call."""

from __future__ import annotations

import random
import threading
import zlib
from bisect import bisect_left
from typing import Any, Callable, Hashable, Iterable, Optional

from .message import HashType, Message

_REPLICAS = 32

EndpointKey = Callable[[Any], str]


def _crc(text: str) -> int:
    return zlib.crc32(text.encode("utf-8")) & 0xFFFFFFFF


def crc_sorted(endpoints: Iterable[Hashable], key: EndpointKey = str) -> list:
    """Endpoints ordered by the CRC-32 of their key, so every client agrees on the order."""
    return sorted(endpoints, key=lambda ep: _crc(key(ep)))


class _HashRing:
    """Consistent-hash ring with a fixed number of virtual nodes per endpoint."""

    def __init__(self, key: EndpointKey, replicas: int = _REPLICAS) -> None:
        self._key = key
        self._replicas = replicas
        self._nodes: dict[int, Any] = {}
        self._hashes: list[int] = []

    def _points(self, ep: Any) -> list[int]:
        name = self._key(ep)
        return [_crc(f"{name}#{i}") for i in range(self._replicas)]

    def add(self, ep: Any) -> None:
        for point in self._points(ep):
            self._nodes[point] = ep
        self._hashes = sorted(self._nodes)

    def remove(self, ep: Any) -> None:
        name = self._key(ep)
        for point in self._points(ep):
            node = self._nodes.get(point)
            if node is not None and self._key(node) == name:
                del self._nodes[point]
        self._hashes = sorted(self._nodes)

    def find(self, code: int) -> Optional[Any]:
        if not self._hashes:
            return None
        index = bisect_left(self._hashes, code & 0xFFFFFFFF)
        if index == len(self._hashes):
            index = 0
        return self._nodes[self._hashes[index]]


class EndpointSelector:
    """Keeps the active endpoints of one object and picks one per call.

    In direct mode the endpoints are fixed and kept in the order given.
    Otherwise they come from the registry through ``update``; endpoints that
    ``is_healthy`` rejects are left out of normal selection, and when none is
    left a random registered endpoint is chosen.
    """

    def __init__(
        self,
        endpoints: Iterable[Any] = (),
        *,
        direct: bool = False,
        key: EndpointKey = str,
        is_healthy: Optional[Callable[[Any], bool]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.direct = direct
        self._key = key
        self._is_healthy = is_healthy or (lambda ep: True)
        self._rng = rng or random.Random()
        self._lock = threading.Lock()
        self._pos = 0
        self._registered: list[Any] = []
        self._inactive: list[Any] = []
        self._active: list[Any] = []
        self._ring = _HashRing(key)
        endpoints = list(endpoints)
        if direct:
            self._active = endpoints
            for ep in endpoints:
                self._ring.add(ep)
        elif endpoints:
            self.update(endpoints, ())

    def update(self, active: Iterable[Any], inactive: Iterable[Any]) -> bool:
        """Replace the registry's view of the object; returns whether anything changed.

        An empty active list is ignored, keeping the previous endpoints.
        """
        if self.direct:
            return False
        active = list(active)
        if not active:
            return False
        inactive = list(inactive)
        healthy = crc_sorted((ep for ep in active if self._is_healthy(ep)), self._key)
        ring = _HashRing(self._key)
        for ep in healthy:
            ring.add(ep)
        with self._lock:
            self._registered = active
            self._inactive = inactive
            self._active = healthy
            self._ring = ring
        return True

    def add_alive(self, ep: Any) -> None:
        """Put a recovered endpoint back among the active ones."""
        with self._lock:
            self._active = crc_sorted([*self._active, ep], self._key)
            self._ring.add(ep)

    def remove(self, ep: Any) -> None:
        """Take a blocked endpoint out of normal selection."""
        name = self._key(ep)
        with self._lock:
            for index, current in enumerate(self._active):
                if self._key(current) == name:
                    del self._active[index]
                    break
            self._ring.remove(ep)

    def all_endpoints(self) -> list[Any]:
        """The active endpoints in selection order."""
        with self._lock:
            return list(self._active)

    def select(self, message: Optional[Message] = None) -> Optional[Any]:
        """Pick the endpoint for a call, or None when there is none to pick."""
        with self._lock:
            eps = list(self._active)
            if self.direct and not eps:
                return None
            if not self.direct and not self._registered:
                return None
            chosen = None
            hashed = message is not None and message.is_hash
            if hashed and message.hash_type == HashType.CONSISTENT_HASH:
                chosen = self._ring.find(message.hash_code)
            elif eps:
                if hashed and message.hash_type == HashType.MOD_HASH:
                    index = message.hash_code % len(eps)
                else:
                    self._pos = (self._pos + 1) % len(eps)
                    index = self._pos
                chosen = eps[index]
            if chosen is None and not self.direct:
                chosen = self._rng.choice(self._registered)
            return chosen