"""Client-side communicator: a thread-safe property store shared by proxies."""

from __future__ import annotations

import hashlib
import threading
from typing import Any, Mapping, Optional

_HASH_KEYS = ("locator", "enableset", "setdivision")


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class Communicator:
    """Holds the properties that describe how proxies reach remote servants.

    ``server_config`` carries the running server's identity (``notify``,
    ``node``, ``server``, ``enableset``, ``setdivision``); without it the
    communicator acts as a pure client.
    """

    def __init__(
        self, locator: str = "", server_config: Optional[Mapping[str, Any]] = None
    ) -> None:
        self._properties: dict[str, Any] = {}
        self._lock = threading.Lock()
        self.set_property("locator", locator)
        self.set_property("isclient", True)
        self.set_property("enableset", False)
        if server_config is not None:
            self.set_property("notify", server_config.get("notify", ""))
            self.set_property("node", server_config.get("node", ""))
            self.set_property("server", server_config.get("server", ""))
            self.set_property("isclient", False)
            if server_config.get("enableset"):
                self.set_property("enableset", True)
                self.set_property("setdivision", server_config.get("setdivision", ""))

    def set_property(self, key: str, value: Any) -> None:
        """Store a property value under key."""
        with self._lock:
            self._properties[key] = value

    def _lookup(self, key: str, kind: type, kind_name: str) -> Any:
        with self._lock:
            if key not in self._properties:
                return None
            value = self._properties[key]
        if kind is int and isinstance(value, bool) or not isinstance(value, kind):
            raise TypeError(f"property {key!r} is not a {kind_name}: {value!r}")
        return value

    def get_property(self, key: str) -> Optional[str]:
        """Return the string property for key, or None when it is not set."""
        return self._lookup(key, str, "string")

    def get_property_int(self, key: str) -> Optional[int]:
        """Return the integer property for key, or None when it is not set."""
        return self._lookup(key, int, "int")

    def get_property_bool(self, key: str) -> Optional[bool]:
        """Return the boolean property for key, or None when it is not set."""
        return self._lookup(key, bool, "bool")

    def get_locator(self) -> str:
        """Return the registry locator address, or an empty string."""
        return self.get_property("locator") or ""

    def set_locator(self, obj: str) -> None:
        """Point the communicator at another registry locator."""
        self.set_property("locator", obj)

    def hash_key(self) -> str:
        """Digest of the properties that decide which endpoints a proxy sees."""
        digest = hashlib.md5()
        with self._lock:
            items = [(k, self._properties[k]) for k in _HASH_KEYS if k in self._properties]
        for key, value in items:
            digest.update(f"{key}:{_format_value(value)}".encode("utf-8"))
        return digest.hexdigest()