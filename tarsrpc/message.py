"""Per-call message state and the protocol and servant interfaces."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol, runtime_checkable


class HashType(IntEnum):
    """How a hash code picks an endpoint."""

    MOD_HASH = 0
    CONSISTENT_HASH = 1


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


@dataclass
class Message:
    """State of one remote call: packets, proxies, timing and routing hash."""

    req: Any = None
    resp: Any = None
    ser: Any = None
    adp: Any = None
    begin_time: int = 0
    end_time: int = 0
    status: int = 0
    hash_code: int = 0
    hash_type: HashType = HashType.MOD_HASH
    is_hash: bool = False

    def init(self) -> None:
        """Record the start time in milliseconds."""
        self.begin_time = _now_ms()

    def end(self) -> None:
        """Record the end time in milliseconds."""
        self.end_time = _now_ms()

    def cost(self) -> int:
        """Milliseconds between init and end."""
        return self.end_time - self.begin_time

    def set_hash(self, code: int, hash_type: HashType | int) -> None:
        """Route this call by hash code."""
        if not 0 <= code <= 0xFFFFFFFF:
            raise ValueError(f"hash code {code} out of range for uint32")
        self.hash_code = code
        self.hash_type = HashType(hash_type)
        self.is_hash = True


@runtime_checkable
class PackageProtocol(Protocol):
    """Packs requests, unpacks responses and splits a byte stream into packages."""

    def request_pack(self, req: Any) -> bytes: ...

    def response_unpack(self, data: bytes) -> Any: ...

    def parse_package(self, buff: bytes) -> tuple[int, int]: ...


@runtime_checkable
class Servant(Protocol):
    """Calls a remote object."""

    def tars_invoke(
        self,
        ctx: Any,
        ctype: int,
        func_name: str,
        buf: bytes,
        status: dict[str, str] | None,
        context: dict[str, str] | None,
        resp: Any,
    ) -> None: ...

    def tars_set_timeout(self, t: int) -> None: ...

    def tars_set_protocol(self, protocol: PackageProtocol) -> None: ...