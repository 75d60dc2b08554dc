"""Tag-length-value encoder for the basic wire types."""

from __future__ import annotations

import struct
from enum import IntEnum
from typing import Iterable


class TarsType(IntEnum):
    """Type nibble stored in each field head."""

    BYTE = 0
    SHORT = 1
    INT = 2
    LONG = 3
    FLOAT = 4
    DOUBLE = 5
    STRING1 = 6
    STRING4 = 7
    MAP = 8
    LIST = 9
    STRUCT_BEGIN = 10
    STRUCT_END = 11
    ZERO_TAG = 12
    SIMPLE_LIST = 13


_TYPE_NAMES = (
    "Byte",
    "Short",
    "Int",
    "Long",
    "Float",
    "Double",
    "String1",
    "String4",
    "Map",
    "List",
    "StructBegin",
    "StructEnd",
    "ZeroTag",
    "SimpleList",
)

_INT8 = (-(1 << 7), (1 << 7) - 1)
_INT16 = (-(1 << 15), (1 << 15) - 1)
_INT32 = (-(1 << 31), (1 << 31) - 1)
_INT64 = (-(1 << 63), (1 << 63) - 1)


def get_type_str(t: int) -> str:
    """Return the display name of a wire type, or 'invalidType'."""
    if 0 <= t < len(_TYPE_NAMES):
        return _TYPE_NAMES[t]
    return "invalidType"


def _check_range(value: int, bounds: tuple[int, int], kind: str) -> None:
    low, high = bounds
    if not low <= value <= high:
        raise ValueError(f"{value} out of range for {kind}")


class Buffer:
    """Growable output buffer that writes tagged fields."""

    def __init__(self, data: bytes | bytearray = b"") -> None:
        self._buf = bytearray(data)

    def __len__(self) -> int:
        return len(self._buf)

    def __bytes__(self) -> bytes:
        return bytes(self._buf)

    def write_head(self, ty: int, tag: int) -> None:
        """Write a field head: type nibble plus tag, using an extra byte for tags >= 15."""
        if not 0 <= ty <= 0x0F:
            raise ValueError(f"invalid type {ty}")
        if not 0 <= tag <= 0xFF:
            raise ValueError(f"invalid tag {tag}")
        if tag < 15:
            self._buf.append((tag << 4) | ty)
        else:
            self._buf.append((15 << 4) | ty)
            self._buf.append(tag)

    def reset(self) -> None:
        """Discard everything written so far."""
        self._buf.clear()

    def write_bytes(self, data: bytes | bytearray) -> None:
        """Append raw bytes without a head."""
        self._buf.extend(data)

    def write_int8_list(self, data: Iterable[int]) -> None:
        """Append signed bytes without a head."""
        out = bytearray()
        for value in data:
            _check_range(value, _INT8, "int8")
            out.append(value & 0xFF)
        self._buf.extend(out)

    def write_int8(self, data: int, tag: int) -> None:
        _check_range(data, _INT8, "int8")
        if data == 0:
            self.write_head(TarsType.ZERO_TAG, tag)
        else:
            self.write_head(TarsType.BYTE, tag)
            self._buf.append(data & 0xFF)

    def write_uint8(self, data: int, tag: int) -> None:
        _check_range(data, (0, 0xFF), "uint8")
        self.write_int16(data, tag)

    def write_bool(self, data: bool, tag: int) -> None:
        self.write_int8(1 if data else 0, tag)

    def write_int16(self, data: int, tag: int) -> None:
        _check_range(data, _INT16, "int16")
        if _INT8[0] <= data <= _INT8[1]:
            self.write_int8(data, tag)
        else:
            self.write_head(TarsType.SHORT, tag)
            self._buf.extend(struct.pack(">h", data))

    def write_uint16(self, data: int, tag: int) -> None:
        _check_range(data, (0, 0xFFFF), "uint16")
        self.write_int32(data, tag)

    def write_int32(self, data: int, tag: int) -> None:
        _check_range(data, _INT32, "int32")
        if _INT16[0] <= data <= _INT16[1]:
            self.write_int16(data, tag)
        else:
            self.write_head(TarsType.INT, tag)
            self._buf.extend(struct.pack(">i", data))

    def write_uint32(self, data: int, tag: int) -> None:
        _check_range(data, (0, 0xFFFFFFFF), "uint32")
        self.write_int64(data, tag)

    def write_int64(self, data: int, tag: int) -> None:
        _check_range(data, _INT64, "int64")
        if _INT32[0] <= data <= _INT32[1]:
            self.write_int32(data, tag)
        else:
            self.write_head(TarsType.LONG, tag)
            self._buf.extend(struct.pack(">q", data))

    def write_float32(self, data: float, tag: int) -> None:
        self.write_head(TarsType.FLOAT, tag)
        self._buf.extend(struct.pack(">f", data))

    def write_float64(self, data: float, tag: int) -> None:
        self.write_head(TarsType.DOUBLE, tag)
        self._buf.extend(struct.pack(">d", data))

    def write_string(self, data: str | bytes, tag: int) -> None:
        """Write a string; UTF-8 text longer than 255 bytes uses a 4-byte length."""
        raw = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        if len(raw) > 0xFFFFFFFF:
            raise ValueError("string too long")
        if len(raw) > 255:
            self.write_head(TarsType.STRING4, tag)
            self._buf.extend(struct.pack(">I", len(raw)))
        else:
            self.write_head(TarsType.STRING1, tag)
            self._buf.append(len(raw))
        self._buf.extend(raw)

    def to_bytes(self) -> bytes:
        """Return the encoded content."""
        return bytes(self._buf)