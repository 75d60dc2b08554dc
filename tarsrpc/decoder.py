"""Tag-length-value decoder for the basic wire types."""

from __future__ import annotations

import struct

from .encoder import TarsType, get_type_str


class CodecError(ValueError):
    """Raised when encoded data is malformed, truncated or of an unexpected type."""


_INT_FORMATS = {
    TarsType.BYTE: ">b",
    TarsType.SHORT: ">h",
    TarsType.INT: ">i",
    TarsType.LONG: ">q",
}

_FIXED_SIZES = {
    TarsType.BYTE: 1,
    TarsType.SHORT: 2,
    TarsType.INT: 4,
    TarsType.LONG: 8,
    TarsType.FLOAT: 4,
    TarsType.DOUBLE: 8,
}


class Reader:
    """Cursor over encoded bytes that reads tagged fields."""

    def __init__(self, data: bytes | bytearray = b"") -> None:
        self._ref = bytes(data)
        self._pos = 0

    def __len__(self) -> int:
        """Number of bytes not yet consumed."""
        return len(self._ref) - self._pos

    def reset(self, data: bytes | bytearray) -> None:
        """Start reading a new piece of data from its beginning."""
        self._ref = bytes(data)
        self._pos = 0

    def _take(self, n: int, context: str) -> bytes:
        end = self._pos + n
        if end > len(self._ref):
            raise CodecError(f"{context} error: unexpected end of data")
        chunk = self._ref[self._pos:end]
        self._pos = end
        return chunk

    def _read_byte(self, context: str) -> int:
        return self._take(1, context)[0]

    def read_head(self) -> tuple[int, int]:
        """Read a field head and return (type, tag)."""
        data = self._read_byte("read head")
        ty = data & 0x0F
        tag = (data & 0xF0) >> 4
        if tag == 15:
            tag = self._read_byte("read head")
        return ty, tag

    def unread_head(self, tag: int) -> None:
        """Step back over a head just read with the given tag."""
        width = 2 if tag >= 15 else 1
        self._pos = max(self._pos - width, 0)

    def next(self, n: int) -> bytes:
        """Return up to the next n bytes and move past them."""
        if n <= 0:
            return b""
        start = self._pos
        self._pos = min(start + n, len(self._ref))
        return self._ref[start:self._pos]

    def skip(self, n: int) -> None:
        """Move past the next n bytes."""
        if n > 0:
            self._pos = min(self._pos + n, len(self._ref))

    def _skip_map(self) -> None:
        length = self.read_int32(0, True)
        for _ in range(length * 2):
            ty, _tag = self.read_head()
            self._skip_field(ty)

    def _skip_list(self) -> None:
        length = self.read_int32(0, True)
        for _ in range(length):
            ty, _tag = self.read_head()
            self._skip_field(ty)

    def _skip_simple_list(self) -> None:
        ty, _tag = self.read_head()
        if ty != TarsType.BYTE:
            raise CodecError(f"simple list need byte head. but get {ty}")
        length = self.read_int32(0, True)
        self.skip(length)

    def _skip_field(self, ty: int) -> None:
        if ty in _FIXED_SIZES:
            self.skip(_FIXED_SIZES[ty])
        elif ty == TarsType.STRING1:
            self.skip(self._read_byte("skip string1"))
        elif ty == TarsType.STRING4:
            (length,) = struct.unpack(">I", self._take(4, "skip string4"))
            self.skip(length)
        elif ty == TarsType.MAP:
            self._skip_map()
        elif ty == TarsType.LIST:
            self._skip_list()
        elif ty == TarsType.SIMPLE_LIST:
            self._skip_simple_list()
        elif ty == TarsType.STRUCT_BEGIN:
            self.skip_to_struct_end()
        elif ty in (TarsType.STRUCT_END, TarsType.ZERO_TAG):
            return
        else:
            raise CodecError("invalid type")

    def skip_to_struct_end(self) -> None:
        """Skip fields up to and including the end of the current struct."""
        while True:
            ty, _tag = self.read_head()
            self._skip_field(ty)
            if ty == TarsType.STRUCT_END:
                return

    def skip_to_no_check(self, tag: int, require: bool) -> tuple[bool, int]:
        """Advance to the field with the given tag.

        Returns (found, type). A missing required field raises CodecError;
        a missing optional field leaves the cursor before the next head.
        """
        while True:
            try:
                ty_cur, tag_cur = self.read_head()
            except CodecError as exc:
                if require:
                    raise CodecError(
                        f"Can not find Tag {tag}. But require. {exc}"
                    ) from exc
                return False, 0
            if ty_cur == TarsType.STRUCT_END or tag_cur > tag:
                if require:
                    raise CodecError(
                        f"Can not find Tag {tag}. But require. "
                        f"tagCur: {tag_cur}, tyCur: {ty_cur}"
                    )
                self.unread_head(tag_cur)
                return False, ty_cur
            if tag_cur == tag:
                return True, ty_cur
            self._skip_field(ty_cur)

    def skip_to(self, ty: int, tag: int, require: bool) -> bool:
        """Advance to the field with the given tag and check its type."""
        found, ty_cur = self.skip_to_no_check(tag, require)
        if found and ty != ty_cur:
            raise CodecError(f"type not match, need {ty}, but {ty_cur}")
        return found

    def read_bytes(self, length: int) -> bytes:
        """Read exactly length raw bytes."""
        if length <= 0:
            return b""
        return self._take(length, "read_bytes")

    def read_int8_list(self, length: int) -> list[int]:
        """Read length raw signed bytes."""
        if length <= 0:
            return []
        raw = self._take(length, "read_int8_list")
        return list(struct.unpack(f">{length}b", raw))

    def _read_int(
        self, tag: int, require: bool, default: int, allowed: tuple, kind: str, name: str
    ) -> int:
        found, ty = self.skip_to_no_check(tag, require)
        if not found:
            return default
        if ty == TarsType.ZERO_TAG:
            return 0
        if ty not in allowed:
            raise CodecError(
                f"read '{kind}' type mismatch, tag:{tag}, get type:{get_type_str(ty)}"
            )
        fmt = _INT_FORMATS[ty]
        raw = self._take(struct.calcsize(fmt), f"{name} tag:{tag}")
        return struct.unpack(fmt, raw)[0]

    def read_int8(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self._read_int(
            tag, require, default, (TarsType.BYTE,), "int8", "read_int8"
        )

    def read_uint8(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self.read_int16(tag, require, default) & 0xFF

    def read_bool(self, tag: int, require: bool = True, default: bool = False) -> bool:
        return self.read_int8(tag, require, 1 if default else 0) != 0

    def read_int16(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self._read_int(
            tag, require, default, (TarsType.BYTE, TarsType.SHORT), "int16", "read_int16"
        )

    def read_uint16(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self.read_int32(tag, require, default) & 0xFFFF

    def read_int32(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self._read_int(
            tag,
            require,
            default,
            (TarsType.BYTE, TarsType.SHORT, TarsType.INT),
            "int32",
            "read_int32",
        )

    def read_uint32(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self.read_int64(tag, require, default) & 0xFFFFFFFF

    def read_int64(self, tag: int, require: bool = True, default: int = 0) -> int:
        return self._read_int(
            tag,
            require,
            default,
            (TarsType.BYTE, TarsType.SHORT, TarsType.INT, TarsType.LONG),
            "int64",
            "read_int64",
        )

    def read_float32(self, tag: int, require: bool = True, default: float = 0.0) -> float:
        found, ty = self.skip_to_no_check(tag, require)
        if not found:
            return default
        if ty == TarsType.ZERO_TAG:
            return 0.0
        if ty != TarsType.FLOAT:
            raise CodecError(
                f"read 'float' type mismatch, tag:{tag}, get type:{get_type_str(ty)}"
            )
        return struct.unpack(">f", self._take(4, f"read_float32 tag:{tag}"))[0]

    def read_float64(self, tag: int, require: bool = True, default: float = 0.0) -> float:
        found, ty = self.skip_to_no_check(tag, require)
        if not found:
            return default
        if ty == TarsType.ZERO_TAG:
            return 0.0
        if ty == TarsType.FLOAT:
            return struct.unpack(">f", self._take(4, f"read_float64 tag:{tag}"))[0]
        if ty == TarsType.DOUBLE:
            return struct.unpack(">d", self._take(8, f"read_float64 tag:{tag}"))[0]
        raise CodecError(
            f"read 'double' type mismatch, tag:{tag}, get type:{get_type_str(ty)}"
        )

    def read_string(self, tag: int, require: bool = True, default: str = "") -> str:
        found, ty = self.skip_to_no_check(tag, require)
        if not found:
            return default
        if ty == TarsType.STRING4:
            (length,) = struct.unpack(">I", self._take(4, f"read_string4 tag:{tag}"))
            raw = self._take(length, f"read_string4 tag:{tag}")
        elif ty == TarsType.STRING1:
            length = self._read_byte(f"read_string1 tag:{tag}")
            raw = self._take(length, f"read_string1 tag:{tag}")
        else:
            raise CodecError(
                f"need string, tag:{tag}, but type is {get_type_str(ty)}"
            )
        return raw.decode("utf-8", errors="replace")

    def to_bytes(self) -> bytes:
        """Return all the data the reader was given."""
        return self._ref

    def to_string(self) -> str:
        """Return all the data the reader was given, as text."""
        return self._ref.decode("utf-8", errors="replace")