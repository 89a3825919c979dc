"""
Inverse decoder for the two-mode codec (see encoding.py for the layout).

- decode_nested(buf, cursor, typ) -> (value, new_cursor)
- decode_top(buf, typ, strict=None) -> value
- decode_items(buf, cursor, inner, count) -> (list, new_cursor)

Every shortfall (input shorter than the type requires, a length prefix
claiming more bytes than remain, trailing bytes after a complete top-level
value) raises CodecError. `strict=True` additionally rejects non-canonical
top-level forms (integers with redundant leading bytes, bool 0x00).
"""

from __future__ import annotations

from typing import Any, List, Optional, Tuple

from ..config import load_config
from ..errors import CodecError
from .encoding import LENGTH_PREFIX_BYTES, _minimal_signed
from .types import (
    ABITypeError,
    AbiType,
    AddressType,
    BoolType,
    BytesType,
    IntType,
    ListType,
    OptionType,
    StrType,
    StructType,
    TupleType,
    TypeLike,
    UIntType,
    as_type,
)

__all__ = [
    "decode_len",
    "decode_nested",
    "decode_items",
    "decode_top",
]


# ──────────────────────────────────────────────────────────────────────────────
# Low-level helpers
# ──────────────────────────────────────────────────────────────────────────────


def _read_exact(buf: bytes, offset: int, n: int, what: str) -> Tuple[bytes, int]:
    j = offset + n
    if j > len(buf):
        raise CodecError(
            f"input too short for {what}",
            context={"needed": n, "remaining": len(buf) - offset},
        )
    return buf[offset:j], j


def decode_len(buf: bytes, offset: int) -> Tuple[int, int]:
    """Read a u32 big-endian length/count prefix."""
    raw, i = _read_exact(buf, offset, LENGTH_PREFIX_BYTES, "length prefix")
    return int.from_bytes(raw, "big"), i


def _min_width(t: AbiType) -> int:
    """Smallest number of nested bytes any value of `t` can occupy."""
    if isinstance(t, (BytesType, StrType, ListType)) and t.fixed_width is None:
        return LENGTH_PREFIX_BYTES
    if isinstance(t, OptionType):
        return 1
    if isinstance(t, TupleType):
        return sum(_min_width(i) for i in t.items)
    if isinstance(t, StructType):
        return sum(_min_width(f) for _, f in t.fields)
    return t.fixed_width or 0


def _utf8(raw: bytes) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise CodecError("str is not valid UTF-8") from e


# ──────────────────────────────────────────────────────────────────────────────
# Nested form
# ──────────────────────────────────────────────────────────────────────────────


def decode_nested(buf: bytes, cursor: int, typ: TypeLike) -> Tuple[Any, int]:
    """
    Decode one nested value of `typ` from buf[cursor:].
    Returns (value, new_cursor).
    """
    t = as_type(typ)
    buf = bytes(buf)

    if isinstance(t, BoolType):
        raw, j = _read_exact(buf, cursor, 1, "bool")
        if raw[0] > 1:
            raise CodecError("invalid bool byte", context={"byte": raw[0]})
        return raw[0] == 1, j

    if isinstance(t, UIntType):
        raw, j = _read_exact(buf, cursor, t.fixed_width, t.name)
        return int.from_bytes(raw, "big", signed=False), j

    if isinstance(t, IntType):
        raw, j = _read_exact(buf, cursor, t.fixed_width, t.name)
        return int.from_bytes(raw, "big", signed=True), j

    if isinstance(t, (BytesType, AddressType)):
        if t.fixed_width is not None:
            return _read_exact(buf, cursor, t.fixed_width, t.name)
        length, i = decode_len(buf, cursor)
        if t.max_len is not None and length > t.max_len:
            raise CodecError(f"bytes length {length} exceeds max_len {t.max_len}")
        return _read_length_prefixed(buf, i, length, t.name)

    if isinstance(t, StrType):
        length, i = decode_len(buf, cursor)
        raw, j = _read_length_prefixed(buf, i, length, "str")
        return _utf8(raw), j

    if isinstance(t, OptionType):
        tag, i = _read_exact(buf, cursor, 1, "option tag")
        if tag[0] == 0:
            return None, i
        if tag[0] != 1:
            raise CodecError("invalid option tag", context={"byte": tag[0]})
        return decode_nested(buf, i, t.inner)

    if isinstance(t, ListType):
        count, i = decode_len(buf, cursor)
        return decode_items(buf, i, t.inner, count)

    if isinstance(t, TupleType):
        items: List[Any] = []
        for item_t in t.items:
            v, cursor = decode_nested(buf, cursor, item_t)
            items.append(v)
        return tuple(items), cursor

    if isinstance(t, StructType):
        fields = {}
        for name, field_t in t.fields:
            fields[name], cursor = decode_nested(buf, cursor, field_t)
        return fields, cursor

    raise ABITypeError(f"unsupported type: {t!r}")


def _read_length_prefixed(buf: bytes, offset: int, length: int, what: str) -> Tuple[bytes, int]:
    if length > len(buf) - offset:
        raise CodecError(
            f"{what} length prefix exceeds remaining bytes",
            context={"claimed": length, "remaining": len(buf) - offset},
        )
    return buf[offset : offset + length], offset + length


def decode_items(buf: bytes, cursor: int, inner: TypeLike, count: int) -> Tuple[List[Any], int]:
    """Decode `count` nested items of `inner` (length supplied by the caller)."""
    t = as_type(inner)
    buf = bytes(buf)
    remaining = len(buf) - cursor
    width = _min_width(t)
    if width > 0 and count * width > remaining:
        raise CodecError(
            "list count prefix exceeds remaining bytes",
            context={"count": count, "remaining": remaining},
        )
    if width == 0 and count > load_config().max_argument_bytes:
        raise CodecError("list count too large", context={"count": count})
    out: List[Any] = []
    for _ in range(count):
        v, cursor = decode_nested(buf, cursor, t)
        out.append(v)
    return out, cursor


# ──────────────────────────────────────────────────────────────────────────────
# Top-level form
# ──────────────────────────────────────────────────────────────────────────────


def _decode_all_nested(buf: bytes, t: AbiType) -> Any:
    v, j = decode_nested(buf, 0, t)
    if j != len(buf):
        raise CodecError(
            f"trailing bytes after {t.name}",
            context={"consumed": j, "length": len(buf)},
        )
    return v


def decode_top(buf: bytes, typ: TypeLike, *, strict: Optional[bool] = None) -> Any:
    """
    Decode a value that stands alone at a boundary. Empty input decodes to
    the type's default value.
    """
    t = as_type(typ)
    buf = bytes(buf)
    if strict is None:
        strict = load_config().strict_mode

    if len(buf) == 0:
        return t.default()

    if isinstance(t, BoolType):
        if buf == b"\x01":
            return True
        if buf == b"\x00" and not strict:
            return False
        raise CodecError("invalid top-level bool", context={"hex": buf.hex()})

    if isinstance(t, (UIntType, IntType)):
        if len(buf) > t.fixed_width:
            raise CodecError(
                f"{t.name} top-level input too long",
                context={"length": len(buf), "max": t.fixed_width},
            )
        signed = isinstance(t, IntType)
        v = int.from_bytes(buf, "big", signed=signed)
        if strict:
            canonical = _minimal_signed(v) if signed else v.to_bytes(len(buf), "big").lstrip(b"\x00")
            if canonical != buf:
                raise CodecError(f"non-minimal {t.name} encoding", context={"hex": buf.hex()})
        return v

    if isinstance(t, (BytesType, AddressType)):
        if t.fixed_width is not None and len(buf) != t.fixed_width:
            raise CodecError(
                f"{t.name} expects exactly {t.fixed_width} bytes",
                context={"length": len(buf)},
            )
        if t.fixed_width is None and t.max_len is not None and len(buf) > t.max_len:
            raise CodecError(f"bytes length {len(buf)} exceeds max_len {t.max_len}")
        return buf

    if isinstance(t, StrType):
        return _utf8(buf)

    if isinstance(t, OptionType):
        if buf[0] != 1:
            raise CodecError("invalid top-level option tag", context={"byte": buf[0]})
        v, j = decode_nested(buf, 1, t.inner)
        if j != len(buf):
            raise CodecError("trailing bytes after option value")
        return v

    if isinstance(t, ListType):
        out: List[Any] = []
        cursor = 0
        if _min_width(t.inner) == 0:
            raise CodecError(f"{t.name} items have no width; cannot delimit top-level input")
        while cursor < len(buf):
            v, cursor = decode_nested(buf, cursor, t.inner)
            out.append(v)
        if t.max_len is not None and len(out) > t.max_len:
            raise CodecError(f"{t.name} too long")
        return out

    if isinstance(t, (TupleType, StructType)):
        return _decode_all_nested(buf, t)

    raise ABITypeError(f"unsupported type: {t!r}")
