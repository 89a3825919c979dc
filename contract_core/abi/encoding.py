"""
Canonical two-mode encoding for contract arguments, results and storage.

Top-level form is used when a value stands alone at a boundary (one argument
slice, one return value, one storage cell, one event topic). The boundary
supplies the length, so the form may be variable and empty bytes mean "the
type's default".

Nested form is used when values are concatenated with no outer boundary
(composite storage keys, closure payloads, items inside lists/tuples). It is
self-delimiting from type information alone.

Layout
------
- bool:        top  b"" (false) | 0x01 (true)
               nested 1 byte 0x00 / 0x01
- uintN:       top  minimal big-endian magnitude (0 -> b"")
               nested exactly N/8 bytes big-endian
- intN:        top  minimal two's complement big-endian (0 -> b"")
               nested exactly N/8 bytes two's complement
- bytes, str:  top  raw bytes (UTF-8 for str)
               nested u32_be(len) || raw
- bytesN, address: raw N bytes in both forms
- option<T>:   top  b"" (None) | 0x01 || nested(T)
               nested 0x00 | 0x01 || nested(T)
- list<T>:     top  nested(item1) || nested(item2) || ...
               nested u32_be(count) || nested items
- tuple, struct: nested fields concatenated, in both forms

This module only performs encoding; decoding is provided separately.
"""

from __future__ import annotations

from typing import Any, Iterable

from ..errors import ValidationError
from .types import (
    ABITypeError,
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
    "LENGTH_PREFIX_BYTES",
    "encode_len",
    "encode_top",
    "encode_nested",
    "nested_bytes",
    "encode_items",
]

LENGTH_PREFIX_BYTES = 4
_MAX_LEN = (1 << (8 * LENGTH_PREFIX_BYTES)) - 1


# ──────────────────────────────────────────────────────────────────────────────
# Low-level helpers
# ──────────────────────────────────────────────────────────────────────────────


def encode_len(n: int) -> bytes:
    """u32 big-endian length/count prefix."""
    if n < 0 or n > _MAX_LEN:
        raise ValidationError(f"length {n} does not fit a {LENGTH_PREFIX_BYTES}-byte prefix")
    return n.to_bytes(LENGTH_PREFIX_BYTES, "big")


def _minimal_unsigned(n: int) -> bytes:
    """Big-endian minimal bytes for a non-negative integer (0 → b'')."""
    if n == 0:
        return b""
    return n.to_bytes((n.bit_length() + 7) // 8, "big", signed=False)


def _minimal_signed(n: int) -> bytes:
    """Shortest two's complement big-endian representation (0 → b'')."""
    if n == 0:
        return b""
    length = 1
    while not -(1 << (8 * length - 1)) <= n < (1 << (8 * length - 1)):
        length += 1
    return n.to_bytes(length, "big", signed=True)


# ──────────────────────────────────────────────────────────────────────────────
# Nested (concatenable) form
# ──────────────────────────────────────────────────────────────────────────────


def encode_nested(value: Any, typ: TypeLike, out: bytearray) -> None:
    """Append the self-delimiting encoding of `value` to the byte sink `out`."""
    t = as_type(typ)

    if isinstance(t, BoolType):
        out.append(0x01 if t.validate(value) else 0x00)
    elif isinstance(t, UIntType):
        out += t.validate(value).to_bytes(t.fixed_width, "big", signed=False)
    elif isinstance(t, IntType):
        out += t.validate(value).to_bytes(t.fixed_width, "big", signed=True)
    elif isinstance(t, (BytesType, AddressType)):
        b = t.validate(value)
        if t.fixed_width is None:
            out += encode_len(len(b))
        out += b
    elif isinstance(t, StrType):
        b = t.validate(value).encode("utf-8")
        out += encode_len(len(b))
        out += b
    elif isinstance(t, OptionType):
        if value is None:
            out.append(0x00)
        else:
            out.append(0x01)
            encode_nested(value, t.inner, out)
    elif isinstance(t, ListType):
        items = t.validate(value)
        out += encode_len(len(items))
        encode_items(items, t.inner, out)
    elif isinstance(t, TupleType):
        for item, item_t in zip(t.validate(value), t.items):
            encode_nested(item, item_t, out)
    elif isinstance(t, StructType):
        fields = t.validate(value)
        for name, field_t in t.fields:
            encode_nested(fields[name], field_t, out)
    else:
        raise ABITypeError(f"unsupported type: {t!r}")


def encode_items(values: Iterable[Any], inner: TypeLike, out: bytearray) -> None:
    """Nested-encode list items with no count prefix (caller supplies the length)."""
    t = as_type(inner)
    for v in values:
        encode_nested(v, t, out)


def nested_bytes(value: Any, typ: TypeLike) -> bytes:
    """Convenience: nested encoding as a standalone bytes object."""
    out = bytearray()
    encode_nested(value, typ, out)
    return bytes(out)


# ──────────────────────────────────────────────────────────────────────────────
# Top-level (boundary) form
# ──────────────────────────────────────────────────────────────────────────────


def encode_top(value: Any, typ: TypeLike) -> bytes:
    """Encode a value that stands alone at a call/storage/topic boundary."""
    t = as_type(typ)

    if isinstance(t, BoolType):
        return b"\x01" if t.validate(value) else b""
    if isinstance(t, UIntType):
        return _minimal_unsigned(t.validate(value))
    if isinstance(t, IntType):
        return _minimal_signed(t.validate(value))
    if isinstance(t, (BytesType, AddressType)):
        return t.validate(value)
    if isinstance(t, StrType):
        return t.validate(value).encode("utf-8")
    if isinstance(t, OptionType):
        if value is None:
            return b""
        out = bytearray(b"\x01")
        encode_nested(value, t.inner, out)
        return bytes(out)
    if isinstance(t, ListType):
        out = bytearray()
        encode_items(t.validate(value), t.inner, out)
        return bytes(out)
    if isinstance(t, (TupleType, StructType)):
        return nested_bytes(value, t)
    raise ABITypeError(f"unsupported type: {t!r}")
