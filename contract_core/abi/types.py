"""
Codec type definitions for the contract runtime core.

The type set mirrors what contract methods declare in their descriptors:
  - bool
  - uintN / intN (N a multiple of 8 in 8..256; aliases uN / iN)
  - bytes / bytesN (opaque byte strings, optionally fixed-length)
  - address (32 raw bytes)
  - str (UTF-8)
  - option<T>, list<T>, tuple<T1,...,Tn>
  - StructType (programmatic only: named fields, values are dicts)

Every type knows its nested width (`fixed_width`, None when variable) and its
default value (what empty top-level bytes decode to). Utilities here *only*
coerce/validate Python values; the byte layout lives in
contract_core.abi.encoding/decoding.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from ..config import load_config
from ..errors import ValidationError

__all__ = [
    "ABITypeError",
    "ValidationError",
    "ADDRESS_LEN",
    "normalize_hex",
    "coerce_bool",
    "coerce_int",
    "coerce_uint",
    "coerce_bytes",
    "BoolType",
    "UIntType",
    "IntType",
    "BytesType",
    "AddressType",
    "StrType",
    "OptionType",
    "ListType",
    "TupleType",
    "StructType",
    "AbiType",
    "TypeLike",
    "parse_type",
    "as_type",
]

ADDRESS_LEN = 32


class ABITypeError(TypeError):
    """Raised when a type spec is malformed or unsupported."""


# ──────────────────────────────────────────────────────────────────────────────
# Scalar coercion helpers
# ──────────────────────────────────────────────────────────────────────────────


def normalize_hex(s: str) -> bytes:
    """Convert a 0x-prefixed hex string to bytes, accepting even-length only."""
    if not isinstance(s, str) or not s.startswith("0x"):
        raise ValidationError("expected 0x-prefixed hex string")
    hex_part = s[2:]
    if len(hex_part) % 2 != 0:
        raise ValidationError("hex string must have an even number of digits")
    try:
        return bytes.fromhex(hex_part)
    except ValueError as e:
        raise ValidationError(f"invalid hex: {e}") from e


def coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValidationError("bool must be True/False")


def coerce_int(value: Any, *, bits: int = 256, signed: bool = True) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError("int must be a Python int")
    min_v = -(1 << (bits - 1)) if signed else 0
    max_v = (1 << (bits - 1)) - 1 if signed else (1 << bits) - 1
    if value < min_v or value > max_v:
        kind = "int" if signed else "uint"
        raise ValidationError(
            f"{kind}{bits} out of range [{min_v}, {max_v}]",
            context={"value": str(value)},
        )
    return int(value)


def coerce_uint(value: Any, *, bits: int = 256) -> int:
    return coerce_int(value, bits=bits, signed=False)


def coerce_bytes(
    value: Any,
    *,
    fixed_len: Optional[int] = None,
    max_len: Optional[int] = None,
) -> bytes:
    """Accept bytes or 0x-hex; enforce optional fixed or max length (in bytes)."""
    if isinstance(value, bytes):
        b = value
    elif isinstance(value, (bytearray, memoryview)):
        b = bytes(value)
    elif isinstance(value, str) and value.startswith("0x"):
        b = normalize_hex(value)
    else:
        raise ValidationError("bytes must be bytes, bytearray, or 0x-hex string")
    if fixed_len is not None and len(b) != fixed_len:
        raise ValidationError(f"bytes length must be exactly {fixed_len}, got {len(b)}")
    if max_len is not None and len(b) > max_len:
        raise ValidationError(f"bytes too long (max {max_len}, got {len(b)})")
    return b


def _assert_bits(bits: int) -> None:
    if bits % 8 != 0 or not 8 <= bits <= 256:
        raise ABITypeError("bit width must be a multiple of 8 in 8..256")


# ──────────────────────────────────────────────────────────────────────────────
# Type specs
# ──────────────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class BoolType:
    fixed_width = 1

    def validate(self, value: Any) -> bool:
        return coerce_bool(value)

    def default(self) -> bool:
        return False

    @property
    def name(self) -> str:
        return "bool"


@dataclass(frozen=True)
class UIntType:
    bits: int = 256

    def __post_init__(self) -> None:
        _assert_bits(self.bits)

    def validate(self, value: Any) -> int:
        return coerce_uint(value, bits=self.bits)

    def default(self) -> int:
        return 0

    @property
    def fixed_width(self) -> int:
        return self.bits // 8

    @property
    def name(self) -> str:
        return f"uint{self.bits}"


@dataclass(frozen=True)
class IntType:
    """Signed, two's complement."""

    bits: int = 256

    def __post_init__(self) -> None:
        _assert_bits(self.bits)

    def validate(self, value: Any) -> int:
        return coerce_int(value, bits=self.bits, signed=True)

    def default(self) -> int:
        return 0

    @property
    def fixed_width(self) -> int:
        return self.bits // 8

    @property
    def name(self) -> str:
        return f"int{self.bits}"


@dataclass(frozen=True)
class BytesType:
    fixed_len: Optional[int] = None
    max_len: Optional[int] = None  # enforced when fixed_len is None

    def __post_init__(self) -> None:
        if self.fixed_len is not None and self.fixed_len <= 0:
            raise ABITypeError("fixed_len must be > 0")
        if self.fixed_len is None and self.max_len is not None and self.max_len <= 0:
            raise ABITypeError("max_len must be > 0")

    def validate(self, value: Any) -> bytes:
        return coerce_bytes(
            value,
            fixed_len=self.fixed_len,
            max_len=self.max_len if self.fixed_len is None else None,
        )

    def default(self) -> bytes:
        return b"\x00" * (self.fixed_len or 0)

    @property
    def fixed_width(self) -> Optional[int]:
        return self.fixed_len

    @property
    def name(self) -> str:
        if self.fixed_len is not None:
            return f"bytes{self.fixed_len}"
        return "bytes"


@dataclass(frozen=True)
class AddressType:
    fixed_width = ADDRESS_LEN

    def validate(self, value: Any) -> bytes:
        return coerce_bytes(value, fixed_len=ADDRESS_LEN)

    def default(self) -> bytes:
        return b"\x00" * ADDRESS_LEN

    @property
    def name(self) -> str:
        return "address"


@dataclass(frozen=True)
class StrType:
    max_len: Optional[int] = None  # in UTF-8 bytes
    fixed_width = None

    def validate(self, value: Any) -> str:
        if not isinstance(value, str):
            raise ValidationError("str must be a Python str")
        if self.max_len is not None and len(value.encode("utf-8")) > self.max_len:
            raise ValidationError(f"str too long (max {self.max_len} bytes)")
        return value

    def default(self) -> str:
        return ""

    @property
    def name(self) -> str:
        return "str"


@dataclass(frozen=True)
class OptionType:
    inner: "AbiType"
    fixed_width = None

    def validate(self, value: Any) -> Any:
        return value

    def default(self) -> None:
        return None

    @property
    def name(self) -> str:
        return f"option<{self.inner.name}>"


@dataclass(frozen=True)
class ListType:
    inner: "AbiType"
    max_len: Optional[int] = None
    fixed_width = None

    def validate(self, value: Any) -> List[Any]:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
            raise ValidationError(f"{self.name} expects a sequence")
        if self.max_len is not None and len(value) > self.max_len:
            raise ValidationError(f"{self.name} too long (max {self.max_len} items)")
        return list(value)

    def default(self) -> List[Any]:
        return []

    @property
    def name(self) -> str:
        return f"list<{self.inner.name}>"


@dataclass(frozen=True)
class TupleType:
    items: Tuple["AbiType", ...] = ()

    def validate(self, value: Any) -> Tuple[Any, ...]:
        if isinstance(value, (str, bytes, bytearray)) or not isinstance(value, Sequence):
            raise ValidationError(f"{self.name} expects a sequence")
        if len(value) != len(self.items):
            raise ValidationError(f"{self.name} expects {len(self.items)} items, got {len(value)}")
        return tuple(value)

    def default(self) -> Tuple[Any, ...]:
        return tuple(t.default() for t in self.items)

    @property
    def fixed_width(self) -> Optional[int]:
        return _sum_widths(self.items)

    @property
    def name(self) -> str:
        return "tuple<" + ",".join(t.name for t in self.items) + ">"


@dataclass(frozen=True)
class StructType:
    """Named-field composite; encodes exactly like a tuple of its field types."""

    struct_name: str
    fields: Tuple[Tuple[str, "AbiType"], ...] = field(default_factory=tuple)

    def validate(self, value: Any) -> Dict[str, Any]:
        if not isinstance(value, Mapping):
            raise ValidationError(f"{self.struct_name} expects a mapping")
        expected = [n for n, _ in self.fields]
        if sorted(value.keys()) != sorted(expected):
            raise ValidationError(
                f"{self.struct_name} fields mismatch",
                context={"expected": expected, "got": sorted(map(str, value.keys()))},
            )
        return {n: value[n] for n in expected}

    def default(self) -> Dict[str, Any]:
        return {n: t.default() for n, t in self.fields}

    @property
    def fixed_width(self) -> Optional[int]:
        return _sum_widths(t for _, t in self.fields)

    @property
    def name(self) -> str:
        return self.struct_name


def _sum_widths(types: Any) -> Optional[int]:
    total = 0
    for t in types:
        w = t.fixed_width
        if w is None:
            return None
        total += w
    return total


AbiType = Union[
    BoolType,
    UIntType,
    IntType,
    BytesType,
    AddressType,
    StrType,
    OptionType,
    ListType,
    TupleType,
    StructType,
]
TypeLike = Union[str, AbiType]


# ──────────────────────────────────────────────────────────────────────────────
# Parser for textual type specs (e.g., "uint32", "bytes32", "list<address>")
# ──────────────────────────────────────────────────────────────────────────────


def _split_top_level(s: str) -> List[str]:
    parts: List[str] = []
    depth = 0
    start = 0
    for i, ch in enumerate(s):
        if ch == "<":
            depth += 1
        elif ch == ">":
            depth -= 1
            if depth < 0:
                raise ABITypeError(f"unbalanced '>' in {s!r}")
        elif ch == "," and depth == 0:
            parts.append(s[start:i].strip())
            start = i + 1
    if depth != 0:
        raise ABITypeError(f"unbalanced '<' in {s!r}")
    parts.append(s[start:].strip())
    return parts


def _parse(s: str, depth: int, max_depth: int) -> AbiType:
    if depth > max_depth:
        raise ABITypeError("type nesting too deep")

    if s.endswith(">"):
        lt = s.find("<")
        if lt <= 0:
            raise ABITypeError(f"malformed generic type {s!r}")
        head, body = s[:lt], s[lt + 1 : -1]
        args = _split_top_level(body) if body.strip() else []
        if head == "option" and len(args) == 1:
            return OptionType(_parse(args[0], depth + 1, max_depth))
        if head == "list" and len(args) == 1:
            return ListType(_parse(args[0], depth + 1, max_depth))
        if head == "tuple":
            return TupleType(tuple(_parse(a, depth + 1, max_depth) for a in args))
        raise ABITypeError(f"unsupported generic type {s!r}")

    if s == "bool":
        return BoolType()
    if s == "address":
        return AddressType()
    if s in ("str", "string"):
        return StrType()
    if s == "bytes":
        return BytesType()
    if s == "int":
        return IntType(256)
    if s == "uint":
        return UIntType(256)

    for prefix, ctor in (("uint", UIntType), ("int", IntType), ("u", UIntType), ("i", IntType)):
        if s.startswith(prefix) and s[len(prefix) :].isdigit():
            return ctor(int(s[len(prefix) :]))

    if s.startswith("bytes") and s[5:].isdigit():
        n = int(s[5:])
        if n <= 0 or n > 65535:
            raise ABITypeError("bytesN length must be in 1..65535")
        return BytesType(fixed_len=n)

    raise ABITypeError(f"unsupported type spec: {s!r}")


@lru_cache(maxsize=512)
def _parse_cached(spec: str, max_depth: int) -> AbiType:
    return _parse(spec, 0, max_depth)


def parse_type(spec: str) -> AbiType:
    """
    Parse a textual type spec into a type object.

    Supported forms:
      - "bool", "address", "str", "bytes", "bytesN"
      - "int", "intN", "iN", "uint", "uintN", "uN"
      - "option<T>", "list<T>", "tuple<T1,T2,...>"
    """
    if not isinstance(spec, str) or not spec.strip():
        raise ABITypeError("type spec must be a non-empty string")
    return _parse_cached(spec.strip().lower().replace(" ", ""), load_config().max_type_depth)


def as_type(typ: TypeLike) -> AbiType:
    """Resolve a textual spec or pass a type object through."""
    if isinstance(typ, str):
        return parse_type(typ)
    if isinstance(
        typ,
        (BoolType, UIntType, IntType, BytesType, AddressType, StrType, OptionType, ListType, TupleType, StructType),
    ):
        return typ
    raise ABITypeError(f"unsupported type: {typ!r}")
