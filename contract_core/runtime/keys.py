"""
contract_core.runtime.keys — composite storage key composition.

    compose_key(prefix, [(v1, T1), (v2, T2), ...])
        == prefix || nested(v1, T1) || nested(v2, T2) || ...

Pure and deterministic; performs no I/O. Host storage primitives take the
composed key as an opaque address.

Prefix collisions
-----------------
Nothing here checks uniqueness across accessors. Two different
(prefix, key_args) pairs can compose to the same bytes when one prefix is a
byte-prefix of another accessor's composed key, e.g.

    compose_key(b"s", [(0x756D, "uint16")]) == compose_key(b"sum", []) == b"sum"

Contract authors must pick accessor prefixes that are not prefixes of one
another. The runtime reserves keys starting with 0x00 for its own
bookkeeping (see callbacks.py), so contract prefixes should not start with a
zero byte.
"""

from __future__ import annotations

from typing import Any, Sequence, Tuple, Union

from ..abi.encoding import encode_nested
from ..abi.types import TypeLike
from ..errors import ValidationError

KeyArg = Tuple[Any, TypeLike]

__all__ = ["KeyArg", "compose_key"]


def _prefix_bytes(prefix: Union[bytes, bytearray, str]) -> bytes:
    if isinstance(prefix, str):
        return prefix.encode("utf-8")
    if isinstance(prefix, (bytes, bytearray)):
        return bytes(prefix)
    raise ValidationError("storage key prefix must be bytes or str")


def compose_key(prefix: Union[bytes, str], key_args: Sequence[KeyArg] = ()) -> bytes:
    out = bytearray(_prefix_bytes(prefix))
    for value, typ in key_args:
        encode_nested(value, typ, out)
    return bytes(out)
