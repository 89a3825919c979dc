"""
contract-core encode / decode / key — codec helpers for the command line.

Values are read as JSON when they parse as JSON and as plain text otherwise,
so `42`, `"0x01ff"`, `[1,2]`, `null` and `hello` all work. Byte-like values
are written as 0x-hex strings; encoded output is always 0x-hex.

    contract-core encode uint32 7                 -> 0x07
    contract-core encode uint32 7 --nested        -> 0x00000007
    contract-core decode "list<u16>" 0x00010002   -> [1, 2]
    contract-core key example_map -a uint32:1 -a uint32:2
"""

from __future__ import annotations

import json
from typing import Any, List, Optional

import typer

from ..abi.decoding import decode_nested, decode_top
from ..abi.encoding import encode_top, nested_bytes
from ..abi.types import ABITypeError, normalize_hex, parse_type
from ..errors import VmError
from ..runtime.keys import compose_key


def parse_value(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return text


def jsonable(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    if isinstance(v, (list, tuple)):
        return [jsonable(x) for x in v]
    if isinstance(v, dict):
        return {str(k): jsonable(x) for k, x in v.items()}
    return v


def hex_arg(text: str) -> bytes:
    try:
        return normalize_hex(text if text.startswith("0x") else "0x" + text)
    except VmError as e:
        raise typer.BadParameter(str(e)) from e


def fail(message: str, code: int = 1) -> None:
    typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(code)


def encode(
    type_spec: str = typer.Argument(..., metavar="TYPE", help="Type spec, e.g. uint64, list<address>"),
    value: str = typer.Argument(..., help="Value as JSON (or plain text for str)"),
    nested: bool = typer.Option(False, "--nested", help="Use the nested (concatenable) form"),
) -> None:
    """Encode a value and print it as 0x-hex."""
    try:
        t = parse_type(type_spec)
        v = parse_value(value)
        out = nested_bytes(v, t) if nested else encode_top(v, t)
    except (ABITypeError, VmError) as e:
        fail(str(e))
    typer.echo("0x" + out.hex())


def decode(
    type_spec: str = typer.Argument(..., metavar="TYPE", help="Type spec"),
    data: str = typer.Argument(..., help="0x-hex bytes ('0x' for empty)"),
    nested: bool = typer.Option(False, "--nested", help="Decode the nested form"),
    lenient: bool = typer.Option(False, "--lenient", help="Accept non-minimal top-level forms"),
) -> None:
    """Decode 0x-hex bytes and print the value as JSON."""
    raw = hex_arg(data)
    try:
        t = parse_type(type_spec)
        if nested:
            v, used = decode_nested(raw, 0, t)
            if used != len(raw):
                fail(f"{len(raw) - used} trailing bytes after nested {t.name}")
        else:
            v = decode_top(raw, t, strict=False if lenient else None)
    except (ABITypeError, VmError) as e:
        fail(str(e))
    typer.echo(json.dumps(jsonable(v)))


def key(
    prefix: str = typer.Argument(..., help="Static prefix (text, or 0x-hex)"),
    args: Optional[List[str]] = typer.Option(
        None,
        "--arg",
        "-a",
        help="Key argument as TYPE:VALUE; repeat in order",
    ),
) -> None:
    """Compose a storage key: prefix || nested(arg1) || nested(arg2) ..."""
    p = hex_arg(prefix) if prefix.startswith("0x") else prefix.encode("utf-8")
    key_args = []
    for item in args or []:
        type_spec, sep, value = item.partition(":")
        if not sep:
            raise typer.BadParameter(f"expected TYPE:VALUE, got {item!r}")
        key_args.append((parse_value(value), type_spec))
    try:
        out = compose_key(p, [(v, parse_type(t)) for v, t in key_args])
    except (ABITypeError, VmError) as e:
        fail(str(e))
    typer.echo("0x" + out.hex())


__all__ = ["encode", "decode", "key", "parse_value", "jsonable", "hex_arg", "fail"]
