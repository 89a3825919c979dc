"""
Adder example contract for the contract runtime core.

Public surface:

    init(initial: uint64)
        Constructor; seeds the running sum.

    add(value: uint64)
        Add to the running sum (overflow is a contract error).

    get_sum() -> uint64                         (exposed storage getter)
    put(a: uint32, b: uint32, label: str)      example_map[a, b] = label
    get_entry(a: uint32, b: uint32) -> str      (exposed storage getter)
    has_entry(a: uint32, b: uint32) -> bool     (view)
    drop(a: uint32, b: uint32)                  clear example_map[a, b]
    send(to: address, amount: uint64)           emit transfer(from, to; amount)
    fetch(remote: address, amount: uint64) -> bytes32
        Ask `remote` for a number asynchronously; `on_fetched` adds it to the
        sum together with the captured `amount`.
    ping(remote: address) -> bytes32
        Fire an async call whose outcome is recorded verbatim by `on_ping`.

Storage layout:

    b"sum"                                  uint64
    b"example_map" || u32(a) || u32(b)      str
    b"last_error"                           bytes
    b"last_raw"                             tuple<bool,bytes>
"""

from __future__ import annotations

from contract_core import ContractBuilder, closure, data, encode_top, indexed, key
from contract_core.descriptors import Contract

U64_MAX = (1 << 64) - 1

# Zero address used as the sender of `send` transfers.
TREASURY = b"\x00" * 32


def build() -> Contract:
    c = ContractBuilder("adder")

    c.storage_get("get_sum", b"sum", value="uint64", expose=True)
    c.storage_set("set_sum", b"sum", value="uint64")
    c.storage_get("get_entry", b"example_map", key("a", "uint32"), key("b", "uint32"), value="str", expose=True)
    c.storage_set("set_entry", b"example_map", key("a", "uint32"), key("b", "uint32"), value="str")
    c.storage_is_empty("entry_is_empty", b"example_map", key("a", "uint32"), key("b", "uint32"))
    c.storage_clear("clear_entry", b"example_map", key("a", "uint32"), key("b", "uint32"))
    c.storage_set("set_last_error", b"last_error", value="bytes")
    c.storage_get("get_last_raw", b"last_raw", value="tuple<bool,bytes>", expose=True)
    c.storage_set("set_last_raw", b"last_raw", value="tuple<bool,bytes>")

    c.event(
        "transfer",
        b"transfer",
        indexed("sender", "address"),
        indexed("to", "address"),
        data("amount", "uint64"),
    )

    @c.private
    def checked_add(ctx, a, b):
        ctx.require(a + b <= U64_MAX, b"adder: sum overflow")
        return a + b

    @c.init(("initial", "uint64"))
    def init(ctx, initial):
        ctx.set_sum(initial)

    @c.endpoint(("value", "uint64"))
    def add(ctx, value):
        ctx.set_sum(ctx.checked_add(ctx.get_sum(), value))

    @c.endpoint(("a", "uint32"), ("b", "uint32"), ("label", "str"))
    def put(ctx, a, b, label):
        ctx.require(label != "", "adder: empty label")
        ctx.set_entry(a, b, label)

    @c.view(("a", "uint32"), ("b", "uint32"), returns="bool")
    def has_entry(ctx, a, b):
        return not ctx.entry_is_empty(a, b)

    @c.endpoint(("a", "uint32"), ("b", "uint32"))
    def drop(ctx, a, b):
        ctx.clear_entry(a, b)

    @c.endpoint(("to", "address"), ("amount", "uint64"))
    def send(ctx, to, amount):
        ctx.transfer(TREASURY, to, amount)

    @c.endpoint(("remote", "address"), ("amount", "uint64"), returns="bytes32")
    def fetch(ctx, remote, amount):
        return ctx.async_call(
            remote,
            encode_top(amount, "uint64"),
            callback="on_fetched",
            closure={"amount": amount},
        )

    @c.callback(closure("amount", "uint64"), result="uint64")
    def on_fetched(ctx, result, amount):
        if not result.ok:
            ctx.set_last_error(result.error)
            return
        ctx.set_sum(ctx.checked_add(ctx.get_sum(), ctx.checked_add(result.value, amount)))

    @c.endpoint(("remote", "address"), returns="bytes32")
    def ping(ctx, remote):
        return ctx.async_call(remote, b"ping", callback="on_ping")

    @c.callback_raw
    def on_ping(ctx, outcome):
        ctx.set_last_raw((outcome.ok, outcome.data))

    return c.assemble()


ADDER = build()

__all__ = ["ADDER", "build", "TREASURY", "U64_MAX"]
