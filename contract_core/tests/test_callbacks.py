from __future__ import annotations

import hashlib

import pytest

from contract_core import (
    AsyncOutcome,
    ContractBuilder,
    ContractInstance,
    Host,
    MemoryTransport,
    VmError,
    closure,
    decode_top,
    encode_top,
    param,
)
from contract_core.config import load_config
from contract_core.errors import (
    ClosureError,
    ContractAssemblyError,
    ContractError,
    UnknownCallbackStateError,
)
from contract_core.examples.adder import ADDER
from contract_core.runtime.callbacks import ASYNC_NONCE_KEY, AsyncCallState, state_key

REMOTE = b"\x42" * 32


def _fetch(inst: ContractInstance, amount: int) -> bytes:
    call_id = inst.call("fetch", [REMOTE, encode_top(amount, "uint64")])
    assert call_id is not None and len(call_id) == 32
    return call_id


def test_issue_persists_state_then_submits(adder: ContractInstance) -> None:
    call_id = _fetch(adder, 4)

    pending = adder.host.transport.pending[call_id]
    assert pending.destination == REMOTE
    assert pending.payload == b"\x04"

    state = AsyncCallState.decode(call_id, adder.host.storage.get(state_key(call_id)))
    assert state.callback == "on_fetched"
    assert state.payload == (4).to_bytes(8, "big")


def test_call_ids_come_from_a_storage_nonce(adder: ContractInstance) -> None:
    first = _fetch(adder, 1)
    second = _fetch(adder, 1)
    assert first == hashlib.sha3_256(b"contract_core:async|" + (1).to_bytes(8, "big")).digest()
    assert second != first
    assert decode_top(adder.host.storage.get(ASYNC_NONCE_KEY), "uint64") == 2


def test_resume_invokes_callback_with_decoded_closure(adder: ContractInstance) -> None:
    call_id = _fetch(adder, 4)
    adder.deliver(call_id, AsyncOutcome.success(encode_top(6, "uint64")))
    assert adder.call("get_sum") == encode_top(5 + 6 + 4, "uint64")
    assert adder.host.storage.get(state_key(call_id)) == b""


def test_failure_outcome_reaches_the_callback(adder: ContractInstance) -> None:
    call_id = _fetch(adder, 4)
    adder.deliver(call_id, AsyncOutcome.failure(b"remote said no"))
    assert adder.call("get_sum") == b"\x05"
    assert adder.host.storage.get(b"last_error") == b"remote said no"


def test_resume_is_at_most_once(adder: ContractInstance) -> None:
    call_id = _fetch(adder, 4)
    adder.deliver(call_id, AsyncOutcome.success(b"\x01"))
    after_first = adder.host.storage.snapshot()

    with pytest.raises(UnknownCallbackStateError):
        adder.deliver(call_id, AsyncOutcome.success(b"\x01"))
    assert adder.host.storage.snapshot() == after_first


def test_unknown_or_malformed_call_ids_are_rejected(adder: ContractInstance) -> None:
    before = adder.host.storage.snapshot()
    with pytest.raises(UnknownCallbackStateError):
        adder.deliver(b"\x99" * 32, AsyncOutcome.success(b""))
    with pytest.raises(UnknownCallbackStateError):
        adder.deliver(b"short", AsyncOutcome.success(b""))
    assert adder.host.storage.snapshot() == before

    result = adder.execute_callback(b"\x99" * 32, AsyncOutcome.success(b""))
    assert not result.ok
    assert result.error["code"] == "unknown_callback_state"


def test_raw_callback_gets_undecoded_outcome(adder: ContractInstance) -> None:
    call_id = adder.call("ping", [REMOTE])
    assert adder.host.transport.pending[call_id].payload == b"ping"
    adder.deliver(call_id, AsyncOutcome.success(b"\xff\xfe"))
    raw = adder.call("get_last_raw")
    assert decode_top(raw, "tuple<bool,bytes>") == (True, b"\xff\xfe")


# ---------------------------------------------------------------------------
# Closure capture rules
# ---------------------------------------------------------------------------


def _closure_contract():
    c = ContractBuilder("closures")
    c.storage_set("set_seen", b"seen", value="tuple<str,uint16,address>")
    c.storage_get("get_seen", b"seen", value="tuple<str,uint16,address>", expose=True)

    @c.init()
    def init(ctx):
        pass

    @c.endpoint(("fields", "list<str>"))
    def start(ctx, fields):
        available = {"who": REMOTE, "tag": "t", "n": 513, "extra": 1}
        ctx.async_call(REMOTE, b"", callback="on_done", closure={f: available[f] for f in fields})

    @c.endpoint(("callback", "str"))
    def start_with(ctx, callback):
        ctx.async_call(REMOTE, b"", callback=callback, closure={"x": 1})

    @c.endpoint(("size", "uint32"))
    def start_big(ctx, size):
        ctx.async_call(REMOTE, b"", callback="on_blob", closure={"blob": b"b" * size})

    @c.callback(closure("tag", "str"), closure("n", "uint16"), closure("who", "address"))
    def on_done(ctx, result, tag, n, who):
        ctx.set_seen((tag, n, who))
        if result.ok and result.value == b"fail":
            raise ContractError("callback failed")

    @c.callback(closure("blob", "bytes"))
    def on_blob(ctx, result, blob):
        pass

    @c.callback_raw
    def on_raw(ctx, outcome):
        pass

    return c.assemble()


def _started(fields):
    inst = ContractInstance(_closure_contract())
    inst.deploy()
    inst.call("start", [encode_top(fields, "list<str>")])
    (call_id,) = inst.host.transport.pending_ids()
    return inst, call_id


def test_closure_values_come_back_in_declared_order() -> None:
    inst, call_id = _started(["who", "n", "tag"])
    inst.deliver(call_id, AsyncOutcome.success(b""))
    assert decode_top(inst.call("get_seen"), "tuple<str,uint16,address>") == ("t", 513, REMOTE)


@pytest.mark.parametrize("fields", [["tag", "n"], ["tag", "n", "who", "extra"]])
def test_captured_fields_must_match_exactly(fields) -> None:
    inst = ContractInstance(_closure_contract())
    inst.deploy()
    before = inst.host.storage.snapshot()
    with pytest.raises(ClosureError):
        inst.call("start", [encode_top(fields, "list<str>")])
    with pytest.raises(ClosureError):
        inst.call("start_with", [b"on_done"])
    assert inst.host.storage.snapshot() == before
    assert inst.host.transport.pending_ids() == []


def test_async_call_to_unknown_or_raw_callback_with_closure_fails() -> None:
    inst = ContractInstance(_closure_contract())
    inst.deploy()
    with pytest.raises(ClosureError):
        inst.call("start_with", [b"no_such_callback"])
    with pytest.raises(ClosureError):
        inst.call("start_with", [b"on_raw"])


def test_closure_size_cap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTRACT_CORE_MAX_CLOSURE_BYTES", "256")
    load_config.cache_clear()
    inst = ContractInstance(_closure_contract())
    inst.deploy()
    inst.call("start_big", [encode_top(100, "uint32")])
    with pytest.raises(ClosureError):
        inst.call("start_big", [encode_top(300, "uint32")])


def test_state_is_consumed_even_when_the_callback_fails() -> None:
    inst, call_id = _started(["tag", "n", "who"])
    with pytest.raises(ContractError):
        inst.deliver(call_id, AsyncOutcome.success(b"fail"))
    with pytest.raises(UnknownCallbackStateError):
        inst.deliver(call_id, AsyncOutcome.success(b""))


def test_callbacks_only_declare_closure_fields() -> None:
    c = ContractBuilder("bad")
    with pytest.raises(ContractAssemblyError):
        c.callback(param("x", "u8"))


def test_memory_transport_queue() -> None:
    t = MemoryTransport()
    first = t.submit(REMOTE, b"a")
    second = t.submit(REMOTE, b"b")
    assert first != second and len(first) == 32
    with pytest.raises(VmError):
        t.submit(REMOTE, b"c", call_id=first)

    assert t.take(first).payload == b"a"
    assert t.pending_ids() == [second]
    with pytest.raises(VmError) as ei:
        t.take(first)
    assert ei.value.code == "transport_error"


class _HostAssignedIds(MemoryTransport):
    """Transport that ignores the proposed id and hands out its own."""

    def __init__(self, ids):
        super().__init__()
        self._ids = list(ids)

    def submit(self, destination, payload, call_id=None):
        return super().submit(destination, payload, call_id=self._ids.pop(0))


def _with_transport(transport) -> ContractInstance:
    inst = ContractInstance(ADDER, Host(transport=transport))
    inst.deploy([b"\x05"])
    return inst


def test_transport_assigned_call_id_is_authoritative() -> None:
    assigned = b"\x77" * 32
    inst = _with_transport(_HostAssignedIds([assigned]))

    call_id = _fetch(inst, 4)
    assert call_id == assigned
    assert inst.host.transport.pending_ids() == [assigned]
    proposed = hashlib.sha3_256(b"contract_core:async|" + (1).to_bytes(8, "big")).digest()
    assert inst.host.storage.get(state_key(proposed)) == b""

    inst.deliver(assigned, AsyncOutcome.success(encode_top(6, "uint64")))
    assert inst.call("get_sum") == encode_top(15, "uint64")


class _FixedReply(MemoryTransport):
    def __init__(self, reply):
        super().__init__()
        self.reply = reply

    def submit(self, destination, payload, call_id=None):
        return self.reply


@pytest.mark.parametrize("bad", [b"short", None])
def test_malformed_transport_call_id_fails_the_call(bad) -> None:
    inst = _with_transport(_FixedReply(bad))
    with pytest.raises(VmError) as ei:
        _fetch(inst, 4)
    assert ei.value.code == "transport_error"


def test_transport_reusing_a_pending_id_fails_the_call() -> None:
    reused = b"\x77" * 32
    inst = _with_transport(_FixedReply(reused))
    _fetch(inst, 1)
    with pytest.raises(VmError) as ei:
        inst.call("fetch", [REMOTE, encode_top(2, "uint64")])
    assert ei.value.code == "transport_error"
