from __future__ import annotations

import pytest

from contract_core import ContractBuilder, ContractInstance, data, encode_top, indexed
from contract_core.abi import UIntType
from contract_core.config import load_config
from contract_core.descriptors import EventArg, EventDescriptor
from contract_core.errors import ContractAssemblyError, EventArityError
from contract_core.runtime.accessors import CallFrame
from contract_core.runtime.event_encoder import encode_event
from contract_core.runtime.events_api import LogRecord
from contract_core.runtime.host import Host

ALICE = b"\xaa" * 32
BOB = b"\xbb" * 32


def _transfer() -> EventDescriptor:
    return EventDescriptor.from_params(
        b"transfer",
        (indexed("from", "address"), indexed("to", "address"), data("data", "uint64")),
    )


def test_topics_are_name_then_indexed_args_and_data_is_alone() -> None:
    record = encode_event(_transfer(), [ALICE, BOB, 1000])
    assert record.topics == (
        b"transfer",
        encode_top(ALICE, "address"),
        encode_top(BOB, "address"),
    )
    assert record.data == encode_top(1000, "uint64") == b"\x03\xe8"
    assert record.name == b"transfer"


def test_data_argument_position_does_not_matter() -> None:
    desc = EventDescriptor.from_params(b"e", (data("note", "str"), indexed("id", "uint32")))
    record = encode_event(desc, ["hi", 9])
    assert record.topics == (b"e", b"\x09")
    assert record.data == b"hi"


def test_no_data_argument_yields_empty_data() -> None:
    desc = EventDescriptor.from_params(b"ping", (indexed("n", "uint8"),))
    assert encode_event(desc, [0]) == LogRecord((b"ping", b""), b"")


def test_arity_mismatch_fails() -> None:
    with pytest.raises(EventArityError):
        encode_event(_transfer(), [ALICE, BOB])
    with pytest.raises(EventArityError):
        encode_event(_transfer(), [ALICE, BOB, 1, 2])


def test_at_most_one_data_argument() -> None:
    with pytest.raises(ContractAssemblyError):
        EventDescriptor(b"bad", (EventArg("a", UIntType(8), False), EventArg("b", UIntType(8), False)))


def test_generated_emitter_hands_record_to_host() -> None:
    c = ContractBuilder("events")
    c.event("transfer", b"transfer", indexed("from", "address"), indexed("to", "address"), data("data", "uint64"))

    @c.init()
    def init(ctx):
        ctx.transfer(ALICE, BOB, 5)

    contract = c.assemble()
    host = Host()
    frame = CallFrame(host, load_config())
    record = contract.generated["transfer"](frame, ALICE, BOB, 7)
    assert host.logs.records == [record]
    assert frame.logs_emitted == 1
    assert record.data == b"\x07"


def test_event_topic_cap_is_checked_at_assembly(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTRACT_CORE_MAX_EVENT_TOPICS", "2")
    load_config.cache_clear()
    c = ContractBuilder("wide")
    c.event("wide", b"wide", indexed("a", "u8"), indexed("b", "u8"))

    @c.init()
    def init(ctx):
        pass

    with pytest.raises(ContractAssemblyError):
        c.assemble()


def test_event_arguments_must_be_tagged() -> None:
    c = ContractBuilder("untagged")
    with pytest.raises(ContractAssemblyError):
        c.event("e", b"e", ("a", "u8"))  # type: ignore[arg-type]


def test_log_cap_applies_per_call(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTRACT_CORE_MAX_LOGS_PER_CALL", "1")
    load_config.cache_clear()

    c = ContractBuilder("chatty")
    c.event("pinged", b"ping", data("n", "uint8"))

    @c.init()
    def init(ctx):
        pass

    @c.endpoint(("times", "uint8"))
    def chirp(ctx, times):
        for i in range(times):
            ctx.pinged(i)

    inst = ContractInstance(c.assemble())
    inst.deploy()
    first = inst.execute("chirp", [b"\x01"])
    second = inst.execute("chirp", [b"\x01"])
    assert first.ok and second.ok
    assert len(inst.host.logs.records) == 2

    over = inst.execute("chirp", [b"\x02"])
    assert not over.ok
    assert over.error["code"] == "log_limit"


def test_log_record_dict_roundtrip() -> None:
    record = encode_event(_transfer(), [ALICE, BOB, 1])
    assert LogRecord.from_dict(record.to_dict()) == record
