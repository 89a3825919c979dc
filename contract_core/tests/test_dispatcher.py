from __future__ import annotations

from dataclasses import replace

import pytest

from contract_core import AsyncOutcome, ContractBuilder, ContractInstance, Host, encode_top
from contract_core.config import load_config
from contract_core.errors import (
    ArgumentCountError,
    CodecError,
    ContractError,
    UnknownFunctionError,
)
from contract_core.examples.adder import ADDER, TREASURY, U64_MAX

BOB = b"\xbb" * 32


def test_endpoint_and_exposed_getter(adder: ContractInstance) -> None:
    assert adder.call("get_sum") == b"\x05"
    assert adder.call("add", [encode_top(3, "uint64")]) is None
    assert adder.call("get_sum") == b"\x08"


def test_keyed_getter_decodes_key_arguments(adder: ContractInstance) -> None:
    one, two = encode_top(1, "uint32"), encode_top(2, "uint32")
    adder.call("put", [one, two, b"hello"])
    assert adder.call("get_entry", [one, two]) == b"hello"
    assert adder.call("get_entry", [two, one]) == b""
    assert adder.call("has_entry", [one, two]) == b"\x01"
    adder.call("drop", [one, two])
    assert adder.call("has_entry", [one, two]) == b""


def test_unknown_function_has_no_side_effects(adder: ContractInstance) -> None:
    before = adder.host.storage.snapshot()
    with pytest.raises(UnknownFunctionError) as ei:
        adder.call("does_not_exist", [b"\x01"])
    assert ei.value.code == "unknown_function"
    assert adder.host.storage.snapshot() == before
    assert adder.host.logs.records == []


@pytest.mark.parametrize("name", ["checked_add", "set_sum", "transfer", "on_fetched", "on_ping", "entry_is_empty"])
def test_internal_methods_are_not_callable_from_outside(adder: ContractInstance, name: str) -> None:
    with pytest.raises(UnknownFunctionError):
        adder.call(name)


def test_decode_failure_aborts_before_logic_runs(adder: ContractInstance) -> None:
    before = adder.host.storage.snapshot()
    with pytest.raises(CodecError):
        adder.call("add", [b"\x00\x03"])  # non-minimal
    with pytest.raises(CodecError):
        adder.call("put", [b"\x01", b"\x02", b"\xff"])  # bad UTF-8 label, last argument
    assert adder.host.storage.snapshot() == before


def test_argument_count_must_match(adder: ContractInstance) -> None:
    with pytest.raises(ArgumentCountError):
        adder.call("add")
    with pytest.raises(ArgumentCountError):
        adder.call("add", [b"\x01", b"\x02"])


def test_oversized_argument_slice_is_rejected(adder: ContractInstance) -> None:
    huge = b"x" * (adder.dispatcher.config.max_argument_bytes + 1)
    with pytest.raises(CodecError):
        adder.call("put", [b"\x01", b"\x02", huge])


def test_contract_errors_pass_through(adder: ContractInstance) -> None:
    with pytest.raises(ContractError) as ei:
        adder.call("add", [encode_top(U64_MAX, "uint64")])
    assert ei.value.message == "adder: sum overflow"
    assert adder.call("get_sum") == b"\x05"

    result = adder.execute("put", [b"\x01", b"\x02", b""])
    assert not result.ok
    assert result.error == {"code": "contract_error", "message": "adder: empty label", "context": {}}


def test_execute_envelope_and_logs_are_per_call(adder: ContractInstance) -> None:
    first = adder.execute("send", [BOB, encode_top(10, "uint64")])
    second = adder.execute("send", [BOB, encode_top(20, "uint64")])
    assert first.ok and second.ok
    assert first.output is None
    assert [r.data for r in first.logs] == [b"\x0a"]
    assert [r.data for r in second.logs] == [b"\x14"]
    assert second.logs[0].topics == (b"transfer", TREASURY, BOB)

    failed = adder.execute("nope")
    assert not failed.ok
    assert failed.error["code"] == "unknown_function"
    assert failed.logs == ()
    assert failed.to_dict()["output"] is None


def _views_contract():
    c = ContractBuilder("views")
    c.storage_get("get_n", b"n", value="uint32")
    c.storage_set("set_n", b"n", value="uint32")

    @c.init()
    def init(ctx):
        pass

    @c.view(returns="uint32")
    def bump(ctx):
        ctx.set_n(ctx.get_n() + 1)
        return ctx.get_n()

    @c.endpoint(("code", "str"))
    def fail_with(ctx, code):
        raise ContractError("custom failure", code=code, context={"why": "asked"})

    @c.endpoint()
    def crash(ctx):
        raise RuntimeError("bug")

    return c.assemble()


def test_views_are_not_read_only() -> None:
    inst = ContractInstance(_views_contract())
    inst.deploy()
    assert inst.call("bump") == b"\x01"
    assert inst.call("bump") == b"\x02"


def test_application_error_codes_are_preserved() -> None:
    inst = ContractInstance(_views_contract())
    inst.deploy()
    result = inst.execute("fail_with", [b"E_CUSTOM"])
    assert result.error == {"code": "E_CUSTOM", "message": "custom failure", "context": {"why": "asked"}}


def test_unexpected_exceptions_are_not_converted() -> None:
    inst = ContractInstance(_views_contract())
    inst.deploy()
    with pytest.raises(RuntimeError):
        inst.execute("crash")


def test_return_value_cap(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTRACT_CORE_MAX_RETURN_BYTES", "1024")
    load_config.cache_clear()

    c = ContractBuilder("big")

    @c.init()
    def init(ctx):
        pass

    @c.view(returns="bytes")
    def blob(ctx):
        return b"z" * 2048

    inst = ContractInstance(c.assemble())
    inst.deploy()
    with pytest.raises(CodecError):
        inst.call("blob")


def test_argument_count_failure_reports_codec_error(adder: ContractInstance) -> None:
    result = adder.execute("add", [])
    assert result.error["code"] == "codec_error"
    assert result.error["context"]["reason"] == "wrong_number_of_arguments"


def test_injected_config_controls_decoding_strictness() -> None:
    lenient = ContractInstance(ADDER, Host(), config=replace(load_config(), strict_mode=False))
    lenient.deploy([b"\x00\x05"])
    lenient.call("add", [b"\x00\x03"])
    assert lenient.call("get_sum") == b"\x08"

    remote = b"\x42" * 32
    call_id = lenient.call("fetch", [remote, b"\x00\x01"])
    lenient.deliver(call_id, AsyncOutcome.success(b"\x00\x02"))
    assert lenient.call("get_sum") == encode_top(8 + 2 + 1, "uint64")


def test_injected_strict_config_overrides_lenient_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTRACT_CORE_STRICT", "0")
    load_config.cache_clear()
    strict = ContractInstance(ADDER, Host(), config=replace(load_config(), strict_mode=True))
    strict.deploy([b"\x05"])
    with pytest.raises(CodecError):
        strict.call("add", [b"\x00\x03"])
