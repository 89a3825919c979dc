from __future__ import annotations

import io
import json
import logging

import pytest

from contract_core import ContractInstance, encode_top
from contract_core import logging as clog
from contract_core.config import CoreConfig, load_config
from contract_core.errors import ContractError, VmError, require
from contract_core.examples.adder import ADDER


def test_defaults() -> None:
    cfg = load_config()
    assert isinstance(cfg, CoreConfig)
    assert cfg.strict_mode is True
    assert cfg.max_storage_key_bytes == 256
    assert cfg.max_event_topics == 8
    assert cfg.log_level == "INFO"
    assert set(cfg.as_dict()) >= {"strict_mode", "max_closure_bytes", "log_format"}


def test_env_overrides_are_clamped(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTRACT_CORE_STRICT", "no")
    monkeypatch.setenv("CONTRACT_CORE_MAX_EVENT_TOPICS", "1000")
    monkeypatch.setenv("CONTRACT_CORE_MAX_STORAGE_KEY_BYTES", "1")
    monkeypatch.setenv("CONTRACT_CORE_MAX_CLOSURE_BYTES", "0x400")
    monkeypatch.setenv("CONTRACT_CORE_MAX_TYPE_DEPTH", "not-a-number")
    monkeypatch.setenv("CONTRACT_CORE_LOG_FORMAT", "xml")
    load_config.cache_clear()

    cfg = load_config()
    assert cfg.strict_mode is False
    assert cfg.max_event_topics == 64
    assert cfg.max_storage_key_bytes == 16
    assert cfg.max_closure_bytes == 1024
    assert cfg.max_type_depth == 16
    assert cfg.log_format is None


def test_config_is_cached() -> None:
    assert load_config() is load_config()


def test_vm_error_to_dict() -> None:
    err = VmError("boom", code="x", context={"k": 1})
    assert err.to_dict() == {"code": "x", "message": "boom", "context": {"k": 1}}
    assert str(err) == "boom"
    assert VmError("plain").code == "vm_error"


def test_require() -> None:
    require(True, "never raised")
    with pytest.raises(ContractError) as ei:
        require(False, b"adder: bytes message", code="E_BYTES")
    assert ei.value.message == "adder: bytes message"
    assert ei.value.code == "E_BYTES"


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture
def json_log_stream():
    stream = io.StringIO()
    clog.configure(json=True, level="DEBUG", stream=stream)
    yield stream
    root = logging.getLogger("contract_core")
    for h in list(root.handlers):
        root.removeHandler(h)
    root.propagate = True
    root.setLevel(logging.NOTSET)


def _lines(stream: io.StringIO):
    return [json.loads(line) for line in stream.getvalue().splitlines() if line.strip()]


def test_call_scope_binds_and_restores_context() -> None:
    clog.bind(phase="outer")
    with clog.call_scope(function="add", call_id=b"\x01\x02"):
        assert clog.context() == {"phase": "outer", "function": "add", "call_id": "0x0102"}
    assert clog.context() == {"phase": "outer"}
    clog.unbind("phase")
    assert clog.context() == {}


def test_dispatch_logs_carry_call_context(json_log_stream: io.StringIO) -> None:
    inst = ContractInstance(ADDER)
    inst.deploy([b"\x01"])
    inst.call("add", [encode_top(2, "uint64")])

    resolved = [r for r in _lines(json_log_stream) if r["msg"] == "resolved"]
    assert [r["function"] for r in resolved] == ["init", "add"]
    assert all(r["contract"] == "adder" for r in resolved)
    assert resolved[0]["logger"] == "contract_core.runtime.dispatcher"


def test_failed_calls_are_logged_as_warnings(json_log_stream: io.StringIO) -> None:
    inst = ContractInstance(ADDER)
    inst.deploy([b"\x01"])
    result = inst.execute("missing")
    assert not result.ok

    (warning,) = [r for r in _lines(json_log_stream) if r["level"] == "WARNING"]
    assert warning["msg"] == "call failed"
    assert warning["code"] == "unknown_function"


def test_async_issue_is_logged_with_hex_call_id(json_log_stream: io.StringIO) -> None:
    inst = ContractInstance(ADDER)
    inst.deploy([b"\x01"])
    call_id = inst.call("ping", [b"\x07" * 32])

    (issued,) = [r for r in _lines(json_log_stream) if r["msg"] == "async call issued"]
    assert issued["call_id"] == "0x" + call_id.hex()
    assert issued["callback"] == "on_ping"


def test_text_formatter_renders_context() -> None:
    stream = io.StringIO()
    clog.configure(json=False, level="INFO", stream=stream)
    try:
        with clog.call_scope(function="add"):
            clog.get_logger("contract_core.test").info("hello", extra={"n": 3})
    finally:
        root = logging.getLogger("contract_core")
        for h in list(root.handlers):
            root.removeHandler(h)
        root.propagate = True
    line = stream.getvalue().strip()
    assert "| INFO " in line
    assert "function=add" in line
    assert "n=3" in line
    assert line.endswith("| hello")
