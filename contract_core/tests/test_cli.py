from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from contract_core.cli.main import app
from contract_core.version import __version__

runner = CliRunner()

REMOTE = "0x" + "42" * 32


def _ok(args):
    result = runner.invoke(app, args)
    assert result.exit_code == 0, result.output
    return result.stdout


def _json(args):
    return json.loads(_ok(args))


def test_version() -> None:
    assert _ok(["--version"]).strip() == __version__


@pytest.mark.parametrize(
    "args, expected",
    [
        (["encode", "uint32", "7"], "0x07"),
        (["encode", "uint32", "7", "--nested"], "0x00000007"),
        (["encode", "uint32", "0"], "0x"),
        (["encode", "str", "hello"], "0x68656c6c6f"),
        (["encode", "list<u16>", "[1, 2]"], "0x00010002"),
        (["encode", "option<uint8>", "null"], "0x"),
        (["encode", "option<uint8>", "0"], "0x0100"),
    ],
)
def test_encode(args, expected) -> None:
    assert _ok(args).strip() == expected


def test_decode() -> None:
    assert _json(["decode", "list<u16>", "0x00010002"]) == [1, 2]
    assert _json(["decode", "uint64", "0x"]) == 0
    assert _json(["decode", "bytes", "0xff00"]) == "0xff00"
    assert _json(["decode", "uint32", "0x00000007", "--nested"]) == 7
    assert _json(["decode", "uint16", "0x0005", "--lenient"]) == 5


@pytest.mark.parametrize(
    "args",
    [
        ["decode", "uint16", "0x0005"],
        ["decode", "uint8", "0x0102"],
        ["decode", "uint32", "0x0000000700", "--nested"],
        ["decode", "uint8", "0xzz"],
        ["encode", "uint8", "256"],
        ["encode", "nope<", "1"],
    ],
)
def test_codec_failures_exit_nonzero(args) -> None:
    assert runner.invoke(app, args).exit_code != 0


def test_key() -> None:
    out = _ok(["key", "example_map", "-a", "uint32:1", "-a", "uint32:2"]).strip()
    assert out == "0x" + b"example_map".hex() + "00000001" + "00000002"
    assert _ok(["key", "sum"]).strip() == "0x73756d"
    assert _ok(["key", "0x0102", "-a", "str:ab"]).strip() == "0x0102" + "00000002" + "6162"
    assert runner.invoke(app, ["key", "p", "-a", "no-type"]).exit_code != 0


def test_abi() -> None:
    abi = _json(["abi"])
    assert abi["name"] == "adder"
    assert "add" in {e["name"] for e in abi["endpoints"]}


def test_deploy_call_deliver_flow(tmp_path: Path) -> None:
    state = str(tmp_path / "state.json")

    deployed = _json(["deploy", "-s", state, "5"])
    assert deployed["ok"] is True

    assert _json(["call", "-s", state, "add", "3"])["ok"] is True
    assert _json(["call", "-s", state, "get_sum"])["value"] == 8

    sent = _json(["call", "-s", state, "send", REMOTE, "2"])
    (log,) = sent["logs"]
    assert log["topics"][0] == "0x" + b"transfer".hex()
    assert log["data"] == "0x02"

    fetched = _json(["call", "-s", state, "fetch", REMOTE, "4"])
    call_id = fetched["value"]
    assert [p["call_id"] for p in _json(["pending", "-s", state])] == [call_id]

    delivered = _json(["deliver", "-s", state, call_id, "--data", "0x06"])
    assert delivered["ok"] is True
    assert _json(["pending", "-s", state]) == []
    assert _json(["call", "-s", state, "get_sum"])["value"] == 18

    saved = json.loads(Path(state).read_text())
    assert saved["contract"] == "contract_core.examples.adder:ADDER"
    assert saved["flags"] == {"constructor_pending": False}
    assert saved["storage"]["0x73756d"] == "0x12"
    assert len(saved["logs"]) == 1


def test_failed_calls_do_not_touch_state(tmp_path: Path) -> None:
    state = tmp_path / "state.json"
    _ok(["deploy", "-s", str(state), "5"])
    before = state.read_text()

    assert runner.invoke(app, ["deploy", "-s", str(state), "1"]).exit_code == 1
    assert runner.invoke(app, ["call", "-s", str(state), "nope"]).exit_code == 1
    assert runner.invoke(app, ["call", "-s", str(state), "put", "1", "2", '""']).exit_code == 1
    assert runner.invoke(app, ["deliver", "-s", str(state), "0x" + "99" * 32]).exit_code == 1
    assert state.read_text() == before


def test_argument_count_is_checked_before_dispatch(tmp_path: Path) -> None:
    state = str(tmp_path / "state.json")
    _ok(["deploy", "-s", state, "5"])
    assert runner.invoke(app, ["call", "-s", state, "add"]).exit_code == 2


def test_raw_arguments(tmp_path: Path) -> None:
    state = str(tmp_path / "state.json")
    _ok(["deploy", "-s", state, "--raw", "0x05"])
    assert _json(["call", "-s", state, "--raw", "add", "0x03"])["ok"] is True
    assert _json(["call", "-s", state, "get_sum"])["output"] == "0x08"


def test_upgrade_reruns_constructor(tmp_path: Path) -> None:
    state = str(tmp_path / "state.json")
    _ok(["deploy", "-s", state, "5"])
    assert _json(["deploy", "-s", state, "--upgrade", "1"])["ok"] is True
    assert _json(["call", "-s", state, "get_sum"])["value"] == 1
