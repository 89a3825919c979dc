"""
contract-core abi / deploy / call / deliver / pending — run a contract against
a JSON state file.

The state file plays the host: it persists contract storage, the
constructor-pending flag, outstanding async calls and every emitted log.

    {
      "contract": "contract_core.examples.adder:ADDER",
      "flags": {"constructor_pending": false},
      "storage": {"0x73756d": "0x08"},
      "pending": [{"call_id": "0x..", "destination": "0x..", "payload": "0x.."}],
      "logs": [{"topics": ["0x..", ...], "data": "0x.."}]
    }

Arguments are JSON values encoded with the declared parameter types, or raw
0x-hex argument slices with --raw.

    contract-core deploy -s state.json 5
    contract-core call -s state.json add 3
    contract-core call -s state.json get_sum
    contract-core deliver -s state.json 0x<call id> --data 0x07
"""

from __future__ import annotations

import importlib
import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import typer

from ..abi.decoding import decode_top
from ..abi.encoding import encode_top
from ..descriptors import Contract, MethodDescriptor, ParamTag
from ..errors import VmError
from ..runtime.events_api import MemoryLogSink
from ..runtime.host import Host, InstanceFlags
from ..runtime.instance import CallResult, ContractInstance
from ..runtime.storage_api import MemoryStorage
from ..runtime.transport_api import AsyncOutcome, MemoryTransport, PendingCall
from .codec import hex_arg, jsonable, parse_value

DEFAULT_CONTRACT = "contract_core.examples.adder:ADDER"

STATE_OPTION = typer.Option(Path("contract-state.json"), "--state", "-s", help="JSON state file")
CONTRACT_OPTION = typer.Option(
    None,
    "--contract",
    "-c",
    help=f"module:attribute of the Contract (default: from state file, else {DEFAULT_CONTRACT})",
)


# ----------------------------
# State file
# ----------------------------


def load_contract(spec: str) -> Contract:
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise typer.BadParameter(f"expected module:attribute, got {spec!r}")
    try:
        obj = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise typer.BadParameter(f"cannot load {spec!r}: {e}") from e
    if callable(obj) and not isinstance(obj, Contract):
        obj = obj()
    if not isinstance(obj, Contract):
        raise typer.BadParameter(f"{spec!r} is not a Contract")
    return obj


def read_state(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def write_state(path: Path, state: Dict[str, Any]) -> None:
    tmp = path.with_suffix(path.suffix + ".tmp")
    with tmp.open("w", encoding="utf-8") as f:
        json.dump(state, f, indent=2, sort_keys=True)
        f.write("\n")
    tmp.replace(path)


def build_host(state: Dict[str, Any]) -> Host:
    storage = MemoryStorage({hex_arg(k): hex_arg(v) for k, v in state.get("storage", {}).items()})
    transport = MemoryTransport()
    for d in state.get("pending", []):
        p = PendingCall.from_dict(d)
        transport.pending[p.call_id] = p
    flags = InstanceFlags(**state.get("flags", {}))
    return Host(storage=storage, logs=MemoryLogSink(), transport=transport, flags=flags)


def dump_host(state: Dict[str, Any], host: Host, contract_spec: str) -> Dict[str, Any]:
    out = dict(state)
    out["contract"] = contract_spec
    out["flags"] = host.flags.to_dict()
    out["storage"] = {"0x" + k.hex(): "0x" + v.hex() for k, v in host.storage.items()}
    out["pending"] = [p.to_dict() for p in host.transport.pending.values()]
    out["logs"] = list(state.get("logs", [])) + [r.to_dict() for r in host.logs.records]
    return out


def _open(state_path: Path, contract_spec: Optional[str]):
    state = read_state(state_path)
    spec = contract_spec or state.get("contract") or DEFAULT_CONTRACT
    host = build_host(state)
    return state, spec, ContractInstance(load_contract(spec), host)


# ----------------------------
# Arguments and output
# ----------------------------


def encode_args(method: MethodDescriptor, values: Sequence[str], raw: bool) -> List[bytes]:
    if raw:
        return [hex_arg(v) for v in values]
    params = [p for p in method.params if p.tag in (ParamTag.ARG, ParamTag.KEY)]
    if len(values) != len(params):
        names = ", ".join(p.name for p in params)
        raise typer.BadParameter(f"{method.name} expects {len(params)} arguments ({names}), got {len(values)}")
    try:
        return [encode_top(parse_value(v), p.type) for v, p in zip(values, params)]
    except VmError as e:
        raise typer.BadParameter(f"argument encoding failed: {e}") from e


def report(result: CallResult, method: Optional[MethodDescriptor] = None) -> None:
    payload = result.to_dict()
    if result.ok and method is not None and method.returns is not None and result.output is not None:
        payload["value"] = jsonable(decode_top(result.output, method.returns))
    typer.echo(json.dumps(payload, indent=2, default=str))


# ----------------------------
# Commands
# ----------------------------


def abi(contract: str = typer.Option(DEFAULT_CONTRACT, "--contract", "-c", help="module:attribute of the Contract")) -> None:
    """Print the contract's public surface as JSON."""
    typer.echo(json.dumps(load_contract(contract).abi(), indent=2))


def deploy(
    args: Optional[List[str]] = typer.Argument(None, help="Constructor arguments"),
    state_path: Path = STATE_OPTION,
    contract: Optional[str] = CONTRACT_OPTION,
    raw: bool = typer.Option(False, "--raw", help="Arguments are 0x-hex slices"),
    upgrade: bool = typer.Option(False, "--upgrade", help="Reset the pending flag and rerun the constructor"),
) -> None:
    """Run the constructor (once per deploy or upgrade)."""
    state, spec, inst = _open(state_path, contract)
    if upgrade:
        inst.dispatcher.lifecycle.reset_for_upgrade()
    ctor = inst.contract.constructor
    result = inst.execute(ctor.name, encode_args(ctor, args or [], raw))
    if result.ok:
        write_state(state_path, dump_host(state, inst.host, spec))
    report(result, ctor)
    if not result.ok:
        raise typer.Exit(1)


def call(
    function: str = typer.Argument(..., help="Function identifier"),
    args: Optional[List[str]] = typer.Argument(None, help="Call arguments"),
    state_path: Path = STATE_OPTION,
    contract: Optional[str] = CONTRACT_OPTION,
    raw: bool = typer.Option(False, "--raw", help="Arguments are 0x-hex slices"),
) -> None:
    """Dispatch one call and persist the resulting state."""
    state, spec, inst = _open(state_path, contract)
    method = inst.contract.public(function)
    if method is None or raw:
        slices = [hex_arg(v) for v in args or []]
    else:
        slices = encode_args(method, args or [], raw)
    result = inst.execute(function, slices)
    if result.ok:
        write_state(state_path, dump_host(state, inst.host, spec))
    report(result, method)
    if not result.ok:
        raise typer.Exit(1)


def deliver(
    call_id: str = typer.Argument(..., help="0x-hex async call id"),
    data: str = typer.Option("0x", "--data", "-d", help="Outcome bytes (0x-hex)"),
    failure: bool = typer.Option(False, "--failure", help="Deliver a failure outcome"),
    state_path: Path = STATE_OPTION,
    contract: Optional[str] = CONTRACT_OPTION,
) -> None:
    """Deliver the outcome of an outstanding async call to its callback."""
    state, spec, inst = _open(state_path, contract)
    cid = hex_arg(call_id)
    inst.host.transport.pending.pop(cid, None)
    payload = hex_arg(data)
    outcome = AsyncOutcome.failure(payload) if failure else AsyncOutcome.success(payload)
    result = inst.execute_callback(cid, outcome)
    if result.ok:
        write_state(state_path, dump_host(state, inst.host, spec))
    report(result)
    if not result.ok:
        raise typer.Exit(1)


def pending(state_path: Path = STATE_OPTION) -> None:
    """List outstanding async calls recorded in the state file."""
    typer.echo(json.dumps(read_state(state_path).get("pending", []), indent=2))


__all__ = ["abi", "deploy", "call", "deliver", "pending", "load_contract", "build_host", "dump_host"]
