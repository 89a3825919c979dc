"""
contract_core.runtime.callbacks — closure capture and callback resumption.

Issuing an asynchronous call ends the current call's work on it; the result
arrives later as a separate inbound call. To resume with the issuing frame's
context, the callback author declares exactly which fields are captured:

    @builder.callback(closure("caller", "address"), closure("amount", "uint64"),
                      result="uint64")
    def on_fetch(ctx, result, caller, amount): ...

    ctx.async_call(dest, payload, callback="on_fetch",
                   closure={"caller": who, "amount": n})

Issue
-----
1. validate the captured fields against the callback's declared closure
2. nested-encode them in declared order → closure payload
3. allocate a call id (sha3_256 over a per-instance nonce)
4. persist AsyncCallState{callback, payload} under the call id
5. hand (destination, payload, call_id) to the host transport
6. if the transport answers with a different id, move the state to that id;
   the id the transport returns is the one handed back to contract logic

Resume
------
Load *and delete* the state for the call id (a missing state raises
UnknownCallbackStateError and no callback runs), decode the closure in
declared order, then invoke the callback with
(AsyncCallResult, *closure_values). Raw callbacks skip all decoding and get
the AsyncOutcome as delivered.

State lives in contract storage under keys starting with 0x00 (reserved for
the runtime).
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Sequence

from ..abi.decoding import decode_nested, decode_top
from ..abi.encoding import encode_nested, encode_top
from ..abi.types import BytesType, StrType, StructType, UIntType
from ..config import CoreConfig, load_config
from ..descriptors import Contract, MethodDescriptor, MethodRole
from ..errors import ClosureError, CodecError, UnknownCallbackStateError, VmError
from ..logging import get_logger
from .accessors import CallFrame
from .host import Host
from .keys import compose_key
from .transport_api import AsyncOutcome

log = get_logger(__name__)

ASYNC_STATE_PREFIX = b"\x00async:"
ASYNC_NONCE_KEY = b"\x00async-nonce"
CALL_ID_LEN = 32
CALL_ID_TYPE = BytesType(fixed_len=CALL_ID_LEN)
_NONCE_TYPE = UIntType(64)
_STATE_TYPE = StructType("AsyncCallState", (("callback", StrType()), ("payload", BytesType())))

Invoker = Callable[[MethodDescriptor, Sequence[Any], CallFrame], Any]

__all__ = [
    "ASYNC_STATE_PREFIX",
    "ASYNC_NONCE_KEY",
    "CALL_ID_LEN",
    "AsyncCallState",
    "AsyncCallResult",
    "state_key",
    "ResumptionManager",
]


@dataclass(frozen=True)
class AsyncCallState:
    call_id: bytes
    payload: bytes
    callback: str

    def encode(self) -> bytes:
        return encode_top({"callback": self.callback, "payload": self.payload}, _STATE_TYPE)

    @classmethod
    def decode(cls, call_id: bytes, raw: bytes, *, strict: bool = True) -> "AsyncCallState":
        fields = decode_top(raw, _STATE_TYPE, strict=strict)
        return cls(call_id=call_id, payload=fields["payload"], callback=fields["callback"])


@dataclass(frozen=True)
class AsyncCallResult:
    """First argument of a structured callback."""

    ok: bool
    value: Any = None  # decoded success value (raw bytes when no result type is declared)
    error: bytes = b""  # failure payload from the remote call


def state_key(call_id: bytes) -> bytes:
    return compose_key(ASYNC_STATE_PREFIX, [(call_id, CALL_ID_TYPE)])


class ResumptionManager:
    def __init__(
        self,
        contract: Contract,
        host: Host,
        *,
        invoker: Invoker,
        config: Optional[CoreConfig] = None,
    ) -> None:
        self.contract = contract
        self.host = host
        self._invoke = invoker
        self._cfg = config or load_config()

    # --- closure payload ---------------------------------------------------

    def _callback(self, name: str) -> MethodDescriptor:
        m = self.contract.callback(name)
        if m is None:
            raise ClosureError(f"no callback named {name!r}", context={"callback": name})
        return m

    def encode_closure(self, callback: MethodDescriptor, captured: Optional[Mapping[str, Any]]) -> bytes:
        captured = dict(captured or {})
        declared = [p.name for p in callback.closure_params]
        if sorted(captured) != sorted(declared):
            raise ClosureError(
                f"captured fields do not match callback {callback.name!r}",
                context={
                    "missing": [n for n in declared if n not in captured],
                    "unexpected": sorted(n for n in captured if n not in declared),
                },
            )
        out = bytearray()
        for p in callback.closure_params:
            encode_nested(captured[p.name], p.type, out)
        if len(out) > self._cfg.max_closure_bytes:
            raise ClosureError(
                "closure payload too large",
                context={"len": len(out), "max": self._cfg.max_closure_bytes},
            )
        return bytes(out)

    def decode_closure(self, callback: MethodDescriptor, payload: bytes) -> List[Any]:
        values: List[Any] = []
        cursor = 0
        for p in callback.closure_params:
            v, cursor = decode_nested(payload, cursor, p.type)
            values.append(v)
        if cursor != len(payload):
            raise CodecError(
                "trailing bytes in closure payload",
                context={"callback": callback.name, "consumed": cursor, "length": len(payload)},
            )
        return values

    # --- call ids ----------------------------------------------------------

    def allocate_call_id(self) -> bytes:
        raw = self.host.storage.get(ASYNC_NONCE_KEY)
        nonce = decode_top(raw, _NONCE_TYPE, strict=self._cfg.strict_mode) + 1
        self.host.storage.set(ASYNC_NONCE_KEY, encode_top(nonce, _NONCE_TYPE))
        return hashlib.sha3_256(b"contract_core:async|" + nonce.to_bytes(8, "big")).digest()

    # --- entry points ------------------------------------------------------

    def issue(
        self,
        destination: bytes,
        payload: bytes = b"",
        *,
        callback: str,
        closure: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        method = self._callback(callback)
        if method.role is MethodRole.CALLBACK_RAW and closure:
            raise ClosureError(f"raw callback {callback!r} cannot capture a closure")
        encoded = self.encode_closure(method, closure)

        call_id = self.allocate_call_id()
        state = AsyncCallState(call_id=call_id, payload=encoded, callback=callback)
        self.host.storage.set(state_key(call_id), state.encode())
        assigned = self.host.transport.submit(bytes(destination), bytes(payload), call_id=call_id)
        if assigned != call_id:
            call_id = self._rekey(state, assigned)
        log.info(
            "async call issued",
            extra={"call_id": call_id, "callback": callback, "closure_bytes": len(encoded)},
        )
        return call_id

    def _rekey(self, state: AsyncCallState, assigned: Any) -> bytes:
        """Move the persisted state to the id the transport actually assigned."""
        if not isinstance(assigned, (bytes, bytearray)) or len(assigned) != CALL_ID_LEN:
            raise VmError(
                "transport returned a malformed call id",
                code="transport_error",
                context={"expected": state.call_id.hex()},
            )
        assigned = bytes(assigned)
        if self.host.storage.get(state_key(assigned)):
            raise VmError(
                "transport assigned a call id that is already pending",
                code="transport_error",
                context={"call_id": assigned.hex()},
            )
        self.host.storage.set(state_key(state.call_id), b"")
        self.host.storage.set(state_key(assigned), state.encode())
        return assigned

    def consume(self, call_id: bytes) -> AsyncCallState:
        """Load and delete the state for `call_id`; at most once."""
        if not isinstance(call_id, (bytes, bytearray)) or len(call_id) != CALL_ID_LEN:
            raise UnknownCallbackStateError("malformed async call id")
        k = state_key(bytes(call_id))
        raw = self.host.storage.get(k)
        if not raw:
            raise UnknownCallbackStateError(
                "no pending callback state for this call id",
                context={"call_id": bytes(call_id).hex()},
            )
        self.host.storage.set(k, b"")
        return AsyncCallState.decode(bytes(call_id), raw, strict=self._cfg.strict_mode)

    def resume(self, call_id: bytes, outcome: AsyncOutcome, frame: CallFrame) -> Any:
        state = self.consume(call_id)
        method = self.contract.callback(state.callback)
        if method is None:
            raise UnknownCallbackStateError(
                f"callback {state.callback!r} no longer exists",
                context={"call_id": state.call_id.hex()},
            )
        log.info("resuming async call", extra={"call_id": state.call_id, "callback": method.name, "ok": outcome.ok})

        if method.role is MethodRole.CALLBACK_RAW:
            return self._invoke(method, [outcome], frame)

        captured = self.decode_closure(method, state.payload)
        if not outcome.ok:
            result = AsyncCallResult(ok=False, error=outcome.data)
        elif method.result is not None:
            value = decode_top(outcome.data, method.result, strict=self._cfg.strict_mode)
            result = AsyncCallResult(ok=True, value=value)
        else:
            result = AsyncCallResult(ok=True, value=outcome.data)
        return self._invoke(method, [result, *captured], frame)
