"""
contract_core.runtime.transport_api — asynchronous cross-shard call transport.

The host delivers outbound asynchronous calls and, later, their outcomes.
The core consumes one primitive:

    submit(destination, payload, call_id=None) -> call_id

and is re-entered through ContractInstance.deliver(call_id, outcome) when the
host has a result. `MemoryTransport` queues submitted calls in-process so
tests and the CLI can play the host's role.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..errors import VmError


@dataclass(frozen=True)
class AsyncOutcome:
    """Result of a remote call: success value bytes or failure payload bytes."""

    ok: bool
    data: bytes = b""

    @classmethod
    def success(cls, data: bytes = b"") -> "AsyncOutcome":
        return cls(True, bytes(data))

    @classmethod
    def failure(cls, data: bytes = b"") -> "AsyncOutcome":
        return cls(False, bytes(data))


@dataclass(frozen=True)
class PendingCall:
    call_id: bytes
    destination: bytes
    payload: bytes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "call_id": "0x" + self.call_id.hex(),
            "destination": "0x" + self.destination.hex(),
            "payload": "0x" + self.payload.hex(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "PendingCall":
        return cls(
            call_id=bytes.fromhex(d["call_id"][2:]),
            destination=bytes.fromhex(d["destination"][2:]),
            payload=bytes.fromhex(d["payload"][2:]),
        )


@runtime_checkable
class AsyncTransport(Protocol):
    def submit(self, destination: bytes, payload: bytes, call_id: Optional[bytes] = None) -> bytes: ...


@dataclass
class MemoryTransport:
    """In-process transport: submitted calls wait in `pending` until taken."""

    pending: Dict[bytes, PendingCall] = field(default_factory=dict)
    _counter: int = 0

    def submit(self, destination: bytes, payload: bytes, call_id: Optional[bytes] = None) -> bytes:
        if call_id is None:
            self._counter += 1
            call_id = hashlib.sha3_256(b"memory-transport|" + self._counter.to_bytes(8, "big")).digest()
        if call_id in self.pending:
            raise VmError("duplicate async call id", code="transport_error", context={"call_id": call_id.hex()})
        self.pending[call_id] = PendingCall(bytes(call_id), bytes(destination), bytes(payload))
        return call_id

    def take(self, call_id: bytes) -> PendingCall:
        try:
            return self.pending.pop(call_id)
        except KeyError:
            raise VmError(
                "no pending async call with this id",
                code="transport_error",
                context={"call_id": call_id.hex()},
            ) from None

    def pending_ids(self) -> List[bytes]:
        return list(self.pending)


__all__ = ["AsyncOutcome", "PendingCall", "AsyncTransport", "MemoryTransport"]
