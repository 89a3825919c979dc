"""
contract_core.runtime.instance — host-facing façade for one deployed contract.

    inst = ContractInstance(contract, host)
    inst.deploy([encode_top(5, "uint64")])
    out = inst.call("add", [encode_top(3, "uint64")])      # raises VmError
    res = inst.execute("get_sum")                          # CallResult envelope
    inst.deliver(call_id, AsyncOutcome.success(b"\x07"))   # callback re-entry
    inst.upgrade(new_contract, [...])

`call`/`deliver` raise; `execute`/`execute_callback` convert any VmError into
a failure envelope the host can serialise. Unexpected Python exceptions are
not converted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple

from ..config import CoreConfig
from ..descriptors import Contract
from ..errors import VmError
from ..logging import get_logger
from .dispatcher import Dispatcher
from .events_api import LogRecord
from .host import Host
from .transport_api import AsyncOutcome

log = get_logger(__name__)


@dataclass
class CallResult:
    ok: bool
    output: Optional[bytes] = None
    error: Optional[Dict[str, Any]] = None
    logs: Tuple[LogRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": self.ok,
            "output": None if self.output is None else "0x" + self.output.hex(),
            "error": self.error,
            "logs": [r.to_dict() for r in self.logs],
        }


class ContractInstance:
    def __init__(self, contract: Contract, host: Optional[Host] = None, *, config: Optional[CoreConfig] = None) -> None:
        self.host = host or Host()
        self._config = config
        self._bind(contract)

    def _bind(self, contract: Contract) -> None:
        self.contract = contract
        self.dispatcher = Dispatcher(contract, self.host, config=self._config)

    # --- lifecycle ---------------------------------------------------------

    def deploy(self, args: Sequence[bytes] = ()) -> Optional[bytes]:
        return self.dispatcher.dispatch(self.contract.constructor.name, args)

    def upgrade(self, contract: Contract, args: Sequence[bytes] = ()) -> Optional[bytes]:
        """Swap in new code, reset the pending flag and run its constructor once."""
        self.dispatcher.lifecycle.reset_for_upgrade()
        self._bind(contract)
        return self.deploy(args)

    # --- entry points ------------------------------------------------------

    def call(self, function: str, args: Sequence[bytes] = ()) -> Optional[bytes]:
        return self.dispatcher.dispatch(function, args)

    def deliver(self, call_id: bytes, outcome: AsyncOutcome) -> None:
        self.dispatcher.resume(call_id, outcome)

    def execute(self, function: str, args: Sequence[bytes] = ()) -> CallResult:
        return self._envelope(lambda: self.call(function, args), function=function)

    def execute_callback(self, call_id: bytes, outcome: AsyncOutcome) -> CallResult:
        return self._envelope(lambda: self.deliver(call_id, outcome), function="<callback>")

    def _envelope(self, run: Any, *, function: str) -> CallResult:
        records = getattr(self.host.logs, "records", None)
        start = len(records) if records is not None else 0
        try:
            output = run()
        except VmError as e:
            log.warning(
                "call failed",
                extra={"function": function, "code": e.code, "error": e.message},
            )
            return CallResult(ok=False, error=e.to_dict(), logs=self._new_logs(start))
        return CallResult(ok=True, output=output, logs=self._new_logs(start))

    def _new_logs(self, start: int) -> Tuple[LogRecord, ...]:
        records = getattr(self.host.logs, "records", None)
        return tuple(records[start:]) if records is not None else ()


__all__ = ["CallResult", "ContractInstance"]
