"""
contract_core.runtime.dispatcher — the call entry point.

Every inbound call runs to completion through four phases:

    Resolve → Decode → Invoke → Encode

- Resolve: look the function identifier up among the public methods
  (constructor, endpoints, views, exposed storage getters). Unknown names
  raise UnknownFunctionError before anything else happens.
- Decode: `decode_top` each argument slice with the declared parameter type,
  positionally. Any failure aborts before contract logic runs, so malformed
  input can never cause a partial write.
- Invoke: call the method body with a fresh CallContext, or the generated
  wrapper for body-less storage getters.
- Encode: `encode_top` the result when the method declares a return type.

Endpoints and views go through exactly the same path; "view" is metadata
only and nothing here enforces read-only behaviour.
"""

from __future__ import annotations

from functools import partial
from typing import Any, List, Mapping, Optional, Sequence

from ..abi.decoding import decode_top
from ..abi.encoding import encode_top
from ..config import CoreConfig, load_config
from ..descriptors import Contract, MethodDescriptor, MethodRole, ParamTag
from ..errors import ArgumentCountError, CodecError, UnknownFunctionError, require
from ..logging import call_scope, get_logger
from .accessors import CallFrame
from .callbacks import ResumptionManager
from .host import Host
from .lifecycle import LifecycleController
from .transport_api import AsyncOutcome

log = get_logger(__name__)

# Attribute names CallContext owns; contract methods may not reuse them.
RESERVED_CONTEXT_NAMES = frozenset(("contract", "host", "function", "async_call", "require"))


class CallContext:
    """
    What contract logic sees during one call.

    Generated storage/event wrappers and private helpers are bound as plain
    attributes, so `ctx.get_sum()`, `ctx.transfer(a, b, n)` and
    `ctx.helper(x)` are ordinary method calls.
    """

    require = staticmethod(require)

    def __init__(self, contract: Contract, frame: CallFrame, *, function: str, resumption: ResumptionManager) -> None:
        self.contract = contract
        self.host = frame.host
        self.function = function
        self._resumption = resumption
        for name, wrapper in contract.generated.items():
            setattr(self, name, partial(wrapper, frame))
        for m in contract.by_role(MethodRole.PRIVATE):
            setattr(self, m.name, partial(m.func, self))

    def async_call(
        self,
        destination: bytes,
        payload: bytes = b"",
        *,
        callback: str,
        closure: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        """Submit an asynchronous call; returns its call id."""
        return self._resumption.issue(destination, payload, callback=callback, closure=closure)


class Dispatcher:
    def __init__(self, contract: Contract, host: Host, *, config: Optional[CoreConfig] = None) -> None:
        self.contract = contract
        self.host = host
        self.config = config or load_config()
        self.lifecycle = LifecycleController(host.flags)
        self.resumption = ResumptionManager(contract, host, invoker=self.invoke, config=self.config)

    # --- phases ------------------------------------------------------------

    def resolve(self, function: str) -> MethodDescriptor:
        method = self.contract.public(function) if isinstance(function, str) else None
        if method is None:
            raise UnknownFunctionError(
                f"unknown function {function!r}",
                context={"contract": self.contract.name, "function": str(function)},
            )
        return method

    def decode_arguments(self, method: MethodDescriptor, slices: Sequence[bytes]) -> List[Any]:
        params = [p for p in method.params if p.tag in (ParamTag.ARG, ParamTag.KEY)]
        if len(slices) != len(params):
            raise ArgumentCountError(
                f"{method.name} expects {len(params)} arguments, got {len(slices)}",
                context={"function": method.name, "expected": len(params), "got": len(slices)},
            )
        args: List[Any] = []
        for index, (p, raw) in enumerate(zip(params, slices)):
            if not isinstance(raw, (bytes, bytearray, memoryview)):
                raise CodecError("argument slices must be bytes", context={"index": index})
            if len(raw) > self.config.max_argument_bytes:
                raise CodecError(
                    "argument slice too large",
                    context={"index": index, "len": len(raw), "max": self.config.max_argument_bytes},
                )
            try:
                args.append(decode_top(bytes(raw), p.type, strict=self.config.strict_mode))
            except CodecError as e:
                e.context.setdefault("argument", p.name)
                raise
        log.debug("decoded arguments", extra={"count": len(args)})
        return args

    def new_frame(self) -> CallFrame:
        return CallFrame(self.host, self.config)

    def invoke(self, method: MethodDescriptor, args: Sequence[Any], frame: Optional[CallFrame] = None) -> Any:
        frame = frame or self.new_frame()
        if method.func is None:
            return self.contract.generated[method.name](frame, *args)
        ctx = CallContext(self.contract, frame, function=method.name, resumption=self.resumption)
        return method.func(ctx, *args)

    def encode_result(self, method: MethodDescriptor, value: Any) -> Optional[bytes]:
        if method.returns is None:
            return None
        out = encode_top(value, method.returns)
        if len(out) > self.config.max_return_bytes:
            raise CodecError(
                "return value too large",
                context={"len": len(out), "max": self.config.max_return_bytes},
            )
        return out

    # --- entry points ------------------------------------------------------

    def dispatch(self, function: str, slices: Sequence[bytes] = ()) -> Optional[bytes]:
        with call_scope(contract=self.contract.name, function=function):
            method = self.resolve(function)
            log.debug("resolved", extra={"role": method.role.value})
            if method.role is MethodRole.CONSTRUCTOR:
                return self.lifecycle.run_constructor(lambda: self._run(method, slices))
            return self._run(method, slices)

    def _run(self, method: MethodDescriptor, slices: Sequence[bytes]) -> Optional[bytes]:
        args = self.decode_arguments(method, slices)
        value = self.invoke(method, args)
        return self.encode_result(method, value)

    def resume(self, call_id: bytes, outcome: AsyncOutcome) -> None:
        with call_scope(contract=self.contract.name, call_id=call_id, phase="resume"):
            self.resumption.resume(call_id, outcome, self.new_frame())


__all__ = ["RESERVED_CONTEXT_NAMES", "CallContext", "Dispatcher"]
