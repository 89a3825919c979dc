"""
contract_core.runtime.accessors — wrapper generation for body-less methods.

Storage accessors and events are declared without a body. At assembly time
`generate_wrappers` walks the descriptor table once and produces one plain
function per such method; calls go straight to that function with no
per-call lookup of the descriptor.

Each generated wrapper takes the CallFrame of the running call as its first
argument; CallContext binds it so contract logic calls e.g. `ctx.get_sum()`
or `ctx.transfer(a, b, n)`. The frame carries the host, the instance config
(decoding strictness, caps) and the per-call log count.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple

from ..abi.decoding import decode_top
from ..abi.encoding import encode_top
from ..abi.types import AbiType
from ..config import CoreConfig
from ..descriptors import MethodDescriptor, MethodRole, StorageDirection
from ..errors import ArgumentCountError, VmError
from .event_encoder import encode_event
from .events_api import LogRecord
from .host import Host
from .keys import compose_key

Wrapper = Callable[..., Any]

__all__ = ["CallFrame", "Wrapper", "build_storage_accessor", "build_event_emitter", "generate_wrappers"]


@dataclass
class CallFrame:
    """State scoped to one inbound call (entry or callback re-entry)."""

    host: Host
    config: CoreConfig
    logs_emitted: int = 0

    def count_log(self) -> None:
        if self.logs_emitted >= self.config.max_logs_per_call:
            raise VmError(
                "too many logs emitted",
                code="log_limit",
                context={"max": self.config.max_logs_per_call},
            )
        self.logs_emitted += 1


def _key_args(method: MethodDescriptor, key_types: Tuple[AbiType, ...], values: Sequence[Any]) -> List[Tuple[Any, AbiType]]:
    if len(values) != len(key_types):
        raise ArgumentCountError(
            f"{method.name} expects {len(key_types)} key arguments, got {len(values)}",
            context={"method": method.name},
        )
    return list(zip(values, key_types))


def build_storage_accessor(method: MethodDescriptor) -> Wrapper:
    acc = method.storage
    if acc is None:
        raise ValueError(f"{method.name} has no storage descriptor")
    prefix, key_types, value_type = acc.prefix, acc.key_types, acc.value_type

    if acc.direction is StorageDirection.GET:

        def wrapper(frame: CallFrame, *key_values: Any) -> Any:
            k = compose_key(prefix, _key_args(method, key_types, key_values))
            return decode_top(frame.host.storage.get(k), value_type, strict=frame.config.strict_mode)

    elif acc.direction is StorageDirection.SET:

        def wrapper(frame: CallFrame, *args: Any) -> None:
            if not args:
                raise ArgumentCountError(f"{method.name} expects a value argument")
            *key_values, value = args
            k = compose_key(prefix, _key_args(method, key_types, key_values))
            frame.host.storage.set(k, encode_top(value, value_type))

    elif acc.direction is StorageDirection.IS_EMPTY:

        def wrapper(frame: CallFrame, *key_values: Any) -> bool:
            k = compose_key(prefix, _key_args(method, key_types, key_values))
            return frame.host.storage.get(k) == b""

    else:

        def wrapper(frame: CallFrame, *key_values: Any) -> None:
            k = compose_key(prefix, _key_args(method, key_types, key_values))
            frame.host.storage.set(k, b"")

    wrapper.__name__ = wrapper.__qualname__ = method.name
    return wrapper


def build_event_emitter(method: MethodDescriptor) -> Wrapper:
    descriptor = method.event
    if descriptor is None:
        raise ValueError(f"{method.name} has no event descriptor")

    def emitter(frame: CallFrame, *values: Any) -> LogRecord:
        record = encode_event(descriptor, values)
        frame.count_log()
        frame.host.logs.emit(record.topics, record.data)
        return record

    emitter.__name__ = emitter.__qualname__ = method.name
    return emitter


def generate_wrappers(methods: Mapping[str, MethodDescriptor]) -> Dict[str, Wrapper]:
    out: Dict[str, Wrapper] = {}
    for name, m in methods.items():
        if m.storage is not None:
            out[name] = build_storage_accessor(m)
        elif m.role is MethodRole.EVENT:
            out[name] = build_event_emitter(m)
    return out
