"""
contract_core — contract runtime core: codec, storage keys, events, dispatch,
lifecycle and asynchronous callback resumption.

A small, stable façade so contract authors and hosts need one import:

- ContractBuilder / key / indexed / data / closure
    Declare endpoints, views, storage accessors, events and callbacks.
- ContractInstance(contract, host)
    deploy / call / deliver / upgrade / execute against host primitives.
- encode_top / decode_top / encode_nested / decode_nested / parse_type
    The type-directed codec.
- compose_key(prefix, key_args)
    Storage key derivation shared by generated accessors and external tooling.
"""

from __future__ import annotations

from .abi import (
    ABITypeError,
    decode_nested,
    decode_top,
    encode_nested,
    encode_top,
    parse_type,
)
from .config import CoreConfig, load_config
from .contract import ContractBuilder
from .descriptors import Contract, MethodRole, closure, data, indexed, key, param
from .errors import (
    ArgumentCountError,
    ClosureError,
    CodecError,
    ConstructorAlreadyRunError,
    ContractAssemblyError,
    ContractError,
    EventArityError,
    UnknownCallbackStateError,
    UnknownFunctionError,
    ValidationError,
    VmError,
    require,
)
from .runtime import (
    AsyncOutcome,
    CallResult,
    ContractInstance,
    Host,
    InstanceFlags,
    LogRecord,
    MemoryLogSink,
    MemoryStorage,
    MemoryTransport,
)
from .runtime.callbacks import AsyncCallResult
from .runtime.keys import compose_key
from .version import __version__


def version() -> str:
    """Return the contract_core semantic version string."""
    return __version__


__all__ = [
    "__version__",
    "version",
    # codec
    "ABITypeError",
    "decode_nested",
    "decode_top",
    "encode_nested",
    "encode_top",
    "parse_type",
    "compose_key",
    # declaration
    "ContractBuilder",
    "Contract",
    "MethodRole",
    "closure",
    "data",
    "indexed",
    "key",
    "param",
    # runtime
    "AsyncCallResult",
    "AsyncOutcome",
    "CallResult",
    "ContractInstance",
    "Host",
    "InstanceFlags",
    "LogRecord",
    "MemoryLogSink",
    "MemoryStorage",
    "MemoryTransport",
    # config / errors
    "CoreConfig",
    "load_config",
    "ArgumentCountError",
    "ClosureError",
    "CodecError",
    "ConstructorAlreadyRunError",
    "ContractAssemblyError",
    "ContractError",
    "EventArityError",
    "UnknownCallbackStateError",
    "UnknownFunctionError",
    "ValidationError",
    "VmError",
    "require",
]
