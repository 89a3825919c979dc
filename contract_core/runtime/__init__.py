"""
contract_core runtime — dispatch, storage/event wrappers, lifecycle and
callback resumption over a pluggable Host.

    from contract_core.runtime import ContractInstance, Host, MemoryStorage
    from contract_core.runtime import keys, callbacks   # module namespaces

Notes
-----
- All state changes go through the Host primitives (storage get/set, log
  emit, async submit). Nothing here touches wall-clock time or randomness.
- Reserved storage keys start with 0x00; contract prefixes should not.
"""

from __future__ import annotations

from ..version import __version__  # re-export
from . import callbacks as callbacks
from . import keys as keys
from .accessors import CallFrame
from .dispatcher import CallContext, Dispatcher
from .events_api import LogRecord, LogSink, MemoryLogSink
from .host import Host, InstanceFlags
from .instance import CallResult, ContractInstance
from .storage_api import MemoryStorage, StorageBackend
from .transport_api import AsyncOutcome, AsyncTransport, MemoryTransport, PendingCall

__all__ = [
    "__version__",
    "callbacks",
    "keys",
    "CallFrame",
    "CallContext",
    "Dispatcher",
    "LogRecord",
    "LogSink",
    "MemoryLogSink",
    "Host",
    "InstanceFlags",
    "CallResult",
    "ContractInstance",
    "MemoryStorage",
    "StorageBackend",
    "AsyncOutcome",
    "AsyncTransport",
    "MemoryTransport",
    "PendingCall",
]
