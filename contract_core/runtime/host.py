"""
contract_core.runtime.host — the bundle of host primitives one instance runs against.

A `Host` groups the storage, log, and transport primitives with the
per-instance lifecycle flags the host persists *outside* contract storage.
Real hosts pass their own backends; the defaults are in-memory.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict

from .events_api import LogSink, MemoryLogSink
from .storage_api import MemoryStorage, StorageBackend
from .transport_api import AsyncTransport, MemoryTransport


@dataclass
class InstanceFlags:
    """Host-owned flags for one deployed contract instance."""

    constructor_pending: bool = True

    def reset_for_upgrade(self) -> None:
        self.constructor_pending = True

    def to_dict(self) -> Dict[str, Any]:
        return {"constructor_pending": self.constructor_pending}


@dataclass
class Host:
    storage: StorageBackend = field(default_factory=MemoryStorage)
    logs: LogSink = field(default_factory=MemoryLogSink)
    transport: AsyncTransport = field(default_factory=MemoryTransport)
    flags: InstanceFlags = field(default_factory=InstanceFlags)


__all__ = ["InstanceFlags", "Host"]
