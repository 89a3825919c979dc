"""
contract_core.runtime.storage_api — host storage primitive consumed by the core.

The host owns durable storage; the core only ever calls two operations:

- get(key: bytes) -> bytes        # b"" when absent
- set(key: bytes, value: bytes)   # writing b"" clears the cell

`MemoryStorage` is the in-process reference backend used for local runs,
the CLI and tests. It enforces the configured key/value caps and can
snapshot its contents so callers can diff state across a call.
"""

from __future__ import annotations

from typing import Dict, Iterator, Mapping, Optional, Protocol, Tuple, runtime_checkable

from ..config import CoreConfig, load_config
from ..errors import VmError


@runtime_checkable
class StorageBackend(Protocol):
    """Minimal host storage interface."""

    def get(self, key: bytes) -> bytes: ...
    def set(self, key: bytes, value: bytes) -> None: ...


def check_key(key: bytes, cfg: CoreConfig) -> bytes:
    if not isinstance(key, (bytes, bytearray)):
        raise VmError("storage key must be bytes", code="storage_invalid")
    if len(key) == 0:
        raise VmError("storage key must be non-empty", code="storage_invalid")
    if len(key) > cfg.max_storage_key_bytes:
        raise VmError(
            f"storage key too long (>{cfg.max_storage_key_bytes} bytes)",
            code="storage_limit",
            context={"len": len(key)},
        )
    return bytes(key)


def check_value(value: bytes, cfg: CoreConfig) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise VmError("storage value must be bytes", code="storage_invalid")
    if len(value) > cfg.max_storage_value_bytes:
        raise VmError(
            f"storage value too large (>{cfg.max_storage_value_bytes} bytes)",
            code="storage_limit",
            context={"len": len(value)},
        )
    return bytes(value)


class MemoryStorage:
    """Dict-backed storage; empty values are not kept."""

    def __init__(
        self,
        initial: Optional[Mapping[bytes, bytes]] = None,
        *,
        config: Optional[CoreConfig] = None,
    ) -> None:
        self._cfg = config or load_config()
        self._store: Dict[bytes, bytes] = {}
        for k, v in (initial or {}).items():
            self.set(k, v)

    def get(self, key: bytes) -> bytes:
        return self._store.get(check_key(key, self._cfg), b"")

    def set(self, key: bytes, value: bytes) -> None:
        k = check_key(key, self._cfg)
        v = check_value(value, self._cfg)
        if v:
            self._store[k] = v
        else:
            self._store.pop(k, None)

    def snapshot(self) -> Dict[bytes, bytes]:
        """Copy of the current contents, for state diffs."""
        return dict(self._store)

    def items(self) -> Iterator[Tuple[bytes, bytes]]:
        return iter(sorted(self._store.items()))

    def __len__(self) -> int:
        return len(self._store)

    def __contains__(self, key: object) -> bool:
        return key in self._store


__all__ = [
    "StorageBackend",
    "MemoryStorage",
    "check_key",
    "check_value",
]
