from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Protocol, Sequence, Tuple, runtime_checkable


@dataclass(frozen=True)
class LogRecord:
    """
    Encoded event record handed to the host log primitive.

        topics: topic 0 is the raw event name, then one encoded topic per
                indexed argument in declaration order
        data:   top-level encoding of the single data argument (or b"")
    """

    topics: Tuple[bytes, ...]
    data: bytes = b""

    @property
    def name(self) -> bytes:
        return self.topics[0] if self.topics else b""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topics": ["0x" + t.hex() for t in self.topics],
            "data": "0x" + self.data.hex(),
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "LogRecord":
        return cls(
            topics=tuple(bytes.fromhex(t[2:]) for t in d.get("topics", [])),
            data=bytes.fromhex(str(d.get("data", "0x"))[2:]),
        )


@runtime_checkable
class LogSink(Protocol):
    def emit(self, topics: Sequence[bytes], data: bytes) -> None: ...


@dataclass
class MemoryLogSink:
    """Ordered in-memory log. The per-call record cap is enforced by the dispatcher."""

    records: List[LogRecord] = field(default_factory=list)

    def emit(self, topics: Sequence[bytes], data: bytes) -> None:
        self.records.append(LogRecord(tuple(bytes(t) for t in topics), bytes(data)))

    def clear(self) -> None:
        self.records.clear()

    def __len__(self) -> int:
        return len(self.records)


__all__ = ["LogRecord", "LogSink", "MemoryLogSink"]
