"""
contract_core.runtime.event_encoder — descriptor + values → log record.

    topics[0]  = event name, raw
    topics[1:] = encode_top(value) of each indexed argument, in declaration order
    data       = encode_top(value) of the single data argument, or b""

The record is handed to the host log primitive by the generated emitter
(accessors.py); nothing here persists or hashes.
"""

from __future__ import annotations

from typing import Any, List, Sequence

from ..abi.encoding import encode_top
from ..descriptors import EventDescriptor
from ..errors import EventArityError
from .events_api import LogRecord

__all__ = ["encode_event"]


def encode_event(descriptor: EventDescriptor, values: Sequence[Any]) -> LogRecord:
    if len(values) != len(descriptor.args):
        raise EventArityError(
            "event argument count does not match its descriptor",
            context={
                "event": descriptor.name.decode("utf-8", "replace"),
                "expected": len(descriptor.args),
                "got": len(values),
            },
        )
    topics: List[bytes] = [descriptor.name]
    data = b""
    for arg, value in zip(descriptor.args, values):
        if arg.indexed:
            topics.append(encode_top(value, arg.type))
        else:
            data = encode_top(value, arg.type)
    return LogRecord(tuple(topics), data)
