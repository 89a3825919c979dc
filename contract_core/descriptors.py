"""
contract_core.descriptors — immutable metadata describing a contract.

A contract is a table of tagged method declarations fixed at assembly time:

    MethodDescriptor(name, role, params, returns)
      role ∈ constructor | endpoint | view | private | storage_get | storage_set
             | storage_is_empty | storage_clear | event | callback | callback_raw
      params: ordered ParamDescriptor(name, type, tag)

Storage and event methods carry no body: they hold a StorageAccessorDescriptor
or EventDescriptor from which the framework generates the wrapper
(see runtime/accessors.py). Descriptors are plain frozen data; building and
validating the table is ContractBuilder's job (contract.py).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from .abi.types import AbiType, TypeLike, as_type
from .errors import ContractAssemblyError


class MethodRole(str, Enum):
    CONSTRUCTOR = "constructor"
    ENDPOINT = "endpoint"
    VIEW = "view"
    PRIVATE = "private"
    STORAGE_GET = "storage_get"
    STORAGE_SET = "storage_set"
    STORAGE_IS_EMPTY = "storage_is_empty"
    STORAGE_CLEAR = "storage_clear"
    EVENT = "event"
    CALLBACK = "callback"
    CALLBACK_RAW = "callback_raw"


STORAGE_ROLES = frozenset(
    (MethodRole.STORAGE_GET, MethodRole.STORAGE_SET, MethodRole.STORAGE_IS_EMPTY, MethodRole.STORAGE_CLEAR)
)
CALLBACK_ROLES = frozenset((MethodRole.CALLBACK, MethodRole.CALLBACK_RAW))


class ParamTag(str, Enum):
    ARG = "arg"
    KEY = "key"
    VALUE = "value"
    INDEXED = "indexed"
    DATA = "data"
    CLOSURE = "closure"


@dataclass(frozen=True)
class ParamDescriptor:
    name: str
    type: AbiType
    tag: ParamTag = ParamTag.ARG

    def __post_init__(self) -> None:
        if not isinstance(self.name, str) or not self.name.isidentifier():
            raise ContractAssemblyError(f"invalid parameter name {self.name!r}")
        object.__setattr__(self, "type", as_type(self.type))

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type.name, "tag": self.tag.value}


def param(name: str, typ: TypeLike) -> ParamDescriptor:
    return ParamDescriptor(name, typ, ParamTag.ARG)


def key(name: str, typ: TypeLike) -> ParamDescriptor:
    return ParamDescriptor(name, typ, ParamTag.KEY)


def indexed(name: str, typ: TypeLike) -> ParamDescriptor:
    return ParamDescriptor(name, typ, ParamTag.INDEXED)


def data(name: str, typ: TypeLike) -> ParamDescriptor:
    return ParamDescriptor(name, typ, ParamTag.DATA)


def closure(name: str, typ: TypeLike) -> ParamDescriptor:
    return ParamDescriptor(name, typ, ParamTag.CLOSURE)


class StorageDirection(str, Enum):
    GET = "get"
    SET = "set"
    IS_EMPTY = "is_empty"
    CLEAR = "clear"


@dataclass(frozen=True)
class StorageAccessorDescriptor:
    """
    Static key prefix + ordered key-argument types + value type.

    For GET/IS_EMPTY/CLEAR every parameter is a key argument; for SET the last
    parameter is the value and all preceding ones are key arguments.
    """

    prefix: bytes
    key_types: Tuple[AbiType, ...]
    value_type: Optional[AbiType]
    direction: StorageDirection

    @classmethod
    def from_params(
        cls,
        prefix: bytes,
        params: Tuple[ParamDescriptor, ...],
        direction: StorageDirection,
        value_type: Optional[AbiType] = None,
    ) -> "StorageAccessorDescriptor":
        if not isinstance(prefix, (bytes, bytearray)) or not prefix:
            raise ContractAssemblyError("storage prefix must be non-empty bytes")
        keys = params
        if direction is StorageDirection.SET:
            if not params or params[-1].tag is not ParamTag.VALUE:
                raise ContractAssemblyError("storage setter's last parameter must be the value")
            keys = params[:-1]
            value_type = params[-1].type
        bad = [p.name for p in keys if p.tag is not ParamTag.KEY]
        if bad:
            raise ContractAssemblyError(f"storage accessor parameters must be keys: {bad}")
        if direction in (StorageDirection.GET, StorageDirection.SET) and value_type is None:
            raise ContractAssemblyError("storage get/set needs a value type")
        return cls(bytes(prefix), tuple(p.type for p in keys), value_type, direction)


@dataclass(frozen=True)
class EventArg:
    name: str
    type: AbiType
    indexed: bool


@dataclass(frozen=True)
class EventDescriptor:
    """Event identifier + ordered arguments; at most one argument is Data."""

    name: bytes
    args: Tuple[EventArg, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.name, (bytes, bytearray)) or not self.name:
            raise ContractAssemblyError("event name must be non-empty bytes")
        if sum(1 for a in self.args if not a.indexed) > 1:
            raise ContractAssemblyError(
                "event may declare at most one data argument",
                context={"event": bytes(self.name).decode("utf-8", "replace")},
            )

    @classmethod
    def from_params(cls, name: bytes, params: Tuple[ParamDescriptor, ...]) -> "EventDescriptor":
        args = []
        for p in params:
            if p.tag not in (ParamTag.INDEXED, ParamTag.DATA):
                raise ContractAssemblyError(f"event argument {p.name!r} must be indexed or data")
            args.append(EventArg(p.name, p.type, p.tag is ParamTag.INDEXED))
        return cls(bytes(name), tuple(args))

    @property
    def indexed_count(self) -> int:
        return sum(1 for a in self.args if a.indexed)


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    role: MethodRole
    params: Tuple[ParamDescriptor, ...] = ()
    returns: Optional[AbiType] = None
    func: Optional[Callable[..., Any]] = field(default=None, compare=False, repr=False)
    storage: Optional[StorageAccessorDescriptor] = None
    event: Optional[EventDescriptor] = None
    result: Optional[AbiType] = None  # callbacks: success value type of the async call
    exposed: bool = False  # storage getters published as views

    @property
    def is_public(self) -> bool:
        return self.role in (MethodRole.CONSTRUCTOR, MethodRole.ENDPOINT, MethodRole.VIEW) or self.exposed

    @property
    def has_body(self) -> bool:
        return self.func is not None

    @property
    def closure_params(self) -> Tuple[ParamDescriptor, ...]:
        return tuple(p for p in self.params if p.tag is ParamTag.CLOSURE)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "kind": MethodRole.VIEW.value if self.exposed else self.role.value,
            "inputs": [{"name": p.name, "type": p.type.name} for p in self.params],
            "outputs": [self.returns.name] if self.returns is not None else [],
        }
        if self.result is not None:
            out["result"] = self.result.name
        return out


@dataclass(frozen=True)
class Contract:
    """
    Aggregate root: one constructor plus every other descriptor, and the
    wrapper functions generated for body-less methods.
    """

    name: str
    constructor: MethodDescriptor
    methods: Mapping[str, MethodDescriptor]
    generated: Mapping[str, Callable[..., Any]] = field(default_factory=dict, compare=False, repr=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "methods", MappingProxyType(dict(self.methods)))
        object.__setattr__(self, "generated", MappingProxyType(dict(self.generated)))

    def public(self, name: str) -> Optional[MethodDescriptor]:
        m = self.methods.get(name)
        return m if m is not None and m.is_public else None

    def callback(self, name: str) -> Optional[MethodDescriptor]:
        m = self.methods.get(name)
        return m if m is not None and m.role in CALLBACK_ROLES else None

    def by_role(self, *roles: MethodRole) -> List[MethodDescriptor]:
        return [m for m in self.methods.values() if m.role in roles]

    def abi(self) -> Dict[str, Any]:
        """JSON-serialisable description of the public surface and events."""
        return {
            "name": self.name,
            "constructor": self.constructor.to_dict(),
            "endpoints": [
                m.to_dict()
                for m in self.methods.values()
                if m.is_public and m.role is not MethodRole.CONSTRUCTOR
            ],
            "events": [
                {
                    "name": m.name,
                    "identifier": m.event.name.decode("utf-8", "replace"),
                    "inputs": [
                        {"name": a.name, "type": a.type.name, "indexed": a.indexed} for a in m.event.args
                    ],
                }
                for m in self.by_role(MethodRole.EVENT)
                if m.event is not None
            ],
            "callbacks": [m.to_dict() for m in self.by_role(*CALLBACK_ROLES)],
        }


__all__ = [
    "MethodRole",
    "STORAGE_ROLES",
    "CALLBACK_ROLES",
    "ParamTag",
    "ParamDescriptor",
    "param",
    "key",
    "indexed",
    "data",
    "closure",
    "StorageDirection",
    "StorageAccessorDescriptor",
    "EventArg",
    "EventDescriptor",
    "MethodDescriptor",
    "Contract",
]
