"""
contract_core.contract — declare a contract and assemble its descriptor table.

    from contract_core import ContractBuilder, key, indexed, data, closure

    c = ContractBuilder("adder")

    c.storage_get("get_sum", b"sum", value="uint64", expose=True)
    c.storage_set("set_sum", b"sum", value="uint64")
    c.event("transfer", b"transfer", indexed("from", "address"), data("amount", "uint64"))

    @c.init(("initial", "uint64"))
    def init(ctx, initial):
        ctx.set_sum(initial)

    @c.endpoint(("value", "uint64"))
    def add(ctx, value):
        ctx.set_sum(ctx.get_sum() + value)

    contract = c.assemble()

Parameters may be given as ParamDescriptor objects or (name, type) pairs; a
pair gets the tag that fits its position (argument, storage key, closure
field). Event arguments must be tagged explicitly with `indexed`/`data`.

`assemble` validates the whole table once and runs the wrapper generation
pass for every body-less method. Nothing is looked up by reflection at call
time.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .abi.types import AbiType, BoolType, TypeLike, as_type
from .config import CoreConfig, load_config
from .descriptors import (
    CALLBACK_ROLES,
    Contract,
    EventDescriptor,
    MethodDescriptor,
    MethodRole,
    ParamDescriptor,
    ParamTag,
    StorageAccessorDescriptor,
    StorageDirection,
)
from .errors import ContractAssemblyError
from .logging import get_logger
from .runtime.accessors import generate_wrappers
from .runtime.dispatcher import RESERVED_CONTEXT_NAMES

log = get_logger(__name__)

ParamLike = Union[ParamDescriptor, Tuple[str, TypeLike]]
F = Callable[..., Any]


def _as_param(p: ParamLike, tag: ParamTag) -> ParamDescriptor:
    if isinstance(p, ParamDescriptor):
        return p
    if isinstance(p, tuple) and len(p) == 2:
        return ParamDescriptor(p[0], p[1], tag)
    raise ContractAssemblyError(f"cannot interpret parameter {p!r}")


def _params(items: Iterable[ParamLike], tag: ParamTag) -> Tuple[ParamDescriptor, ...]:
    return tuple(_as_param(p, tag) for p in items)


def _prefix(prefix: Union[bytes, str]) -> bytes:
    return prefix.encode("utf-8") if isinstance(prefix, str) else bytes(prefix)


class ContractBuilder:
    def __init__(self, name: str, *, config: Optional[CoreConfig] = None) -> None:
        self.name = name
        self._cfg = config or load_config()
        self._methods: Dict[str, MethodDescriptor] = {}
        self._order: List[str] = []

    # --- registration ------------------------------------------------------

    def _add(self, m: MethodDescriptor) -> MethodDescriptor:
        if not isinstance(m.name, str) or not m.name.isidentifier():
            raise ContractAssemblyError(f"invalid method name {m.name!r}")
        if m.name.startswith("_") or m.name in RESERVED_CONTEXT_NAMES:
            raise ContractAssemblyError(f"method name {m.name!r} is reserved")
        if m.name in self._methods:
            raise ContractAssemblyError(f"duplicate method name {m.name!r}", context={"contract": self.name})
        self._methods[m.name] = m
        self._order.append(m.name)
        return m

    def _decorator(
        self,
        role: MethodRole,
        params: Tuple[ParamDescriptor, ...],
        *,
        returns: Optional[TypeLike] = None,
        name: Optional[str] = None,
        result: Optional[TypeLike] = None,
    ) -> Callable[[F], F]:
        ret = as_type(returns) if returns is not None else None
        res = as_type(result) if result is not None else None

        def register(func: F) -> F:
            self._add(
                MethodDescriptor(
                    name=name or func.__name__,
                    role=role,
                    params=params,
                    returns=ret,
                    func=func,
                    result=res,
                )
            )
            return func

        return register

    def init(self, *params: ParamLike, returns: Optional[TypeLike] = None, name: str = "init") -> Callable[[F], F]:
        return self._decorator(MethodRole.CONSTRUCTOR, _params(params, ParamTag.ARG), returns=returns, name=name)

    def endpoint(self, *params: ParamLike, returns: Optional[TypeLike] = None, name: Optional[str] = None) -> Callable[[F], F]:
        return self._decorator(MethodRole.ENDPOINT, _params(params, ParamTag.ARG), returns=returns, name=name)

    def view(self, *params: ParamLike, returns: Optional[TypeLike] = None, name: Optional[str] = None) -> Callable[[F], F]:
        return self._decorator(MethodRole.VIEW, _params(params, ParamTag.ARG), returns=returns, name=name)

    def private(self, func: Optional[F] = None, *, name: Optional[str] = None) -> Any:
        """Internal helper, reachable only from contract logic as `ctx.<name>(...)`."""
        deco = self._decorator(MethodRole.PRIVATE, (), name=name)
        return deco(func) if func is not None else deco

    def callback(
        self,
        *closure_params: ParamLike,
        result: Optional[TypeLike] = None,
        name: Optional[str] = None,
    ) -> Callable[[F], F]:
        params = _params(closure_params, ParamTag.CLOSURE)
        bad = [p.name for p in params if p.tag is not ParamTag.CLOSURE]
        if bad:
            raise ContractAssemblyError(f"callback parameters must be closure fields: {bad}")
        return self._decorator(MethodRole.CALLBACK, params, name=name, result=result)

    def callback_raw(self, func: Optional[F] = None, *, name: Optional[str] = None) -> Any:
        deco = self._decorator(MethodRole.CALLBACK_RAW, (), name=name)
        return deco(func) if func is not None else deco

    # --- body-less declarations ---------------------------------------------

    def _storage(
        self,
        name: str,
        role: MethodRole,
        direction: StorageDirection,
        prefix: Union[bytes, str],
        keys: Tuple[ParamLike, ...],
        value: Optional[TypeLike],
        *,
        expose: bool = False,
    ) -> MethodDescriptor:
        params = _params(keys, ParamTag.KEY)
        value_type = as_type(value) if value is not None else None
        if direction is StorageDirection.SET:
            if value_type is None:
                raise ContractAssemblyError(f"storage setter {name!r} needs a value type")
            params = params + (ParamDescriptor("value", value_type, ParamTag.VALUE),)
        acc = StorageAccessorDescriptor.from_params(_prefix(prefix), params, direction, value_type)
        returns: Optional[AbiType] = None
        if direction is StorageDirection.GET:
            returns = acc.value_type
        elif direction is StorageDirection.IS_EMPTY:
            returns = BoolType()
        return self._add(
            MethodDescriptor(name=name, role=role, params=params, returns=returns, storage=acc, exposed=expose)
        )

    def storage_get(
        self, name: str, prefix: Union[bytes, str], *keys: ParamLike, value: TypeLike, expose: bool = False
    ) -> MethodDescriptor:
        return self._storage(name, MethodRole.STORAGE_GET, StorageDirection.GET, prefix, keys, value, expose=expose)

    def storage_set(self, name: str, prefix: Union[bytes, str], *keys: ParamLike, value: TypeLike) -> MethodDescriptor:
        return self._storage(name, MethodRole.STORAGE_SET, StorageDirection.SET, prefix, keys, value)

    def storage_is_empty(self, name: str, prefix: Union[bytes, str], *keys: ParamLike) -> MethodDescriptor:
        return self._storage(name, MethodRole.STORAGE_IS_EMPTY, StorageDirection.IS_EMPTY, prefix, keys, None)

    def storage_clear(self, name: str, prefix: Union[bytes, str], *keys: ParamLike) -> MethodDescriptor:
        return self._storage(name, MethodRole.STORAGE_CLEAR, StorageDirection.CLEAR, prefix, keys, None)

    def event(self, name: str, identifier: Union[bytes, str], *args: ParamDescriptor) -> MethodDescriptor:
        for a in args:
            if not isinstance(a, ParamDescriptor):
                raise ContractAssemblyError(f"event argument {a!r} must be declared with indexed() or data()")
        params = tuple(args)
        descriptor = EventDescriptor.from_params(_prefix(identifier), params)
        return self._add(MethodDescriptor(name=name, role=MethodRole.EVENT, params=params, event=descriptor))

    # --- assembly ----------------------------------------------------------

    def assemble(self) -> Contract:
        constructors = [m for m in self._methods.values() if m.role is MethodRole.CONSTRUCTOR]
        if len(constructors) != 1:
            raise ContractAssemblyError(
                f"contract must declare exactly one constructor, found {len(constructors)}",
                context={"contract": self.name},
            )
        for m in self._methods.values():
            if m.event is not None and 1 + m.event.indexed_count > self._cfg.max_event_topics:
                raise ContractAssemblyError(
                    f"event {m.name!r} has too many indexed arguments",
                    context={"indexed": m.event.indexed_count, "max_topics": self._cfg.max_event_topics},
                )
            if m.role in CALLBACK_ROLES and any(p.tag is not ParamTag.CLOSURE for p in m.params):
                raise ContractAssemblyError(f"callback {m.name!r} may only declare closure fields")

        methods = {n: self._methods[n] for n in self._order}
        contract = Contract(
            name=self.name,
            constructor=constructors[0],
            methods=methods,
            generated=generate_wrappers(methods),
        )
        log.debug(
            "contract assembled",
            extra={"contract": self.name, "methods": len(methods), "generated": len(contract.generated)},
        )
        return contract


__all__ = ["ContractBuilder", "ParamLike"]
