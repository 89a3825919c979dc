"""
contract_core.runtime.lifecycle — constructor-runs-once enforcement.

The host persists one flag per instance, "constructor pending", outside
contract storage. Deploy sets it; the controller runs the constructor only
while it is set and clears it after a successful run. Upgrade resets the flag
so the (possibly new) constructor runs once more against existing storage.
A constructor that fails leaves the flag set.
"""

from __future__ import annotations

from typing import Callable, TypeVar

from ..errors import ConstructorAlreadyRunError
from ..logging import get_logger
from .host import InstanceFlags

T = TypeVar("T")

log = get_logger(__name__)


class LifecycleController:
    def __init__(self, flags: InstanceFlags) -> None:
        self._flags = flags

    @property
    def pending(self) -> bool:
        return self._flags.constructor_pending

    def ensure_pending(self) -> None:
        if not self._flags.constructor_pending:
            raise ConstructorAlreadyRunError("constructor already executed for this instance")

    def run_constructor(self, run: Callable[[], T]) -> T:
        self.ensure_pending()
        result = run()
        self._flags.constructor_pending = False
        log.debug("constructor completed; pending flag cleared")
        return result

    def reset_for_upgrade(self) -> None:
        self._flags.reset_for_upgrade()
        log.info("constructor pending flag reset for upgrade")


__all__ = ["LifecycleController"]
