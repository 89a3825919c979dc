"""
contract_core.errors — typed failures surfaced by the contract runtime core.

Every failure the core reports to the host is a `VmError` carrying a stable
machine code, a human-readable message and optional JSON-safe context. The
host maps these onto its own failure channel (receipts, RPC errors).

Hierarchy
---------
VmError (base)
 ├─ CodecError                  : malformed/short input, bad length prefix
 │   ├─ ValidationError         : value does not fit its declared type
 │   └─ ArgumentCountError      : argument slice count != declared parameters
 ├─ UnknownFunctionError        : call entry names no public method
 ├─ ConstructorAlreadyRunError  : constructor invoked with no pending flag
 ├─ UnknownCallbackStateError   : resume for a missing/consumed call id
 ├─ EventArityError             : event values do not match the descriptor
 ├─ ClosureError                : captured fields do not match the callback
 ├─ ContractAssemblyError       : descriptor table violates an invariant
 └─ ContractError               : raised by contract logic (passed through)

Every CodecError subclass reports code "codec_error"; the refinement is in
`context["reason"]` ("invalid_value", "wrong_number_of_arguments").

Nothing here imports from the rest of the package so low-level modules
(codec, storage) can use it without cycles.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class VmError(Exception):
    """
    Structured runtime error.

        VmError("message")
        VmError("message", code="some_code", context={...})
    """

    default_code = "vm_error"
    reason: Optional[str] = None

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        context: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = str(message)
        self.code = code or self.default_code
        self.context: Dict[str, Any] = dict(context or {})
        if self.reason:
            self.context.setdefault("reason", self.reason)

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for host failure payloads."""
        return {
            "code": self.code,
            "message": self.message,
            "context": dict(self.context),
        }


class CodecError(VmError):
    default_code = "codec_error"


class ValidationError(CodecError):
    """A Python value does not conform to the type it is encoded as."""

    reason = "invalid_value"


class ArgumentCountError(CodecError):
    reason = "wrong_number_of_arguments"


class UnknownFunctionError(VmError):
    default_code = "unknown_function"


class ConstructorAlreadyRunError(VmError):
    default_code = "constructor_already_run"


class UnknownCallbackStateError(VmError):
    default_code = "unknown_callback_state"


class EventArityError(VmError):
    default_code = "event_arity"


class ClosureError(VmError):
    default_code = "closure_mismatch"


class ContractAssemblyError(VmError):
    default_code = "contract_assembly"


class ContractError(VmError):
    """
    Failure raised by contract logic itself.

    The core never rewrites these; the host sees the same code and message the
    contract produced.
    """

    default_code = "contract_error"


def _to_message(msg: Any) -> str:
    if isinstance(msg, (bytes, bytearray)):
        return bytes(msg).decode("utf-8", errors="replace")
    return str(msg)


def require(
    condition: bool,
    message: Any = "require failed",
    *,
    code: str = "contract_error",
    context: Optional[Mapping[str, Any]] = None,
) -> None:
    """
    Assertion helper for contract logic.

        require(amount > 0, b"adder: zero amount")
    """
    if condition:
        return
    raise ContractError(_to_message(message), code=code, context=context)


__all__ = [
    "VmError",
    "CodecError",
    "ValidationError",
    "ArgumentCountError",
    "UnknownFunctionError",
    "ConstructorAlreadyRunError",
    "UnknownCallbackStateError",
    "EventArityError",
    "ClosureError",
    "ContractAssemblyError",
    "ContractError",
    "require",
]
