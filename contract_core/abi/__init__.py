"""
contract_core.abi
=================

Type-directed codec for the contract runtime core.

This package provides:
  • Type definitions for arguments, results, storage values and event fields.
  • Top-level (boundary) and nested (concatenable) encoders/decoders.

Everything here is pure-Python and deterministic.
"""

from __future__ import annotations

from .decoding import *  # noqa: F401,F403
from .decoding import __all__ as _all_decoding
from .encoding import *  # noqa: F401,F403
from .encoding import __all__ as _all_encoding
from .types import *  # noqa: F401,F403
from .types import __all__ as _all_types

__all__ = tuple(
    dict.fromkeys(  # preserve order, dedupe
        (*_all_types, *_all_encoding, *_all_decoding)
    )
)
