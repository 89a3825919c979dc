"""
contract_core.config — strictness flag and numeric caps for the runtime core.

Configuration precedence:
  1) Environment variables (CONTRACT_CORE_*)
  2) Hardcoded safe defaults below

Key env vars (case-insensitive where boolean):
  - CONTRACT_CORE_STRICT                  (bool)  default: true
  - CONTRACT_CORE_MAX_ARG_BYTES           (int)   default: 256_000
  - CONTRACT_CORE_MAX_RETURN_BYTES        (int)   default: 256_000
  - CONTRACT_CORE_MAX_STORAGE_KEY_BYTES   (int)   default: 256
  - CONTRACT_CORE_MAX_STORAGE_VALUE_BYTES (int)   default: 131_072   (128 KiB)
  - CONTRACT_CORE_MAX_EVENT_TOPICS        (int)   default: 8
  - CONTRACT_CORE_MAX_LOGS_PER_CALL       (int)   default: 1024
  - CONTRACT_CORE_MAX_CLOSURE_BYTES       (int)   default: 65_536
  - CONTRACT_CORE_MAX_TYPE_DEPTH          (int)   default: 16
  - CONTRACT_CORE_LOG_LEVEL               (str)   default: INFO
  - CONTRACT_CORE_LOG_FORMAT              (json|text) default: auto

Out-of-range integers are clamped; unparsable values fall back to defaults.

Usage:
    from contract_core.config import load_config
    CFG = load_config()
    if CFG.strict_mode: ...
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

# ----------------------------- helpers ---------------------------------------


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    val = raw.strip().lower()
    return val in ("1", "true", "t", "yes", "y", "on")


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        v = int(raw, 0)
    except ValueError:
        return default
    if v < min_v:
        return min_v
    if v > max_v:
        return max_v
    return v


def _env_choice(name: str, choices: tuple[str, ...]) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    val = raw.strip().lower()
    return val if val in choices else None


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class CoreConfig:
    # Decoding strictness (minimal integers, no trailing bytes at top level)
    strict_mode: bool

    # Numeric caps
    max_argument_bytes: int
    max_return_bytes: int
    max_storage_key_bytes: int
    max_storage_value_bytes: int
    max_event_topics: int
    max_logs_per_call: int
    max_closure_bytes: int
    max_type_depth: int

    # Logging
    log_level: str
    log_format: Optional[str]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "strict_mode": self.strict_mode,
            "max_argument_bytes": self.max_argument_bytes,
            "max_return_bytes": self.max_return_bytes,
            "max_storage_key_bytes": self.max_storage_key_bytes,
            "max_storage_value_bytes": self.max_storage_value_bytes,
            "max_event_topics": self.max_event_topics,
            "max_logs_per_call": self.max_logs_per_call,
            "max_closure_bytes": self.max_closure_bytes,
            "max_type_depth": self.max_type_depth,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


@lru_cache(maxsize=1)
def load_config() -> CoreConfig:
    """
    Build and cache a CoreConfig from environment + safe defaults.

    Tests that tweak the environment call `load_config.cache_clear()`.
    """
    return CoreConfig(
        strict_mode=_env_bool("CONTRACT_CORE_STRICT", True),
        max_argument_bytes=_env_int("CONTRACT_CORE_MAX_ARG_BYTES", 256_000, min_v=1_024, max_v=8_388_608),
        max_return_bytes=_env_int("CONTRACT_CORE_MAX_RETURN_BYTES", 256_000, min_v=1_024, max_v=8_388_608),
        max_storage_key_bytes=_env_int("CONTRACT_CORE_MAX_STORAGE_KEY_BYTES", 256, min_v=16, max_v=4_096),
        max_storage_value_bytes=_env_int("CONTRACT_CORE_MAX_STORAGE_VALUE_BYTES", 131_072, min_v=32, max_v=1_048_576),
        max_event_topics=_env_int("CONTRACT_CORE_MAX_EVENT_TOPICS", 8, min_v=1, max_v=64),
        max_logs_per_call=_env_int("CONTRACT_CORE_MAX_LOGS_PER_CALL", 1024, min_v=1, max_v=10_000),
        max_closure_bytes=_env_int("CONTRACT_CORE_MAX_CLOSURE_BYTES", 65_536, min_v=256, max_v=1_048_576),
        max_type_depth=_env_int("CONTRACT_CORE_MAX_TYPE_DEPTH", 16, min_v=2, max_v=128),
        log_level=(os.getenv("CONTRACT_CORE_LOG_LEVEL") or "INFO").strip().upper(),
        log_format=_env_choice("CONTRACT_CORE_LOG_FORMAT", ("json", "text")),
    )


__all__ = ["CoreConfig", "load_config"]
