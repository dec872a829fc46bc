from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class CutoutSettings:
    # Run the invariant diagnostics after every recompute (development/test builds).
    validate_invariants: bool = True
    log_level: str = "INFO"
    log_format: str = "text"  # text | json
    cache_size: int = 256


def _flag(raw: Optional[str], default: bool) -> bool:
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"Invalid boolean setting: {raw!r}")


def settings_from_env(env: Optional[Mapping[str, str]] = None) -> CutoutSettings:
    src = os.environ if env is None else env
    log_format = src.get("PLANCUT_LOG_FORMAT", "text").strip().lower()
    if log_format not in {"text", "json"}:
        raise ValueError(f"Unsupported PLANCUT_LOG_FORMAT: {log_format}")
    cache_size = int(src.get("PLANCUT_CACHE_SIZE", "256"))
    if cache_size < 0:
        raise ValueError("PLANCUT_CACHE_SIZE must be >= 0")
    return CutoutSettings(
        validate_invariants=_flag(src.get("PLANCUT_VALIDATE_INVARIANTS"), True),
        log_level=src.get("PLANCUT_LOG_LEVEL", "INFO").strip().upper(),
        log_format=log_format,
        cache_size=cache_size,
    )


DEFAULT_SETTINGS = CutoutSettings()
