"""Helper utilities for the Success Signal AI pipeline."""

import math
import random
import re
import string
import time
from typing import Any, Callable, Hashable, Iterable, List, Optional, TypeVar

T = TypeVar("T")

_BASE36 = string.digits + string.ascii_lowercase


def generate_id(prefix: str, rng: Optional[random.Random] = None) -> str:
    """<prefix>_<epoch ms>_<9 random base36 chars>."""
    rng = rng or random.SystemRandom()
    suffix = "".join(rng.choice(_BASE36) for _ in range(9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def generate_application_id(rng: Optional[random.Random] = None) -> str:
    return generate_id("app", rng)


def clamp(value: float, lower: float = 0.0, upper: float = 1.0) -> float:
    return max(lower, min(upper, value))


def safe_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Float conversion that returns default for None, junk, NaN and inf."""
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result) or math.isinf(result):
        return default
    return result


def normalize_text(text: Optional[str]) -> str:
    """Lowercase and collapse whitespace."""
    if not text:
        return ""
    return re.sub(r"\s+", " ", str(text)).strip().lower()


def unique_normalized(values: Iterable[Any]) -> List[str]:
    """Case-insensitive dedupe preserving first occurrence, blanks removed."""
    seen: set[str] = set()
    result: List[str] = []
    for v in values or []:
        s = normalize_text(v if isinstance(v, str) else str(v) if v is not None else "")
        if s and s not in seen:
            seen.add(s)
            result.append(s)
    return result


def deduplicate_by_key(items: Iterable[T], key: Callable[[T], Hashable]) -> List[T]:
    """Remove duplicates by key, keeping the first occurrence."""
    seen: set = set()
    result: List[T] = []
    for item in items:
        k = key(item)
        if k not in seen:
            seen.add(k)
            result.append(item)
    return result


def round_to(value: float, digits: int = 3) -> float:
    return float(round(value, digits))
