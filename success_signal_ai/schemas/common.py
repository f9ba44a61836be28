"""Shared base model and lenient coercion helpers for input records."""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from success_signal_ai.utils.date_parser import parse_date
from success_signal_ai.utils.helpers import safe_float

_TRUTHY = {"true", "yes", "y", "1", "on"}


class SnapshotModel(BaseModel):
    """
    Immutable record that accepts snake_case or camelCase keys from the collection layer.
    Unknown keys are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        extra="ignore",
    )


def to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def to_optional_str(value: Any) -> Optional[str]:
    text = to_str(value).strip()
    return text or None


def to_optional_float(value: Any) -> Optional[float]:
    if isinstance(value, str):
        value = value.strip().replace(",", "")
    return safe_float(value)


def to_optional_int(value: Any) -> Optional[int]:
    result = to_optional_float(value)
    return int(result) if result is not None else None


def to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    if isinstance(value, (int, float)):
        return value == 1
    return False


def to_str_list(value: Any) -> List[str]:
    """Accept a list of strings or a comma/newline separated string."""
    if value is None:
        return []
    if isinstance(value, str):
        parts = value.replace("\n", ",").split(",")
        return [p.strip() for p in parts if p.strip()]
    if isinstance(value, (list, tuple, set)):
        result = []
        for v in value:
            if isinstance(v, dict):
                v = v.get("name") or v.get("skill")
            s = to_str(v).strip()
            if s:
                result.append(s)
        return result
    return []


def to_dict_list(value: Any) -> List[dict]:
    """Keep only mapping entries; model instances are passed through."""
    if not isinstance(value, (list, tuple)):
        return []
    return [v for v in value if isinstance(v, (dict, BaseModel))]


def to_optional_datetime(value: Any):
    return parse_date(value)
