from __future__ import annotations

from enum import Enum
from typing import Optional, Type, TypeVar

from ..core.exceptions import ValidationError

E = TypeVar("E", bound=Enum)


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} must not be empty")
    return str(value).strip()


def require_int_in_range(value, field_name: str, low: int, high: int, *, error: Type[ValidationError] = ValidationError) -> int:
    if isinstance(value, bool) or (isinstance(value, float) and not value.is_integer()):
        raise error(f"{field_name} must be a whole number")
    try:
        v = int(value)
    except (TypeError, ValueError):
        raise error(f"{field_name} must be an integer")
    if v < low or v > high:
        raise error(f"{field_name} must be between {low} and {high}")
    return v


def optional_enum(value: Optional[str], enum_cls: Type[E], field_name: str) -> Optional[E]:
    """Parse a filter value; empty and "all" mean no filter."""
    v = (value or "").strip().lower()
    if not v or v == "all":
        return None
    try:
        return enum_cls(v)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(f"{field_name} must be one of: {allowed}")
