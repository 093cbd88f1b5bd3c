"""Parameter shapes supplied by tool callers.

A resource reference arrives either as a bare string ("abc123") or as a
locator object ({"mode": "list", "value": "abc123"}) depending on how the
caller picked it. Both normalize to a plain string through to_value().
"""
from dataclasses import dataclass
from typing import Any, Union

from .errors import ValidationError


@dataclass(frozen=True)
class Direct:
    value: str


@dataclass(frozen=True)
class Located:
    mode: str
    value: str


ResourceLocator = Union[Direct, Located]


def parse_locator(raw: Any) -> ResourceLocator:
    """Turn a raw parameter value into a ResourceLocator."""
    if isinstance(raw, (Direct, Located)):
        return raw
    if isinstance(raw, dict):
        return Located(mode=str(raw.get("mode") or "id"), value=str(raw.get("value") or ""))
    if raw is None:
        return Direct("")
    return Direct(str(raw))


def to_value(raw: Any) -> str:
    """Normalize any locator shape to its string value ("" when absent)."""
    return parse_locator(raw).value.strip()


def require_value(raw: Any, field_name: str) -> str:
    value = to_value(raw)
    if not value:
        raise ValidationError(f"{field_name} is required", field_name)
    return value


def to_values(raw_items: Any) -> list[str]:
    """Normalize a list of locators, dropping blank entries."""
    if not raw_items:
        return []
    if isinstance(raw_items, (str, dict)):
        raw_items = [raw_items]
    values = []
    for item in raw_items:
        value = to_value(item)
        if value:
            values.append(value)
    return values
