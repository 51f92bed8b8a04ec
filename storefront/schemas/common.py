# storefront/schemas/common.py
import math
from typing import Any

# Backend and local-storage ids may be integers or strings.
EntityId = int | str


def rename_legacy_keys(data: Any, mapping: dict[str, str]) -> Any:
    """
    Copy `data` with legacy (camelCase / older) keys renamed.

    Used in `model_validator(mode="before")` hooks so the backend's and the
    old local-storage spellings both land on the Python field names.
    An already-present canonical key wins over its legacy spelling.
    """
    if not isinstance(data, dict):
        return data
    out = dict(data)
    for legacy, canonical in mapping.items():
        if legacy in out:
            value = out.pop(legacy)
            out.setdefault(canonical, value)
    return out


def to_number(value: Any, field: str) -> float:
    """
    Coerce a numeric field that may arrive as a string ("2.50").

    Raises:
        ValueError: if the value is not a finite number (pydantic reports it as a
        validation error on `field`).
    """
    if isinstance(value, bool):
        raise ValueError(f"{field} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            raise ValueError(f"{field} must be a number, got {value!r}")
    else:
        raise ValueError(f"{field} must be a number")
    if not math.isfinite(number):
        raise ValueError(f"{field} must be a finite number, got {value!r}")
    return number


def same_id(a: EntityId | None, b: EntityId | None) -> bool:
    """Compare two ids in canonical string form (1 == "1")."""
    if a is None or b is None:
        return False
    return str(a).strip() == str(b).strip()
