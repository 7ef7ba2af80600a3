"""Field-level helpers: dotted paths, deep merge and atomic value sentinels."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from payroll_portal.errors import ValidationError


class _Missing:
    """Marker for a field that is not present in a document."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


class FieldTransform:
    """A value computed from the field's current value at write time."""

    def apply(self, current: Any) -> Any:
        raise NotImplementedError


@dataclass(frozen=True, init=False)
class ArrayUnion(FieldTransform):
    """Append each value not already present to an array field."""

    values: tuple[Any, ...]

    def __init__(self, *values: Any):
        object.__setattr__(self, "values", values)

    def apply(self, current: Any) -> list[Any]:
        result = list(current) if isinstance(current, list) else []
        for value in self.values:
            if value not in result:
                result.append(value)
        return result


@dataclass(frozen=True)
class Increment(FieldTransform):
    """Add a number to a numeric field; a missing or non-numeric field counts as 0."""

    amount: int | float = 1

    def apply(self, current: Any) -> int | float:
        if isinstance(current, bool) or not isinstance(current, (int, float)):
            current = 0
        return current + self.amount


class InvalidFieldPathError(ValidationError):
    """Raised for an empty field path or one with an empty segment."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"Invalid field path: {path!r}")


def split_path(path: str) -> tuple[str, ...]:
    """Split a dotted field path into its segments."""
    if not isinstance(path, str) or not path or any(not part for part in path.split(".")):
        raise InvalidFieldPathError(path)
    return tuple(path.split("."))


def get_path(data: Mapping[str, Any], path: str) -> Any:
    """Read a dotted path, returning MISSING when any segment is absent."""
    current: Any = data
    for part in split_path(path):
        if not isinstance(current, Mapping) or part not in current:
            return MISSING
        current = current[part]
    return current


def resolve_transforms(value: Any, current: Any = MISSING) -> Any:
    """Replace transform sentinels inside ``value`` with concrete values."""
    if isinstance(value, FieldTransform):
        return value.apply(None if current is MISSING else current)
    if isinstance(value, Mapping):
        existing = current if isinstance(current, Mapping) else {}
        return {
            key: resolve_transforms(item, existing.get(key, MISSING))
            for key, item in value.items()
        }
    return copy.deepcopy(value)


def deep_merge(base: Mapping[str, Any], patch: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge ``patch`` over ``base`` without mutating either.

    Nested mappings are merged key by key; any other value in ``patch``
    replaces the value in ``base``.
    """
    merged: dict[str, Any] = copy.deepcopy(dict(base))
    for key, value in patch.items():
        existing = merged.get(key, MISSING)
        if isinstance(value, Mapping) and isinstance(existing, Mapping):
            merged[key] = deep_merge(existing, value)
        else:
            merged[key] = resolve_transforms(value, existing)
    return merged


def apply_field_updates(
    data: Mapping[str, Any], updates: Mapping[str, Any]
) -> dict[str, Any]:
    """Apply ``{dotted.path: value}`` updates, creating intermediate maps."""
    result: dict[str, Any] = copy.deepcopy(dict(data))
    for path, value in updates.items():
        parts = split_path(path)
        target = result
        for part in parts[:-1]:
            child = target.get(part)
            if not isinstance(child, dict):
                child = {}
                target[part] = child
            target = child
        leaf = parts[-1]
        target[leaf] = resolve_transforms(value, target.get(leaf, MISSING))
    return result
