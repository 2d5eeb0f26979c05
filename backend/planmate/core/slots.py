from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Union

from .types import Slots


def deep_merge(existing: Mapping[str, Any], delta: Mapping[str, Any]) -> Dict[str, Any]:
    """Merge ``delta`` into ``existing`` without mutating either.

    Nested mappings merge key by key; anything else in ``delta`` (strings,
    numbers, lists) replaces the existing value. ``None`` in ``delta`` never
    clears a field.
    """
    merged: Dict[str, Any] = dict(existing)
    for key, value in delta.items():
        if value is None:
            continue
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = deep_merge(current, value)
        elif isinstance(value, Mapping):
            merged[key] = deep_merge({}, value)
        elif isinstance(value, list):
            merged[key] = list(value)
        else:
            merged[key] = value
    return merged


def merge_slots(existing: Slots, delta: Optional[Union[Slots, Mapping[str, Any]]]) -> Slots:
    if not delta:
        return existing.model_copy(deep=True)
    incoming = delta.wire() if isinstance(delta, Slots) else Slots.model_validate(delta).wire()
    return Slots.model_validate(deep_merge(existing.wire(), incoming))


def filled_slot_names(slots: Slots) -> list[str]:
    """Top-level wire names that carry a value, used for logging."""
    return [k for k, v in slots.wire().items() if v not in ({}, "", [])]
