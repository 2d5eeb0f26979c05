from __future__ import annotations

from typing import List, Optional

from .types import BudgetRange, ChipCategory, ContextChip, Slots


def budget_text(slots: Slots) -> Optional[str]:
    if isinstance(slots.budget, str):
        return slots.budget or None
    if isinstance(slots.budget, BudgetRange):
        return slots.budget.range or None
    return None


def time_text(slots: Slots) -> Optional[str]:
    if not slots.timing:
        return None
    return slots.timing.departure_time or slots.timing.arrival_time or None


def has_timing(slots: Slots) -> bool:
    """A time or a date; an empty ``Timing`` record does not count."""
    return bool(time_text(slots) or (slots.timing and slots.timing.date))


def location_text(slots: Slots) -> Optional[str]:
    if not slots.location:
        return None
    return slots.location.destination or slots.location.current or None


def companions_text(slots: Slots) -> Optional[str]:
    c = slots.companions
    if not c:
        return None
    if isinstance(c, list):
        return ", ".join(str(x) for x in c)
    if isinstance(c, dict):
        return ", ".join(f"{k}: {v}" for k, v in c.items())
    return c


def _required(label: str, value: Optional[str], prompt: str) -> ContextChip:
    return ContextChip(
        label=label,
        value=value or prompt,
        category=ChipCategory.required,
        filled=bool(value),
    )


def _optional(label: str, value: str) -> ContextChip:
    return ContextChip(label=label, value=value, category=ChipCategory.optional, filled=True)


def generate_context_chips(slots: Slots) -> List[ContextChip]:
    chips = [
        _required("Activity", slots.activity_type, "What are you doing?"),
        _required("Time", time_text(slots), "When?"),
        _required("Location", location_text(slots), "Where to?"),
        _required("Budget", budget_text(slots), "What's the budget?"),
    ]

    if slots.transportation:
        chips.append(_optional("Transport", slots.transportation))
    if slots.vibe:
        chips.append(_optional("Vibe", slots.vibe))
    companions = companions_text(slots)
    if companions:
        chips.append(_optional("Companions", companions))
    if slots.purpose:
        chips.append(_optional("Purpose", slots.purpose))
    if slots.outfit is not None:
        chips.append(_optional("Outfit", f"{slots.outfit.formality or 'casual'} style"))
    return chips


def can_generate_plan(chips: List[ContextChip]) -> bool:
    required = [c for c in chips if c.category == ChipCategory.required]
    filled = sum(1 for c in required if c.filled)
    return filled >= max(3, len(required) - 1)


# Three of the four required chips.
has_minimum_context = can_generate_plan
