from __future__ import annotations

from typing import List, Optional

from .chips import budget_text, generate_context_chips, has_minimum_context, has_timing, location_text
from .types import ExtractionAction, GateDecision, PlannerSession, SessionState, Slots


def _has_context(slots: Slots) -> bool:
    return bool(budget_text(slots) or has_timing(slots) or location_text(slots))


def has_essential_slots(slots: Slots) -> bool:
    return bool(slots.activity_type and _has_context(slots))


def missing_essentials(slots: Slots) -> List[str]:
    missing: List[str] = []
    if not slots.activity_type:
        missing.append("activity type")
    if not _has_context(slots):
        missing.append("budget, timing or location")
    return missing


class ConfirmationGate:
    """Decides whether a plan may be generated this turn.

    A ``generate_plan`` request from the model is never enough on its own: the
    session must carry the user's explicit confirmation and the essential
    slots must be present.
    """

    def gate(
        self,
        session: PlannerSession,
        action: ExtractionAction,
        slots: Slots,
        *,
        missing_required_slots: Optional[List[str]] = None,
        forced_confirmation: bool = False,
        fallback_state: Optional[SessionState] = None,
    ) -> GateDecision:
        fallback_state = fallback_state or session.state

        if action == ExtractionAction.generate_plan:
            if session.user_confirmed_add is True and has_essential_slots(slots):
                return GateDecision(ready_to_generate=True, next_state=SessionState.planning)
            return GateDecision(show_confirmation=True, next_state=SessionState.confirming)

        if action == ExtractionAction.confirm_plan or forced_confirmation:
            return GateDecision(show_confirmation=True, next_state=SessionState.confirming)

        chips = generate_context_chips(slots)
        if has_minimum_context(chips) and not missing_required_slots:
            return GateDecision(show_confirmation=True, next_state=SessionState.confirming)

        return GateDecision(next_state=fallback_state)
