from __future__ import annotations

from typing import Optional

from .chips import budget_text, has_timing, location_text
from .types import (
    EARLY_STOP_QUESTION_COUNT,
    MODE_COUNTER_KEY,
    MODE_QUESTION_LIMITS,
    ExtractionAction,
    GuardrailDecision,
    PlannerSession,
    PlanningMode,
    SessionState,
    Slots,
)


ENOUGH_GATHERED_NOTICE = "I think I have enough to put this together."
EARLY_STOP_NOTICE = "Great, that covers the essentials."


def has_early_stop_context(slots: Slots) -> bool:
    """Activity plus (budget or timing) plus (location or vibe)."""
    return bool(
        slots.activity_type
        and (budget_text(slots) or has_timing(slots))
        and (location_text(slots) or slots.vibe)
    )


def state_for_action(current: SessionState, action: ExtractionAction) -> SessionState:
    if action == ExtractionAction.confirm_plan:
        return SessionState.confirming
    if action == ExtractionAction.generate_plan:
        return SessionState.planning
    # Never fall back from confirming to gathering.
    if current in (SessionState.confirming, SessionState.planning):
        return SessionState.confirming
    return SessionState.gathering


class GuardrailEngine:
    """Question budgets per mode, applied on top of the model's chosen action."""

    def apply(
        self,
        session: PlannerSession,
        model_action: ExtractionAction,
        slots: Slots,
        mode: Optional[PlanningMode] = None,
    ) -> GuardrailDecision:
        mode = mode or session.mode
        counter_key = MODE_COUNTER_KEY[mode]
        limit = MODE_QUESTION_LIMITS[mode]

        counts = session.external_context.question_count.model_copy()
        asking = model_action == ExtractionAction.ask_question
        if asking:
            setattr(counts, counter_key, getattr(counts, counter_key) + 1)
        count = getattr(counts, counter_key)

        reason: Optional[str] = None
        notice: Optional[str] = None
        if asking and count >= limit:
            reason, notice = "question_limit", ENOUGH_GATHERED_NOTICE
        elif (
            asking
            and mode != PlanningMode.quick
            and count >= EARLY_STOP_QUESTION_COUNT
            and has_early_stop_context(slots)
        ):
            reason, notice = "early_stop", EARLY_STOP_NOTICE

        if reason:
            return GuardrailDecision(
                effective_action=ExtractionAction.confirm_plan,
                next_state=SessionState.confirming,
                question_count=counts,
                overridden=True,
                reason=reason,
                # Only announce the switch, not every turn spent confirming.
                notice=None if session.state == SessionState.confirming else notice,
            )

        return GuardrailDecision(
            effective_action=model_action,
            next_state=state_for_action(session.state, model_action),
            question_count=counts,
        )
