from __future__ import annotations

from typing import List, Optional

from planmate.core.budget import normalize_budget
from planmate.core.chips import budget_text, companions_text, location_text
from planmate.core.logger import SessionLogger
from planmate.core.types import BudgetTier, Slots


RECOVERABLE_MESSAGE = "I'm having trouble processing your request right now. Could you try rephrasing that?"
RECOVERABLE_QUESTION = "What would you like to plan today?"
DEFAULT_MESSAGE = "I'm here to help you plan!"
CONFIRM_PROMPT = "Does this look right? Tap \"Yes, create this\" when you're ready and I'll build the plan."


def _timing_line(slots: Slots) -> Optional[str]:
    t = slots.timing
    if not t:
        return None
    parts = []
    if t.date:
        parts.append(t.date)
    if t.departure_time:
        parts.append(f"leaving {t.departure_time}")
    if t.arrival_time:
        parts.append(f"arriving {t.arrival_time}")
    return ", ".join(parts) or None


class Responder:
    def __init__(self, logger: SessionLogger) -> None:
        self.logger = logger

    def confirmation_summary(self, slots: Slots) -> str:
        lines: List[str] = ["Here's what I have so far:"]
        lines.append(f"- Activity: {slots.activity_type or 'not set yet'}")
        lines.append(f"- Location: {location_text(slots) or 'not set yet'}")
        if slots.location and slots.location.current and slots.location.destination:
            lines.append(f"- Starting from: {slots.location.current}")
        lines.append(f"- Timing: {_timing_line(slots) or 'not set yet'}")

        budget = budget_text(slots)
        tier = normalize_budget(slots)
        if budget and tier != BudgetTier.unknown:
            lines.append(f"- Budget: {budget} ({tier.value})")
        else:
            lines.append(f"- Budget: {budget or 'not set yet'}")

        if slots.transportation:
            lines.append(f"- Transport: {slots.transportation}")
        if slots.vibe:
            lines.append(f"- Vibe: {slots.vibe}")
        companions = companions_text(slots)
        if companions:
            lines.append(f"- Companions: {companions}")
        if slots.purpose:
            lines.append(f"- Purpose: {slots.purpose}")
        if slots.outfit is not None:
            lines.append(f"- Outfit: {slots.outfit.formality or 'casual'} style")

        lines.append("")
        lines.append(CONFIRM_PROMPT)
        summary = "\n".join(lines)
        self.logger.step("responder", {"kind": "confirmation_summary", "slots": slots.wire()}, {"summary": summary})
        return summary

    def turn_message(
        self,
        model_message: Optional[str],
        next_question: Optional[str],
        notice: Optional[str] = None,
        summary: Optional[str] = None,
        pending_question: bool = False,
    ) -> str:
        if notice:
            # The model's pending question is dropped when we switch to confirming.
            body = summary or model_message or DEFAULT_MESSAGE
            return f"{notice} {body}"
        if summary and pending_question:
            # Confirmation replaces the question; keep only the acknowledgement.
            ack = model_message.replace(next_question, "").strip() if model_message and next_question else ""
            return f"{ack}\n\n{summary}" if ack else summary
        if summary and summary not in (model_message or ""):
            if model_message:
                return f"{model_message}\n\n{summary}"
            return summary
        return model_message or next_question or DEFAULT_MESSAGE
