from __future__ import annotations

from typing import Any, Dict, List

from planmate.core.nlu import QUESTION_TEMPLATES, accumulate, extract_slots, missing_required, wants_plan
from planmate.core.types import ExtractionAction, Message


class RuleBasedAdapter:
    """Offline model adapter backed by the regex NLU.

    Slots are re-read from every user message in the history so the adapter
    itself stays stateless, like a chat model would be.
    """

    name = "rule_based"

    def extract(self, system_prompt: str, history: List[Message], new_message: str) -> Dict[str, Any]:
        delta = extract_slots(new_message)
        known = accumulate([m.content for m in history if m.role == "user"] + [new_message])
        missing = missing_required(known)

        if wants_plan(new_message):
            return {
                "action": ExtractionAction.generate_plan.value,
                "message": "Great, let's turn this into a plan.",
                "extractedSlots": delta,
                "missingRequiredSlots": missing,
            }

        if not missing:
            return {
                "action": ExtractionAction.confirm_plan.value,
                "message": "Sounds like I have everything I need.",
                "extractedSlots": delta,
                "missingRequiredSlots": [],
            }

        question = QUESTION_TEMPLATES[missing[0]]
        ack = "Got it." if delta else "Happy to help you plan."
        return {
            "action": ExtractionAction.ask_question.value,
            "message": f"{ack} {question}",
            "extractedSlots": delta,
            "nextQuestion": question,
            "missingRequiredSlots": missing,
        }
