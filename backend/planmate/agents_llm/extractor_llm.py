from __future__ import annotations

import json
from typing import Any, Dict, List, Optional, Union

from planmate.core.budget import normalize_budget
from planmate.core.types import (
    MODE_COUNTER_KEY,
    MODE_QUESTION_LIMITS,
    Message,
    PlannerSession,
    PlanningMode,
)
from planmate.llm.bedrock import ChatBedrock, call_llm_json, get_bedrock_client, missing_aws_credentials


MODE_POLICIES: Dict[PlanningMode, str] = {
    PlanningMode.quick: (
        "QUICK PLAN MODE: Ask only the most essential questions ({limit} max) to gather basic context. "
        "Be efficient and direct while still being conversational. Focus on: activity, location, timing and budget."
    ),
    PlanningMode.smart: (
        "SMART PLAN MODE: Gather richer context ({limit} questions max). Once activity, timing or budget, "
        "and location or vibe are known you may move to confirmation early."
    ),
    PlanningMode.chat: (
        "CHAT MODE: Take time to gather detailed context through thorough conversation ({limit} questions max). "
        "Never assume agreement; the user confirms the plan with a separate button."
    ),
}

EXTRACTOR_PROMPT = """You are a highly conversational lifestyle planning assistant. Your goal is to gather context through natural dialogue before a plan is generated.

CURRENT SESSION STATE: {state}
QUESTIONS ASKED IN THIS MODE: {asked}/{limit}
COLLECTED CONTEXT: {slots}
BUDGET TIER: {tier}

{policy}

CONVERSATION APPROACH:
- Ask ONE clarifying question at a time
- Never ask about something already collected
- Make smart assumptions and let the user correct you

REQUIRED CONTEXT: activityType, timing (departureTime/arrivalTime/date), location (current/destination), budget
OPTIONAL CONTEXT: transportation, vibe, companions, purpose, outfit (formality)

RESPONSE FORMAT:
Always respond with valid JSON in this exact structure:
{{
  "action": "ask_question" | "update_slots" | "confirm_plan" | "generate_plan",
  "message": "Conversational response to user",
  "extractedSlots": {{ /* only new context extracted from the latest user message */ }},
  "nextQuestion": "Next clarifying question (if action is ask_question)",
  "missingRequiredSlots": ["list", "of", "missing", "required", "context"],
  "confirmationSummary": "Summary for user to confirm (if action is confirm_plan)"
}}
"""


def build_system_prompt(session: PlannerSession, mode: Optional[PlanningMode] = None) -> str:
    mode = mode or session.mode
    limit = MODE_QUESTION_LIMITS[mode]
    asked = getattr(session.external_context.question_count, MODE_COUNTER_KEY[mode])
    return EXTRACTOR_PROMPT.format(
        state=session.state.value,
        asked=asked,
        limit=limit,
        slots=json.dumps(session.slots.wire(), indent=2, ensure_ascii=False),
        tier=normalize_budget(session.slots).value,
        policy=MODE_POLICIES[mode].format(limit=limit),
    )


class BedrockModelAdapter:
    """Model adapter that asks a Bedrock chat model for a structured extraction."""

    name = "bedrock"

    def __init__(self, llm: Optional[ChatBedrock] = None) -> None:
        if llm is None and not missing_aws_credentials():
            llm = get_bedrock_client()
        self.llm = llm

    def extract(self, system_prompt: str, history: List[Message], new_message: str) -> Union[Dict[str, Any], str]:
        return call_llm_json(system_prompt, history, new_message, self.llm)
