from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Union

from planmate.agents.extractor import RuleBasedAdapter
from planmate.agents.responder import RECOVERABLE_MESSAGE, RECOVERABLE_QUESTION, Responder
from planmate.agents.synthesizer import PlanSynthesizer, activity_category, plan_tasks
from planmate.agents_llm.extractor_llm import BedrockModelAdapter, build_system_prompt
from planmate.core.chips import budget_text, generate_context_chips, location_text
from planmate.core.confirmation import ConfirmationGate
from planmate.core.errors import ConfirmationNotAllowedError
from planmate.core.guardrails import GuardrailEngine
from planmate.core.logger import SessionLogger
from planmate.core.parsing import parse_extraction
from planmate.core.slots import filled_slot_names, merge_slots
from planmate.core.types import (
    ExtractionAction,
    Message,
    PlannerSession,
    PlanningMode,
    PlanPreview,
    SessionState,
    StructuredExtraction,
    TurnResult,
)


USE_LLM = os.getenv("USE_LLM", "false").lower() in {"1", "true", "yes"}


class ModelAdapter(Protocol):
    def extract(
        self, system_prompt: str, history: List[Message], new_message: str
    ) -> Union[StructuredExtraction, Dict[str, Any], str]:
        ...


def default_adapter() -> ModelAdapter:
    if USE_LLM:
        return BedrockModelAdapter()
    return RuleBasedAdapter()


class DialogueOrchestrator:
    """Runs one planning turn at a time over a caller-owned session.

    The orchestrator never persists anything; callers store the session it
    mutates and must not run two turns for the same session concurrently.
    """

    def __init__(self, adapter: Optional[ModelAdapter] = None, logs_dir: Optional[str] = None) -> None:
        self.adapter = adapter or default_adapter()
        self.guardrails = GuardrailEngine()
        self.gate = ConfirmationGate()
        self._logs_dir = logs_dir
        self._loggers: dict[str, SessionLogger] = {}

    def _get_logger(self, session_id: str) -> SessionLogger:
        if session_id not in self._loggers:
            self._loggers[session_id] = SessionLogger(session_id, base_dir=self._logs_dir)
        return self._loggers[session_id]

    def _set_state(self, logger: SessionLogger, session: PlannerSession, new_state: SessionState) -> None:
        if session.state != new_state:
            logger.state_transition(session.state.value, new_state.value)
            session.state = new_state

    def start_session(self, mode: PlanningMode = PlanningMode.quick, session_id: Optional[str] = None) -> PlannerSession:
        session = PlannerSession(mode=mode) if session_id is None else PlannerSession(id=session_id, mode=mode)
        self._get_logger(session.id).info("Session started", mode=mode.value)
        return session

    def reset(self, session: PlannerSession) -> PlannerSession:
        fresh = PlannerSession(id=session.id, mode=session.mode)
        self._get_logger(session.id).info("Session reset", previous_state=session.state.value)
        return fresh

    def process_message(
        self, session: PlannerSession, message: str, mode: Optional[PlanningMode] = None
    ) -> TurnResult:
        mode = mode or session.mode
        logger = self._get_logger(session.id)
        logger.user_message(message)

        system_prompt = build_system_prompt(session, mode)
        try:
            payload = self.adapter.extract(system_prompt, list(session.conversation_history), message)
        except Exception as ex:  # noqa: BLE001
            return self._recoverable(session, logger, ex)

        parsed = parse_extraction(payload)
        extraction = parsed.extraction
        logger.step(
            "extractor",
            {"adapter": getattr(self.adapter, "name", type(self.adapter).__name__), "mode": mode.value},
            {
                "ok": parsed.ok,
                "error": parsed.error,
                "extraction": extraction.model_dump(mode="json", by_alias=True, exclude_none=True),
            },
        )

        slots = merge_slots(session.slots, extraction.extracted_slots)

        decision = self.guardrails.apply(session, extraction.action, slots, mode)
        logger.step(
            "guardrails",
            {"requested": extraction.action.value, "state": session.state.value},
            decision.model_dump(mode="json"),
        )
        if decision.overridden:
            logger.guardrail_override(
                extraction.action.value,
                decision.effective_action.value,
                decision.reason or "",
                decision.question_count.model_dump(),
            )

        gate = self.gate.gate(
            session,
            decision.effective_action,
            slots,
            missing_required_slots=extraction.missing_required_slots,
            forced_confirmation=decision.overridden,
            fallback_state=decision.next_state,
        )
        logger.step(
            "confirmation_gate",
            {
                "action": decision.effective_action.value,
                "user_confirmed_add": session.user_confirmed_add,
                "filled": filled_slot_names(slots),
            },
            gate.model_dump(mode="json"),
        )

        chips = generate_context_chips(slots)
        responder = Responder(logger)
        summary: Optional[str] = None
        if gate.show_confirmation:
            summary = extraction.confirmation_summary or responder.confirmation_summary(slots)
        reply = responder.turn_message(
            extraction.message,
            extraction.next_question,
            decision.notice,
            summary,
            pending_question=extraction.action == ExtractionAction.ask_question,
        )

        plan = None
        if gate.ready_to_generate:
            plan = PlanSynthesizer(logger).synthesize(session.model_copy(update={"slots": slots}))

        # Commit the turn: nothing above has touched the session.
        now = datetime.now(timezone.utc)
        session.conversation_history.extend(
            [
                Message(role="user", content=message, timestamp=now),
                Message(role="assistant", content=reply, timestamp=now),
            ]
        )
        session.slots = slots
        session.external_context.question_count = decision.question_count
        session.mode = mode
        self._set_state(logger, session, gate.next_state)
        if plan is not None:
            session.generated_plan = plan
            session.user_confirmed_add = False
            self._set_state(logger, session, SessionState.completed)
        session.updated_at = now

        logger.assistant_message(reply)
        result = TurnResult(
            message=reply,
            session_state=session.state,
            next_question=None if gate.show_confirmation else extraction.next_question,
            context_chips=chips,
            ready_to_generate=gate.ready_to_generate,
            show_confirmation=gate.show_confirmation,
            confirmation_summary=summary,
            generated_plan=plan,
            updated_slots=session.slots.model_copy(deep=True),
            updated_external_context=session.external_context.model_copy(deep=True),
            guardrail_override=decision.overridden,
        )
        logger.chat_response(result.model_dump(mode="json", by_alias=True))
        return result

    def _recoverable(self, session: PlannerSession, logger: SessionLogger, ex: Exception) -> TurnResult:
        logger.info("Model call failed; session left unchanged", error=str(ex), error_type=type(ex).__name__)
        logger.assistant_message(RECOVERABLE_MESSAGE)
        return TurnResult(
            message=RECOVERABLE_MESSAGE,
            session_state=session.state,
            next_question=RECOVERABLE_QUESTION,
            context_chips=generate_context_chips(session.slots),
            updated_slots=session.slots.model_copy(deep=True),
            updated_external_context=session.external_context.model_copy(deep=True),
        )

    def confirm(self, session: PlannerSession) -> PlannerSession:
        """Record the user's explicit "yes, create this" action."""
        if session.state not in (SessionState.confirming, SessionState.planning):
            raise ConfirmationNotAllowedError(session.state.value)
        session.user_confirmed_add = True
        session.updated_at = datetime.now(timezone.utc)
        self._get_logger(session.id).info("User confirmed plan creation")
        return session

    def generate(self, session: PlannerSession) -> TurnResult:
        """Request a plan directly, through the same gate as a model ``generate_plan``."""
        logger = self._get_logger(session.id)
        gate = self.gate.gate(session, ExtractionAction.generate_plan, session.slots)
        logger.step(
            "confirmation_gate",
            {"action": "generate_plan", "user_confirmed_add": session.user_confirmed_add, "source": "generate"},
            gate.model_dump(mode="json"),
        )
        chips = generate_context_chips(session.slots)

        if not gate.ready_to_generate:
            summary = Responder(logger).confirmation_summary(session.slots)
            self._set_state(logger, session, gate.next_state)
            return TurnResult(
                message=summary,
                session_state=session.state,
                context_chips=chips,
                show_confirmation=True,
                confirmation_summary=summary,
                updated_slots=session.slots.model_copy(deep=True),
                updated_external_context=session.external_context.model_copy(deep=True),
            )

        plan = PlanSynthesizer(logger).synthesize(session)
        self._set_state(logger, session, SessionState.planning)
        session.generated_plan = plan
        session.user_confirmed_add = False
        self._set_state(logger, session, SessionState.completed)
        session.updated_at = datetime.now(timezone.utc)
        message = f"Your {plan.title} is ready!"
        logger.assistant_message(message)
        return TurnResult(
            message=message,
            session_state=session.state,
            context_chips=chips,
            ready_to_generate=True,
            generated_plan=plan,
            updated_slots=session.slots.model_copy(deep=True),
            updated_external_context=session.external_context.model_copy(deep=True),
        )

    def preview(self, session: PlannerSession) -> PlanPreview:
        slots = session.slots
        activity = slots.activity_type or "Lifestyle Activity"
        location = location_text(slots) or "your location"
        preview = PlanPreview(
            title=f"{activity} Plan",
            description=f"A personalized {activity.lower()} experience at {location}",
            category=activity_category(slots.activity_type),
            tasks=plan_tasks(slots),
            summary=(
                "This plan includes preparation, travel, and the main activity. "
                f"Estimated budget: {budget_text(slots) or 'moderate'}."
            ),
            estimated_timeframe="2-4 hours",
        )
        self._get_logger(session.id).step("preview", {"slots": slots.wire()}, preview.model_dump())
        return preview
