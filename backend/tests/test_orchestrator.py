import pytest

from planmate.agents.extractor import RuleBasedAdapter
from planmate.agents.responder import RECOVERABLE_MESSAGE, RECOVERABLE_QUESTION
from planmate.core.errors import ConfirmationNotAllowedError, ModelUnavailableError
from planmate.core.guardrails import EARLY_STOP_NOTICE, ENOUGH_GATHERED_NOTICE
from planmate.core.orchestrator import USE_LLM, DialogueOrchestrator
from planmate.core.types import PlanningMode, QuestionCount, SessionState


def _ask(message, slots=None, question=None, missing=None):
    return {
        "action": "ask_question",
        "message": message,
        "extractedSlots": slots or {},
        "nextQuestion": question,
        "missingRequiredSlots": missing if missing is not None else ["budget"],
    }


GENERATE = {"action": "generate_plan", "message": "Creating your plan!"}


def test_quick_flow_requires_explicit_confirmation(make_orchestrator):
    pipe, _ = make_orchestrator(
        _ask("Fun! What time?", {"activityType": "date"}, "What time?", ["timing", "location", "budget"]),
        _ask("Where to?", {"timing": {"departureTime": "7pm"}}, "Where to?", ["location", "budget"]),
        _ask("Budget?", {"location": {"destination": "Riverside"}}, "Budget?"),
        _ask("Anything else?"),
        GENERATE,
        GENERATE,
    )
    session = pipe.start_session(PlanningMode.quick)

    r1 = pipe.process_message(session, "I want to plan a date")
    assert r1.session_state == SessionState.gathering
    assert r1.message == "Fun! What time?"
    assert r1.next_question == "What time?"
    assert r1.show_confirmation is False

    r2 = pipe.process_message(session, "7pm")
    assert r2.session_state == SessionState.gathering
    assert session.external_context.question_count.quick == 2

    # third question reaches the quick-mode cap
    r3 = pipe.process_message(session, "Riverside")
    assert r3.guardrail_override is True
    assert r3.session_state == SessionState.confirming
    assert r3.message.startswith(ENOUGH_GATHERED_NOTICE)

    r4 = pipe.process_message(session, "not sure yet")
    assert r4.session_state == SessionState.confirming
    assert r4.show_confirmation is True
    assert r4.next_question is None
    for fragment in ("date", "7pm", "Riverside"):
        assert fragment in r4.confirmation_summary
    assert not r4.message.startswith(ENOUGH_GATHERED_NOTICE)
    assert "Anything else?" not in r4.message
    assert r4.generated_plan is None

    # the model asking to generate is not enough on its own
    r5 = pipe.process_message(session, "sounds great, make it")
    assert r5.generated_plan is None
    assert r5.ready_to_generate is False
    assert r5.show_confirmation is True
    assert session.state == SessionState.confirming

    pipe.confirm(session)
    assert session.user_confirmed_add is True

    r6 = pipe.process_message(session, "yes")
    assert r6.ready_to_generate is True
    assert r6.generated_plan is not None
    assert r6.generated_plan.timeline[0].time == "7pm"
    assert r6.session_state == SessionState.completed
    assert session.generated_plan == r6.generated_plan
    assert session.user_confirmed_add is False

    roles = [m.role for m in session.conversation_history]
    assert roles == ["user", "assistant"] * 6
    assert session.conversation_history[0].content == "I want to plan a date"


def test_model_failure_leaves_session_unchanged(make_orchestrator):
    pipe, _ = make_orchestrator(ModelUnavailableError("throttled"), TimeoutError("slow"))
    session = pipe.start_session()
    before = session.model_dump()

    r = pipe.process_message(session, "plan a date")
    assert r.message == RECOVERABLE_MESSAGE
    assert r.next_question == RECOVERABLE_QUESTION
    assert r.generated_plan is None
    assert session.model_dump() == before

    r = pipe.process_message(session, "plan a date")
    assert r.message == RECOVERABLE_MESSAGE
    assert session.model_dump() == before


def test_malformed_reply_becomes_question(make_orchestrator):
    pipe, _ = make_orchestrator("Sorry, which city did you mean?")
    session = pipe.start_session()
    r = pipe.process_message(session, "somewhere nice")
    assert r.message == "Sorry, which city did you mean?"
    assert r.next_question == "Sorry, which city did you mean?"
    assert r.session_state == SessionState.gathering
    assert session.external_context.question_count.quick == 1
    assert session.slots.wire() == {}


def test_fenced_json_reply_is_merged(make_orchestrator):
    fenced = '```json\n{"action": "update_slots", "message": "Noted.", "extractedSlots": {"vibe": "chill"}}\n```'
    pipe, _ = make_orchestrator(fenced)
    session = pipe.start_session()
    r = pipe.process_message(session, "keep it chill")
    assert r.updated_slots.vibe == "chill"
    assert [c.label for c in r.context_chips][-1] == "Vibe"
    assert session.external_context.question_count.quick == 0


def test_smart_mode_early_stop(make_orchestrator):
    pipe, _ = make_orchestrator(
        _ask("Who's coming?", {"activityType": "date", "budget": "$40", "location": {"destination": "Downtown"}})
    )
    session = pipe.start_session(PlanningMode.smart)
    session.external_context.question_count = QuestionCount(smart=2)
    r = pipe.process_message(session, "date downtown for $40")
    assert r.guardrail_override is True
    assert r.session_state == SessionState.confirming
    assert r.message.startswith(EARLY_STOP_NOTICE)
    assert session.external_context.question_count.smart == 3


def test_model_confirmation_summary_is_used(make_orchestrator):
    summary = "Date at 7pm in Riverside. Shall I build it?"
    pipe, _ = make_orchestrator({"action": "confirm_plan", "message": summary, "confirmationSummary": summary})
    session = pipe.start_session()
    r = pipe.process_message(session, "that's everything")
    assert r.show_confirmation is True
    assert r.confirmation_summary == summary
    assert r.message == summary


def test_minimum_context_auto_advances(make_orchestrator):
    pipe, _ = make_orchestrator(
        _ask(
            "Perfect. Any budget in mind?",
            {"activityType": "dinner", "timing": {"departureTime": "8pm"}, "location": "Soho"},
            "Any budget in mind?",
            [],
        )
    )
    session = pipe.start_session()
    r = pipe.process_message(session, "dinner in Soho at 8pm")
    assert r.show_confirmation is True
    assert r.session_state == SessionState.confirming
    assert r.guardrail_override is False
    assert r.next_question is None
    # the superseded question is not shown above the summary
    assert "Any budget in mind?" not in r.message
    assert r.message == f"Perfect.\n\n{r.confirmation_summary}"


def test_system_prompt_carries_state_and_slots(make_orchestrator):
    pipe, adapter = make_orchestrator(_ask("What time?", {"activityType": "date"}), _ask("Where?"))
    session = pipe.start_session(PlanningMode.chat)
    pipe.process_message(session, "a date")
    pipe.process_message(session, "7pm")

    first_prompt, first_history, first_message = adapter.calls[0]
    assert "CURRENT SESSION STATE: intake" in first_prompt
    assert "CHAT MODE" in first_prompt
    assert first_history == []
    assert first_message == "a date"

    second_prompt, second_history, _ = adapter.calls[1]
    assert '"activityType": "date"' in second_prompt
    assert "QUESTIONS ASKED IN THIS MODE: 1/5" in second_prompt
    assert [m.role for m in second_history] == ["user", "assistant"]


def test_confirm_rejected_outside_confirmation(make_orchestrator):
    pipe, _ = make_orchestrator()
    session = pipe.start_session()
    with pytest.raises(ConfirmationNotAllowedError):
        pipe.confirm(session)
    assert session.user_confirmed_add is False


def test_direct_generate_goes_through_gate(make_orchestrator):
    pipe, _ = make_orchestrator({"action": "confirm_plan", "extractedSlots": {"activityType": "date", "budget": "$60"}})
    session = pipe.start_session()
    pipe.process_message(session, "date, $60")

    blocked = pipe.generate(session)
    assert blocked.generated_plan is None
    assert blocked.show_confirmation is True
    assert session.state == SessionState.confirming

    pipe.confirm(session)
    result = pipe.generate(session)
    assert result.generated_plan is not None
    assert result.message == "Your date Plan is ready!"
    assert session.state == SessionState.completed
    assert session.user_confirmed_add is False


def test_preview_and_reset(make_orchestrator):
    pipe, _ = make_orchestrator({"action": "update_slots", "extractedSlots": {"activityType": "Yoga", "location": "the park"}})
    session = pipe.start_session(PlanningMode.smart)
    pipe.process_message(session, "yoga in the park")

    preview = pipe.preview(session)
    assert preview.title == "Yoga Plan"
    assert preview.category == "wellness"
    assert preview.description == "A personalized yoga experience at the park"
    assert [t.category for t in preview.tasks] == ["Preparation", "Travel", "Experience"]
    assert session.generated_plan is None

    fresh = pipe.reset(session)
    assert fresh.id == session.id
    assert fresh.mode == PlanningMode.smart
    assert fresh.state == SessionState.intake
    assert fresh.slots.wire() == {}
    assert fresh.conversation_history == []


@pytest.mark.skipif(USE_LLM, reason="These tests target rule-based mode")
def test_rule_based_adapter_flow(tmp_path):
    pipe = DialogueOrchestrator(adapter=RuleBasedAdapter(), logs_dir=str(tmp_path))
    session = pipe.start_session()

    r1 = pipe.process_message(session, "I want to plan a date")
    assert r1.updated_slots.activity_type == "date"
    assert r1.next_question == "What time are you thinking?"

    r2 = pipe.process_message(session, "tonight at 7pm, in Riverside for about $60")
    assert r2.show_confirmation is True
    assert r2.session_state == SessionState.confirming

    pipe.confirm(session)
    r3 = pipe.process_message(session, "great, create the plan")
    assert r3.generated_plan is not None
    assert r3.generated_plan.title == "date Plan"
    # "$60" matches no tier keyword
    assert r3.generated_plan.budget_breakdown.tier.value == "unknown"
