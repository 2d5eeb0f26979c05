from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError

from planmate.agents.extractor import RuleBasedAdapter
from planmate.agents.responder import RECOVERABLE_MESSAGE
from planmate.agents_llm.extractor_llm import BedrockModelAdapter, build_system_prompt
from planmate.core.errors import ModelUnavailableError
from planmate.core.orchestrator import USE_LLM, DialogueOrchestrator, default_adapter
from planmate.core.types import Message, PlannerSession, PlanningMode, QuestionCount


class StubLLM:
    def __init__(self, content=None, error=None):
        self.content = content
        self.error = error
        self.messages = None

    def invoke(self, messages):
        self.messages = messages
        if self.error is not None:
            raise self.error
        return SimpleNamespace(content=self.content)


@pytest.fixture()
def no_aws(monkeypatch):
    for name in ("AWS_ACCESS_KEY_ID", "AWS_PROFILE", "AWS_SESSION_TOKEN"):
        monkeypatch.delenv(name, raising=False)


def test_offline_mode_without_credentials(no_aws):
    adapter = BedrockModelAdapter()
    assert adapter.llm is None
    data = adapter.extract("prompt", [], "Date tonight at 7pm")
    assert data["action"] == "ask_question"
    assert data["extractedSlots"]["activityType"] == "date"
    assert data["nextQuestion"] == "Where are you heading?"


def test_fenced_reply_is_decoded():
    llm = StubLLM('```json\n{"action": "confirm_plan", "message": "Ready?"}\n```')
    history = [Message(role="user", content="a date"), Message(role="assistant", content="When?")]
    data = BedrockModelAdapter(llm=llm).extract("SYSTEM", history, "7pm")
    assert data == {"action": "confirm_plan", "message": "Ready?"}
    assert llm.messages[0] == {"role": "system", "content": "SYSTEM"}
    assert [m["role"] for m in llm.messages[1:]] == ["user", "assistant", "user"]
    assert llm.messages[-1]["content"] == "7pm"


def test_content_blocks_are_joined():
    llm = StubLLM([{"type": "text", "text": '{"action": '}, {"type": "text", "text": '"update_slots"}'}])
    assert BedrockModelAdapter(llm=llm).extract("SYSTEM", [], "hi") == {"action": "update_slots"}


def test_prose_reply_is_returned_raw():
    llm = StubLLM("Where would you like to go?")
    assert BedrockModelAdapter(llm=llm).extract("SYSTEM", [], "hi") == "Where would you like to go?"


@pytest.mark.parametrize(
    "error",
    [
        ClientError({"Error": {"Code": "ThrottlingException", "Message": "slow down"}}, "InvokeModel"),
        ValueError("Error raised by bedrock service"),
    ],
)
def test_provider_errors_become_model_unavailable(error):
    with pytest.raises(ModelUnavailableError):
        BedrockModelAdapter(llm=StubLLM(error=error)).extract("SYSTEM", [], "hi")


def test_orchestrator_recovers_from_provider_error(tmp_path):
    error = ClientError({"Error": {"Code": "AccessDeniedException", "Message": "no"}}, "InvokeModel")
    pipe = DialogueOrchestrator(adapter=BedrockModelAdapter(llm=StubLLM(error=error)), logs_dir=str(tmp_path))
    session = pipe.start_session()
    r = pipe.process_message(session, "plan a date")
    assert r.message == RECOVERABLE_MESSAGE
    assert session.conversation_history == []


def test_system_prompt_reflects_mode_policy():
    session = PlannerSession(mode=PlanningMode.smart)
    session.external_context.question_count = QuestionCount(smart=2, quick=1)
    prompt = build_system_prompt(session)
    assert "SMART PLAN MODE" in prompt
    assert "QUESTIONS ASKED IN THIS MODE: 2/5" in prompt
    quick = build_system_prompt(session, PlanningMode.quick)
    assert "QUICK PLAN MODE: Ask only the most essential questions (3 max)" in quick
    assert "QUESTIONS ASKED IN THIS MODE: 1/3" in quick


@pytest.mark.skipif(USE_LLM, reason="These tests target rule-based mode")
def test_default_adapter_is_rule_based():
    assert isinstance(default_adapter(), RuleBasedAdapter)


@pytest.mark.skipif(not USE_LLM, reason="Requires LLM mode")
def test_default_adapter_is_bedrock_in_llm_mode():
    assert isinstance(default_adapter(), BedrockModelAdapter)
