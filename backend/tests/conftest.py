from typing import Any, List

import pytest

from planmate.core.orchestrator import DialogueOrchestrator


class ScriptedAdapter:
    """Stands in for the model: replays canned responses, raises canned errors."""

    name = "scripted"

    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.calls: List[tuple] = []

    def extract(self, system_prompt, history, new_message):
        self.calls.append((system_prompt, list(history), new_message))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


@pytest.fixture()
def logs_dir(tmp_path):
    d = tmp_path / "logs"
    d.mkdir(parents=True, exist_ok=True)
    return d


@pytest.fixture()
def make_orchestrator(logs_dir):
    def _make(*responses):
        adapter = ScriptedAdapter(list(responses))
        return DialogueOrchestrator(adapter=adapter, logs_dir=str(logs_dir)), adapter

    return _make
