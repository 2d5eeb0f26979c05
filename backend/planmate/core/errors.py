from __future__ import annotations


class PlannerError(Exception):
    """Base class for planner failures."""


class ModelError(PlannerError):
    """Raised by a model adapter when no extraction could be obtained."""


class ModelUnavailableError(ModelError):
    """Network, auth or timeout failure while calling the model provider."""


class ConfirmationNotAllowedError(PlannerError):
    def __init__(self, state: str) -> None:
        super().__init__(f"Confirmation is only accepted while confirming (session is {state})")
        self.state = state


class SessionNotFoundError(PlannerError, KeyError):
    def __init__(self, session_id: str) -> None:
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Session {self.session_id} not found"
