from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionState(str, Enum):
    intake = "intake"
    gathering = "gathering"
    confirming = "confirming"
    planning = "planning"
    completed = "completed"


class PlanningMode(str, Enum):
    quick = "quick"
    smart = "smart"
    chat = "chat"


class ExtractionAction(str, Enum):
    ask_question = "ask_question"
    update_slots = "update_slots"
    confirm_plan = "confirm_plan"
    generate_plan = "generate_plan"


class BudgetTier(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    unknown = "unknown"


class ChipCategory(str, Enum):
    required = "required"
    optional = "optional"


# Question budget per mode; chat shares the smart policy and counter.
MODE_QUESTION_LIMITS: Dict[PlanningMode, int] = {
    PlanningMode.quick: 3,
    PlanningMode.smart: 5,
    PlanningMode.chat: 5,
}

MODE_COUNTER_KEY: Dict[PlanningMode, str] = {
    PlanningMode.quick: "quick",
    PlanningMode.smart: "smart",
    PlanningMode.chat: "smart",
}

EARLY_STOP_QUESTION_COUNT = 3

REQUIRED_CHIP_LABELS: List[str] = ["Activity", "Time", "Location", "Budget"]


# ---------------------------------------------------------------------------
# Slots
# ---------------------------------------------------------------------------


class SlotRecord(BaseModel):
    """Base for slot records: camelCase on the wire, unknown keys preserved."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


def _stringify(v: Any) -> Any:
    if isinstance(v, bool):
        return v
    if isinstance(v, (int, float)):
        return str(v)
    return v


class Location(SlotRecord):
    current: Optional[str] = None
    destination: Optional[str] = None

    @field_validator("current", "destination", mode="before")
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _stringify(v)


class Timing(SlotRecord):
    departure_time: Optional[str] = None
    arrival_time: Optional[str] = None
    date: Optional[str] = None

    @field_validator("departure_time", "arrival_time", "date", mode="before")
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _stringify(v)


class BudgetRange(SlotRecord):
    range: Optional[str] = None

    @field_validator("range", mode="before")
    @classmethod
    def _coerce(cls, v: Any) -> Any:
        return _stringify(v)


class Outfit(SlotRecord):
    formality: Optional[str] = None


class Slots(SlotRecord):
    activity_type: Optional[str] = None
    location: Optional[Location] = None
    timing: Optional[Timing] = None
    budget: Optional[Union[str, BudgetRange]] = None
    transportation: Optional[str] = None
    vibe: Optional[str] = None
    companions: Optional[Union[str, List[str], Dict[str, Any]]] = None
    purpose: Optional[str] = None
    outfit: Optional[Outfit] = None

    @field_validator("budget", "companions", mode="before")
    @classmethod
    def _numbers_to_text(cls, v: Any) -> Any:
        return _stringify(v)

    @field_validator("location", mode="before")
    @classmethod
    def _bare_location(cls, v: Any) -> Any:
        # "Riverside" is read as the destination
        return {"destination": v} if isinstance(v, str) else v

    @field_validator("timing", mode="before")
    @classmethod
    def _bare_timing(cls, v: Any) -> Any:
        return {"date": v} if isinstance(v, str) else v

    @field_validator("outfit", mode="before")
    @classmethod
    def _bare_outfit(cls, v: Any) -> Any:
        return {"formality": v} if isinstance(v, str) else v


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class Message(BaseModel):
    role: Literal["user", "assistant"] = "assistant"
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)


class QuestionCount(BaseModel):
    smart: int = 0
    quick: int = 0


class ExternalContext(BaseModel):
    question_count: QuestionCount = Field(default_factory=QuestionCount)


class ContextChip(BaseModel):
    label: str
    value: str
    category: ChipCategory
    filled: bool


class TimelineEntry(BaseModel):
    time: str
    activity: str
    location: str
    notes: str = ""


class BudgetLine(BaseModel):
    category: str
    range: str


class BudgetBreakdown(BaseModel):
    tier: BudgetTier
    total: str
    items: List[BudgetLine] = Field(default_factory=list)


class PlanTask(BaseModel):
    title: str
    description: str
    category: str
    priority: Literal["high", "medium", "low"] = "medium"
    time_estimate: str = ""


class Plan(BaseModel):
    title: str
    summary: str
    category: str
    activity_suggestions: List[str] = Field(default_factory=list)
    timeline: List[TimelineEntry] = Field(default_factory=list)
    budget_breakdown: BudgetBreakdown
    tips: List[str] = Field(default_factory=list)
    outfit: str = ""
    tasks: List[PlanTask] = Field(default_factory=list)


class PlanPreview(BaseModel):
    title: str
    description: str
    category: str
    tasks: List[PlanTask] = Field(default_factory=list)
    summary: str
    estimated_timeframe: str


class PlannerSession(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    state: SessionState = SessionState.intake
    mode: PlanningMode = PlanningMode.quick
    slots: Slots = Field(default_factory=Slots)
    conversation_history: List[Message] = Field(default_factory=list)
    external_context: ExternalContext = Field(default_factory=ExternalContext)
    user_confirmed_add: bool = False
    generated_plan: Optional[Plan] = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)


# ---------------------------------------------------------------------------
# Model contract and per-turn decisions
# ---------------------------------------------------------------------------


class StructuredExtraction(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    action: ExtractionAction
    message: Optional[str] = None
    extracted_slots: Optional[Slots] = None
    next_question: Optional[str] = None
    missing_required_slots: Optional[List[str]] = None
    confirmation_summary: Optional[str] = None


class ParseResult(BaseModel):
    ok: bool
    extraction: StructuredExtraction
    raw: str = ""
    error: Optional[str] = None


class GuardrailDecision(BaseModel):
    effective_action: ExtractionAction
    next_state: SessionState
    question_count: QuestionCount
    overridden: bool = False
    reason: Optional[Literal["question_limit", "early_stop"]] = None
    notice: Optional[str] = None


class GateDecision(BaseModel):
    ready_to_generate: bool = False
    show_confirmation: bool = False
    next_state: SessionState


class TurnResult(BaseModel):
    message: str
    session_state: SessionState
    next_question: Optional[str] = None
    context_chips: List[ContextChip] = Field(default_factory=list)
    ready_to_generate: bool = False
    show_confirmation: bool = False
    confirmation_summary: Optional[str] = None
    generated_plan: Optional[Plan] = None
    updated_slots: Slots = Field(default_factory=Slots)
    updated_external_context: ExternalContext = Field(default_factory=ExternalContext)
    guardrail_override: bool = False


# ---------------------------------------------------------------------------
# HTTP payloads
# ---------------------------------------------------------------------------


class CreateSessionRequest(BaseModel):
    mode: PlanningMode = PlanningMode.quick


class ChatRequest(BaseModel):
    session_id: Optional[str] = None
    message: str
    mode: Optional[PlanningMode] = None


class ChatResponse(TurnResult):
    session_id: str
