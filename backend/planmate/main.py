from __future__ import annotations

import os
import uuid

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from planmate.core.confirmation import missing_essentials
from planmate.core.errors import ConfirmationNotAllowedError, SessionNotFoundError
from planmate.core.orchestrator import DialogueOrchestrator
from planmate.core.store import SessionStore
from planmate.core.types import (
    ChatRequest,
    ChatResponse,
    CreateSessionRequest,
    PlannerSession,
    PlanningMode,
    PlanPreview,
    TurnResult,
)


app = FastAPI(title="PlanMate Planner API", default_response_class=ORJSONResponse)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

pipeline = DialogueOrchestrator()
store = SessionStore()


@app.exception_handler(SessionNotFoundError)
def session_not_found(_: Request, exc: SessionNotFoundError) -> ORJSONResponse:
    return ORJSONResponse(status_code=404, content={"error": "Session not found", "session_id": exc.session_id})


@app.exception_handler(ConfirmationNotAllowedError)
def confirmation_not_allowed(_: Request, exc: ConfirmationNotAllowedError) -> ORJSONResponse:
    return ORJSONResponse(status_code=409, content={"error": str(exc), "state": exc.state})


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.post("/sessions", response_model=PlannerSession)
def create_session(req: CreateSessionRequest) -> PlannerSession:
    return store.save(pipeline.start_session(req.mode))


@app.get("/sessions/{session_id}", response_model=PlannerSession)
def get_session(session_id: str) -> PlannerSession:
    return store.get(session_id)


@app.post("/chat", response_model=ChatResponse)
def chat(req: ChatRequest) -> ChatResponse:
    session_id = req.session_id or uuid.uuid4().hex
    # Lookup, creation and the turn itself share one lock per session id
    with store.lock(session_id):
        session = store.find(session_id)
        if session is None:
            session = store.save(pipeline.start_session(req.mode or PlanningMode.quick, session_id=session_id))
        result = pipeline.process_message(session, req.message, req.mode)
        store.save(session)
    return ChatResponse.model_validate({**result.model_dump(), "session_id": session.id})


@app.post("/sessions/{session_id}/confirm", response_model=PlannerSession)
def confirm(session_id: str) -> PlannerSession:
    with store.lock(session_id):
        session = pipeline.confirm(store.get(session_id))
        return store.save(session)


@app.post("/sessions/{session_id}/generate", response_model=TurnResult)
def generate(session_id: str) -> TurnResult:
    with store.lock(session_id):
        session = store.get(session_id)
        missing = missing_essentials(session.slots)
        if missing:
            raise HTTPException(
                status_code=400,
                detail={"error": "Incomplete context", "missing_slots": missing},
            )
        if not session.user_confirmed_add:
            raise HTTPException(
                status_code=409,
                detail={"error": "User confirmation required"},
            )
        result = pipeline.generate(session)
        store.save(session)
    return result


@app.get("/sessions/{session_id}/preview", response_model=PlanPreview)
def preview(session_id: str) -> PlanPreview:
    return pipeline.preview(store.get(session_id))


@app.post("/sessions/{session_id}/reset", response_model=PlannerSession)
def reset(session_id: str) -> PlannerSession:
    with store.lock(session_id):
        session = pipeline.reset(store.get(session_id))
        return store.save(session)


# Local dev convenience: uvicorn entry point
if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("planmate.main:app", host="0.0.0.0", port=port, reload=True)
