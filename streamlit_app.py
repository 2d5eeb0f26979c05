from __future__ import annotations

import glob
import json
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

import streamlit as st


EVENTS = [
    "user_message",
    "assistant_message",
    "agent_step",
    "state_transition",
    "guardrail_override",
    "chat_response",
    "info",
]
HIDDEN_BY_DEFAULT = {"chat_response", "info"}


def get_logs_dir() -> str:
    # Same override order as the backend logger, then backend/logs next to this file
    env_dir = os.getenv("PLANMATE_LOGS_DIR") or os.getenv("LOGS_DIR")
    if env_dir:
        return env_dir
    here = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(here, "backend", "logs")


def list_session_files(logs_dir: str) -> List[str]:
    files = glob.glob(os.path.join(logs_dir, "session_*.jsonl"))
    files.sort(key=lambda p: os.path.getmtime(p), reverse=True)
    return files


def read_jsonl(path: str) -> List[Dict[str, Any]]:
    records: List[Dict[str, Any]] = []
    try:
        with open(path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue
                try:
                    records.append(json.loads(line))
                except json.JSONDecodeError:
                    # A turn still being written
                    continue
    except FileNotFoundError:
        return []
    return records


def format_ts(ts: Optional[str]) -> str:
    if not ts:
        return ""
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00")).strftime("%Y-%m-%d %H:%M:%S")
    except ValueError:
        return ts


def event_palette(event: str) -> str:
    return {
        "user_message": "#1f6feb",
        "assistant_message": "#3fb950",
        "agent_step": "#9e6ffe",
        "state_transition": "#ffa657",
        "guardrail_override": "#f85149",
        "chat_response": "#d29922",
        "info": "#8b949e",
    }.get(event, "#8b949e")


def latest_turn(records: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    for rec in reversed(records):
        if rec.get("event") == "chat_response":
            return rec.get("payload", {})
    return None


def render_turn_header(turn: Dict[str, Any]) -> None:
    counts = (turn.get("updated_external_context") or {}).get("question_count", {})
    cols = st.columns(4)
    cols[0].metric("State", turn.get("session_state", "?"))
    cols[1].metric("Quick questions", counts.get("quick", 0))
    cols[2].metric("Smart questions", counts.get("smart", 0))
    cols[3].metric("Plan", "ready" if turn.get("generated_plan") else "none")

    chips = turn.get("context_chips") or []
    if chips:
        st.markdown(
            " ".join(
                f"`{'✓' if c.get('filled') else '…'} {c.get('label')}: {c.get('value')}`" for c in chips
            )
        )


def render_event(rec: Dict[str, Any]) -> None:
    ts = rec.get("ts")
    ev = rec.get("event")
    payload = rec.get("payload", {})
    color = event_palette(ev)

    with st.container():
        st.markdown(f"<div style='color:{color};font-weight:600'>{ev}</div>", unsafe_allow_html=True)
        if ts:
            st.caption(format_ts(ts))

        if ev == "user_message":
            st.markdown(f"User: {payload.get('message', '')}")
        elif ev == "assistant_message":
            st.markdown(f"Assistant: {payload.get('message', '')}")
        elif ev == "agent_step":
            with st.expander(f"Step: {payload.get('name', 'step')}"):
                st.write("Input:")
                st.json(payload.get("input", {}), expanded=False)
                st.write("Output:")
                st.json(payload.get("output", {}), expanded=False)
        elif ev == "state_transition":
            st.markdown(f"State: {payload.get('from')} → {payload.get('to')}")
        elif ev == "guardrail_override":
            st.markdown(
                f"Guardrail ({payload.get('reason')}): {payload.get('requested')} → {payload.get('effective')}"
            )
            st.caption(f"Questions asked: {payload.get('question_count')}")
        elif ev == "chat_response":
            with st.expander("TurnResult"):
                st.json(payload, expanded=False)
        else:
            st.json(payload, expanded=False)


def main() -> None:
    st.set_page_config(page_title="PlanMate Logs", layout="wide")
    st.title("PlanMate – Session Logs")

    logs_dir = get_logs_dir()
    st.sidebar.header("Controls")
    st.sidebar.write(f"Logs dir: {logs_dir}")
    if st.sidebar.button("Refresh"):
        st.rerun()

    files = list_session_files(logs_dir)
    if not files:
        st.info("No session logs found yet. Start a planning chat with the backend to generate logs.")
        return

    labels = [os.path.basename(p) for p in files]
    choice = st.sidebar.selectbox("Session", options=list(range(len(files))), format_func=lambda i: labels[i], index=0)
    path = files[choice]

    st.sidebar.subheader("Event filters")
    filters = {ev: st.sidebar.checkbox(ev, value=ev not in HIDDEN_BY_DEFAULT) for ev in EVENTS}

    st.subheader(os.path.basename(path))
    st.caption(f"Updated: {datetime.fromtimestamp(os.path.getmtime(path)).strftime('%Y-%m-%d %H:%M:%S')}")

    records = read_jsonl(path)
    if not records:
        st.warning("Log file is empty.")
        return

    turn = latest_turn(records)
    if turn:
        render_turn_header(turn)
        st.divider()

    for rec in records:
        if not filters.get(rec.get("event"), False):
            continue
        render_event(rec)
        st.divider()

    with open(path, "rb") as f:
        st.download_button("Download log file", data=f, file_name=os.path.basename(path), mime="text/plain")


if __name__ == "__main__":
    main()
