from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Tuple

from .slots import deep_merge


ACTIVITY_PATTERNS: List[Tuple[str, str]] = [
    ("business trip", r"\bbusiness\s+trip\b"),
    ("date", r"\b(date|date night|romantic (?:dinner|evening)|anniversary)\b"),
    ("travel", r"\b(trip|travel(?:ling|ing)?|vacation|getaway|flight)\b"),
    ("workout", r"\b(workout|gym|run|yoga|hike|hiking)\b"),
    ("party", r"\b(party|birthday|celebration)\b"),
    ("concert", r"\b(concert|gig|show)\b"),
    ("dinner", r"\b(dinner|lunch|brunch|restaurant)\b"),
    ("movie night", r"\b(movie|cinema|film)\b"),
]

TRANSPORT_PATTERNS: List[Tuple[str, str]] = [
    ("driving", r"\b(drive|driving|car)\b"),
    ("rideshare", r"\b(uber|lyft|taxi|cab|rideshare)\b"),
    ("transit", r"\b(train|subway|metro|bus|transit)\b"),
    ("walking", r"\b(walk|walking|on foot)\b"),
    ("flying", r"\b(fly|flying)\b"),
]

VIBE_RE = re.compile(r"\b(romantic|chill|relaxed|adventurous|lively|fancy|cozy|low-key|fun)\b", re.I)
TIME_RE = re.compile(r"\b(\d{1,2}(?::\d{2})?\s?(?:am|pm)|noon|midnight)\b", re.I)
ARRIVAL_RE = re.compile(r"\b(?:arrive|be there|get there)\s+(?:by|at)\s+(\d{1,2}(?::\d{2})?\s?(?:am|pm)|noon)\b", re.I)
DATE_RE = re.compile(
    r"\b(today|tonight|tomorrow|this weekend|next weekend|"
    r"(?:this |next )?(?:mon|tues|wednes|thurs|fri|satur|sun)day|\d{4}-\d{2}-\d{2})\b",
    re.I,
)
DESTINATION_RE = re.compile(r"\b(?:to|in|at|near|around)\s+((?:[A-Z][\w'-]*)(?:\s+[A-Z][\w'-]*)*)")
ORIGIN_RE = re.compile(r"\bfrom\s+((?:[A-Z][\w'-]*)(?:\s+[A-Z][\w'-]*)*)")
DOLLAR_RE = re.compile(r"\$\s?\d+(?:\s*-\s*\$?\d+)?")
COMPANIONS_RE = re.compile(r"\bwith\s+((?:my\s+)?[a-z]+(?:\s+and\s+(?:my\s+)?[a-z]+)?)", re.I)
FORMALITY_RE = re.compile(r"\b(formal|semi-formal|smart casual|dressy|business)\s+(?:attire|outfit|dress|style)\b", re.I)
GENERATE_RE = re.compile(r"\b(generate|create|build|make)\b[^\n]{0,30}\bplan\b|\bgo ahead\b", re.I)

BUDGET_WORDS: List[Tuple[str, str]] = [
    ("low", r"\b(cheap|free|low budget|budget-friendly|inexpensive)\b"),
    ("medium", r"\b(moderate|mid-range|reasonable)\b"),
    ("high", r"\b(splurge|luxury|fine dining|no limit|high-end)\b"),
]

REQUIRED_SLOTS: List[str] = ["activityType", "timing", "location", "budget"]

QUESTION_TEMPLATES: Dict[str, str] = {
    "activityType": "What would you like to plan?",
    "timing": "What time are you thinking?",
    "location": "Where are you heading?",
    "budget": "What budget feels right for this?",
}


def _first_label(patterns: List[Tuple[str, str]], text: str) -> Optional[str]:
    for label, pattern in patterns:
        if re.search(pattern, text, re.I):
            return label
    return None


def detect_activity(text: str) -> Optional[str]:
    return _first_label(ACTIVITY_PATTERNS, text)


def wants_plan(text: str) -> bool:
    return bool(GENERATE_RE.search(text))


def extract_slots(text: str) -> Dict[str, Any]:
    """Best-effort slot delta from a single message, as camelCase wire data."""
    slots: Dict[str, Any] = {}

    activity = detect_activity(text)
    if activity:
        slots["activityType"] = activity
    if activity == "business trip":
        slots["purpose"] = "business"

    timing: Dict[str, str] = {}
    m = ARRIVAL_RE.search(text)
    if m:
        timing["arrivalTime"] = m.group(1).replace(" ", "").lower()
    else:
        m = TIME_RE.search(text)
        if m:
            timing["departureTime"] = m.group(1).replace(" ", "").lower()
    m = DATE_RE.search(text)
    if m:
        timing["date"] = m.group(1).lower()
    if timing:
        slots["timing"] = timing

    location: Dict[str, str] = {}
    m = DESTINATION_RE.search(text)
    if m:
        location["destination"] = m.group(1).strip()
    m = ORIGIN_RE.search(text)
    if m:
        location["current"] = m.group(1).strip()
    if location:
        slots["location"] = location

    m = DOLLAR_RE.search(text)
    if m:
        slots["budget"] = m.group(0).replace(" ", "")
    else:
        word = _first_label(BUDGET_WORDS, text)
        if word:
            slots["budget"] = word

    transport = _first_label(TRANSPORT_PATTERNS, text)
    if transport:
        slots["transportation"] = transport

    m = VIBE_RE.search(text)
    if m:
        slots["vibe"] = m.group(1).lower()

    m = COMPANIONS_RE.search(text)
    if m:
        slots["companions"] = m.group(1).lower()

    m = FORMALITY_RE.search(text)
    if m:
        slots["outfit"] = {"formality": m.group(1).lower()}

    return slots


def missing_required(slots: Dict[str, Any]) -> List[str]:
    return [k for k in REQUIRED_SLOTS if not slots.get(k)]


def accumulate(messages: List[str]) -> Dict[str, Any]:
    acc: Dict[str, Any] = {}
    for text in messages:
        acc = deep_merge(acc, extract_slots(text))
    return acc
