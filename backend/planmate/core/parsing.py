from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from .types import ExtractionAction, ParseResult, StructuredExtraction


_FENCE_RE = re.compile(r"^\s*```(?:json|JSON)?\s*\n?(.*?)\n?\s*```\s*$", re.S)


def strip_code_fence(text: str) -> str:
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else text.strip()


def load_json_object(text: str) -> Optional[Dict[str, Any]]:
    body = strip_code_fence(text)
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        # Prose around a JSON object
        start = body.find("{")
        end = body.rfind("}")
        if not 0 <= start < end:
            return None
        try:
            data = json.loads(body[start : end + 1])
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def fallback_extraction(raw: str) -> StructuredExtraction:
    return StructuredExtraction(action=ExtractionAction.ask_question, message=raw, next_question=raw)


def parse_extraction(payload: Union[StructuredExtraction, Dict[str, Any], str, None]) -> ParseResult:
    """Normalize whatever a model adapter returned into a ParseResult.

    Malformed payloads (not JSON, wrong shape) become an ``ask_question``
    extraction carrying the raw text, with ``ok`` set to False.
    """
    if isinstance(payload, StructuredExtraction):
        return ParseResult(ok=True, extraction=payload, raw=payload.model_dump_json(by_alias=True))

    if isinstance(payload, dict):
        data: Optional[Dict[str, Any]] = payload
        raw = json.dumps(payload, ensure_ascii=False, default=str)
    else:
        raw = (payload or "").strip()
        data = load_json_object(raw) if raw else None

    if data is None:
        return ParseResult(ok=False, extraction=fallback_extraction(raw), raw=raw, error="not a JSON object")

    try:
        extraction = StructuredExtraction.model_validate(data)
    except ValidationError as ex:
        text = data.get("message") if isinstance(data.get("message"), str) else raw
        return ParseResult(
            ok=False,
            extraction=fallback_extraction(text),
            raw=raw,
            error=f"schema mismatch: {ex.error_count()} error(s)",
        )
    return ParseResult(ok=True, extraction=extraction, raw=raw)
