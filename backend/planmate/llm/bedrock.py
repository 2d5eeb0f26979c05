from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Union

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from langchain_aws import ChatBedrock

from planmate.core.errors import ModelUnavailableError
from planmate.core.nlu import QUESTION_TEMPLATES, extract_slots, missing_required
from planmate.core.parsing import load_json_object
from planmate.core.types import Message


def get_bedrock_client() -> ChatBedrock:
    model_id = os.getenv("BEDROCK_MODEL_ID", "anthropic.claude-3-5-sonnet-20240620-v1:0")
    region = os.getenv("AWS_REGION", "us-east-1")
    timeout = float(os.getenv("BEDROCK_TIMEOUT_S", "30"))
    # Assumes AWS credentials are configured via env/role
    llm = ChatBedrock(
        model_id=model_id,
        region_name=region,
        model_kwargs={
            "temperature": float(os.getenv("BEDROCK_TEMPERATURE", "0.7")),
            "max_tokens": int(os.getenv("BEDROCK_MAX_TOKENS", "1500")),
        },
        config=Config(connect_timeout=timeout, read_timeout=timeout, retries={"max_attempts": 2}),
    )
    return llm


def missing_aws_credentials() -> bool:
    # Botocore would only fail at invoke time; short-circuit to offline mode instead
    return not (os.getenv("AWS_ACCESS_KEY_ID") or os.getenv("AWS_PROFILE") or os.getenv("AWS_SESSION_TOKEN"))


def _offline_response(new_message: str) -> Dict[str, Any]:
    slots = extract_slots(new_message)
    missing = missing_required(slots)
    question = QUESTION_TEMPLATES[missing[0]] if missing else None
    return {
        "action": "ask_question" if question else "update_slots",
        "message": question or "Okay.",
        "extractedSlots": slots,
        "nextQuestion": question,
        "missingRequiredSlots": missing,
    }


def to_chat_messages(system_prompt: str, history: List[Message], new_message: str) -> List[Dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    messages.extend({"role": m.role, "content": m.content} for m in history)
    messages.append({"role": "user", "content": new_message})
    return messages


def call_llm_json(
    system_prompt: str,
    history: List[Message],
    new_message: str,
    llm: Optional[ChatBedrock] = None,
) -> Union[Dict[str, Any], str]:
    """Send one chat turn and return the parsed JSON object, or the raw text."""
    if llm is None and missing_aws_credentials():
        return _offline_response(new_message)

    client = llm or get_bedrock_client()
    try:
        resp = client.invoke(to_chat_messages(system_prompt, history, new_message))
    except (BotoCoreError, ClientError, ValueError) as ex:
        raise ModelUnavailableError(f"Bedrock call failed: {ex}") from ex

    content = resp.content if hasattr(resp, "content") else str(resp)
    if isinstance(content, list):
        # Anthropic content blocks
        content = "".join(b.get("text", "") if isinstance(b, dict) else str(b) for b in content)
    data = load_json_object(content)
    return data if data is not None else content
