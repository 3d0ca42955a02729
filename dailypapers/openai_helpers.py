from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Union

from openai import OpenAI

MessageDict = Dict[str, str]
MessageLike = Union[str, MessageDict]


def _format_messages(messages: Sequence[MessageLike]) -> List[Dict[str, str]]:
    formatted: List[Dict[str, str]] = []
    for msg in messages:
        if isinstance(msg, str):
            formatted.append({"role": "user", "content": msg})
            continue
        role = msg.get("role")
        content = msg.get("content")
        if not role or content is None:
            continue
        formatted.append({"role": role, "content": str(content)})
    return formatted


def call_responses(
    client: OpenAI,
    model: str,
    messages: Sequence[MessageLike],
    *,
    temperature: Optional[float] = None,
    max_output_tokens: Optional[int] = None,
) -> Any:
    payload: Dict[str, Any] = {
        "model": model,
        "input": _format_messages(messages),
    }
    # Reasoning models reject an explicit temperature
    if temperature is not None and not model.startswith(("gpt-5", "o1", "o3", "o4")):
        payload["temperature"] = temperature
    if max_output_tokens is not None:
        payload["max_output_tokens"] = max_output_tokens
    return client.responses.create(**payload)


def response_text(resp: Any) -> str:
    text = getattr(resp, "output_text", None)
    if isinstance(text, str) and text:
        return text.strip()

    try:
        data = resp.model_dump()
    except AttributeError:
        return ""

    outputs = data.get("output") if isinstance(data, dict) else None
    if not isinstance(outputs, list):
        return ""

    chunks: List[str] = []
    for item in outputs:
        content_items = item.get("content") if isinstance(item, dict) else None
        if not isinstance(content_items, list):
            continue
        for content in content_items:
            if isinstance(content, dict) and content.get("type") == "output_text":
                value = content.get("text")
                chunks.append(value if isinstance(value, str) else str(value or ""))
    return "".join(chunks).strip()
