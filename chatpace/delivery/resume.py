"""Continuation after a tool call: rebuilds the history for the next session."""

from __future__ import annotations

import json
from typing import Any

from chatpace.delivery.models import DeliveryResult, SessionStatus


def build_resume_messages(
    context: list[dict[str, Any]],
    result: DeliveryResult,
    tool_result: Any,
) -> list[dict[str, Any]]:
    """Prior turns for the session that continues an interrupted one.

    Order: the original context, an assistant turn holding the tool call, a
    tool turn holding the result, then whatever the model had already said
    before it asked for the tool.

    Args:
        context: Messages the interrupted request was built from (LLM format).
        result: The interrupted session's FUNCTION_CALL result.
        tool_result: Output of the executed tool; non-strings are JSON-encoded.
    """
    if result.status is not SessionStatus.FUNCTION_CALL or result.tool_call is None:
        raise ValueError(f"Cannot resume from a session that ended with status {result.status.value}")

    call = result.tool_call
    content = tool_result if isinstance(tool_result, str) else json.dumps(tool_result, ensure_ascii=False)

    messages = list(context)
    messages.append({
        "role": "assistant",
        "content": None,
        "tool_calls": [{
            "id": call.id,
            "type": "function",
            "function": {"name": call.name, "arguments": json.dumps(call.args, ensure_ascii=False)},
        }],
    })
    messages.append({
        "role": "tool",
        "tool_call_id": call.id,
        "name": call.name,
        "content": content,
    })
    if result.model_text:
        messages.append({"role": "assistant", "content": result.model_text})
    return messages
