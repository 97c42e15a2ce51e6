"""
Normalization of agent replies for display in Teams.

The agent answers in several shapes:
- plain text
- a JSON object with a "response" or "message" field
- a JSON object describing a tool or function call
- a JSON array of role-tagged conversation messages

normalize_agent_response() reduces any of them to the text shown to the
user plus the structured history items. It is a pure function and never
raises: anything it cannot interpret is shown as the raw text.
"""
import json
import logging
from typing import Any, Dict, List

from relay_bot.models.messages import MessageHistoryItem, NormalizedResponse
from relay_bot.services.legacy_user_format import (
    looks_like_legacy_user_records,
    parse_legacy_user_records,
)

logger = logging.getLogger(__name__)

HISTORY_ROLES = ("user", "assistant", "tool")
CONTENT_FIELDS = ("content", "text", "message", "response", "result", "data")

EMPTY_ASSISTANT_TEXT = "Response received"
NO_ASSISTANT_TEXT = "Conversation processed successfully"


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def _plain_text(raw: str) -> NormalizedResponse:
    return NormalizedResponse(
        display_text=raw,
        history=[MessageHistoryItem(role="assistant", content=raw)]
    )


def format_user_list(users: List[Dict[str, Any]]) -> str:
    """
    Render directory user records as a numbered Markdown list.

    Args:
        users: Records with display_name, job_title, department and mail/email

    Returns:
        Formatted list, or "No users found." for an empty list
    """
    if not users:
        return "No users found."

    lines = [f"Found {len(users)} user(s):", ""]
    for index, user in enumerate(users, start=1):
        lines.append(f"{index}. **{user.get('display_name') or 'No name'}**")
        if user.get("job_title"):
            lines.append(f"   • Job Title: {user['job_title']}")
        if user.get("department"):
            lines.append(f"   • Department: {user['department']}")
        email = user.get("mail") or user.get("email")
        if email:
            lines.append(f"   • Email: {email}")
        lines.append("")

    return "\n".join(lines).rstrip()


def render_tool_content(content: str) -> str:
    """Render one tool result, formatting user records when present."""
    if looks_like_legacy_user_records(content):
        users = parse_legacy_user_records(content)
        if users:
            return format_user_list(users)

    try:
        parsed = json.loads(content)
    except (TypeError, ValueError, RecursionError):
        return f"Tool result: {content}"

    if isinstance(parsed, list):
        if not parsed:
            return format_user_list([])
        first = parsed[0]
        if isinstance(first, dict) and first.get("display_name"):
            return format_user_list([u for u in parsed if isinstance(u, dict)])

    return f"Tool result: {content}"


def render_tool_call(payload: Dict[str, Any]) -> str:
    """Describe a tool_calls / function_call object in one readable line."""
    tool_calls = payload.get("tool_calls")
    if tool_calls:
        first = tool_calls[0] if isinstance(tool_calls, list) else tool_calls
        function = first.get("function") if isinstance(first, dict) else None
        function = function if isinstance(function, dict) else {}
        name = function.get("name") or "Unknown"
        arguments = function.get("arguments")
        if arguments is None:
            arguments = {}
        return f"Executed tool: {name} with arguments: {_as_text(arguments)}"

    function_call = payload.get("function_call")
    if isinstance(function_call, dict):
        name = function_call.get("name") or "Unknown"
        return f"Function call: {name} with arguments: {_as_text(function_call.get('arguments', ''))}"

    return "Tool call response received"


def _normalize_array(messages: List[Any]) -> NormalizedResponse:
    relevant = [
        msg for msg in messages
        if isinstance(msg, dict) and msg.get("role") in HISTORY_ROLES
    ]
    history = [
        MessageHistoryItem(role=msg["role"], content=_as_text(msg.get("content")))
        for msg in relevant
    ]

    assistant_items = [item for item in history if item.role == "assistant"]
    tool_items = [item for item in history if item.role == "tool"]

    if assistant_items:
        display_text = assistant_items[-1].content or EMPTY_ASSISTANT_TEXT
    elif tool_items:
        display_text = "\n\n".join(render_tool_content(item.content) for item in tool_items)
    elif history:
        display_text = NO_ASSISTANT_TEXT
    else:
        display_text = f"Received {len(messages)} messages."

    return NormalizedResponse(display_text=display_text, history=history)


def _object_display_text(payload: Dict[str, Any]) -> str:
    if payload.get("role") and payload.get("content"):
        return _as_text(payload["content"])

    if payload.get("response"):
        return _as_text(payload["response"])

    if payload.get("message"):
        return _as_text(payload["message"])

    if payload.get("tool_calls") or payload.get("function_call"):
        return render_tool_call(payload)

    for field in CONTENT_FIELDS:
        value = payload.get(field)
        if isinstance(value, str) and value:
            return value

    return json.dumps(payload, indent=2, ensure_ascii=False)


def normalize_agent_response(raw: str) -> NormalizedResponse:
    """
    Convert a raw agent reply into display text and history items.

    Args:
        raw: Body returned by the agent service

    Returns:
        NormalizedResponse; the display text is never empty for a non-empty
        reply
    """
    if raw is None:
        raw = ""

    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        logger.debug("Agent reply is not JSON, treating as plain text")
        return _plain_text(raw)

    try:
        if isinstance(parsed, list):
            return _normalize_array(parsed)

        if isinstance(parsed, dict):
            display_text = _object_display_text(parsed)
            return NormalizedResponse(
                display_text=display_text,
                history=[MessageHistoryItem(role="assistant", content=display_text)]
            )
    except Exception as e:
        logger.warning(f"Could not interpret agent reply, showing raw text: {e}")
        return _plain_text(raw)

    # JSON scalars (numbers, quoted strings, booleans, null) are shown as sent
    return _plain_text(raw)
