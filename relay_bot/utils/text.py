"""
Helpers for cleaning Teams message text before routing.
"""
import re
import unicodedata
from typing import Optional

from botbuilder.core import TurnContext
from botbuilder.schema import Activity

MENTION_PATTERN = re.compile(r'<at>.*?</at>', flags=re.IGNORECASE)
LINE_BREAK_PATTERN = re.compile(r'[\r\n]+')


def remove_mention_text(text: Optional[str]) -> str:
    """
    Remove bot mention tags from message text.

    Teams includes mentions as <at>BotName</at> in the text.
    """
    if not text:
        return ""

    cleaned = MENTION_PATTERN.sub('', text)
    return cleaned.strip()


def strip_recipient_mention(activity: Activity) -> str:
    """Message text with the mention of this bot removed."""
    if activity.text and activity.recipient and activity.entities:
        text = TurnContext.remove_recipient_mention(activity)
    else:
        text = activity.text
    return remove_mention_text(text)


def normalize_command_text(text: Optional[str]) -> str:
    """Normalize Teams message text for reliable command matching."""
    if not text:
        return ""

    # Line breaks are dropped, not turned into spaces
    normalized = LINE_BREAK_PATTERN.sub("", text)

    # Normalize unicode characters (e.g., smart quotes, full-width variants)
    normalized = unicodedata.normalize("NFKC", normalized)

    # Remove zero-width and formatting characters that can appear in Teams inputs
    normalized = "".join(
        ch for ch in normalized
        if unicodedata.category(ch) != "Cf"
    )

    # Collapse whitespace and lowercase for command matching
    normalized = " ".join(normalized.split())

    return normalized.strip().lower()
