"""Teams relay bot models package."""
from .messages import (
    DEFAULT_PROACTIVE_MESSAGE,
    MessageHistoryItem,
    NormalizedResponse,
    NotifyRequest,
)

__all__ = ["DEFAULT_PROACTIVE_MESSAGE", "MessageHistoryItem", "NormalizedResponse", "NotifyRequest"]
