"""Message schemas for the Teams relay bot.

This module defines Pydantic models for agent conversation history and for
requests to the proactive notification endpoint.
"""

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_PROACTIVE_MESSAGE = "This is a proactive message!"

MessageRole = Literal["user", "assistant", "system", "tool"]


class MessageHistoryItem(BaseModel):
    """One role-tagged entry of an agent conversation."""

    role: MessageRole = Field(..., description="Author of the message")
    content: str = Field(default="", description="Message text")


class NormalizedResponse(BaseModel):
    """Agent reply reduced to what the bot shows and what it could remember."""

    display_text: str = Field(..., description="Text sent back to the user")
    history: List[MessageHistoryItem] = Field(default_factory=list, description="Structured conversation items")


class NotifyRequest(BaseModel):
    """Request body for POST /api/notify.

    Example:
        >>> request = NotifyRequest(user_id="29:1abc", message="Build finished")
        >>> NotifyRequest.model_validate({"userId": "29:1abc"}).message
        'This is a proactive message!'
    """

    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId", description="Teams user id or AAD object id", min_length=1)
    message: Optional[str] = Field(default=DEFAULT_PROACTIVE_MESSAGE, description="Text to deliver")

    @field_validator('user_id')
    @classmethod
    def validate_user_id(cls, v: str) -> str:
        """Reject blank identifiers."""
        v = v.strip()
        if not v:
            raise ValueError("user_id must not be blank")
        return v

    @field_validator('message')
    @classmethod
    def default_blank_message(cls, v: Optional[str]) -> str:
        """Fall back to the default text for missing or blank messages."""
        if v is None or not v.strip():
            return DEFAULT_PROACTIVE_MESSAGE
        return v
