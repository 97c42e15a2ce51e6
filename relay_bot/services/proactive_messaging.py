"""
Proactive Messaging Service for Teams Bot Framework

Sends messages to Teams users without an incoming request by reopening a
conversation from a stored conversation reference.
"""

import logging
import uuid
from typing import List, Optional

from botbuilder.core import BotAdapter, MessageFactory, TurnContext
from botframework.connector.auth import MicrosoftAppCredentials

from relay_bot.services.conversation_references import ConversationReferenceStore

logger = logging.getLogger(__name__)


class ConversationNotFoundError(LookupError):
    """No conversation reference is stored for the requested user."""

    def __init__(self, user_id: str, known_keys: List[str]):
        super().__init__(f"User not found: {user_id}")
        self.user_id = user_id
        self.known_keys = known_keys


class ProactiveMessagingService:
    """
    Service for sending proactive messages to Teams users.

    Features:
    - Look up the latest conversation reference for a user
    - Reopen the conversation through the adapter and send text
    - Correlation ID tracking for debugging
    """

    def __init__(
        self,
        adapter: BotAdapter,
        reference_store: ConversationReferenceStore,
        app_id: Optional[str] = None,
        telemetry=None
    ):
        """
        Initialize the proactive messaging service.

        Args:
            adapter: Bot Framework adapter used to continue conversations
            reference_store: Store filled by the bot on every inbound message
            app_id: Microsoft App ID for the bot
            telemetry: Optional TelemetryService
        """
        self.adapter = adapter
        self.reference_store = reference_store
        self.app_id = app_id or None
        self.telemetry = telemetry

    def known_user_ids(self) -> List[str]:
        return sorted(self.reference_store.list_keys())

    async def send_text_message(
        self,
        user_id: str,
        text: str,
        correlation_id: Optional[str] = None
    ) -> bool:
        """
        Send a text message to the stored conversation of a user.

        Args:
            user_id: Teams user id or AAD object id
            text: Text message to send
            correlation_id: Optional correlation ID for tracking

        Returns:
            True once the message was handed to the channel

        Raises:
            ConversationNotFoundError: No reference is stored for user_id
        """
        correlation_id = correlation_id or str(uuid.uuid4())

        reference = self.reference_store.get(user_id)
        if reference is None:
            known = self.known_user_ids()
            logger.warning(
                f"[{correlation_id}] No conversation reference for {user_id}. "
                f"Known users: {known}"
            )
            raise ConversationNotFoundError(user_id, known)

        conversation_id = reference.conversation.id if reference.conversation else None
        logger.info(
            f"[{correlation_id}] Sending proactive message to {user_id} "
            f"in conversation {conversation_id}"
        )

        timer = None
        if self.telemetry:
            timer = self.telemetry.start_operation(
                "ProactiveMessage", {"correlation_id": correlation_id}
            ).set_context(user_id, conversation_id)

        async def send_text_callback(turn_context: TurnContext):
            """Callback to send text within the conversation context."""
            response = await turn_context.send_activity(MessageFactory.text(text))
            logger.info(
                f"[{correlation_id}] Proactive message sent. "
                f"Response ID: {response.id if response else 'None'}"
            )

        try:
            if reference.service_url:
                MicrosoftAppCredentials.trust_service_url(reference.service_url)

            await self.adapter.continue_conversation(
                reference,
                send_text_callback,
                self.app_id
            )
        except Exception as e:
            logger.error(
                f"[{correlation_id}] Failed to send proactive message: {e}",
                exc_info=True
            )
            if timer:
                timer.stop(False, str(e))
            if self.telemetry:
                self.telemetry.track_exception(e, {
                    "operation": "proactive_message",
                    "user_id": user_id,
                    "correlation_id": correlation_id
                })
            raise

        if timer:
            timer.stop(True)
        return True


__all__ = [
    'ProactiveMessagingService',
    'ConversationNotFoundError'
]
