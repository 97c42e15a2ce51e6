"""
Teams activity handler that relays chat to the agent service.

Routing for each inbound message:
- "/cls" or "/new" clears the agent history for the user
- SSO commands ("show", "logout") run the sign-in dialog
- anything else goes to the agent and the normalized reply is sent back
"""
import logging
from typing import Callable, Optional

from botbuilder.core import (
    ConversationState,
    MessageFactory,
    TurnContext,
    UserState,
)
from botbuilder.core.teams import TeamsActivityHandler
from botbuilder.dialogs import Dialog, DialogExtensions
from botbuilder.schema import Activity, ActivityTypes

from relay_bot.models.messages import NormalizedResponse
from relay_bot.services.agent_client import AgentClient, AgentRequestError
from relay_bot.services.conversation_references import ConversationReferenceStore
from relay_bot.services.response_normalizer import normalize_agent_response
from relay_bot.bot.sso_dialog import is_sso_command
from relay_bot.utils.text import normalize_command_text, strip_recipient_mention

logger = logging.getLogger(__name__)

RESET_COMMANDS = frozenset({"/cls", "/new"})

HISTORY_CLEARED_TEXT = "Conversation history cleared. Let's start fresh!"
SSO_UNAVAILABLE_TEXT = (
    "Single sign-on is not available: no OAuth connection is configured for this bot."
)


def resolve_session_id(activity: Activity) -> str:
    """Agent session id: the AAD object id when Teams sends one, else the user id."""
    sender = activity.from_property
    if not sender:
        return ""
    return getattr(sender, "aad_object_id", None) or sender.id or ""


class TeamsBot(TeamsActivityHandler):
    """
    Relay bot for Microsoft Teams.

    Args:
        conversation_state: Bot Framework conversation state (dialog state lives here)
        user_state: Bot Framework user state
        reference_store: Store updated with every inbound message
        agent_client: Client for the agent chat and clear-history endpoints
        telemetry: TelemetryService
        sso_dialog: Sign-in dialog, or None when SSO is not configured
        normalizer: Converts raw agent replies into display text
    """

    def __init__(
        self,
        conversation_state: ConversationState,
        user_state: UserState,
        reference_store: ConversationReferenceStore,
        agent_client: AgentClient,
        telemetry,
        sso_dialog: Optional[Dialog] = None,
        normalizer: Callable[[str], NormalizedResponse] = normalize_agent_response
    ):
        self.conversation_state = conversation_state
        self.user_state = user_state
        self.reference_store = reference_store
        self.agent_client = agent_client
        self.telemetry = telemetry
        self.sso_dialog = sso_dialog
        self.normalizer = normalizer
        self.dialog_state = conversation_state.create_property("DialogState")

    async def on_turn(self, turn_context: TurnContext):
        await super().on_turn(turn_context)

        # Save any state changes made by the dialog during this turn
        await self.conversation_state.save_changes(turn_context, False)
        await self.user_state.save_changes(turn_context, False)

    async def on_message_activity(self, turn_context: TurnContext):
        activity = turn_context.activity
        user_id = activity.from_property.id if activity.from_property else None
        conversation_id = activity.conversation.id if activity.conversation else None

        timer = self.telemetry.start_operation("HandleMessage").set_context(user_id, conversation_id)
        self.telemetry.track_custom_event("MessageReceived", {
            "user_id": user_id,
            "conversation_id": conversation_id,
            "channel_id": activity.channel_id
        })

        # Store conversation reference for proactive messaging
        self.reference_store.record(activity)

        message_text = strip_recipient_mention(activity)
        command_text = normalize_command_text(message_text)
        session_id = resolve_session_id(activity)

        try:
            if command_text in RESET_COMMANDS:
                self._track_route("reset", user_id, conversation_id)
                await self._handle_reset(turn_context, session_id)
            elif is_sso_command(command_text):
                self._track_route("sso", user_id, conversation_id)
                await self._handle_sso_command(turn_context, command_text)
            else:
                self._track_route("agent", user_id, conversation_id)
                await self._handle_chat(turn_context, session_id, message_text)
        except Exception as e:
            timer.stop(False, str(e))
            raise

        timer.stop(True)

    async def on_teams_signin_verify_state(self, turn_context: TurnContext):
        logger.info("Running SSO dialog with signin/verifyState from an invoke activity")
        await self._run_sso_dialog(turn_context)

    async def on_teams_signin_token_exchange(self, turn_context: TurnContext):
        logger.info("Running SSO dialog with signin/tokenExchange from an invoke activity")
        await self._run_sso_dialog(turn_context)

    def _track_route(self, route: str, user_id: Optional[str], conversation_id: Optional[str]):
        self.telemetry.track_custom_event("CommandRouted", {
            "route": route,
            "user_id": user_id,
            "conversation_id": conversation_id
        })

    async def _handle_reset(self, turn_context: TurnContext, session_id: str):
        try:
            await self.agent_client.clear_history(session_id)
        except AgentRequestError as e:
            logger.warning(f"Clearing history for {session_id} failed: {e}")
            self.telemetry.track_custom_event("ClearHistoryFailed", {
                "session_id": session_id,
                "error": str(e)
            })
            await turn_context.send_activity(
                f"Sorry, I couldn't clear the conversation history: {e}"
            )
            return

        self.reference_store.clear()
        # Keep the requesting user reachable for proactive messages
        self.reference_store.record(turn_context.activity)

        self.telemetry.track_custom_event("HistoryCleared", {"session_id": session_id})
        await turn_context.send_activity(HISTORY_CLEARED_TEXT)

    async def _handle_sso_command(self, turn_context: TurnContext, command_text: str):
        if self.sso_dialog is None:
            logger.info(f"SSO command '{command_text}' received but SSO is not configured")
            self.telemetry.track_custom_event("SsoUnavailable", {"command": command_text})
            await turn_context.send_activity(SSO_UNAVAILABLE_TEXT)
            return

        await self._run_sso_dialog(turn_context)

    async def _run_sso_dialog(self, turn_context: TurnContext):
        if self.sso_dialog is None:
            logger.warning("Sign-in invoke received but SSO is not configured")
            return
        await DialogExtensions.run_dialog(self.sso_dialog, turn_context, self.dialog_state)

    async def _handle_chat(self, turn_context: TurnContext, session_id: str, message_text: str):
        await turn_context.send_activity(Activity(type=ActivityTypes.typing))

        conversation_id = (
            turn_context.activity.conversation.id if turn_context.activity.conversation else ""
        )
        raw_reply = await self.agent_client.get_ai_response(conversation_id, session_id, message_text)
        normalized = self.normalizer(raw_reply)

        await turn_context.send_activity(MessageFactory.text(normalized.display_text))
        self.telemetry.track_custom_event("AgentResponseSent", {
            "session_id": session_id,
            "conversation_id": conversation_id,
            "history_items": len(normalized.history)
        })
