"""
Single sign-on dialog for Teams.

"show" signs the user in through the OAuth prompt (Teams SSO token exchange
when available) and replies with the Microsoft Graph profile. "logout" signs
the user out of the OAuth connection.
"""
import logging

import httpx
from botbuilder.core import BotFrameworkAdapter
from botbuilder.dialogs import (
    ComponentDialog,
    DialogContext,
    DialogTurnResult,
    WaterfallDialog,
    WaterfallStepContext,
)
from botbuilder.dialogs.prompts import OAuthPrompt, OAuthPromptSettings
from botbuilder.schema import ActivityTypes

from relay_bot.services.graph_profile import GraphProfileClient, describe_profile
from relay_bot.utils.text import normalize_command_text

logger = logging.getLogger(__name__)

SHOW_PROFILE_COMMAND = "show"
LOGOUT_COMMAND = "logout"

SSO_COMMANDS = frozenset({SHOW_PROFILE_COMMAND, LOGOUT_COMMAND})

# OAuth prompt timeout in milliseconds
SIGN_IN_TIMEOUT_MS = 300000


def is_sso_command(text: str) -> bool:
    return text in SSO_COMMANDS


class SsoDialog(ComponentDialog):
    """Sign-in waterfall with a logout interruption."""

    def __init__(self, connection_name: str, graph_client: GraphProfileClient = None):
        super(SsoDialog, self).__init__(SsoDialog.__name__)

        self.connection_name = connection_name
        self.graph_client = graph_client or GraphProfileClient()

        self.add_dialog(
            OAuthPrompt(
                OAuthPrompt.__name__,
                OAuthPromptSettings(
                    connection_name=connection_name,
                    text="Please sign in to continue.",
                    title="Sign In",
                    timeout=SIGN_IN_TIMEOUT_MS,
                ),
            )
        )
        self.add_dialog(
            WaterfallDialog(
                "SsoWaterfall", [self.prompt_step, self.show_profile_step]
            )
        )

        self.initial_dialog_id = "SsoWaterfall"

    async def on_begin_dialog(self, inner_dc: DialogContext, options: object) -> DialogTurnResult:
        result = await self._interrupt(inner_dc)
        if result:
            return result
        return await super(SsoDialog, self).on_begin_dialog(inner_dc, options)

    async def on_continue_dialog(self, inner_dc: DialogContext) -> DialogTurnResult:
        result = await self._interrupt(inner_dc)
        if result:
            return result
        return await super(SsoDialog, self).on_continue_dialog(inner_dc)

    async def _interrupt(self, inner_dc: DialogContext):
        if inner_dc.context.activity.type != ActivityTypes.message:
            return None

        if normalize_command_text(inner_dc.context.activity.text) != LOGOUT_COMMAND:
            return None

        bot_adapter: BotFrameworkAdapter = inner_dc.context.adapter
        await bot_adapter.sign_out_user(inner_dc.context, self.connection_name)
        await inner_dc.context.send_activity("You have been signed out.")
        return await inner_dc.cancel_all_dialogs()

    async def prompt_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        return await step_context.begin_dialog(OAuthPrompt.__name__)

    async def show_profile_step(self, step_context: WaterfallStepContext) -> DialogTurnResult:
        token_response = step_context.result
        if not token_response or not token_response.token:
            await step_context.context.send_activity("Login was not successful, please try again.")
            return await step_context.end_dialog()

        try:
            profile = await self.graph_client.get_me(token_response.token)
            await step_context.context.send_activity(describe_profile(profile))
        except httpx.HTTPError as e:
            logger.error(f"Failed to load Graph profile: {e}", exc_info=True)
            await step_context.context.send_activity(
                "You're signed in, but I couldn't load your profile from Microsoft Graph."
            )

        return await step_context.end_dialog()
