"""
Bot Framework adapter setup and the catch-all turn error handler.
"""
import logging
from datetime import datetime, timezone

from botbuilder.core import (
    BotFrameworkAdapter,
    BotFrameworkAdapterSettings,
    MemoryStorage,
    TurnContext,
)
from botbuilder.core.teams import TeamsSSOTokenExchangeMiddleware
from botbuilder.schema import ActivityTypes, Activity

logger = logging.getLogger(__name__)


def create_adapter(settings, telemetry) -> BotFrameworkAdapter:
    """
    Create the Bot Framework adapter for the configured app registration.

    Args:
        settings: BotSettings instance
        telemetry: TelemetryService used to report unhandled turn errors

    Returns:
        Configured BotFrameworkAdapter
    """
    adapter_settings = BotFrameworkAdapterSettings(
        app_id=settings.app_id,
        app_password=settings.app_password,
        channel_auth_tenant=settings.tenant_id  # For single-tenant apps
    )
    adapter = BotFrameworkAdapter(adapter_settings)

    if settings.sso_enabled:
        # Deduplicates Teams SSO token exchange invokes across bot instances
        adapter.use(
            TeamsSSOTokenExchangeMiddleware(MemoryStorage(), settings.sso_connection_name)
        )

    async def on_turn_error(context: TurnContext, error: Exception):
        """Catch-all for errors raised while handling a turn."""
        logger.error(f"[on_turn_error] unhandled error: {error}", exc_info=error)

        activity = context.activity
        telemetry.track_exception(error, {
            "operation": "turn",
            "activity_type": activity.type if activity else None,
            "user_id": activity.from_property.id if activity and activity.from_property else None,
            "conversation_id": activity.conversation.id if activity and activity.conversation else None
        })

        await context.send_activity(
            f"The bot encountered an unhandled error:\n {error}"
        )
        await context.send_activity(
            "To continue to run this bot, please fix the bot source code."
        )

        # Trace activities are only shown by the Bot Framework Emulator
        if activity and activity.channel_id == "emulator":
            trace_activity = Activity(
                label="TurnError",
                name="on_turn_error Trace",
                timestamp=datetime.now(timezone.utc),
                type=ActivityTypes.trace,
                value=f"{error}",
                value_type="https://www.botframework.com/schemas/error",
            )
            await context.send_activity(trace_activity)

    adapter.on_turn_error = on_turn_error
    return adapter
