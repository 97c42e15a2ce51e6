"""
Teams Relay Bot - FastAPI application.

Hosts the Bot Framework messaging endpoint and the proactive notify API.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from botbuilder.core import ConversationState, MemoryStorage, UserState
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relay_bot import __version__
from relay_bot.api.routes import router as bot_router
from relay_bot.bot.adapter import create_adapter
from relay_bot.bot.sso_dialog import SsoDialog
from relay_bot.bot.teams_bot import TeamsBot
from relay_bot.config.settings import BotSettings
from relay_bot.error_handlers import register_error_handlers
from relay_bot.services.agent_client import AgentClient
from relay_bot.services.conversation_references import ConversationReferenceStore
from relay_bot.services.graph_profile import GraphProfileClient
from relay_bot.services.proactive_messaging import ProactiveMessagingService
from relay_bot.telemetry import TelemetryService, configure_telemetry

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager - startup and shutdown."""
    settings: BotSettings = app.state.settings
    logger.info(
        f"Teams relay bot starting up (agent={settings.agent_url}, "
        f"sso={'on' if settings.sso_enabled else 'off'})"
    )

    yield

    # Cleanup
    logger.info("Teams relay bot shutting down...")
    app.state.telemetry.flush()


def create_app(
    settings: Optional[BotSettings] = None,
    telemetry: Optional[TelemetryService] = None,
    agent_client: Optional[AgentClient] = None
) -> FastAPI:
    """
    Build the FastAPI application and its bot components.

    Args:
        settings: Bot settings (read from the environment when omitted)
        telemetry: Telemetry handle (configured from settings when omitted)
        agent_client: Agent service client (built from settings when omitted)
    """
    settings = settings or BotSettings.from_env()
    telemetry = telemetry or configure_telemetry(settings)
    agent_client = agent_client or AgentClient.from_settings(settings, telemetry=telemetry)

    adapter = create_adapter(settings, telemetry)

    # Bot Framework state; dialog state for the SSO flow lives here
    storage = MemoryStorage()
    conversation_state = ConversationState(storage)
    user_state = UserState(storage)

    reference_store = ConversationReferenceStore()

    sso_dialog = None
    if settings.sso_enabled:
        sso_dialog = SsoDialog(
            settings.sso_connection_name,
            GraphProfileClient(settings.graph_base_url)
        )

    bot = TeamsBot(
        conversation_state,
        user_state,
        reference_store,
        agent_client,
        telemetry,
        sso_dialog=sso_dialog
    )
    proactive_service = ProactiveMessagingService(
        adapter,
        reference_store,
        app_id=settings.app_id,
        telemetry=telemetry
    )

    app = FastAPI(
        title="Teams Relay Bot",
        description="Microsoft Teams front end for an external AI agent",
        version=__version__,
        debug=settings.debug,
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.telemetry = telemetry
    app.state.adapter = adapter
    app.state.reference_store = reference_store
    app.state.agent_client = agent_client
    app.state.bot = bot
    app.state.proactive_service = proactive_service

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    app.include_router(bot_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for Azure Container Apps."""
        return {
            "status": "healthy",
            "service": settings.service_name,
            "version": __version__
        }

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": settings.service_name,
            "status": "running",
            "endpoints": {
                "health": "/health",
                "messages": "/api/messages",
                "notify": "/api/notify"
            }
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
