"""
Runtime configuration for the Teams relay bot.
Set in .env.local or environment variables.

Bot Framework:
- TEAMS_BOT_APP_ID / TEAMS_BOT_APP_PASSWORD / TEAMS_BOT_TENANT_ID
  Default: empty (anonymous mode for local runs and the Bot Framework Emulator)

Agent service:
- AGENT_URL: chat endpoint. Default: http://localhost:8989/agent_chat
- CLEAR_HISTORY_URL: history reset endpoint. Default: http://localhost:8989/clear_history
- AGENT_TIMEOUT_SECONDS: deadline for each agent request. Default: 60
- AGENT_MAX_ATTEMPTS: attempts on connection failures. Default: 1 (no retry)

Single sign-on:
- SSO_CONNECTION_NAME: OAuth connection configured on the bot registration.
  Default: empty (SSO commands answer with a "not available" message)
- GRAPH_BASE_URL: Microsoft Graph root. Default: https://graph.microsoft.com/v1.0

Observability:
- APPLICATIONINSIGHTS_CONNECTION_STRING: enables the Azure Monitor exporter
- TELEMETRY_ENABLED: Default: true
"""
import os
import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

load_dotenv('.env.local')

logger = logging.getLogger(__name__)

DEFAULT_AGENT_URL = "http://localhost:8989/agent_chat"
DEFAULT_CLEAR_HISTORY_URL = "http://localhost:8989/clear_history"
DEFAULT_GRAPH_BASE_URL = "https://graph.microsoft.com/v1.0"


def _parse_bool(value: Optional[str], default: str) -> bool:
    return (value or default).lower() == 'true'


def _parse_number(name: str, value: Optional[str], default, cast):
    if value is None or value.strip() == "":
        return default
    try:
        return cast(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


@dataclass
class BotSettings:
    """Settings shared by the adapter, the bot and the HTTP surface."""
    app_id: str = ""
    app_password: str = ""
    tenant_id: Optional[str] = None
    agent_url: str = DEFAULT_AGENT_URL
    clear_history_url: str = DEFAULT_CLEAR_HISTORY_URL
    agent_timeout_seconds: float = 60.0
    agent_max_attempts: int = 1
    sso_connection_name: Optional[str] = None
    graph_base_url: str = DEFAULT_GRAPH_BASE_URL
    applicationinsights_connection_string: Optional[str] = None
    telemetry_enabled: bool = True
    service_name: str = "teams-relay-bot"
    debug: bool = False
    port: int = 3978

    def __post_init__(self):
        if self.agent_timeout_seconds <= 0:
            raise ValueError("AGENT_TIMEOUT_SECONDS must be greater than zero")
        if self.agent_max_attempts < 1:
            raise ValueError("AGENT_MAX_ATTEMPTS must be at least 1")

    @property
    def sso_enabled(self) -> bool:
        return bool(self.sso_connection_name)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BotSettings":
        """Build settings from environment variables (os.environ by default)."""
        env = os.environ if environ is None else environ

        settings = cls(
            app_id=env.get("TEAMS_BOT_APP_ID", ""),
            app_password=env.get("TEAMS_BOT_APP_PASSWORD", ""),
            tenant_id=env.get("TEAMS_BOT_TENANT_ID") or None,
            agent_url=env.get("AGENT_URL") or DEFAULT_AGENT_URL,
            clear_history_url=env.get("CLEAR_HISTORY_URL") or DEFAULT_CLEAR_HISTORY_URL,
            agent_timeout_seconds=_parse_number(
                "AGENT_TIMEOUT_SECONDS", env.get("AGENT_TIMEOUT_SECONDS"), 60.0, float
            ),
            agent_max_attempts=_parse_number(
                "AGENT_MAX_ATTEMPTS", env.get("AGENT_MAX_ATTEMPTS"), 1, int
            ),
            sso_connection_name=env.get("SSO_CONNECTION_NAME") or None,
            graph_base_url=env.get("GRAPH_BASE_URL") or DEFAULT_GRAPH_BASE_URL,
            applicationinsights_connection_string=env.get("APPLICATIONINSIGHTS_CONNECTION_STRING") or None,
            telemetry_enabled=_parse_bool(env.get("TELEMETRY_ENABLED"), 'true'),
            debug=_parse_bool(env.get("DEBUG"), 'false'),
            port=_parse_number("PORT", env.get("PORT"), 3978, int),
        )

        if not settings.app_id:
            logger.warning("TEAMS_BOT_APP_ID not set - running without Bot Framework authentication")

        return settings
