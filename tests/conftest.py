"""
Shared pytest configuration and fixtures for the Teams relay bot tests.
"""

import os
from typing import List
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botbuilder.core import BotAdapter, ConversationState, MemoryStorage, TurnContext, UserState
from botbuilder.schema import (
    Activity,
    ActivityTypes,
    ChannelAccount,
    ConversationAccount,
    ResourceResponse,
)

from relay_bot.config.settings import BotSettings
from relay_bot.services.conversation_references import ConversationReferenceStore
from relay_bot.telemetry import TelemetryService


class RecordingAdapter(BotAdapter):
    """Bot adapter that keeps every outgoing activity instead of sending it."""

    def __init__(self):
        super().__init__()
        self.sent: List[Activity] = []

    async def send_activities(self, context: TurnContext, activities: List[Activity]):
        responses = []
        for activity in activities:
            self.sent.append(activity)
            responses.append(ResourceResponse(id=f"reply-{len(self.sent)}"))
        return responses

    async def update_activity(self, context: TurnContext, activity: Activity):
        return ResourceResponse(id=activity.id)

    async def delete_activity(self, context: TurnContext, reference):
        return None

    @property
    def sent_texts(self) -> List[str]:
        return [a.text for a in self.sent if a.type == ActivityTypes.message]


@pytest.fixture(scope="session", autouse=True)
def setup_test_environment():
    """Keep tests independent of a developer's .env.local."""
    test_env = {
        'TEAMS_BOT_APP_ID': '',
        'TEAMS_BOT_APP_PASSWORD': '',
        'SSO_CONNECTION_NAME': '',
        'APPLICATIONINSIGHTS_CONNECTION_STRING': '',
        'TELEMETRY_ENABLED': 'false',
    }

    with patch.dict(os.environ, test_env):
        yield


@pytest.fixture
def make_activity():
    """Factory for inbound Teams message activities."""

    def _make(
        text: str = "hello",
        user_id: str = "29:user-123",
        aad_object_id: str = "aad-456",
        conversation_id: str = "a:conversation-789",
        activity_type: str = ActivityTypes.message,
        **kwargs
    ) -> Activity:
        return Activity(
            type=activity_type,
            id="activity-1",
            text=text,
            channel_id="msteams",
            service_url="https://smba.trafficmanager.net/amer/",
            from_property=ChannelAccount(
                id=user_id,
                name="Test User",
                aad_object_id=aad_object_id
            ),
            recipient=ChannelAccount(id="28:bot-id", name="Relay Bot"),
            conversation=ConversationAccount(id=conversation_id, tenant_id="tenant-1"),
            **kwargs
        )

    return _make


@pytest.fixture
def recording_adapter():
    return RecordingAdapter()


@pytest.fixture
def telemetry():
    """Disabled telemetry handle."""
    return TelemetryService(enabled=False)


@pytest.fixture
def mock_telemetry():
    """Telemetry handle that records calls."""
    return MagicMock(spec=TelemetryService)


@pytest.fixture
def settings():
    return BotSettings(
        agent_url="http://agent.test/agent_chat",
        clear_history_url="http://agent.test/clear_history",
        telemetry_enabled=False
    )


@pytest.fixture
def reference_store():
    return ConversationReferenceStore()


@pytest.fixture
def bot_state():
    storage = MemoryStorage()
    return ConversationState(storage), UserState(storage)


@pytest.fixture
def mock_agent_client():
    client = MagicMock()
    client.get_ai_response = AsyncMock(return_value='{"response": "Hi there"}')
    client.clear_history = AsyncMock(return_value=None)
    return client
