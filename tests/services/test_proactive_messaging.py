"""
Unit tests for ProactiveMessagingService

Tests sending text to a stored conversation, unknown users and delivery
failures.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from botbuilder.schema import ActivityTypes

from relay_bot.services.proactive_messaging import (
    ConversationNotFoundError,
    ProactiveMessagingService,
)


@pytest.fixture
def stored_store(reference_store, make_activity):
    reference_store.record(
        make_activity(user_id="29:user-1", aad_object_id="aad-1", conversation_id="a:conv-1")
    )
    return reference_store


class TestSendTextMessage:

    @pytest.mark.asyncio
    async def test_sends_to_stored_conversation(self, recording_adapter, stored_store):
        service = ProactiveMessagingService(recording_adapter, stored_store, app_id="bot-app-id")

        result = await service.send_text_message("29:user-1", "Build finished")

        assert result is True
        assert len(recording_adapter.sent) == 1
        sent = recording_adapter.sent[0]
        assert sent.type == ActivityTypes.message
        assert sent.text == "Build finished"
        assert sent.conversation.id == "a:conv-1"

    @pytest.mark.asyncio
    async def test_alias_key_reaches_same_conversation(self, recording_adapter, stored_store):
        service = ProactiveMessagingService(recording_adapter, stored_store)

        await service.send_text_message("aad-1", "hi")

        assert recording_adapter.sent[0].conversation.id == "a:conv-1"

    @pytest.mark.asyncio
    async def test_trusts_service_url(self, recording_adapter, stored_store):
        service = ProactiveMessagingService(recording_adapter, stored_store)

        with patch(
            "relay_bot.services.proactive_messaging.MicrosoftAppCredentials.trust_service_url"
        ) as mock_trust:
            await service.send_text_message("29:user-1", "hi")

        mock_trust.assert_called_once_with("https://smba.trafficmanager.net/amer/")

    @pytest.mark.asyncio
    async def test_unknown_user_raises_with_known_keys(self, recording_adapter, stored_store):
        service = ProactiveMessagingService(recording_adapter, stored_store)

        with pytest.raises(ConversationNotFoundError) as exc_info:
            await service.send_text_message("29:stranger", "hi")

        assert exc_info.value.user_id == "29:stranger"
        assert exc_info.value.known_keys == ["29:user-1", "aad-1"]
        assert "User not found: 29:stranger" in str(exc_info.value)
        assert recording_adapter.sent == []

    @pytest.mark.asyncio
    async def test_delivery_failure_propagates(self, stored_store, mock_telemetry):
        adapter = MagicMock()
        adapter.continue_conversation = AsyncMock(side_effect=RuntimeError("channel down"))
        service = ProactiveMessagingService(adapter, stored_store, telemetry=mock_telemetry)

        with pytest.raises(RuntimeError, match="channel down"):
            await service.send_text_message("29:user-1", "hi")

        mock_telemetry.track_exception.assert_called_once()

    @pytest.mark.asyncio
    async def test_passes_app_id_to_adapter(self, stored_store):
        adapter = MagicMock()
        adapter.continue_conversation = AsyncMock()
        service = ProactiveMessagingService(adapter, stored_store, app_id="bot-app-id")

        await service.send_text_message("29:user-1", "hi")

        reference, callback, bot_id = adapter.continue_conversation.call_args.args
        assert reference.conversation.id == "a:conv-1"
        assert bot_id == "bot-app-id"
