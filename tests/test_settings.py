"""
Tests for environment-driven bot settings.
"""

import pytest

from relay_bot.config.settings import (
    DEFAULT_AGENT_URL,
    DEFAULT_CLEAR_HISTORY_URL,
    DEFAULT_GRAPH_BASE_URL,
    BotSettings,
)


class TestBotSettings:

    def test_defaults(self):
        settings = BotSettings.from_env({})

        assert settings.app_id == ""
        assert settings.tenant_id is None
        assert settings.agent_url == DEFAULT_AGENT_URL
        assert settings.clear_history_url == DEFAULT_CLEAR_HISTORY_URL
        assert settings.agent_timeout_seconds == 60.0
        assert settings.agent_max_attempts == 1
        assert settings.sso_connection_name is None
        assert settings.sso_enabled is False
        assert settings.graph_base_url == DEFAULT_GRAPH_BASE_URL
        assert settings.telemetry_enabled is True
        assert settings.debug is False
        assert settings.port == 3978

    def test_reads_environment(self):
        settings = BotSettings.from_env({
            "TEAMS_BOT_APP_ID": "app-id",
            "TEAMS_BOT_APP_PASSWORD": "secret",
            "TEAMS_BOT_TENANT_ID": "tenant",
            "AGENT_URL": "https://agent.example.com/chat",
            "CLEAR_HISTORY_URL": "https://agent.example.com/clear",
            "AGENT_TIMEOUT_SECONDS": "12.5",
            "AGENT_MAX_ATTEMPTS": "3",
            "SSO_CONNECTION_NAME": "TeamsSso",
            "TELEMETRY_ENABLED": "FALSE",
            "DEBUG": "true",
            "PORT": "8080",
        })

        assert settings.app_id == "app-id"
        assert settings.app_password == "secret"
        assert settings.tenant_id == "tenant"
        assert settings.agent_url == "https://agent.example.com/chat"
        assert settings.clear_history_url == "https://agent.example.com/clear"
        assert settings.agent_timeout_seconds == 12.5
        assert settings.agent_max_attempts == 3
        assert settings.sso_enabled is True
        assert settings.telemetry_enabled is False
        assert settings.debug is True
        assert settings.port == 8080

    def test_blank_values_use_defaults(self):
        settings = BotSettings.from_env({"AGENT_URL": "", "PORT": " ", "SSO_CONNECTION_NAME": ""})

        assert settings.agent_url == DEFAULT_AGENT_URL
        assert settings.port == 3978
        assert settings.sso_enabled is False

    @pytest.mark.parametrize("name,value", [
        ("AGENT_TIMEOUT_SECONDS", "soon"),
        ("AGENT_MAX_ATTEMPTS", "2.5"),
        ("PORT", "http"),
    ])
    def test_invalid_numbers_raise(self, name, value):
        with pytest.raises(ValueError, match=name):
            BotSettings.from_env({name: value})

    @pytest.mark.parametrize("name,value", [
        ("AGENT_TIMEOUT_SECONDS", "0"),
        ("AGENT_MAX_ATTEMPTS", "0"),
    ])
    def test_out_of_range_values_raise(self, name, value):
        with pytest.raises(ValueError, match=name):
            BotSettings.from_env({name: value})
