"""
Configuration for the Teams relay bot.
"""
from .settings import (
    BotSettings,
    DEFAULT_AGENT_URL,
    DEFAULT_CLEAR_HISTORY_URL,
    DEFAULT_GRAPH_BASE_URL,
)

__all__ = [
    'BotSettings', 'DEFAULT_AGENT_URL', 'DEFAULT_CLEAR_HISTORY_URL', 'DEFAULT_GRAPH_BASE_URL'
]
