"""
Tests for Teams message text cleanup before command routing.
"""

from botbuilder.schema import Activity, ActivityTypes

from relay_bot.bot.sso_dialog import is_sso_command
from relay_bot.utils.text import (
    normalize_command_text,
    remove_mention_text,
    strip_recipient_mention,
)


def test_normalize_command_text_strips_zero_width_characters():
    text = "\u200b/cls\u200d"
    assert normalize_command_text(text) == "/cls"


def test_normalize_command_text_drops_line_breaks():
    assert normalize_command_text("/n\r\new") == "/new"


def test_normalize_command_text_handles_full_width_variants():
    assert normalize_command_text("\uff0fCLS") == "/cls"


def test_normalize_command_text_collapses_whitespace():
    assert normalize_command_text("   Show   ") == "show"


def test_normalize_command_text_empty():
    assert normalize_command_text(None) == ""
    assert normalize_command_text("") == ""


def test_remove_mention_text():
    assert remove_mention_text("<at>Relay Bot</at> hello there") == "hello there"
    assert remove_mention_text(None) == ""


def test_strip_recipient_mention_keeps_case():
    activity = Activity(type=ActivityTypes.message, text="<at>Bot</at> Hello Agent")
    assert strip_recipient_mention(activity) == "Hello Agent"


def test_sso_commands():
    assert is_sso_command("show")
    assert is_sso_command("logout")
    assert not is_sso_command("show me the numbers")
