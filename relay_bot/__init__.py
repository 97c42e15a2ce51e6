"""
Teams Relay Bot - Microsoft Teams front end for an external AI agent.

Provides:
- Bot Framework message handling that relays chat to the agent service
- Normalization of agent replies (plain text, JSON objects, message arrays)
- Single sign-on commands through the Bot Framework OAuth prompt
- Proactive messaging to users through stored conversation references
"""

__version__ = "1.0.0"
