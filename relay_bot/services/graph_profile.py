"""
Microsoft Graph profile lookup for signed-in users.
Uses the SSO token obtained by the OAuth prompt (delegated User.Read).
"""
import logging
from typing import Any, Dict, Optional

import httpx

from relay_bot.config.settings import DEFAULT_GRAPH_BASE_URL

logger = logging.getLogger(__name__)


class GraphProfileClient:
    """Client for the Graph /me endpoint."""

    def __init__(
        self,
        base_url: str = DEFAULT_GRAPH_BASE_URL,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def get_me(self, access_token: str) -> Dict[str, Any]:
        """
        Fetch the profile of the token's user.

        Raises:
            httpx.HTTPError: Graph was unreachable or rejected the token
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/me",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Accept": "application/json"
                }
            )
            response.raise_for_status()
            return response.json()


def describe_profile(profile: Dict[str, Any]) -> str:
    """One-line summary of a Graph user profile."""
    name = profile.get("displayName") or "Unknown user"
    details = [
        value for value in (
            profile.get("mail") or profile.get("userPrincipalName"),
            profile.get("jobTitle"),
        ) if value
    ]
    if details:
        return f"You're signed in as **{name}** ({', '.join(details)})."
    return f"You're signed in as **{name}**."
