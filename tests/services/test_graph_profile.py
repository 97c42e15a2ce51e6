"""
Unit tests for the Microsoft Graph profile client.
"""

import httpx
import pytest

from relay_bot.services.graph_profile import GraphProfileClient, describe_profile


class TestGraphProfileClient:

    @pytest.mark.asyncio
    async def test_get_me_sends_bearer_token(self):
        captured = {}

        def handler(request):
            captured["url"] = str(request.url)
            captured["auth"] = request.headers["authorization"]
            return httpx.Response(200, json={"displayName": "Ada Lovelace"})

        client = GraphProfileClient(
            "https://graph.test/v1.0/",
            transport=httpx.MockTransport(handler)
        )
        profile = await client.get_me("token-123")

        assert profile == {"displayName": "Ada Lovelace"}
        assert captured["url"] == "https://graph.test/v1.0/me"
        assert captured["auth"] == "Bearer token-123"

    @pytest.mark.asyncio
    async def test_get_me_raises_on_rejected_token(self):
        client = GraphProfileClient(
            "https://graph.test/v1.0",
            transport=httpx.MockTransport(lambda request: httpx.Response(401))
        )

        with pytest.raises(httpx.HTTPStatusError):
            await client.get_me("expired")


class TestDescribeProfile:

    def test_with_details(self):
        profile = {"displayName": "Ada", "mail": "ada@example.com", "jobTitle": "Engineer"}

        assert describe_profile(profile) == (
            "You're signed in as **Ada** (ada@example.com, Engineer)."
        )

    def test_falls_back_to_upn(self):
        profile = {"displayName": "Ada", "userPrincipalName": "ada@contoso.com"}

        assert describe_profile(profile) == "You're signed in as **Ada** (ada@contoso.com)."

    def test_name_only(self):
        assert describe_profile({}) == "You're signed in as **Unknown user**."
