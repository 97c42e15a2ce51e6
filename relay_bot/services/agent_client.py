"""
HTTP client for the external AI agent service.

The agent exposes two endpoints:
- POST AGENT_URL          {session_id, message} -> {response} | {message} | text
- POST CLEAR_HISTORY_URL  {session_id}          -> 2xx on success

Chat failures never raise: they come back as an apology the bot can send,
so one failed call does not end the conversation.
"""
import json
import logging
import uuid
from typing import Any, Dict, Optional

import httpx
from opentelemetry.propagate import inject
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from relay_bot.config.settings import DEFAULT_AGENT_URL, DEFAULT_CLEAR_HISTORY_URL

logger = logging.getLogger(__name__)

APOLOGY_PREFIX = "Sorry, I encountered an error while processing your request"

# Only failures where the request never reached the agent are retried
RETRYABLE_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)


class AgentRequestError(Exception):
    """Raised when an agent endpoint cannot be reached or answers non-2xx."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def extract_reply_text(data: Any) -> str:
    """Pick the reply text out of a decoded agent response body."""
    if isinstance(data, dict):
        if data.get("response"):
            return data["response"] if isinstance(data["response"], str) else json.dumps(data["response"])
        if data.get("message"):
            return data["message"] if isinstance(data["message"], str) else json.dumps(data["message"])
    if isinstance(data, str):
        return data
    return json.dumps(data)


class AgentClient:
    """
    Client for the agent chat and clear-history endpoints.

    Args:
        agent_url: Chat endpoint URL
        clear_history_url: History reset endpoint URL
        timeout: Deadline in seconds for each request
        max_attempts: Attempts per call when the connection fails
        telemetry: Optional TelemetryService
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        agent_url: str = DEFAULT_AGENT_URL,
        clear_history_url: str = DEFAULT_CLEAR_HISTORY_URL,
        timeout: float = 60.0,
        max_attempts: int = 1,
        telemetry=None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.agent_url = agent_url
        self.clear_history_url = clear_history_url
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.telemetry = telemetry
        self._transport = transport

    @classmethod
    def from_settings(cls, settings, telemetry=None) -> "AgentClient":
        return cls(
            agent_url=settings.agent_url,
            clear_history_url=settings.clear_history_url,
            timeout=settings.agent_timeout_seconds,
            max_attempts=settings.agent_max_attempts,
            telemetry=telemetry
        )

    def _build_headers(self, correlation_id: str) -> Dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Correlation-ID": correlation_id
        }
        # W3C traceparent/tracestate from the active span
        inject(headers)
        return headers

    async def _post(self, url: str, payload: Dict[str, Any], correlation_id: str) -> httpx.Response:
        headers = self._build_headers(correlation_id)
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
                retry=retry_if_exception_type(RETRYABLE_ERRORS),
                reraise=True
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            f"[{correlation_id}] Retrying {url} "
                            f"(attempt {attempt.retry_state.attempt_number}/{self.max_attempts})"
                        )
                    return await client.post(url, json=payload, headers=headers)

    async def get_ai_response(self, conversation_id: str, session_id: str, message: str) -> str:
        """
        Send one user message to the agent and return its reply text.

        Args:
            conversation_id: Teams conversation id (logging and telemetry only)
            session_id: Agent session id for the user
            message: User message text

        Returns:
            Reply text, or an apology describing the failure
        """
        correlation_id = str(uuid.uuid4())
        logger.info(
            f"[{correlation_id}] Calling agent for session {session_id} "
            f"(conversation {conversation_id})"
        )

        try:
            response = await self._post(
                self.agent_url,
                {"session_id": session_id, "message": message},
                correlation_id
            )

            if not response.is_success:
                raise AgentRequestError(
                    f"HTTP error! status: {response.status_code} calling URL: {self.agent_url}",
                    status_code=response.status_code
                )

            try:
                data = response.json()
            except ValueError:
                return response.text

            return extract_reply_text(data)

        except Exception as e:
            logger.error(f"[{correlation_id}] Agent call failed: {e}", exc_info=True)
            if self.telemetry:
                self.telemetry.track_exception(e, {
                    "operation": "agent_chat",
                    "session_id": session_id,
                    "conversation_id": conversation_id,
                    "correlation_id": correlation_id
                })
            return f"{APOLOGY_PREFIX}: {str(e) or type(e).__name__}"

    async def clear_history(self, session_id: str) -> None:
        """
        Ask the agent to drop the stored history of a session.

        Raises:
            AgentRequestError: The endpoint was unreachable or answered non-2xx
        """
        correlation_id = str(uuid.uuid4())
        logger.info(f"[{correlation_id}] Clearing agent history for session {session_id}")

        try:
            response = await self._post(
                self.clear_history_url,
                {"session_id": session_id},
                correlation_id
            )
        except httpx.HTTPError as e:
            raise AgentRequestError(
                f"Could not reach {self.clear_history_url}: {str(e) or type(e).__name__}"
            ) from e

        if not response.is_success:
            raise AgentRequestError(
                f"HTTP error! status: {response.status_code} calling URL: {self.clear_history_url}",
                status_code=response.status_code
            )

        logger.info(f"[{correlation_id}] Agent history cleared for session {session_id}")


__all__ = ["AgentClient", "AgentRequestError", "APOLOGY_PREFIX", "extract_reply_text"]
