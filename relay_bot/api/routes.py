"""
HTTP endpoints for the Teams relay bot.

- POST /api/messages: Bot Framework activities from Teams
- POST /api/notify: proactive message to a user seen by the bot
"""
import logging
import uuid

from botbuilder.core import BotFrameworkAdapter
from botbuilder.schema import Activity
from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from relay_bot.bot.teams_bot import TeamsBot
from relay_bot.models.messages import NotifyRequest
from relay_bot.services.proactive_messaging import (
    ConversationNotFoundError,
    ProactiveMessagingService,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Status the SSO token exchange middleware uses while consent is pending
PRECONDITION_FAILED = 412


def get_adapter(request: Request) -> BotFrameworkAdapter:
    return request.app.state.adapter


def get_bot(request: Request) -> TeamsBot:
    return request.app.state.bot


def get_proactive_service(request: Request) -> ProactiveMessagingService:
    return request.app.state.proactive_service


@router.post("/api/messages")
async def messages(
    request: Request,
    adapter: BotFrameworkAdapter = Depends(get_adapter),
    bot: TeamsBot = Depends(get_bot)
):
    """
    Microsoft Teams Bot Framework endpoint.

    Authentication uses the Authorization header issued by the Bot Framework
    service; the adapter validates it.
    """
    if "application/json" not in request.headers.get("Content-Type", ""):
        return Response(status_code=415)

    body = await request.json()
    activity = Activity().deserialize(body)
    auth_header = request.headers.get("Authorization", "")

    logger.info(f"Received Teams activity: {activity.type}")

    try:
        invoke_response = await adapter.process_activity(activity, auth_header, bot.on_turn)
    except PermissionError as e:
        logger.warning(f"Rejected Bot Framework request: {e}")
        return Response(status_code=401)
    except Exception as e:
        if str(PRECONDITION_FAILED) in str(e):
            logger.info(f"SSO token exchange pending consent: {e}")
            return Response(status_code=PRECONDITION_FAILED)
        raise

    if invoke_response:
        if invoke_response.status == PRECONDITION_FAILED:
            logger.info("SSO token exchange pending consent")
        if invoke_response.body is None:
            return Response(status_code=invoke_response.status)
        return JSONResponse(content=invoke_response.body, status_code=invoke_response.status)

    return Response(status_code=201)


@router.post("/api/notify")
async def notify(
    payload: NotifyRequest,
    proactive_service: ProactiveMessagingService = Depends(get_proactive_service)
):
    """Send a proactive text message to a user the bot has talked to."""
    correlation_id = str(uuid.uuid4())
    logger.info(f"[{correlation_id}] Notify request for {payload.user_id}")

    try:
        await proactive_service.send_text_message(
            payload.user_id,
            payload.message,
            correlation_id=correlation_id
        )
    except ConversationNotFoundError as e:
        return JSONResponse(
            status_code=404,
            content={
                "error": "user_not_found",
                "message": str(e),
                "known_user_ids": e.known_keys
            }
        )
    except Exception as e:
        return JSONResponse(
            status_code=500,
            content={
                "error": "delivery_failed",
                "message": str(e)
            }
        )

    return {"status": "Message sent"}
