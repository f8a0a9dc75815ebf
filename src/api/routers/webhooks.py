"""
Chat webhook endpoints.

Each handler only translates between its provider's wire format and the
ingestion front door. Replies are plain chat text; failures become an
apology rather than an error body.
"""
import logging
from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_settings,
    require_integration_key,
    require_telegram_secret,
)
from core.auth import Principal, SharedKeyAuthenticator
from core.config import Settings
from schemas.webhook import (
    TelegramMessage,
    TelegramSendMessage,
    TelegramUpdate,
    WhatsAppMessage,
    WhatsAppReply,
    WhatsAppWebhookResponse,
)
from services import bookmark_service, chat_replies
from services.enrichment import IngestSource
from services.ingest_service import process_message
from services.user_service import resolve_default_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _handle_telegram_command(
    db: AsyncSession,
    message: TelegramMessage,
    settings: Settings,
) -> str:
    parts = (message.text or "").strip().split()
    # Commands in groups arrive as /help@BotName
    command = parts[0].split("@")[0].lower()
    args = parts[1:]

    if command in ("/start", "/help"):
        return chat_replies.telegram_help(settings)

    owner = await resolve_default_user(db, settings)
    if command == "/stats":
        stats = await bookmark_service.get_stats(db, owner.id)
        return chat_replies.telegram_stats(stats, settings)
    if command == "/bookmark":
        if not args:
            return chat_replies.telegram_bookmark_usage()
        outcome = await process_message(db, owner.id, " ".join(args), IngestSource.TELEGRAM)
        if not outcome.has_urls:
            return "❌ Invalid URL format. Please provide a valid URL starting with http:// or https://"
        return chat_replies.telegram_reply(outcome, settings)
    return chat_replies.UNKNOWN_COMMAND


@router.post("/telegram")
async def telegram_webhook(
    update: TelegramUpdate,
    _principal: Principal = Depends(require_telegram_secret),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """
    Receive a Telegram update and answer in the webhook response.

    The reply is returned as an inline `sendMessage` call, which Telegram
    executes on the bot's behalf. Updates without a text message are
    acknowledged with a status only.
    """
    message = update.incoming_message()
    if message is None:
        return {"status": "no_message"}

    logger.info("Telegram update %s from chat %s", update.update_id, message.chat.id)

    if not message.is_private:
        text = chat_replies.PRIVATE_CHAT_ONLY
    else:
        try:
            if message.is_command:
                text = await _handle_telegram_command(db, message, settings)
            else:
                owner = await resolve_default_user(db, settings)
                outcome = await process_message(
                    db, owner.id, message.text or "", IngestSource.TELEGRAM,
                )
                if outcome.has_urls:
                    text = chat_replies.telegram_reply(outcome, settings)
                else:
                    text = chat_replies.telegram_no_urls()
        except SQLAlchemyError:
            logger.exception("Telegram update %s failed", update.update_id)
            await db.rollback()
            text = chat_replies.APOLOGY

    return TelegramSendMessage(chat_id=message.chat.id, text=text).model_dump()


@router.get("/telegram")
async def telegram_webhook_status() -> dict[str, str]:
    """Report that the Telegram webhook endpoint is reachable."""
    return {
        "status": "active",
        "message": "Telegram webhook endpoint is active",
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.post("/whatsapp", response_model=WhatsAppWebhookResponse)
async def whatsapp_webhook(
    payload: dict[str, Any] = Body(...),
    _principal: Principal = Depends(require_integration_key),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> WhatsAppWebhookResponse:
    """
    Receive a WhatsApp message from a provider or bot relay.

    Accepts the Business API shape, a `{from, message}` relay shape, or a
    generic `{from, body}` shape. The reply text is returned for the provider
    to send back to the sender.
    """
    message = WhatsAppMessage.from_payload(payload)
    if message is None:
        return WhatsAppWebhookResponse(status="no_message")

    try:
        owner = await resolve_default_user(db, settings)
        outcome = await process_message(db, owner.id, message.body, IngestSource.WHATSAPP)
    except SQLAlchemyError:
        logger.exception("WhatsApp message from %s failed", message.sender)
        await db.rollback()
        return WhatsAppWebhookResponse(
            status="error",
            reply=WhatsAppReply(to=message.sender, message=chat_replies.APOLOGY),
        )

    if not outcome.has_urls:
        return WhatsAppWebhookResponse(
            status="no_urls",
            reply=WhatsAppReply(to=message.sender, message=chat_replies.whatsapp_no_urls()),
        )

    return WhatsAppWebhookResponse(
        status="processed",
        processed_urls=len(outcome.items),
        reply=WhatsAppReply(
            to=message.sender,
            message=chat_replies.whatsapp_reply(outcome, settings),
        ),
    )


@router.get("/whatsapp", response_class=PlainTextResponse)
async def whatsapp_verify(
    mode: str | None = Query(default=None, alias="hub.mode"),
    token: str | None = Query(default=None, alias="hub.verify_token"),
    challenge: str = Query(default="", alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> str:
    """Answer the provider's subscription challenge when the verify token matches."""
    verifier = SharedKeyAuthenticator("whatsapp_verify", [settings.whatsapp_verify_token])
    if mode == "subscribe" and verifier.verify(token):
        return challenge
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Verification failed")
