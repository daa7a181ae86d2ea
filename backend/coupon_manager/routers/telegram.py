"""Telegram bot webhook endpoint."""

import logging

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session

from coupon_manager.core.config import settings
from coupon_manager.core.database import get_db
from coupon_manager.schemas.telegram import TelegramUpdate
from coupon_manager.services.telegram_bot import TelegramBotService, TelegramClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/webhook",
    summary="Receive a Telegram update",
    responses={403: {"description": "Invalid secret token"}},
)
def telegram_webhook(
    update: TelegramUpdate,
    db: Session = Depends(get_db),
    secret_token: str | None = Header(default=None, alias="X-Telegram-Bot-Api-Secret-Token"),
) -> dict[str, bool]:
    """Answer bot commands sent to the configured bot."""
    if settings.TELEGRAM_WEBHOOK_SECRET and secret_token != settings.TELEGRAM_WEBHOOK_SECRET:
        raise HTTPException(status_code=403, detail="Invalid secret token")

    message = update.message
    if message is None or not message.text:
        return {"ok": True}

    reply = TelegramBotService(db).handle_command(message.text)
    if reply:
        TelegramClient().send_message(message.chat.id, reply)
    else:
        logger.debug("Ignoring non-command message in chat %s", message.chat.id)
    return {"ok": True}
