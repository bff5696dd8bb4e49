"""
Telegram Webhook Router
Receives bot updates at /telegram-webhook/<secret>
"""
import hmac
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, HTTPException, status

from app.core.config import settings
from app.core.deps import get_conversation
from app.utils.conversation import ConversationService

router = APIRouter()
logger = logging.getLogger(__name__)


def _matches(expected: str, given: Optional[str]) -> bool:
    if not expected or given is None:
        return False
    return hmac.compare_digest(expected.encode(), given.encode())


@router.post("/telegram-webhook/{secret}")
def telegram_webhook(
    secret: str,
    update: Dict[str, Any] = Body(...),
    x_telegram_bot_api_secret_token: Optional[str] = Header(None),
    conversation: ConversationService = Depends(get_conversation),
):
    if not _matches(settings.TELEGRAM_WEBHOOK_SECRET, secret):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    if not _matches(settings.TELEGRAM_HEADER_SECRET, x_telegram_bot_api_secret_token):
        logger.warning("Rejected webhook call with a bad secret header")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    conversation.handle_update(update)
    return {"ok": True}
