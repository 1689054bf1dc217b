import json
import logging

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from headway.core.config import settings
from headway.core.errors import AuthenticationError, ValidationError
from headway.db.session import get_db
from headway.services.revolut_client import verify_webhook_signature
from headway.services.webhook_service import handle_revolut_event

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


def _check_signature(req: Request, body: bytes) -> None:
    secret = settings.REVOLUT_WEBHOOK_SECRET
    if not secret:
        if not settings.REVOLUT_WEBHOOK_ALLOW_UNSIGNED:
            raise AuthenticationError("Webhook signing secret is not configured")
        return
    signature = req.headers.get("Revolut-Signature")
    timestamp = req.headers.get("Revolut-Request-Timestamp")
    if not signature or not timestamp:
        logger.warning("Revolut webhook without signature headers rejected")
        raise AuthenticationError("Missing signature")
    if not verify_webhook_signature(body, signature, timestamp, secret):
        logger.warning("Invalid Revolut webhook signature (timestamp=%s)", timestamp)
        raise AuthenticationError("Invalid signature")


@router.post("/webhooks/revolut")
async def revolut_webhook(req: Request, db: Session = Depends(get_db)):
    body = await req.body()
    _check_signature(req, body)
    try:
        event = json.loads(body.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Malformed JSON body")
    if not isinstance(event, dict):
        raise ValidationError("Missing order_id")

    outcome = handle_revolut_event(db, event)
    logger.info("Revolut %s for payment %s -> %s", outcome.event, outcome.payment_id, outcome.payment_status)
    return {"received": True}
