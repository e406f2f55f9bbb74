"""Webhook route receiving Asana events."""

import hashlib
import hmac
import logging
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Request, Response

from ...container import get_container
from ...domain.models import WebhookEvent
from ...parsers.asana_parser import AsanaEventParser

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])

_parser = AsanaEventParser()


def verify_signature(body: bytes, signature: Optional[str], secret: Optional[str]) -> bool:
    """Check an ``X-Hook-Signature`` header.

    Verification is skipped when no secret is configured.
    """
    if not secret:
        return True
    if not signature:
        return False
    expected = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return hmac.compare_digest(expected, signature)


async def process_events(events: list[WebhookEvent]) -> None:
    """Hand decoded events to the notification service."""
    service = get_container().notification_service
    delivered = await service.handle_events(events)
    logger.debug(f"Processed {len(events)} event(s), {delivered} sent immediately")


@router.post("/webhook")
async def asana_webhook(request: Request, background_tasks: BackgroundTasks) -> Response:
    """Handle Asana webhook deliveries.

    Supports:
    - Handshake (``X-Hook-Secret`` echoed back)
    - Signed event batches, processed after the response is sent
    """
    handshake = request.headers.get("x-hook-secret")
    if handshake:
        logger.info("Asana webhook handshake confirmed")
        return Response(status_code=200, headers={"X-Hook-Secret": handshake})

    body = await request.body()
    secret = get_container().settings.asana.webhook_secret
    if not verify_signature(
        body,
        request.headers.get("x-hook-signature"),
        secret.get_secret_value() if secret else None,
    ):
        logger.warning("Invalid webhook signature")
        raise HTTPException(status_code=401, detail="Unauthorized")

    try:
        payload = await request.json()
    except ValueError:
        payload = {}

    raw_events = payload.get("events") if isinstance(payload, dict) else None
    if not isinstance(raw_events, list):
        raw_events = []
    logger.info(f"Received {len(raw_events)} event(s)")

    events = _parser.parse_many(raw_events)
    if events:
        background_tasks.add_task(process_events, events)

    return Response(status_code=200)
