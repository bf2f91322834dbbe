"""
MercadoLibre notification intake.

The marketplace retries any non-200 answer, so intake always answers 200
and reports the outcome in the body.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from painel_ml.api.middleware.correlation_id import get_correlation_id
from painel_ml.api.schemas import WebhookEventResponse, dump_all
from painel_ml.database.connection import get_db
from painel_ml.services.webhooks import WebhooksService
from painel_ml.utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()

PENDING_LIMIT = 50


@router.post("")
def receive_webhook(
    request: Request,
    payload: Optional[Dict[str, Any]] = Body(None),
    db: Session = Depends(get_db),
) -> Dict[str, Any]:
    payload = payload or {}
    correlation_id = get_correlation_id(request)
    logger.info(f"Webhook received: {payload.get('topic')} | correlation: {correlation_id}")

    try:
        processed = WebhooksService(db).process_webhook(payload)
    except Exception as e:
        logger.error(f"Webhook processing error: {e}")
        return {"status": "error", "error": str(e), "correlation_id": correlation_id}

    return {
        "status": "ok" if processed else "duplicate",
        "topic": payload.get("topic"),
        "resource": payload.get("resource"),
        "correlation_id": correlation_id,
    }


@router.get("/stats")
def webhook_stats(db: Session = Depends(get_db)) -> Dict[str, Any]:
    return WebhooksService(db).get_stats()


@router.get("/pending")
def pending_webhooks(db: Session = Depends(get_db)):
    return dump_all(WebhookEventResponse, WebhooksService(db).get_pending_events(PENDING_LIMIT))
