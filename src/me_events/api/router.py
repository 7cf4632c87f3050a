from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.database import get_db_session
from src.me_events.api.auth import require_webhook_secret
from src.me_events.application.schemas import WebhookPayload, WebhookResponse
from src.me_events.application.service import EventReconciler

router = APIRouter(prefix="/webhooks", tags=["webhooks"])

_reconciler = EventReconciler()


@router.post(
    "/events",
    response_model=WebhookResponse,
    dependencies=[Depends(require_webhook_secret)],
)
async def handle_events(
    payload: WebhookPayload,
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> WebhookResponse:
    return await _reconciler.process(payload.events, db)
