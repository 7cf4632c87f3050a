from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.me_common.context import AppContext, get_context
from src.me_common.database import get_db_session
from src.me_matching.application.schemas import MatchRequest, MatchResponse
from src.me_matching.application.service import MatchingService

router = APIRouter(prefix="/match", tags=["matching"])

_service = MatchingService()


@router.post("", response_model=MatchResponse)
async def match_intent(
    req: MatchRequest,
    ctx: Annotated[AppContext, Depends(get_context)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
) -> MatchResponse:
    return await _service.match_intent(req, db, ctx.settings.RESERVATION_TTL_SECS)
