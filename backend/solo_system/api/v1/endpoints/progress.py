import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, Request, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from solo_system.api.deps import AppCredential, DBSession, require_user_id
from solo_system.schemas.progress import (
    ProgressAppendRequest,
    ProgressEntry,
    ProgressListResponse,
)
from solo_system.schemas.state import AckResponse
from solo_system.services.kv_store import kv_get, kv_set, progress_key
from solo_system.services.progress_log import upsert_history

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progress", tags=["progress"], dependencies=[AppCredential])


def _parse_history(stored: object) -> list[ProgressEntry]:
    if not isinstance(stored, list):
        return []
    return [ProgressEntry.model_validate(item) for item in stored]


@router.get("", response_model=ProgressListResponse)
async def list_progress(
    db: DBSession,
    user_id: Annotated[str | None, Query()] = None,
) -> ProgressListResponse:
    user_id = require_user_id(user_id)
    try:
        history = _parse_history(await kv_get(db, progress_key(user_id)))
    except (SQLAlchemyError, ValidationError) as exc:
        logger.exception("Progress load failed for %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load progress data",
        ) from exc
    return ProgressListResponse(progress=history)


@router.post("", response_model=AckResponse)
async def append_progress(
    payload: ProgressAppendRequest,
    request: Request,
    db: DBSession,
) -> AckResponse:
    detail = "User ID and entry required"
    user_id = require_user_id(payload.user_id, detail)
    if payload.entry is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)

    limit = request.app.state.settings.history_limit
    key = progress_key(user_id)
    try:
        history = _parse_history(await kv_get(db, key))
        updated = upsert_history(history, payload.entry, limit=limit)
        await kv_set(db, key, [item.model_dump(mode="json") for item in updated])
    except (SQLAlchemyError, ValidationError) as exc:
        logger.exception("Progress save failed for %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save progress data",
        ) from exc
    return AckResponse()
