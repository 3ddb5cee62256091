import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from solo_system.api.deps import AppCredential, DBSession, require_user_id
from solo_system.schemas.state import (
    AckResponse,
    ProgressState,
    StateLoadResponse,
    StateSaveRequest,
)
from solo_system.services.kv_store import kv_get, kv_set, state_key

logger = logging.getLogger(__name__)

router = APIRouter(tags=["state"], dependencies=[AppCredential])


@router.get("/load", response_model=StateLoadResponse)
async def load_state(
    db: DBSession,
    user_id: Annotated[str | None, Query()] = None,
) -> StateLoadResponse:
    user_id = require_user_id(user_id)
    try:
        stored = await kv_get(db, state_key(user_id))
    except SQLAlchemyError as exc:
        logger.exception("Load failed for %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load data",
        ) from exc

    if not stored:
        return StateLoadResponse(exists=False)
    try:
        return StateLoadResponse(exists=True, state=ProgressState.model_validate(stored))
    except ValidationError as exc:
        logger.exception("Stored state for %s is unreadable", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to load data",
        ) from exc


@router.post("/save", response_model=AckResponse)
async def save_state(payload: StateSaveRequest, db: DBSession) -> AckResponse:
    user_id = require_user_id(payload.user_id)
    state = payload.to_state()
    try:
        await kv_set(db, state_key(user_id), state.model_dump(mode="json"))
    except SQLAlchemyError as exc:
        logger.exception("Save failed for %s", user_id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to save data",
        ) from exc
    return AckResponse()
