"""
Label sync endpoints.

- pull: labels of the caller's projects changed since ``lastPulledAt``
- push: apply client change rows; answers with the conflicts
"""

from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.core.auth import Caller, get_current_caller
from taskboard_api.core.database import get_session
from taskboard_api.core.errors import ServerError
from taskboard_api.services.labels import pull_labels, push_labels
from taskboard_shared.schemas.labels import LabelPullResponse
from taskboard_shared.schemas.sync import PushRequest

router = APIRouter()
log = structlog.get_logger()


@router.post("/pull", response_model=LabelPullResponse)
async def pull_labels_endpoint(
    lastPulledAt: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await pull_labels(session, caller, lastPulledAt)
    except SQLAlchemyError:
        log.exception("labels.pull_failed", user_id=caller.id)
        raise ServerError("Failed to sync labels")


@router.post("/push")
async def push_labels_endpoint(
    body: PushRequest,
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await push_labels(session, caller, body.change_rows)
    except (SQLAlchemyError, ValidationError):
        log.exception("labels.push_failed", user_id=caller.id)
        raise ServerError("Failed to push label changes")
