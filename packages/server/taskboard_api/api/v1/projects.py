"""
Project sync endpoints.

- pull: projects the caller is a member of, changed since ``lastPulledAt``
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
from taskboard_api.services.projects import pull_projects, push_projects
from taskboard_shared.schemas.projects import ProjectPullResponse
from taskboard_shared.schemas.sync import PushRequest

router = APIRouter()
log = structlog.get_logger()


@router.post("/pull", response_model=ProjectPullResponse)
async def pull_projects_endpoint(
    lastPulledAt: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await pull_projects(session, caller, lastPulledAt)
    except SQLAlchemyError:
        log.exception("projects.pull_failed", user_id=caller.id)
        raise ServerError("Failed to sync projects")


@router.post("/push")
async def push_projects_endpoint(
    body: PushRequest,
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await push_projects(session, caller, body.change_rows)
    except (SQLAlchemyError, ValidationError):
        log.exception("projects.push_failed", user_id=caller.id)
        raise ServerError("Failed to push project changes")
