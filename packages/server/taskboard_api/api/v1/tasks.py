"""
Task sync endpoints.

- pull: tasks of the caller's projects changed since ``lastPulledAt``, with assignees
- push: apply client change rows; only the creator or an assignee may modify a task
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
from taskboard_api.services.tasks import pull_tasks, push_tasks
from taskboard_shared.schemas.tasks import TaskPullResponse
from taskboard_shared.schemas.sync import PushRequest

router = APIRouter()
log = structlog.get_logger()


@router.post("/pull", response_model=TaskPullResponse)
async def pull_tasks_endpoint(
    lastPulledAt: Optional[str] = Query(None),
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await pull_tasks(session, caller, lastPulledAt)
    except SQLAlchemyError:
        log.exception("tasks.pull_failed", user_id=caller.id)
        raise ServerError("Failed to sync tasks")


@router.post("/push")
async def push_tasks_endpoint(
    body: PushRequest,
    caller: Caller = Depends(get_current_caller),
    session: AsyncSession = Depends(get_session),
):
    try:
        return await push_tasks(session, caller, body.change_rows)
    except (SQLAlchemyError, ValidationError):
        log.exception("tasks.push_failed", user_id=caller.id)
        raise ServerError("Failed to push task changes")
