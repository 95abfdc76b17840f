"""
Pull driver shared by every document family.

Resolves the caller's project scope, short-circuits an empty scope before any
entity table is touched, loads the changed documents and computes the next
checkpoint.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Optional, Sequence

import structlog
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard_api.core.auth import Caller
from taskboard_api.core.config import get_settings
from taskboard_api.core.errors import ServerError, UnauthorizedError
from taskboard_api.services.checkpoint import next_checkpoint, now_ms, parse_last_pulled_at
from taskboard_api.services.membership import get_user_project_ids
from taskboard_shared.schemas.common import WireModel
from taskboard_shared.schemas.sync import Checkpoint

log = structlog.get_logger()

# (session, project scope, since epoch-ms) -> documents ordered by (updatedAt, id)
DocumentLoader = Callable[[AsyncSession, set[str], int], Awaitable[Sequence[WireModel]]]


async def pull_documents(
    session: AsyncSession,
    caller: Optional[Caller],
    last_pulled_at: Optional[str],
    *,
    collection: str,
    load_documents: DocumentLoader,
    strategy: Optional[str] = None,
) -> tuple[list[WireModel], Checkpoint]:
    if caller is None:
        raise UnauthorizedError("Authentication required")

    since = parse_last_pulled_at(last_pulled_at)
    scope = await get_user_project_ids(session, caller.id)
    if not scope:
        log.info(f"{collection}.pulled", user_id=caller.id, since=since, count=0, empty_scope=True)
        return [], Checkpoint(updated_at=now_ms())

    try:
        documents = list(await load_documents(session, scope, since))
    except ValidationError as exc:
        log.error(f"{collection}.stored_document_invalid", user_id=caller.id, error=str(exc))
        raise ServerError(f"Stored {collection} failed validation")

    checkpoint = next_checkpoint(
        [document.updated_at for document in documents],
        since,
        strategy or get_settings().checkpoint_strategy,
    )
    log.info(
        f"{collection}.pulled",
        user_id=caller.id,
        since=since,
        count=len(documents),
        checkpoint=checkpoint.updated_at,
    )
    return documents, checkpoint
