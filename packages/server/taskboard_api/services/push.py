"""
Push driver shared by every document family.

Each change row walks the same pipeline: decode, fetch the stored row,
authorize, detect conflicts, check references and apply. Every row runs in
its own transaction, so one failing row never rolls back the others, and
updates are conditional on the ``updated_at`` the row was checked against.
A row ends either applied (nothing is returned) or as exactly one entry in
the conflicts list.

Entity services plug in through ``ChangeRowHandler`` subclasses.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ClassVar, Generic, Optional, Sequence, TypeVar, Union

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import SQLModel, select

from taskboard_api.core.auth import Caller
from taskboard_api.core.errors import UnauthorizedError
from taskboard_api.models.base import utcnow
from taskboard_api.services.conflicts import is_conflict
from taskboard_api.services.membership import get_user_project_ids
from taskboard_api.services.wire import from_epoch_ms, to_epoch_ms
from taskboard_shared.schemas.common import WireModel
from taskboard_shared.schemas.sync import MISSING_ID_ERROR, RawChangeRow, SyncConflict

log = structlog.get_logger()

APPLY_FAILED_ERROR = "Failed to apply change"
PROJECT_ACCESS_ERROR = "Project not found or access denied"

RowT = TypeVar("RowT", bound=SQLModel)
StateT = TypeVar("StateT", bound=WireModel)

Conflict = Union[SyncConflict, WireModel]


def next_updated_at(previous: Optional[datetime] = None) -> datetime:
    """Write timestamp: now, but always at least 1ms after the previous one."""
    now = utcnow()
    if previous is None:
        return now
    return from_epoch_ms(max(to_epoch_ms(now), to_epoch_ms(previous) + 1))


def describe_validation_error(exc: ValidationError) -> str:
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    if location:
        return f"Invalid document format: {location}: {first['msg']}"
    return f"Invalid document format: {first['msg']}"


class ChangeRowHandler(Generic[RowT, StateT]):
    """Per-entity hooks for the push pipeline.

    Subclasses set ``model``/``state_model``/``entity`` and implement the
    storage hooks. ``scope`` is the caller's project id set, resolved once
    per push. Project ids a change row grants access to go in ``pending_scope``
    and join ``scope`` once that row commits.
    """

    model: ClassVar[type[SQLModel]]
    state_model: ClassVar[type[WireModel]]
    entity: ClassVar[str]

    def __init__(self, session: AsyncSession, caller: Caller, scope: set[str]):
        self.session = session
        self.caller = caller
        self.scope = scope
        self.pending_scope: set[str] = set()

    @property
    def unauthorized_error(self) -> str:
        return f"Unauthorized to modify this {self.entity}"

    async def fetch(self, document_id: str) -> Optional[RowT]:
        # populate_existing: rows touched by an earlier, rolled back change must be reloaded
        result = await self.session.execute(
            select(self.model)
            .where(self.model.id == document_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    def is_visible(self, row: RowT) -> bool:
        return row.project_id in self.scope

    async def may_modify(self, row: RowT) -> bool:
        return row.created_by == self.caller.id

    async def load_document(self, row: RowT) -> WireModel:
        raise NotImplementedError

    async def check_references(self, state: StateT) -> Optional[str]:
        if state.project_id not in self.scope:
            return PROJECT_ACCESS_ERROR
        return None

    async def insert(self, state: StateT) -> None:
        raise NotImplementedError

    async def update(self, row: RowT, state: StateT) -> bool:
        """Apply ``state`` if the stored row is still at ``row.updated_at``; False if it moved."""
        raise NotImplementedError

    def decode(self, raw_state: Any) -> Union[StateT, SyncConflict]:
        if not isinstance(raw_state, dict) or not raw_state.get("id"):
            return SyncConflict(error=MISSING_ID_ERROR, document=raw_state)
        try:
            return self.state_model.model_validate(raw_state)
        except ValidationError as exc:
            return SyncConflict(error=describe_validation_error(exc), document=raw_state)

    async def reconcile(self, document_id: str, submitted: Any) -> Conflict:
        """Conflict entry for a row another writer changed under us."""
        stored = await self.fetch(document_id)
        if stored is None:
            return SyncConflict(error=APPLY_FAILED_ERROR, document=submitted)
        if not self.is_visible(stored):
            return SyncConflict(error=self.unauthorized_error, document=submitted)
        return await self.load_document(stored)


async def apply_change_row(handler: ChangeRowHandler, row: RawChangeRow) -> Optional[Conflict]:
    submitted = row.new_document_state
    state = handler.decode(submitted)
    if isinstance(state, SyncConflict):
        return state

    stored = await handler.fetch(state.id)
    if stored is not None:
        if not handler.is_visible(stored):
            # never echo another tenant's stored data
            return SyncConflict(error=handler.unauthorized_error, document=submitted)
        if not await handler.may_modify(stored):
            document = await handler.load_document(stored)
            return SyncConflict(
                error=handler.unauthorized_error,
                document=document.model_dump(by_alias=True, mode="json"),
            )
        if is_conflict(to_epoch_ms(stored.updated_at), row.assumed_master_state):
            return await handler.load_document(stored)

    reference_error = await handler.check_references(state)
    if reference_error:
        return SyncConflict(error=reference_error, document=submitted)

    if stored is None:
        try:
            await handler.insert(state)
        except IntegrityError:
            # lost an insert race on the primary key
            await handler.session.rollback()
            return await handler.reconcile(state.id, submitted)
        return None

    if not await handler.update(stored, state):
        await handler.session.rollback()
        return await handler.reconcile(state.id, submitted)
    return None


def dump_conflict(conflict: Conflict) -> dict:
    return conflict.model_dump(by_alias=True, mode="json")


async def push_changes(
    session: AsyncSession,
    caller: Optional[Caller],
    change_rows: Sequence[RawChangeRow],
    handler_class: type[ChangeRowHandler],
    *,
    collection: str,
) -> list[dict]:
    """Apply ``change_rows`` one transaction at a time; returns the conflicts in wire form."""
    if caller is None:
        raise UnauthorizedError("Authentication required")

    scope = await get_user_project_ids(session, caller.id)
    await session.commit()
    handler = handler_class(session, caller, scope)

    conflicts: list[dict] = []
    applied = 0
    for row in change_rows:
        try:
            conflict = await apply_change_row(handler, row)
            if conflict is None:
                await session.commit()
                handler.scope.update(handler.pending_scope)
            else:
                await session.rollback()
        except (SQLAlchemyError, ValidationError):
            # storage failures and corrupt stored rows only fail their own row
            await session.rollback()
            log.exception(f"{collection}.push_row_failed", user_id=caller.id, row_id=row.id)
            conflict = SyncConflict(error=APPLY_FAILED_ERROR, document=row.new_document_state)
        finally:
            handler.pending_scope.clear()

        if conflict is None:
            applied += 1
            continue
        if isinstance(conflict, SyncConflict):
            log.info(f"{collection}.push_row_rejected", user_id=caller.id, reason=conflict.error)
        else:
            log.info(f"{collection}.push_row_conflict", user_id=caller.id, document_id=conflict.id)
        conflicts.append(dump_conflict(conflict))

    log.info(
        f"{collection}.pushed",
        user_id=caller.id,
        received=len(change_rows),
        applied=applied,
        conflicts=len(conflicts),
    )
    return conflicts
