"""
Label sync service: project-scoped status/priority labels.

Only the label's creator may modify it.
"""

from __future__ import annotations

from typing import Optional, Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from taskboard_api.core.auth import Caller
from taskboard_api.models.label import Label
from taskboard_api.models.user import UserProfile
from taskboard_api.services.pull import pull_documents
from taskboard_api.services.push import ChangeRowHandler, next_updated_at, push_changes
from taskboard_api.services.wire import from_epoch_ms, label_document, label_values
from taskboard_shared.schemas.labels import LabelDocument, LabelPullResponse, LabelState
from taskboard_shared.schemas.sync import RawChangeRow


def _documents_query():
    creator = aliased(UserProfile)
    updater = aliased(UserProfile)
    return (
        select(Label, creator, updater)
        .outerjoin(creator, creator.id == Label.created_by)
        .outerjoin(updater, updater.id == Label.updated_by)
        .execution_options(populate_existing=True)
    )


async def load_label_documents(session: AsyncSession, scope: set[str], since: int) -> list[LabelDocument]:
    result = await session.execute(
        _documents_query()
        .where(Label.project_id.in_(scope), Label.updated_at >= from_epoch_ms(since))
        .order_by(Label.updated_at, Label.id)
    )
    return [label_document(label, creator, updater) for label, creator, updater in result.all()]


async def get_label_document(session: AsyncSession, label_id: str) -> Optional[LabelDocument]:
    result = await session.execute(_documents_query().where(Label.id == label_id))
    row = result.first()
    if row is None:
        return None
    return label_document(*row)


class LabelChangeHandler(ChangeRowHandler[Label, LabelState]):
    model = Label
    state_model = LabelState
    entity = "label"

    async def load_document(self, row: Label) -> LabelDocument:
        return await get_label_document(self.session, row.id)

    async def insert(self, state: LabelState) -> None:
        self.session.add(
            Label(
                **label_values(state),
                created_at=from_epoch_ms(state.created_at),
                updated_at=next_updated_at(),
                created_by=self.caller.id,
                updated_by=self.caller.id,
            )
        )
        await self.session.flush()

    async def update(self, row: Label, state: LabelState) -> bool:
        result = await self.session.execute(
            update(Label)
            .where(Label.id == row.id, Label.updated_at == row.updated_at)
            .values(
                **label_values(state),
                updated_at=next_updated_at(row.updated_at),
                updated_by=self.caller.id,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


async def pull_labels(
    session: AsyncSession, caller: Optional[Caller], last_pulled_at: Optional[str]
) -> LabelPullResponse:
    documents, checkpoint = await pull_documents(
        session,
        caller,
        last_pulled_at,
        collection="labels",
        load_documents=load_label_documents,
    )
    return LabelPullResponse(documents=documents, checkpoint=checkpoint)


async def push_labels(
    session: AsyncSession, caller: Optional[Caller], change_rows: Sequence[RawChangeRow]
) -> list[dict]:
    return await push_changes(session, caller, change_rows, LabelChangeHandler, collection="labels")
