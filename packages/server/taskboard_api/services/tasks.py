"""
Task sync service: tasks with status/priority labels and user assignments.

Handles:
- Pull with creator/updater profiles and assignees loaded in one batch
- Push authorization: the creator or any assignee may modify a task
- Reference checks for labels and parent tasks within the task's project
- Replacement of assignments when ``assignedTo`` is part of the change
"""

from __future__ import annotations

from collections import defaultdict
from typing import Iterable, Optional, Sequence

from sqlalchemy import delete, insert, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from taskboard_api.core.auth import Caller
from taskboard_api.models.label import Label
from taskboard_api.models.task import Task, TaskAssignment
from taskboard_api.models.user import UserProfile
from taskboard_api.services.pull import pull_documents
from taskboard_api.services.push import ChangeRowHandler, next_updated_at, push_changes
from taskboard_api.services.wire import from_epoch_ms, task_document, task_values
from taskboard_shared.schemas.common import LabelType
from taskboard_shared.schemas.sync import RawChangeRow
from taskboard_shared.schemas.tasks import TaskDocument, TaskPullResponse, TaskState

Assignees = list[tuple[str, Optional[UserProfile]]]


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _documents_query():
    creator = aliased(UserProfile)
    updater = aliased(UserProfile)
    return (
        select(Task, creator, updater)
        .outerjoin(creator, creator.id == Task.created_by)
        .outerjoin(updater, updater.id == Task.updated_by)
        .execution_options(populate_existing=True)
    )


async def load_assignees(session: AsyncSession, task_ids: Iterable[str]) -> dict[str, Assignees]:
    """Assignees (user id, profile) for many tasks in one query."""
    ids = list(task_ids)
    assignees: dict[str, Assignees] = defaultdict(list)
    if not ids:
        return assignees
    result = await session.execute(
        select(TaskAssignment.task_id, TaskAssignment.user_id, UserProfile)
        .outerjoin(UserProfile, UserProfile.id == TaskAssignment.user_id)
        .where(TaskAssignment.task_id.in_(ids))
        .order_by(TaskAssignment.task_id, TaskAssignment.user_id)
    )
    for task_id, user_id, profile in result.all():
        assignees[task_id].append((user_id, profile))
    return assignees


async def load_task_documents(session: AsyncSession, scope: set[str], since: int) -> list[TaskDocument]:
    result = await session.execute(
        _documents_query()
        .where(Task.project_id.in_(scope), Task.updated_at >= from_epoch_ms(since))
        .order_by(Task.updated_at, Task.id)
    )
    rows = result.all()
    assignees = await load_assignees(session, (task.id for task, _, _ in rows))
    return [
        task_document(task, creator, updater, assignees.get(task.id, []))
        for task, creator, updater in rows
    ]


async def get_task_document(session: AsyncSession, task_id: str) -> Optional[TaskDocument]:
    result = await session.execute(_documents_query().where(Task.id == task_id))
    row = result.first()
    if row is None:
        return None
    task, creator, updater = row
    assignees = await load_assignees(session, [task.id])
    return task_document(task, creator, updater, assignees.get(task.id, []))


async def get_assignee_ids(session: AsyncSession, task_id: str) -> set[str]:
    result = await session.execute(
        select(TaskAssignment.user_id).where(TaskAssignment.task_id == task_id)
    )
    return {row[0] for row in result.all()}


# ---------------------------------------------------------------------------
# Push
# ---------------------------------------------------------------------------


class TaskChangeHandler(ChangeRowHandler[Task, TaskState]):
    model = Task
    state_model = TaskState
    entity = "task"

    async def may_modify(self, row: Task) -> bool:
        if row.created_by == self.caller.id:
            return True
        return self.caller.id in await get_assignee_ids(self.session, row.id)

    async def load_document(self, row: Task) -> TaskDocument:
        return await get_task_document(self.session, row.id)

    async def _label_matches(self, label_id: str, project_id: str, label_type: LabelType) -> bool:
        result = await self.session.execute(
            select(Label.project_id, Label.type).where(Label.id == label_id)
        )
        found = result.first()
        return found is not None and found[0] == project_id and found[1] == label_type.value

    async def check_references(self, state: TaskState) -> Optional[str]:
        error = await super().check_references(state)
        if error:
            return error
        if not await self._label_matches(state.status_id, state.project_id, LabelType.STATUS):
            return "Status label not found in this project"
        if not await self._label_matches(state.priority_id, state.project_id, LabelType.PRIORITY):
            return "Priority label not found in this project"
        if state.parent_task_id:
            if state.parent_task_id == state.id:
                return "A task cannot be its own parent"
            result = await self.session.execute(
                select(Task.project_id).where(Task.id == state.parent_task_id)
            )
            if result.scalar_one_or_none() != state.project_id:
                return "Parent task not found in this project"
        return None

    async def _replace_assignments(self, task_id: str, state: TaskState) -> None:
        if "assigned_to" not in state.model_fields_set:
            return
        await self.session.execute(delete(TaskAssignment).where(TaskAssignment.task_id == task_id))
        user_ids = list(dict.fromkeys(summary.id for summary in state.assigned_to))
        if user_ids:
            # core insert keeps assignments out of the identity map
            await self.session.execute(
                insert(TaskAssignment).values(
                    [{"task_id": task_id, "user_id": user_id} for user_id in user_ids]
                )
            )

    async def insert(self, state: TaskState) -> None:
        self.session.add(
            Task(
                **task_values(state),
                created_at=from_epoch_ms(state.created_at),
                updated_at=next_updated_at(),
                created_by=self.caller.id,
                updated_by=self.caller.id,
            )
        )
        await self.session.flush()
        await self._replace_assignments(state.id, state)

    async def update(self, row: Task, state: TaskState) -> bool:
        result = await self.session.execute(
            update(Task)
            .where(Task.id == row.id, Task.updated_at == row.updated_at)
            .values(
                **task_values(state),
                updated_at=next_updated_at(row.updated_at),
                updated_by=self.caller.id,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        await self._replace_assignments(row.id, state)
        return True


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------


async def pull_tasks(
    session: AsyncSession, caller: Optional[Caller], last_pulled_at: Optional[str]
) -> TaskPullResponse:
    documents, checkpoint = await pull_documents(
        session,
        caller,
        last_pulled_at,
        collection="tasks",
        load_documents=load_task_documents,
    )
    return TaskPullResponse(documents=documents, checkpoint=checkpoint)


async def push_tasks(
    session: AsyncSession, caller: Optional[Caller], change_rows: Sequence[RawChangeRow]
) -> list[dict]:
    return await push_changes(session, caller, change_rows, TaskChangeHandler, collection="tasks")
