"""
Project sync service.

Projects are scoped by their own id: a caller sees the projects it is a
member of. New projects may only be created in an organization the caller
already belongs to, and creating one makes the caller its owner. The
creator or any owner member may modify a project. ``orgId`` is fixed at creation.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog
from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased
from sqlmodel import select

from taskboard_api.core.auth import Caller
from taskboard_api.models.project import Project, ProjectMember
from taskboard_api.models.user import UserProfile
from taskboard_api.services.membership import get_user_org_ids, is_project_owner
from taskboard_api.services.pull import pull_documents
from taskboard_api.services.push import ChangeRowHandler, next_updated_at, push_changes
from taskboard_api.services.wire import from_epoch_ms, project_document, project_values
from taskboard_shared.schemas.projects import ProjectDocument, ProjectPullResponse, ProjectState
from taskboard_shared.schemas.sync import RawChangeRow

log = structlog.get_logger()

ORG_ACCESS_ERROR = "Organization not found or access denied"


def _documents_query():
    creator = aliased(UserProfile)
    updater = aliased(UserProfile)
    return (
        select(Project, creator, updater)
        .outerjoin(creator, creator.id == Project.created_by)
        .outerjoin(updater, updater.id == Project.updated_by)
        .execution_options(populate_existing=True)
    )


async def load_project_documents(
    session: AsyncSession, scope: set[str], since: int
) -> list[ProjectDocument]:
    result = await session.execute(
        _documents_query()
        .where(Project.id.in_(scope), Project.updated_at >= from_epoch_ms(since))
        .order_by(Project.updated_at, Project.id)
    )
    return [project_document(project, creator, updater) for project, creator, updater in result.all()]


async def get_project_document(session: AsyncSession, project_id: str) -> Optional[ProjectDocument]:
    result = await session.execute(_documents_query().where(Project.id == project_id))
    row = result.first()
    if row is None:
        return None
    return project_document(*row)


class ProjectChangeHandler(ChangeRowHandler[Project, ProjectState]):
    model = Project
    state_model = ProjectState
    entity = "project"

    def is_visible(self, row: Project) -> bool:
        return row.id in self.scope

    async def may_modify(self, row: Project) -> bool:
        if row.created_by == self.caller.id:
            return True
        return await is_project_owner(self.session, row.id, self.caller.id)

    async def load_document(self, row: Project) -> ProjectDocument:
        return await get_project_document(self.session, row.id)

    async def check_references(self, state: ProjectState) -> Optional[str]:
        if state.id in self.scope:
            # existing project; orgId is not writable on update
            return None
        if state.org_id not in await get_user_org_ids(self.session, self.caller.id):
            return ORG_ACCESS_ERROR
        return None

    async def insert(self, state: ProjectState) -> None:
        now = next_updated_at()
        self.session.add(
            Project(
                **project_values(state),
                created_at=from_epoch_ms(state.created_at),
                updated_at=now,
                created_by=self.caller.id,
                updated_by=self.caller.id,
            )
        )
        await self.session.flush()
        self.session.add(
            ProjectMember(
                project_id=state.id,
                user_id=self.caller.id,
                role="owner",
                is_owner=True,
                created_at=now,
                updated_at=now,
                created_by=self.caller.id,
                updated_by=self.caller.id,
            )
        )
        await self.session.flush()
        self.pending_scope.add(state.id)
        log.info("project.created", project_id=state.id, owner=self.caller.id)

    async def update(self, row: Project, state: ProjectState) -> bool:
        values = project_values(state)
        values.pop("org_id")
        result = await self.session.execute(
            update(Project)
            .where(Project.id == row.id, Project.updated_at == row.updated_at)
            .values(
                **values,
                updated_at=next_updated_at(row.updated_at),
                updated_by=self.caller.id,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


async def pull_projects(
    session: AsyncSession, caller: Optional[Caller], last_pulled_at: Optional[str]
) -> ProjectPullResponse:
    documents, checkpoint = await pull_documents(
        session,
        caller,
        last_pulled_at,
        collection="projects",
        load_documents=load_project_documents,
    )
    return ProjectPullResponse(documents=documents, checkpoint=checkpoint)


async def push_projects(
    session: AsyncSession, caller: Optional[Caller], change_rows: Sequence[RawChangeRow]
) -> list[dict]:
    return await push_changes(session, caller, change_rows, ProjectChangeHandler, collection="projects")
