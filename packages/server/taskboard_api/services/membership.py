"""Membership resolver: which projects and organizations a user can see."""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from taskboard_api.models.project import Project, ProjectMember


async def get_user_project_ids(session: AsyncSession, user_id: str) -> set[str]:
    result = await session.execute(
        select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
    )
    return {row[0] for row in result.all()}


async def get_user_org_ids(session: AsyncSession, user_id: str) -> set[str]:
    """Organizations the user holds at least one project membership in."""
    result = await session.execute(
        select(Project.org_id)
        .join(ProjectMember, ProjectMember.project_id == Project.id)
        .where(ProjectMember.user_id == user_id)
        .distinct()
    )
    return {row[0] for row in result.all()}


async def is_project_owner(session: AsyncSession, project_id: str, user_id: str) -> bool:
    result = await session.execute(
        select(ProjectMember.is_owner).where(
            ProjectMember.project_id == project_id,
            ProjectMember.user_id == user_id,
        )
    )
    return bool(result.scalar_one_or_none())
