"""Load read-only snapshots from the database.

Analytics never touch ORM rows directly; everything downstream of this
module works on the immutable snapshot models.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.core.analytics.schemas import (
    PartnerSnapshot,
    ProjectSnapshot,
    TaskSnapshot,
    UserSnapshot,
)
from partnerhub.db.models.partner import Partner
from partnerhub.db.models.project import Project, project_partners
from partnerhub.db.models.task import Task
from partnerhub.db.models.user import User


@dataclass(frozen=True)
class AnalyticsSnapshot:
    projects: list[ProjectSnapshot]
    tasks: list[TaskSnapshot]
    partners: list[PartnerSnapshot]
    users: list[UserSnapshot]


def _project_snapshot(project: Project, partner_ids: tuple[uuid.UUID, ...]) -> ProjectSnapshot:
    return ProjectSnapshot(
        id=project.id,
        name=project.name,
        status=project.status,
        progress=project.progress,
        start_date=project.start_date,
        end_date=project.end_date,
        budget=float(project.budget) if project.budget is not None else None,
        actual_cost=float(project.actual_cost) if project.actual_cost is not None else None,
        organization_id=project.organization_id,
        partner_ids=partner_ids,
        updated_at=project.updated_at,
    )


async def resolve_organization(db: AsyncSession, user_id: uuid.UUID | None) -> uuid.UUID | None:
    if user_id is None:
        return None
    result = await db.execute(select(User.organization_id).where(User.id == user_id))
    return result.scalar_one_or_none()


async def load_projects(
    db: AsyncSession, organization_id: uuid.UUID | None = None
) -> list[ProjectSnapshot]:
    query = select(Project).where(Project.is_deleted.is_(False))
    if organization_id:
        query = query.where(Project.organization_id == organization_id)
    projects = (await db.execute(query)).scalars().all()

    links = (await db.execute(select(project_partners))).all()
    partners_of: dict[uuid.UUID, list[uuid.UUID]] = {}
    for project_id, partner_id in links:
        partners_of.setdefault(project_id, []).append(partner_id)

    return [_project_snapshot(p, tuple(partners_of.get(p.id, ()))) for p in projects]


async def load_tasks(
    db: AsyncSession, organization_id: uuid.UUID | None = None
) -> list[TaskSnapshot]:
    query = (
        select(Task)
        .join(Project, Task.project_id == Project.id)
        .where(Task.is_deleted.is_(False), Project.is_deleted.is_(False))
    )
    if organization_id:
        query = query.where(Project.organization_id == organization_id)
    tasks = (await db.execute(query)).scalars().all()
    return [TaskSnapshot.model_validate(t) for t in tasks]


async def load_partners(
    db: AsyncSession, organization_id: uuid.UUID | None = None
) -> list[PartnerSnapshot]:
    query = select(Partner)
    if organization_id:
        query = query.where(Partner.organization_id == organization_id)
    partners = (await db.execute(query)).scalars().all()
    return [PartnerSnapshot.model_validate(p) for p in partners]


async def load_users(db: AsyncSession) -> list[UserSnapshot]:
    users = (await db.execute(select(User).where(User.is_deleted.is_(False)))).scalars().all()
    return [UserSnapshot.model_validate(u) for u in users]


async def load_snapshot(
    db: AsyncSession, organization_id: uuid.UUID | None = None
) -> AnalyticsSnapshot:
    return AnalyticsSnapshot(
        projects=await load_projects(db, organization_id),
        tasks=await load_tasks(db, organization_id),
        partners=await load_partners(db, organization_id),
        users=await load_users(db),
    )
