import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.common.clock import Clock, system_clock
from partnerhub.common.enums import DashboardPeriod
from partnerhub.common.exceptions import NotFoundError
from partnerhub.common.logging import get_logger
from partnerhub.config import settings
from partnerhub.core.analytics import dashboard, health_score, metrics
from partnerhub.core.analytics.schemas import (
    DeadlineItem,
    HealthScoreBreakdown,
    HealthScoreStats,
    ManagerDashboard,
    OverdueItems,
    OverviewStats,
    PartnerPerformance,
    ProjectHealthScore,
    ProjectProgress,
    ProjectTaskSummary,
    TaskDistribution,
)
from partnerhub.core.analytics.snapshots import (
    load_partners,
    load_projects,
    load_snapshot,
    load_tasks,
    resolve_organization,
)

logger = get_logger("analytics.service")


class AnalyticsService:
    """Live dashboard views over freshly loaded snapshots."""

    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    async def get_overview(
        self, db: AsyncSession, user_id: uuid.UUID | None = None
    ) -> OverviewStats:
        organization_id = await resolve_organization(db, user_id)
        projects = await load_projects(db, organization_id)
        tasks = await load_tasks(db, organization_id)
        partners = await load_partners(db, organization_id)
        return metrics.build_overview(projects, tasks, partners, self.clock.now())

    async def get_task_distribution(self, db: AsyncSession) -> TaskDistribution:
        return metrics.task_distribution(await load_tasks(db))

    async def get_project_summaries(
        self, db: AsyncSession, limit: int = settings.DASHBOARD_LIST_LIMIT
    ) -> list[ProjectTaskSummary]:
        projects = await load_projects(db)
        tasks = await load_tasks(db)
        return metrics.project_summaries(projects, tasks, self.clock.now(), limit)

    async def get_partner_performance(
        self, db: AsyncSession, limit: int = settings.DASHBOARD_LIST_LIMIT
    ) -> list[PartnerPerformance]:
        snapshot = await load_snapshot(db)
        return metrics.partner_performance(
            snapshot.partners, snapshot.projects, snapshot.tasks, self.clock.now(), limit
        )

    async def get_upcoming_deadlines(
        self, db: AsyncSession, days: int = settings.UPCOMING_DEADLINE_DAYS
    ) -> dict[str, list[DeadlineItem]]:
        snapshot = await load_snapshot(db)
        projects, tasks = metrics.upcoming_deadlines(
            snapshot.projects, snapshot.tasks, self.clock.now(), days=days, users=snapshot.users
        )
        return {"projects": projects, "tasks": tasks}

    async def get_overdue_items(self, db: AsyncSession) -> OverdueItems:
        projects = await load_projects(db)
        tasks = await load_tasks(db)
        return metrics.overdue_items(projects, tasks, self.clock.now())

    async def get_health_score_statistics(self, db: AsyncSession) -> HealthScoreStats:
        projects = await load_projects(db)
        tasks = await load_tasks(db)
        return health_score.health_score_statistics(projects, tasks, self.clock.now())

    async def get_all_projects_health_scores(self, db: AsyncSession) -> list[ProjectHealthScore]:
        projects = await load_projects(db)
        tasks = await load_tasks(db)
        return health_score.all_projects_health_scores(projects, tasks, self.clock.now())

    async def get_project_health_score(
        self, project_id: uuid.UUID, db: AsyncSession
    ) -> HealthScoreBreakdown:
        projects = await load_projects(db)
        project = next((p for p in projects if p.id == project_id), None)
        if project is None:
            raise NotFoundError("Project", str(project_id))
        tasks = [t for t in await load_tasks(db) if t.project_id == project_id]
        return health_score.calculate_health_score(project, tasks, self.clock.now())

    async def get_project_progress(self, db: AsyncSession) -> ProjectProgress:
        projects = await load_projects(db)
        tasks = await load_tasks(db)
        return dashboard.project_progress(projects, tasks, self.clock.now())

    async def get_manager_dashboard(
        self, db: AsyncSession, period: DashboardPeriod = DashboardPeriod.MONTH
    ) -> ManagerDashboard:
        snapshot = await load_snapshot(db)
        result = dashboard.manager_dashboard(
            period,
            snapshot.projects,
            snapshot.tasks,
            snapshot.partners,
            snapshot.users,
            self.clock.now(),
            limit=settings.DASHBOARD_LIST_LIMIT,
        )
        logger.debug(
            "Manager dashboard (%s): %d projects at risk",
            period.value,
            len(result.projects_at_risk),
        )
        return result
