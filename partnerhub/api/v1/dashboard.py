import uuid
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.api.deps import get_analytics_service, get_db, get_schedule_manager
from partnerhub.common.enums import DashboardPeriod
from partnerhub.common.exceptions import GenerationFailedError
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
from partnerhub.core.analytics.service import AnalyticsService
from partnerhub.core.reporting.schemas import GenerateReportRequest
from partnerhub.core.reporting.scheduler import ReportScheduleManager

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


# ---------- Schemas ----------


class UpcomingDeadlinesResponse(BaseModel):
    projects: list[DeadlineItem]
    tasks: list[DeadlineItem]


# ---------- Endpoints ----------


@router.get("/overview", response_model=OverviewStats)
async def get_overview(
    user_id: uuid.UUID | None = Query(None, description="Scope counts to this user's organization"),
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_overview(db, user_id)


@router.get("/task-distribution", response_model=TaskDistribution)
async def get_task_distribution(
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_task_distribution(db)


@router.get("/project-summaries", response_model=list[ProjectTaskSummary])
async def get_project_summaries(
    limit: int = Query(10, ge=1, le=100),
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_project_summaries(db, limit)


@router.get("/partner-performance", response_model=list[PartnerPerformance])
async def get_partner_performance(
    limit: int = Query(10, ge=1, le=100),
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_partner_performance(db, limit)


@router.get("/upcoming-deadlines", response_model=UpcomingDeadlinesResponse)
async def get_upcoming_deadlines(
    days: int = Query(7, ge=1, le=90),
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_upcoming_deadlines(db, days)


@router.get("/overdue", response_model=OverdueItems)
async def get_overdue_items(
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_overdue_items(db)


@router.get("/health-scores", response_model=list[ProjectHealthScore])
async def get_all_health_scores(
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_all_projects_health_scores(db)


@router.get("/health-scores/statistics", response_model=HealthScoreStats)
async def get_health_score_statistics(
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_health_score_statistics(db)


@router.get("/health-scores/{project_id}", response_model=HealthScoreBreakdown)
async def get_project_health_score(
    project_id: uuid.UUID,
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_project_health_score(project_id, db)


@router.get("/project-progress", response_model=ProjectProgress)
async def get_project_progress(
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_project_progress(db)


@router.get("/manager", response_model=ManagerDashboard)
async def get_manager_dashboard(
    period: DashboardPeriod = Query(DashboardPeriod.MONTH),
    service: AnalyticsService = Depends(get_analytics_service),
    db: AsyncSession = Depends(get_db),
):
    return await service.get_manager_dashboard(db, period)


@router.post("/reports/generate")
async def generate_report(
    body: GenerateReportRequest,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        _, report_file = await manager.generate_now(
            db,
            report_type=body.report_type,
            fmt=body.format,
            start_date=body.start_date,
            end_date=body.end_date,
        )
    except GenerationFailedError:
        # keep the failed row for later inspection
        await db.commit()
        raise

    return Response(
        content=report_file.file_content,
        media_type=report_file.mime_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(report_file.file_name)}"
        },
    )
