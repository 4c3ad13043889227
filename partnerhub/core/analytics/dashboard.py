"""Dashboard-level views assembled from the leaf calculators.

Depends downward on metrics, health_score and risk; nothing below imports
from here.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from partnerhub.common.calendar import shift_months
from partnerhub.common.enums import DashboardPeriod, ProjectStatus, TaskStatus
from partnerhub.core.analytics import health_score, metrics, risk
from partnerhub.core.analytics.schemas import (
    ManagerDashboard,
    ManagerProjectSummary,
    ManagerTaskSummary,
    PartnerSnapshot,
    ProjectProgress,
    ProjectSnapshot,
    TaskSnapshot,
    UserSnapshot,
)


def project_progress(
    projects: list[ProjectSnapshot], tasks: list[TaskSnapshot], now: datetime
) -> ProjectProgress:
    timeline = risk.timeline_breakdown(projects, now)
    return ProjectProgress(
        by_status=metrics.project_status_counts(projects),
        average_progress=metrics.average_progress(projects),
        on_track=timeline.on_track,
        at_risk=timeline.at_risk,
        delayed=timeline.delayed,
        health_score_stats=health_score.health_score_statistics(projects, tasks, now),
    )


def period_start(period: DashboardPeriod, now: datetime) -> datetime:
    if period == DashboardPeriod.WEEK:
        return now - timedelta(days=7)
    if period == DashboardPeriod.QUARTER:
        return shift_months(now, -3)
    return shift_months(now, -1)


def manager_dashboard(
    period: DashboardPeriod,
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    partners: list[PartnerSnapshot],
    users: list[UserSnapshot],
    now: datetime,
    limit: int = 10,
) -> ManagerDashboard:
    progress = project_progress(projects, tasks, now)
    by_status = metrics.count_by(tasks, lambda t: t.status)
    total_tasks = len(tasks)
    completed_tasks = by_status.get(TaskStatus.COMPLETED.value, 0)
    _, upcoming_tasks = metrics.upcoming_deadlines(
        projects, tasks, now, days=7, limit=limit, users=users
    )

    return ManagerDashboard(
        period=period.value,
        period_start=period_start(period, now).date(),
        period_end=now.date(),
        project_summary=ManagerProjectSummary(
            total=sum(progress.by_status.values()),
            active=progress.by_status.get(ProjectStatus.IN_PROGRESS.value, 0),
            completed=progress.by_status.get(ProjectStatus.COMPLETED.value, 0),
            delayed=progress.delayed,
            on_track=progress.on_track,
            at_risk=progress.at_risk,
        ),
        task_summary=ManagerTaskSummary(
            total=total_tasks,
            completed=completed_tasks,
            in_progress=by_status.get(TaskStatus.IN_PROGRESS.value, 0),
            pending=by_status.get(TaskStatus.TODO.value, 0),
            overdue=sum(1 for t in tasks if metrics.is_task_overdue(t, now)),
            completion_rate=(
                metrics.round_half_up(completed_tasks / total_tasks * 100) if total_tasks else 0
            ),
        ),
        partner_performance=metrics.partner_performance(partners, projects, tasks, now, limit),
        projects_at_risk=risk.projects_at_risk(projects, tasks, now),
        budget_overview=metrics.budget_overview(projects),
        upcoming_deadlines=upcoming_tasks,
    )
