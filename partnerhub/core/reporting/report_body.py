"""Assemble a report body from the analytics components.

Pure: takes loaded snapshots plus the resolved range and returns a
``ReportBody``. Current-state sections (overview, risk, health) describe the
portfolio at generation time; highlights are scoped to the range.
"""

from __future__ import annotations

from datetime import datetime

from partnerhub.common.enums import DashboardPeriod, ProjectStatus, ReportType, TaskStatus
from partnerhub.core.analytics import dashboard, health_score, metrics, risk
from partnerhub.core.analytics.schemas import (
    PartnerSnapshot,
    ProjectSnapshot,
    RiskAssessment,
    TaskSnapshot,
    UserSnapshot,
)
from partnerhub.core.reporting.schemas import DateRange, Highlights, ReportBody

REPORT_LIST_LIMIT = 20
HIGHLIGHT_LIMIT = 5


def _within(value: datetime | None, start: datetime, end: datetime) -> bool:
    return value is not None and start <= value <= end


def build_highlights(
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    at_risk: list[RiskAssessment],
    start: datetime,
    end: datetime,
    now: datetime,
) -> Highlights:
    achievements = [
        f'Project "{p.name}" was completed'
        for p in projects
        if p.status == ProjectStatus.COMPLETED and _within(p.updated_at, start, end)
    ][:HIGHLIGHT_LIMIT]

    completed_in_range = sum(
        1 for t in tasks if t.status == TaskStatus.COMPLETED and _within(t.completed_at, start, end)
    )
    if completed_in_range:
        achievements.append(f"{completed_in_range} task(s) completed during the period")

    issues = []
    overdue = sum(1 for t in tasks if metrics.is_task_overdue(t, now))
    if overdue:
        issues.append(f"{overdue} task(s) are overdue")
    if at_risk:
        issues.append(f"{len(at_risk)} project(s) are at risk")

    due_projects, due_tasks = metrics.upcoming_deadlines(
        projects, tasks, now, days=7, limit=HIGHLIGHT_LIMIT
    )
    return Highlights(
        key_achievements=achievements,
        issues=issues,
        upcoming_deadlines=due_projects + due_tasks,
    )


def build_report_body(
    report_type: ReportType,
    start: datetime,
    end: datetime,
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    partners: list[PartnerSnapshot],
    users: list[UserSnapshot],
    now: datetime,
    limit: int = REPORT_LIST_LIMIT,
) -> ReportBody:
    manager = dashboard.manager_dashboard(
        DashboardPeriod.WEEK, projects, tasks, partners, users, now, limit=limit
    )
    return ReportBody(
        report_type=report_type,
        generated_at=now,
        date_range=DateRange(start=start.date(), end=end.date()),
        overview=metrics.build_overview(projects, tasks, partners, now),
        project_summary=manager.project_summary,
        task_summary=manager.task_summary,
        project_summaries=metrics.project_summaries(projects, tasks, now, limit),
        partner_performance=manager.partner_performance,
        task_distribution=metrics.task_distribution(tasks),
        overdue_items=metrics.overdue_items(projects, tasks, now),
        health_score_stats=health_score.health_score_statistics(projects, tasks, now),
        timeline=risk.timeline_breakdown(projects, now),
        projects_at_risk=manager.projects_at_risk,
        highlights=build_highlights(projects, tasks, manager.projects_at_risk, start, end, now),
    )
