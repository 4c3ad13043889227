"""Timeline risk and qualitative risk level for open projects."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

from partnerhub.common.clock import start_of_day
from partnerhub.common.enums import (
    CLOSED_PROJECT_STATUSES,
    ProjectStatus,
    RiskLevel,
    TimelineStatus,
)
from partnerhub.core.analytics.metrics import overdue_counts_by_project
from partnerhub.core.analytics.schemas import (
    ProjectSnapshot,
    RiskAssessment,
    TaskSnapshot,
    TimelineCounts,
)

ON_TRACK_TOLERANCE = 10
AT_RISK_TOLERANCE = 25

REASON_SEVERE_SHORTFALL = "Progress is severely behind schedule"
REASON_BEHIND_SCHEDULE = "Progress is behind schedule"
REASON_DEADLINE_WITHIN_WEEK = "Deadline is less than a week away"
REASON_NEEDS_REVIEW = "Progress needs review"

_SEVERITY = {RiskLevel.MEDIUM: 0, RiskLevel.HIGH: 1, RiskLevel.CRITICAL: 2}

# Candidates for the manager risk list
AT_RISK_PROGRESS_CEILING = 50
AT_RISK_HORIZON_DAYS = 30


def expected_progress(project: ProjectSnapshot, now: datetime) -> float | None:
    """Percentage of the planned timeline elapsed at ``now``, clamped to [0, 100].

    Returns None when the project lacks a start or end date.
    """
    if project.start_date is None or project.end_date is None:
        return None

    start = start_of_day(project.start_date)
    duration = (start_of_day(project.end_date) - start).total_seconds()
    elapsed = (now - start).total_seconds()
    if duration <= 0:
        return 100.0 if elapsed >= 0 else 0.0
    return max(0.0, min(100.0, elapsed / duration * 100))


def classify_progress(progress: float, expected: float) -> TimelineStatus:
    if progress >= expected - ON_TRACK_TOLERANCE:
        return TimelineStatus.ON_TRACK
    if progress >= expected - AT_RISK_TOLERANCE:
        return TimelineStatus.AT_RISK
    return TimelineStatus.DELAYED


def classify_timeline(project: ProjectSnapshot, now: datetime) -> TimelineStatus | None:
    """None for closed projects and for projects without a full date range."""
    if project.status in CLOSED_PROJECT_STATUSES:
        return None
    expected = expected_progress(project, now)
    if expected is None:
        return None
    return classify_progress(project.progress, expected)


def timeline_breakdown(projects: list[ProjectSnapshot], now: datetime) -> TimelineCounts:
    counts = TimelineCounts()
    for project in projects:
        if project.status in CLOSED_PROJECT_STATUSES:
            continue
        status = classify_timeline(project, now)
        if status is None:
            counts.excluded += 1
        elif status == TimelineStatus.ON_TRACK:
            counts.on_track += 1
        elif status == TimelineStatus.AT_RISK:
            counts.at_risk += 1
        else:
            counts.delayed += 1
    return counts


def days_remaining(project: ProjectSnapshot, now: datetime) -> int | None:
    if project.end_date is None:
        return None
    return math.floor((start_of_day(project.end_date) - now) / timedelta(days=1))


def _raise_to(current: RiskLevel, candidate: RiskLevel) -> RiskLevel:
    return candidate if _SEVERITY[candidate] > _SEVERITY[current] else current


def assess_risk(
    project: ProjectSnapshot, overdue_task_count: int, now: datetime
) -> RiskAssessment:
    """Qualitative risk level with ordered, never-empty reasons.

    Rules only ever raise the level within one evaluation.
    """
    remaining = days_remaining(project, now)
    level = RiskLevel.MEDIUM
    reasons: list[str] = []

    if remaining is not None:
        if project.progress < 30 and remaining < 14:
            level = _raise_to(level, RiskLevel.CRITICAL)
            reasons.append(REASON_SEVERE_SHORTFALL)
        elif project.progress < 50 and remaining < 30:
            level = _raise_to(level, RiskLevel.HIGH)
            reasons.append(REASON_BEHIND_SCHEDULE)

    if overdue_task_count > 5:
        level = _raise_to(level, RiskLevel.CRITICAL)
        reasons.append(f"{overdue_task_count} tasks are overdue")
    elif overdue_task_count > 0:
        reasons.append(f"{overdue_task_count} task(s) overdue")

    if remaining is not None and remaining < 7:
        reasons.append(REASON_DEADLINE_WITHIN_WEEK)

    if not reasons:
        reasons.append(REASON_NEEDS_REVIEW)

    return RiskAssessment(
        project_id=project.id,
        name=project.name,
        status=project.status,
        progress=project.progress,
        risk_level=level,
        days_remaining=remaining,
        overdue_task_count=overdue_task_count,
        reasons=reasons,
    )


def is_risk_candidate(project: ProjectSnapshot, now: datetime) -> bool:
    return (
        project.status == ProjectStatus.IN_PROGRESS
        and project.progress < AT_RISK_PROGRESS_CEILING
        and project.end_date is not None
        and start_of_day(project.end_date) < now + timedelta(days=AT_RISK_HORIZON_DAYS)
    )


def projects_at_risk(
    projects: list[ProjectSnapshot], tasks: list[TaskSnapshot], now: datetime
) -> list[RiskAssessment]:
    """Risk assessments for the manager list, most severe first."""
    overdue = overdue_counts_by_project(tasks, now)
    assessments = [
        assess_risk(p, overdue.get(p.id, 0), now) for p in projects if is_risk_candidate(p, now)
    ]
    assessments.sort(
        key=lambda a: (
            -_SEVERITY[a.risk_level],
            a.days_remaining if a.days_remaining is not None else math.inf,
        )
    )
    return assessments
