"""Project health score.

    on_time_rate    = completed-on-time / completed-with-due-date * 100
    completion_rate = completed / total * 100
    budget_health   = 100 - overspend percentage, clamped to [0, 100]
    total_score     = round((50 * on_time + 30 * completion + 20 * budget) / 100)

Scores are always derived from the current snapshots and never stored.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from partnerhub.common.enums import CLOSED_PROJECT_STATUSES, ProjectStatus, TaskStatus
from partnerhub.common.logging import get_logger
from partnerhub.core.analytics.metrics import on_time_counts, round_half_up, tasks_by_project
from partnerhub.core.analytics.schemas import (
    HealthScoreBreakdown,
    HealthScoreDetails,
    HealthScoreStats,
    ProjectHealthScore,
    ProjectSnapshot,
    ScoreDistribution,
    TaskSnapshot,
)

logger = get_logger("analytics.health_score")

ON_TIME_WEIGHT = 50
COMPLETION_WEIGHT = 30
BUDGET_WEIGHT = 20

EXCELLENT_THRESHOLD = 85
GOOD_THRESHOLD = 70
FAIR_THRESHOLD = 50
AT_RISK_THRESHOLD = 50


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


def on_time_rate(on_time: int, measured: int) -> float:
    # No completed task with a due date means no evidence of lateness
    if measured == 0:
        return 100.0
    return on_time / measured * 100


def completion_rate(completed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return completed / total * 100


def budget_health(budget: float | None, actual_cost: float | None) -> float:
    if not budget:
        return 100.0
    overspend = max(0.0, ((actual_cost or 0.0) - budget) / budget * 100)
    return _clamp(100 - overspend)


def weighted_score(on_time: float, completion: float, budget: float) -> int:
    score = (
        ON_TIME_WEIGHT * on_time + COMPLETION_WEIGHT * completion + BUDGET_WEIGHT * budget
    ) / 100
    return int(_clamp(round_half_up(score)))


def score_bucket(score: float) -> str:
    if score >= EXCELLENT_THRESHOLD:
        return "excellent"
    if score >= GOOD_THRESHOLD:
        return "good"
    if score >= FAIR_THRESHOLD:
        return "fair"
    return "poor"


def calculate_health_score(
    project: ProjectSnapshot, tasks: Iterable[TaskSnapshot], now: datetime
) -> HealthScoreBreakdown:
    project_tasks = [t for t in tasks if t.project_id == project.id]
    total = len(project_tasks)
    completed = sum(1 for t in project_tasks if t.status == TaskStatus.COMPLETED)
    on_time, measured = on_time_counts(project_tasks, now)

    on_time_pct = on_time_rate(on_time, measured)
    completion_pct = completion_rate(completed, total)
    budget_pct = budget_health(project.budget, project.actual_cost)
    total_score = weighted_score(on_time_pct, completion_pct, budget_pct)

    logger.debug(
        "Health score for project %s: on_time=%.1f completion=%.1f budget=%.1f total=%d",
        project.id,
        on_time_pct,
        completion_pct,
        budget_pct,
        total_score,
    )

    return HealthScoreBreakdown(
        project_id=project.id,
        on_time_rate=round(on_time_pct, 2),
        completion_rate=round(completion_pct, 2),
        budget_health=round(budget_pct, 2),
        total_score=total_score,
        details=HealthScoreDetails(
            total_tasks=total,
            completed_tasks=completed,
            on_time_completed_tasks=on_time,
            budget=project.budget or 0.0,
            actual_cost=project.actual_cost or 0.0,
        ),
    )


def all_projects_health_scores(
    projects: list[ProjectSnapshot], tasks: list[TaskSnapshot], now: datetime
) -> list[ProjectHealthScore]:
    """Breakdowns for open projects, lowest score first."""
    grouped = tasks_by_project(tasks)
    results = []
    for project in projects:
        if project.status in CLOSED_PROJECT_STATUSES:
            continue
        breakdown = calculate_health_score(project, grouped.get(project.id, []), now)
        results.append(
            ProjectHealthScore(
                project_id=project.id,
                project_name=project.name,
                health_score=breakdown.total_score,
                breakdown=breakdown,
            )
        )
    results.sort(key=lambda r: r.health_score)
    return results


def health_score_statistics(
    projects: list[ProjectSnapshot], tasks: list[TaskSnapshot], now: datetime
) -> HealthScoreStats:
    """Population statistics over every non-cancelled project."""
    population = [p for p in projects if p.status != ProjectStatus.CANCELLED]
    if not population:
        return HealthScoreStats()

    grouped = tasks_by_project(tasks)
    breakdowns = [calculate_health_score(p, grouped.get(p.id, []), now) for p in population]
    count = len(breakdowns)

    distribution = ScoreDistribution()
    for b in breakdowns:
        bucket = score_bucket(b.total_score)
        setattr(distribution, bucket, getattr(distribution, bucket) + 1)

    return HealthScoreStats(
        average_score=round(sum(b.total_score for b in breakdowns) / count, 2),
        score_distribution=distribution,
        projects_at_risk=sum(1 for b in breakdowns if b.total_score < AT_RISK_THRESHOLD),
        total_projects=count,
        average_on_time_rate=round(sum(b.on_time_rate for b in breakdowns) / count, 2),
        average_completion_rate=round(sum(b.completion_rate for b in breakdowns) / count, 2),
        average_budget_health=round(sum(b.budget_health for b in breakdowns) / count, 2),
    )
