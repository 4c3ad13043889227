"""Read-side reductions over project, task and partner snapshots.

Every function here is pure: it takes already-loaded snapshots (and ``now``
where the answer depends on time) and returns counts or rollups.  Empty
inputs yield zero counts, never an error.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta
from typing import Any, TypeVar

from partnerhub.common.enums import (
    CLOSED_PROJECT_STATUSES,
    CLOSED_TASK_STATUSES,
    PartnerStatus,
    ProjectStatus,
    TaskStatus,
)
from partnerhub.core.analytics.schemas import (
    BudgetOverview,
    DeadlineItem,
    OverdueItems,
    OverviewStats,
    PartnerPerformance,
    PartnerSnapshot,
    ProjectBudget,
    ProjectSnapshot,
    ProjectTaskSummary,
    TaskDistribution,
    TaskSnapshot,
    UserSnapshot,
)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Generic aggregation
# ---------------------------------------------------------------------------


def _key(value: Any) -> str:
    return value.value if hasattr(value, "value") else str(value)


def count_by(items: Iterable[T], key: Callable[[T], Any]) -> dict[str, int]:
    """Group-by + count. Groups with no members are absent, not zero-filled."""
    counts = Counter(_key(key(item)) for item in items if key(item) is not None)
    return dict(counts)


def is_task_overdue(task: TaskSnapshot, now: datetime) -> bool:
    return (
        task.due_date is not None
        and task.due_date < now.date()
        and task.status not in CLOSED_TASK_STATUSES
    )


def is_task_open(task: TaskSnapshot) -> bool:
    return task.status not in CLOSED_TASK_STATUSES


def completed_on_time(task: TaskSnapshot, now: datetime) -> bool:
    """A completed task with a due date finished by the end of that day.

    Tasks marked completed without a timestamp are judged as if completed now.
    """
    completed = task.completed_at or now
    return completed.date() <= task.due_date


def on_time_counts(tasks: Iterable[TaskSnapshot], now: datetime) -> tuple[int, int]:
    """Return (on_time, completed_with_due_date) over the given tasks."""
    on_time = 0
    measured = 0
    for task in tasks:
        if task.status != TaskStatus.COMPLETED or task.due_date is None:
            continue
        measured += 1
        if completed_on_time(task, now):
            on_time += 1
    return on_time, measured


def tasks_by_project(tasks: Iterable[TaskSnapshot]) -> dict[uuid.UUID, list[TaskSnapshot]]:
    grouped: dict[uuid.UUID, list[TaskSnapshot]] = {}
    for task in tasks:
        grouped.setdefault(task.project_id, []).append(task)
    return grouped


def _percent(part: int | float, whole: int | float) -> int:
    return round_half_up(part / whole * 100) if whole else 0


def round_half_up(value: float) -> int:
    # ``round`` uses banker's rounding; scores and rates round .5 upwards
    return int(value + 0.5) if value >= 0 else -int(-value + 0.5)


# ---------------------------------------------------------------------------
# Overview and distributions
# ---------------------------------------------------------------------------


def build_overview(
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    partners: list[PartnerSnapshot],
    now: datetime,
) -> OverviewStats:
    task_status = count_by(tasks, lambda t: t.status)
    live_partners = [p for p in partners if not p.is_deleted]

    return OverviewStats(
        total_projects=sum(1 for p in projects if p.status != ProjectStatus.DRAFT),
        active_projects=sum(1 for p in projects if p.status == ProjectStatus.IN_PROGRESS),
        completed_projects=sum(1 for p in projects if p.status == ProjectStatus.COMPLETED),
        total_tasks=len(tasks),
        completed_tasks=task_status.get(TaskStatus.COMPLETED.value, 0),
        pending_tasks=(
            task_status.get(TaskStatus.TODO.value, 0)
            + task_status.get(TaskStatus.IN_PROGRESS.value, 0)
        ),
        overdue_tasks=sum(1 for t in tasks if is_task_overdue(t, now)),
        total_partners=len(live_partners),
        active_partners=sum(1 for p in live_partners if p.status == PartnerStatus.ACTIVE),
    )


def task_distribution(tasks: list[TaskSnapshot]) -> TaskDistribution:
    return TaskDistribution(
        by_status=count_by(tasks, lambda t: t.status),
        by_priority=count_by(tasks, lambda t: t.priority),
        by_type=count_by(tasks, lambda t: t.type),
    )


def project_status_counts(projects: list[ProjectSnapshot]) -> dict[str, int]:
    return count_by(projects, lambda p: p.status)


def average_progress(projects: list[ProjectSnapshot]) -> float:
    if not projects:
        return 0.0
    return round(sum(p.progress for p in projects) / len(projects), 2)


# ---------------------------------------------------------------------------
# Per-entity rollups
# ---------------------------------------------------------------------------


def _end_date_order(project: ProjectSnapshot) -> tuple[bool, date]:
    return (project.end_date is None, project.end_date or date.max)


def project_summaries(
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    now: datetime,
    limit: int = 10,
) -> list[ProjectTaskSummary]:
    """Open projects ordered by end date, with their task counts."""
    open_projects = sorted(
        (p for p in projects if p.status not in CLOSED_PROJECT_STATUSES),
        key=_end_date_order,
    )[:limit]
    grouped = tasks_by_project(tasks)

    summaries = []
    for project in open_projects:
        project_tasks = grouped.get(project.id, [])
        summaries.append(
            ProjectTaskSummary(
                id=project.id,
                name=project.name,
                status=project.status,
                progress=project.progress,
                end_date=project.end_date,
                tasks_count=len(project_tasks),
                completed_tasks_count=sum(
                    1 for t in project_tasks if t.status == TaskStatus.COMPLETED
                ),
                overdue_tasks_count=sum(1 for t in project_tasks if is_task_overdue(t, now)),
            )
        )
    return summaries


def overdue_counts_by_project(
    tasks: list[TaskSnapshot], now: datetime
) -> dict[uuid.UUID, int]:
    counts: dict[uuid.UUID, int] = {}
    for task in tasks:
        if is_task_overdue(task, now):
            counts[task.project_id] = counts.get(task.project_id, 0) + 1
    return counts


def partner_performance(
    partners: list[PartnerSnapshot],
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    now: datetime,
    limit: int = 10,
) -> list[PartnerPerformance]:
    """Active partners by rating with their task and project rollups."""
    active = sorted(
        (p for p in partners if p.status == PartnerStatus.ACTIVE and not p.is_deleted),
        key=lambda p: p.rating,
        reverse=True,
    )[:limit]

    tasks_by_partner: dict[uuid.UUID, list[TaskSnapshot]] = {}
    for task in tasks:
        if task.partner_id is not None:
            tasks_by_partner.setdefault(task.partner_id, []).append(task)

    results = []
    for partner in active:
        partner_tasks = tasks_by_partner.get(partner.id, [])
        active_tasks = sum(1 for t in partner_tasks if is_task_open(t))
        completed_tasks = sum(1 for t in partner_tasks if t.status == TaskStatus.COMPLETED)
        on_time, measured = on_time_counts(partner_tasks, now)
        results.append(
            PartnerPerformance(
                partner_id=partner.id,
                partner_name=partner.name,
                email=partner.email,
                rating=partner.rating,
                total_projects=partner.total_projects,
                completed_projects=partner.completed_projects,
                active_projects=sum(
                    1
                    for p in projects
                    if p.status == ProjectStatus.IN_PROGRESS and partner.id in p.partner_ids
                ),
                active_tasks=active_tasks,
                completed_tasks=completed_tasks,
                tasks_total=active_tasks + completed_tasks,
                on_time_delivery_rate=_percent(on_time, measured) if measured else 100,
            )
        )
    return results


def budget_overview(projects: list[ProjectSnapshot]) -> BudgetOverview:
    total_budget = 0.0
    total_spent = 0.0
    project_budgets = []

    for project in projects:
        if project.status == ProjectStatus.CANCELLED:
            continue
        budget = project.budget or 0.0
        spent = project.actual_cost or 0.0
        total_budget += budget
        total_spent += spent
        if budget > 0:
            project_budgets.append(
                ProjectBudget(
                    project_id=project.id,
                    project_name=project.name,
                    budget=budget,
                    spent=spent,
                    utilization_rate=_percent(spent, budget),
                )
            )

    return BudgetOverview(
        total_budget=total_budget,
        total_spent=total_spent,
        utilization_rate=_percent(total_spent, total_budget),
        project_budgets=project_budgets,
    )


# ---------------------------------------------------------------------------
# Deadlines
# ---------------------------------------------------------------------------


def _project_deadline(project: ProjectSnapshot, today: date) -> DeadlineItem:
    return DeadlineItem(
        type="project",
        id=project.id,
        name=project.name,
        due_date=project.end_date,
        days_remaining=(project.end_date - today).days,
    )


def _task_deadline(
    task: TaskSnapshot,
    today: date,
    project_names: dict[uuid.UUID, str],
    user_names: dict[uuid.UUID, str],
) -> DeadlineItem:
    return DeadlineItem(
        type="task",
        id=task.id,
        name=task.title,
        due_date=task.due_date,
        days_remaining=(task.due_date - today).days,
        project_id=task.project_id,
        project_name=project_names.get(task.project_id),
        assignee_id=task.assignee_id,
        assignee_name=user_names.get(task.assignee_id) if task.assignee_id else None,
        priority=task.priority,
    )


def upcoming_deadlines(
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    now: datetime,
    days: int = 7,
    limit: int = 10,
    users: list[UserSnapshot] | None = None,
) -> tuple[list[DeadlineItem], list[DeadlineItem]]:
    """Open projects and tasks due between today and ``days`` from now."""
    today = now.date()
    horizon = today + timedelta(days=days)
    project_names = {p.id: p.name for p in projects}
    user_names = {u.id: u.full_name for u in users or []}

    due_projects = sorted(
        (
            p
            for p in projects
            if p.end_date is not None
            and today <= p.end_date <= horizon
            and p.status not in CLOSED_PROJECT_STATUSES
        ),
        key=_end_date_order,
    )[:limit]
    due_tasks = sorted(
        (
            t
            for t in tasks
            if t.due_date is not None and today <= t.due_date <= horizon and is_task_open(t)
        ),
        key=lambda t: t.due_date,
    )[:limit]

    return (
        [_project_deadline(p, today) for p in due_projects],
        [_task_deadline(t, today, project_names, user_names) for t in due_tasks],
    )


def overdue_items(
    projects: list[ProjectSnapshot],
    tasks: list[TaskSnapshot],
    now: datetime,
) -> OverdueItems:
    today = now.date()
    project_names = {p.id: p.name for p in projects}

    late_projects = sorted(
        (
            p
            for p in projects
            if p.end_date is not None
            and p.end_date < today
            and p.status not in CLOSED_PROJECT_STATUSES
        ),
        key=_end_date_order,
    )
    late_tasks = sorted((t for t in tasks if is_task_overdue(t, now)), key=lambda t: t.due_date)

    return OverdueItems(
        projects=[_project_deadline(p, today) for p in late_projects],
        tasks=[_task_deadline(t, today, project_names, {}) for t in late_tasks],
    )
