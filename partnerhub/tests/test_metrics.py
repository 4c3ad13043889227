from datetime import date, datetime, timezone

from partnerhub.common.enums import (
    PartnerStatus,
    ProjectStatus,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from partnerhub.core.analytics import metrics

NOW = datetime(2024, 1, 16, tzinfo=timezone.utc)


def test_overview_of_empty_workspace_is_all_zeros():
    overview = metrics.build_overview([], [], [], NOW)

    assert overview.model_dump() == {
        "total_projects": 0,
        "active_projects": 0,
        "completed_projects": 0,
        "total_tasks": 0,
        "completed_tasks": 0,
        "pending_tasks": 0,
        "overdue_tasks": 0,
        "total_partners": 0,
        "active_partners": 0,
    }


def test_overview_excludes_drafts_and_deleted_partners(snap):
    projects = [
        snap.project(status=ProjectStatus.DRAFT),
        snap.project(status=ProjectStatus.IN_PROGRESS),
        snap.project(status=ProjectStatus.IN_PROGRESS),
        snap.project(status=ProjectStatus.COMPLETED),
    ]
    partners = [
        snap.partner(status=PartnerStatus.ACTIVE),
        snap.partner(status=PartnerStatus.INACTIVE),
        snap.partner(status=PartnerStatus.ACTIVE, is_deleted=True),
    ]

    overview = metrics.build_overview(projects, [], partners, NOW)

    assert overview.total_projects == 3
    assert overview.active_projects == 2
    assert overview.completed_projects == 1
    assert overview.total_partners == 2
    assert overview.active_partners == 1


def test_pending_counts_todo_and_in_progress_only(snap):
    pid = snap.project().id
    tasks = [
        snap.task(pid, status=TaskStatus.TODO),
        snap.task(pid, status=TaskStatus.IN_PROGRESS),
        snap.task(pid, status=TaskStatus.REVIEW),
        snap.task(pid, status=TaskStatus.WAITING),
        snap.task(pid, status=TaskStatus.COMPLETED),
    ]

    overview = metrics.build_overview([], tasks, [], NOW)

    assert overview.total_tasks == 5
    assert overview.pending_tasks == 2
    assert overview.completed_tasks == 1


def test_overdue_rule(snap):
    pid = snap.project().id
    yesterday = date(2024, 1, 15)

    assert metrics.is_task_overdue(snap.task(pid, due_date=yesterday), NOW)
    assert not metrics.is_task_overdue(snap.task(pid, due_date=date(2024, 1, 16)), NOW)
    assert not metrics.is_task_overdue(snap.task(pid), NOW)
    assert not metrics.is_task_overdue(
        snap.task(pid, due_date=yesterday, status=TaskStatus.COMPLETED), NOW
    )
    assert not metrics.is_task_overdue(
        snap.task(pid, due_date=yesterday, status=TaskStatus.CANCELLED), NOW
    )


def test_distribution_omits_absent_groups(snap):
    pid = snap.project().id
    tasks = [
        snap.task(pid, status=TaskStatus.TODO, priority=TaskPriority.HIGH, type=TaskType.BUG),
        snap.task(pid, status=TaskStatus.TODO, priority=TaskPriority.HIGH),
        snap.task(pid, status=TaskStatus.COMPLETED, priority=TaskPriority.LOW),
    ]

    dist = metrics.task_distribution(tasks)

    assert dist.by_status == {"todo": 2, "completed": 1}
    assert dist.by_priority == {"high": 2, "low": 1}
    assert dist.by_type == {"bug": 1, "task": 2}


def test_distribution_of_no_tasks_is_empty():
    dist = metrics.task_distribution([])

    assert dist.by_status == {}
    assert dist.by_priority == {}
    assert dist.by_type == {}


def test_round_half_up():
    assert metrics.round_half_up(57.5) == 58
    assert metrics.round_half_up(56.5) == 57
    assert metrics.round_half_up(56.49) == 56


def test_project_summaries_order_and_counts(snap):
    later = snap.project(name="Later", end_date=date(2024, 3, 1))
    sooner = snap.project(name="Sooner", end_date=date(2024, 2, 1))
    undated = snap.project(name="Undated")
    closed = snap.project(name="Closed", status=ProjectStatus.COMPLETED)
    tasks = [
        snap.task(sooner.id, status=TaskStatus.COMPLETED),
        snap.task(sooner.id, due_date=date(2024, 1, 10)),
        snap.task(sooner.id),
    ]

    summaries = metrics.project_summaries([later, sooner, undated, closed], tasks, NOW)

    assert [s.name for s in summaries] == ["Sooner", "Later", "Undated"]
    assert summaries[0].tasks_count == 3
    assert summaries[0].completed_tasks_count == 1
    assert summaries[0].overdue_tasks_count == 1
    assert summaries[1].tasks_count == 0


def test_partner_performance_ranks_active_partners_by_rating(snap):
    top = snap.partner(name="Top", rating=4.8)
    mid = snap.partner(name="Mid", rating=3.5)
    idle = snap.partner(name="Idle", rating=5.0, status=PartnerStatus.INACTIVE)
    project = snap.project(partner_ids=(top.id,))
    tasks = [
        snap.task(
            project.id,
            partner_id=top.id,
            status=TaskStatus.COMPLETED,
            due_date=date(2024, 1, 10),
            completed_at=datetime(2024, 1, 9, tzinfo=timezone.utc),
        ),
        snap.task(
            project.id,
            partner_id=top.id,
            status=TaskStatus.COMPLETED,
            due_date=date(2024, 1, 10),
            completed_at=datetime(2024, 1, 11, tzinfo=timezone.utc),
        ),
        snap.task(project.id, partner_id=top.id, status=TaskStatus.IN_PROGRESS),
    ]

    results = metrics.partner_performance([mid, idle, top], [project], tasks, NOW)

    assert [r.partner_name for r in results] == ["Top", "Mid"]
    assert results[0].active_projects == 1
    assert results[0].active_tasks == 1
    assert results[0].completed_tasks == 2
    assert results[0].tasks_total == 3
    assert results[0].on_time_delivery_rate == 50
    assert results[1].on_time_delivery_rate == 100


def test_upcoming_deadlines_window(snap):
    soon = snap.project(name="Soon", end_date=date(2024, 1, 20))
    far = snap.project(name="Far", end_date=date(2024, 2, 20))
    done = snap.project(name="Done", end_date=date(2024, 1, 18), status=ProjectStatus.COMPLETED)
    tasks = [
        snap.task(soon.id, title="Today", due_date=date(2024, 1, 16)),
        snap.task(soon.id, title="Late", due_date=date(2024, 1, 15)),
        snap.task(soon.id, title="Finished", due_date=date(2024, 1, 17),
                  status=TaskStatus.COMPLETED),
        snap.task(soon.id, title="Edge", due_date=date(2024, 1, 23)),
    ]

    projects, due_tasks = metrics.upcoming_deadlines([soon, far, done], tasks, NOW, days=7)

    assert [p.name for p in projects] == ["Soon"]
    assert projects[0].days_remaining == 4
    assert [t.name for t in due_tasks] == ["Today", "Edge"]
    assert due_tasks[0].project_name == "Soon"
    assert due_tasks[0].days_remaining == 0


def test_overdue_items_lists_open_late_work(snap):
    late = snap.project(name="Late", end_date=date(2024, 1, 10))
    closed = snap.project(name="Closed", end_date=date(2024, 1, 5), status=ProjectStatus.CANCELLED)
    tasks = [
        snap.task(late.id, title="Old", due_date=date(2024, 1, 1)),
        snap.task(late.id, title="Recent", due_date=date(2024, 1, 12)),
    ]

    items = metrics.overdue_items([late, closed], tasks, NOW)

    assert [p.name for p in items.projects] == ["Late"]
    assert items.projects[0].days_remaining == -6
    assert [t.name for t in items.tasks] == ["Old", "Recent"]


def test_budget_overview_skips_cancelled_projects(snap):
    projects = [
        snap.project(name="A", budget=1000, actual_cost=250),
        snap.project(name="B", budget=1000, actual_cost=1000),
        snap.project(name="C", budget=500, actual_cost=500, status=ProjectStatus.CANCELLED),
        snap.project(name="D"),
    ]

    overview = metrics.budget_overview(projects)

    assert overview.total_budget == 2000
    assert overview.total_spent == 1250
    assert overview.utilization_rate == 63
    assert [b.project_name for b in overview.project_budgets] == ["A", "B"]
    assert overview.project_budgets[0].utilization_rate == 25
