from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select

from partnerhub.common.clock import ensure_utc
from partnerhub.common.enums import (
    DeliveryStatus,
    GeneratedReportStatus,
    ReportConfigStatus,
    ReportPeriod,
    ReportType,
)
from partnerhub.common.exceptions import BadRequestError, InvalidRangeError, NotFoundError
from partnerhub.common.pagination import PaginationParams
from partnerhub.core.reporting.generator import ReportGenerator
from partnerhub.core.reporting.report_body import build_report_body
from partnerhub.core.reporting.scheduler import ReportScheduleManager
from partnerhub.core.reporting.schemas import ReportConfigCreate, ReportConfigUpdate
from partnerhub.db.models.report import GeneratedReport
from partnerhub.integrations.sendgrid import EmailClient


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


def _params(**overrides) -> PaginationParams:
    values = {"page": 1, "page_size": 10, "sort_by": "created_at", "sort_order": "desc"}
    values.update(overrides)
    return PaginationParams(search=values.pop("search", None), **values)


@pytest.fixture
def manager(clock):
    return ReportScheduleManager(
        generator=ReportGenerator(clock),
        email_client=EmailClient(),
        clock=clock,
        tz_name="UTC",
    )


def weekly_config(**overrides) -> ReportConfigCreate:
    values = {
        "name": "Weekly digest",
        "period": ReportPeriod.WEEKLY,
        "day_of_week": 2,
        "send_time": "09:00",
        "recipients": ["pm@example.com", "lead@example.com"],
    }
    values.update(overrides)
    return ReportConfigCreate(**values)


# ---------- Config lifecycle ----------


@pytest.mark.asyncio
async def test_create_active_config_schedules_next_run(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)

    assert config.status == ReportConfigStatus.ACTIVE.value
    # clock is Tuesday 00:00 UTC, so today's 09:00 slot is still ahead
    assert ensure_utc(config.next_run_at) == utc(2024, 1, 16, 9, 0)
    assert config.recipients == ["pm@example.com", "lead@example.com"]


@pytest.mark.asyncio
async def test_create_paused_config_has_no_next_run(db_session, manager):
    config = await manager.create_config(
        weekly_config(status=ReportConfigStatus.PAUSED), db_session
    )

    assert config.status == ReportConfigStatus.PAUSED.value
    assert config.next_run_at is None


@pytest.mark.asyncio
async def test_pause_clears_next_run_and_activate_is_idempotent(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)

    paused = await manager.pause(config.id, db_session)
    assert paused.next_run_at is None

    first = await manager.activate(config.id, db_session)
    first_run = ensure_utc(first.next_run_at)
    second = await manager.activate(config.id, db_session)

    assert second.status == ReportConfigStatus.ACTIVE.value
    assert ensure_utc(second.next_run_at) == first_run == utc(2024, 1, 16, 9, 0)


@pytest.mark.asyncio
async def test_schedule_change_recomputes_next_run(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)

    updated = await manager.update_config(
        config.id,
        ReportConfigUpdate(period=ReportPeriod.MONTHLY, day_of_month=31),
        db_session,
    )

    assert updated.period == ReportPeriod.MONTHLY.value
    assert ensure_utc(updated.next_run_at) == utc(2024, 1, 31, 9, 0)


@pytest.mark.asyncio
async def test_update_rejects_incomplete_schedule(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)

    with pytest.raises(InvalidRangeError):
        await manager.update_config(
            config.id, ReportConfigUpdate(period=ReportPeriod.MONTHLY), db_session
        )


@pytest.mark.asyncio
async def test_update_status_to_paused(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)

    updated = await manager.update_config(
        config.id, ReportConfigUpdate(status=ReportConfigStatus.PAUSED), db_session
    )

    assert updated.status == ReportConfigStatus.PAUSED.value
    assert updated.next_run_at is None


@pytest.mark.asyncio
async def test_deleted_config_is_hidden(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)

    await manager.delete_config(config.id, db_session)

    with pytest.raises(NotFoundError):
        await manager.get_config(config.id, db_session)
    items, total = await manager.list_configs(db_session, _params())
    assert total == 0
    assert items == []


@pytest.mark.asyncio
async def test_list_configs_filters(db_session, manager):
    await manager.create_config(weekly_config(name="Team weekly"), db_session)
    await manager.create_config(
        weekly_config(name="Board monthly", period=ReportPeriod.MONTHLY, day_of_month=1),
        db_session,
    )

    monthly, total = await manager.list_configs(
        db_session, _params(), period=ReportPeriod.MONTHLY
    )
    assert total == 1
    assert monthly[0].name == "Board monthly"

    found, total = await manager.list_configs(db_session, _params(search="team"))
    assert total == 1
    assert found[0].name == "Team weekly"


@pytest.mark.asyncio
async def test_recalculate_all_next_runs(db_session, manager, clock):
    config = await manager.create_config(weekly_config(), db_session)
    await manager.create_config(weekly_config(status=ReportConfigStatus.PAUSED), db_session)
    clock.advance_to(utc(2024, 1, 17, 0, 0))

    count = await manager.recalculate_all_next_runs(db_session)

    assert count == 1
    assert ensure_utc(config.next_run_at) == utc(2024, 1, 23, 9, 0)


# ---------- Triggering ----------


@pytest.mark.asyncio
async def test_trigger_with_nothing_due(db_session, manager):
    await manager.create_config(weekly_config(), db_session)

    summary = await manager.trigger_scheduled(db_session)

    assert summary.processed == 0
    assert summary.report_ids == []


@pytest.mark.asyncio
async def test_trigger_runs_due_config_and_advances_schedule(
    db_session, manager, clock, seed, mock_send_email
):
    await seed.project(name="Riverside")
    config = await manager.create_config(weekly_config(), db_session)
    clock.advance_to(utc(2024, 1, 16, 9, 0))

    summary = await manager.trigger_scheduled(db_session)

    assert summary.processed == 1
    assert summary.completed == 1
    report = await manager.get_generated_report(summary.report_ids[0], db_session)
    assert report.status == GeneratedReportStatus.COMPLETED.value
    assert report.is_manual is False
    assert report.report_config_id == config.id
    assert report.delivery_status == DeliveryStatus.SENT.value
    assert sorted(report.sent_to) == ["lead@example.com", "pm@example.com"]
    assert mock_send_email.await_count == 2
    _, kwargs = mock_send_email.call_args
    assert kwargs["subject"].startswith("[PartnerHub] Weekly report")
    assert kwargs["attachments"][0]["filename"] == "dashboard_weekly_report_20240116.csv"

    refreshed = await manager.get_config(config.id, db_session)
    assert ensure_utc(refreshed.next_run_at) == utc(2024, 1, 23, 9, 0)
    assert ensure_utc(refreshed.last_generated_at) == utc(2024, 1, 16, 9, 0)

    # the same instant is not due twice
    again = await manager.trigger_scheduled(db_session)
    assert again.processed == 0


@pytest.mark.asyncio
async def test_one_failing_config_does_not_block_others(db_session, manager, clock):
    first = await manager.create_config(weekly_config(name="First", send_time="08:00"), db_session)
    second = await manager.create_config(weekly_config(name="Second"), db_session)
    clock.advance_to(utc(2024, 1, 16, 9, 30))
    empty_body = build_report_body(
        ReportType.WEEKLY, clock.now(), clock.now(), [], [], [], [], clock.now()
    )

    with patch.object(
        ReportGenerator, "gather", side_effect=[RuntimeError("boom"), empty_body]
    ):
        summary = await manager.trigger_scheduled(db_session)

    assert summary.processed == 2
    assert summary.completed == 1
    assert summary.failed == 1

    reports = (await db_session.execute(select(GeneratedReport))).scalars().all()
    by_config = {r.report_config_id: r for r in reports}
    assert by_config[first.id].status == GeneratedReportStatus.FAILED.value
    assert by_config[first.id].error_message == "boom"
    assert by_config[second.id].status == GeneratedReportStatus.COMPLETED.value

    # a failed run still moves to the next slot
    failed_config = await manager.get_config(first.id, db_session)
    assert ensure_utc(failed_config.next_run_at) == utc(2024, 1, 23, 8, 0)


@pytest.mark.asyncio
async def test_paused_configs_are_never_triggered(db_session, manager, clock):
    config = await manager.create_config(weekly_config(), db_session)
    await manager.pause(config.id, db_session)
    clock.advance_to(utc(2024, 1, 16, 9, 30))

    summary = await manager.trigger_scheduled(db_session)

    assert summary.processed == 0


# ---------- Ad-hoc and delivery ----------


@pytest.mark.asyncio
async def test_generate_now_leaves_schedule_untouched(db_session, manager):
    config = await manager.create_config(weekly_config(), db_session)
    scheduled = ensure_utc(config.next_run_at)

    report, report_file = await manager.generate_now(db_session, config_id=config.id)

    assert report.is_manual is True
    assert report.period == ReportType.WEEKLY.value
    assert report_file.file_name.endswith(".csv")
    refreshed = await manager.get_config(config.id, db_session)
    assert ensure_utc(refreshed.next_run_at) == scheduled
    assert refreshed.last_generated_at is None


@pytest.mark.asyncio
async def test_generate_now_without_config_is_not_delivered(db_session, manager, mock_send_email):
    report, _ = await manager.generate_now(db_session, report_type=ReportType.MONTHLY)

    assert report.delivery_status == DeliveryStatus.NOT_REQUESTED.value
    assert report.title.startswith("Monthly report")
    mock_send_email.assert_not_awaited()


@pytest.mark.asyncio
async def test_delivery_failure_keeps_report_completed(db_session, manager, mock_send_email):
    mock_send_email.side_effect = [
        {"status": "sent", "message_id": "ok"},
        {"status": "failed", "error": "mailbox unavailable"},
    ]
    config = await manager.create_config(weekly_config(), db_session)

    report, _ = await manager.generate_now(db_session, config_id=config.id)

    assert report.status == GeneratedReportStatus.COMPLETED.value
    assert report.delivery_status == DeliveryStatus.FAILED.value
    assert "lead@example.com" in report.delivery_error
    assert report.sent_to == ["pm@example.com"]


@pytest.mark.asyncio
async def test_resend_delivers_again(db_session, manager, mock_send_email):
    mock_send_email.return_value = {"status": "failed", "error": "rate limited"}
    config = await manager.create_config(weekly_config(), db_session)
    report, _ = await manager.generate_now(db_session, config_id=config.id)
    assert report.delivery_status == DeliveryStatus.FAILED.value

    mock_send_email.return_value = {"status": "sent", "message_id": "retry"}
    resent = await manager.resend_report(report.id, db_session)

    assert resent.delivery_status == DeliveryStatus.SENT.value
    assert resent.delivery_error is None
    assert sorted(resent.sent_to) == ["lead@example.com", "pm@example.com"]
    assert resent.sent_at is not None


@pytest.mark.asyncio
async def test_resend_requires_a_config(db_session, manager):
    report, _ = await manager.generate_now(db_session)

    with pytest.raises(BadRequestError):
        await manager.resend_report(report.id, db_session)


@pytest.mark.asyncio
async def test_list_generated_reports_filters(db_session, manager):
    await manager.generate_now(db_session, report_type=ReportType.WEEKLY)
    await manager.generate_now(db_session, report_type=ReportType.MONTHLY)

    items, total = await manager.list_generated_reports(
        db_session, _params(), period=ReportType.MONTHLY
    )

    assert total == 1
    assert items[0].period == ReportType.MONTHLY.value
