import uuid
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.common.calendar import shift_months
from partnerhub.common.clock import Clock, system_clock
from partnerhub.common.enums import GeneratedReportStatus, ReportFormat, ReportType
from partnerhub.common.exceptions import (
    BadRequestError,
    GenerationFailedError,
    InvalidRangeError,
)
from partnerhub.common.logging import get_logger
from partnerhub.config import settings
from partnerhub.core.analytics.snapshots import load_snapshot
from partnerhub.core.reporting.csv_export import serialize
from partnerhub.core.reporting.report_body import build_report_body
from partnerhub.core.reporting.schemas import ReportBody, ReportFile
from partnerhub.db.models.report import GeneratedReport, ReportConfig

logger = get_logger("reporting.generator")

_TITLE_LABELS = {
    ReportType.WEEKLY: "Weekly report",
    ReportType.MONTHLY: "Monthly report",
    ReportType.CUSTOM: "Custom report",
}


def resolve_date_range(
    report_type: ReportType,
    now: datetime,
    start_date: date | None = None,
    end_date: date | None = None,
) -> tuple[datetime, datetime]:
    """Concrete ``[start, end]`` instants for a report.

    Weekly covers exactly the trailing seven days and monthly the trailing
    calendar month, both ending at ``now``. Custom ranges run from the start
    of ``start_date`` to the end of ``end_date``.
    """
    if report_type == ReportType.WEEKLY:
        return now - timedelta(days=7), now
    if report_type == ReportType.MONTHLY:
        return shift_months(now, -1), now
    if report_type == ReportType.CUSTOM:
        if start_date is None or end_date is None:
            raise InvalidRangeError("Custom reports require both start_date and end_date")
        if end_date < start_date:
            raise InvalidRangeError(
                f"end_date {end_date.isoformat()} is before start_date {start_date.isoformat()}"
            )
        return (
            datetime.combine(start_date, time.min, tzinfo=timezone.utc),
            datetime.combine(end_date, time.max, tzinfo=timezone.utc),
        )
    raise InvalidRangeError(f"Unsupported report type '{report_type}'")


def report_title(report_type: ReportType, start: datetime, end: datetime) -> str:
    return f"{_TITLE_LABELS[report_type]} ({start:%Y-%m-%d} - {end:%Y-%m-%d})"


class ReportGenerator:
    """Builds report bodies, serializes them and records a GeneratedReport per run."""

    def __init__(self, clock: Clock = system_clock):
        self.clock = clock

    async def gather(
        self, report_type: ReportType, start: datetime, end: datetime, db: AsyncSession
    ) -> ReportBody:
        snapshot = await load_snapshot(db)
        return build_report_body(
            report_type,
            start,
            end,
            snapshot.projects,
            snapshot.tasks,
            snapshot.partners,
            snapshot.users,
            self.clock.now(),
            limit=settings.REPORT_LIST_LIMIT,
        )

    async def generate(
        self,
        db: AsyncSession,
        report_type: ReportType = ReportType.WEEKLY,
        fmt: ReportFormat = ReportFormat.CSV,
        start_date: date | None = None,
        end_date: date | None = None,
        report_config: ReportConfig | None = None,
        is_manual: bool = True,
    ) -> tuple[GeneratedReport, ReportFile]:
        """Generate one report and record it.

        Range errors are raised before anything is written. Any failure after
        the pending row exists marks it failed, keeps the config linkage and
        raises ``GenerationFailedError``; the caller decides whether to commit.
        """
        report_type, fmt = ReportType(report_type), ReportFormat(fmt)
        start, end = resolve_date_range(report_type, self.clock.now(), start_date, end_date)

        report = GeneratedReport(
            id=uuid.uuid4(),
            report_config_id=report_config.id if report_config else None,
            title=report_title(report_type, start, end),
            period=report_type.value,
            format=fmt.value,
            date_range_start=start,
            date_range_end=end,
            status=GeneratedReportStatus.PENDING.value,
            is_manual=is_manual,
            sent_to=[],
        )
        db.add(report)
        await db.flush()

        try:
            body = await self.gather(report_type, start, end, db)
            report_file = serialize(body, fmt)
        except Exception as e:
            report.status = GeneratedReportStatus.FAILED.value
            report.error_message = str(e) or e.__class__.__name__
            await db.flush()
            logger.error(
                "Report generation failed (report=%s config=%s): %s",
                report.id,
                report.report_config_id,
                e,
            )
            raise GenerationFailedError(str(report.id), report.error_message) from e

        report.report_data = body.model_dump(mode="json")
        report.file_name = report_file.file_name
        report.status = GeneratedReportStatus.COMPLETED.value
        await db.flush()

        logger.info("Generated report %s: %s", report.id, report.title)
        return report, report_file

    def render(self, report: GeneratedReport) -> ReportFile:
        """Re-serialize a completed report from its stored body."""
        if report.status != GeneratedReportStatus.COMPLETED or not report.report_data:
            raise BadRequestError(f"Report {report.id} has no completed content to render")
        body = ReportBody.model_validate(report.report_data)
        return serialize(body, ReportFormat(report.format))
