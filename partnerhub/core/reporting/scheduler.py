import uuid
from datetime import date, datetime

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.common.calendar import compute_next_run, validate_schedule
from partnerhub.common.clock import Clock, system_clock
from partnerhub.common.enums import (
    DeliveryStatus,
    GeneratedReportStatus,
    ReportConfigStatus,
    ReportFormat,
    ReportPeriod,
    ReportType,
)
from partnerhub.common.exceptions import (
    BadRequestError,
    DeliveryFailedError,
    GenerationFailedError,
    NotFoundError,
)
from partnerhub.common.logging import get_logger
from partnerhub.common.pagination import PaginationParams, paginate
from partnerhub.config import settings
from partnerhub.core.reporting.delivery import deliver_report
from partnerhub.core.reporting.generator import ReportGenerator
from partnerhub.core.reporting.schemas import (
    ReportBody,
    ReportConfigCreate,
    ReportConfigUpdate,
    ReportFile,
    ScheduledRunSummary,
)
from partnerhub.db.models.report import GeneratedReport, ReportConfig
from partnerhub.integrations.sendgrid import EmailClient

logger = get_logger("reporting.scheduler")

_SCHEDULE_FIELDS = {"period", "day_of_week", "day_of_month", "send_time"}


class ReportScheduleManager:
    """Owns recurring report configs: paused <-> active, next run times and triggering.

    Active configs always carry a ``next_run_at``; paused and deleted ones
    never do. Slots are evaluated in ``tz_name`` and stored in UTC.
    """

    def __init__(
        self,
        generator: ReportGenerator | None = None,
        email_client: EmailClient | None = None,
        clock: Clock = system_clock,
        tz_name: str | None = None,
    ):
        self.clock = clock
        self.generator = generator or ReportGenerator(clock)
        self.email_client = email_client or EmailClient()
        self.tz_name = tz_name or settings.REPORT_TIMEZONE

    def compute_next_run(self, config: ReportConfig) -> datetime:
        return compute_next_run(
            ReportPeriod(config.period),
            config.day_of_week,
            config.day_of_month,
            config.send_time,
            self.clock.now(),
            self.tz_name,
        )

    # ---------- Config CRUD ----------

    async def create_config(
        self,
        data: ReportConfigCreate,
        db: AsyncSession,
        created_by_id: uuid.UUID | None = None,
    ) -> ReportConfig:
        validate_schedule(data.period, data.day_of_week, data.day_of_month)
        config = ReportConfig(
            name=data.name,
            description=data.description,
            period=data.period.value,
            day_of_week=data.day_of_week,
            day_of_month=data.day_of_month,
            send_time=data.send_time,
            recipients=[str(r) for r in data.recipients],
            status=ReportConfigStatus.PAUSED.value,
            created_by_id=created_by_id,
        )
        if data.status == ReportConfigStatus.ACTIVE:
            self._set_active(config)
        db.add(config)
        await db.flush()
        await db.refresh(config)

        logger.info("Report config created: %s (%s)", config.name, config.id)
        return config

    async def list_configs(
        self,
        db: AsyncSession,
        params: PaginationParams,
        period: ReportPeriod | None = None,
        status: ReportConfigStatus | None = None,
    ) -> tuple[list[ReportConfig], int]:
        query = select(ReportConfig).where(ReportConfig.is_deleted.is_(False))
        if period:
            query = query.where(ReportConfig.period == period.value)
        if status:
            query = query.where(ReportConfig.status == status.value)
        if params.search:
            pattern = f"%{params.search}%"
            query = query.where(
                or_(ReportConfig.name.ilike(pattern), ReportConfig.description.ilike(pattern))
            )
        return await paginate(db, query, params, ReportConfig)

    async def get_config(self, config_id: uuid.UUID, db: AsyncSession) -> ReportConfig:
        result = await db.execute(
            select(ReportConfig).where(
                ReportConfig.id == config_id, ReportConfig.is_deleted.is_(False)
            )
        )
        config = result.scalar_one_or_none()
        if not config:
            raise NotFoundError("Report config", str(config_id))
        return config

    async def update_config(
        self, config_id: uuid.UUID, data: ReportConfigUpdate, db: AsyncSession
    ) -> ReportConfig:
        config = await self.get_config(config_id, db)
        changes = data.model_dump(exclude_unset=True)
        new_status = changes.pop("status", None)

        for field, value in changes.items():
            if field == "recipients":
                value = [str(r) for r in value]
            elif field == "period":
                value = ReportPeriod(value).value
            setattr(config, field, value)

        validate_schedule(ReportPeriod(config.period), config.day_of_week, config.day_of_month)

        if new_status == ReportConfigStatus.PAUSED:
            self._set_paused(config)
        elif new_status == ReportConfigStatus.ACTIVE or (
            config.status == ReportConfigStatus.ACTIVE and changes.keys() & _SCHEDULE_FIELDS
        ):
            self._set_active(config)

        await db.flush()
        await db.refresh(config)
        logger.info("Report config updated: %s (%s)", config.name, config.id)
        return config

    async def delete_config(self, config_id: uuid.UUID, db: AsyncSession) -> None:
        config = await self.get_config(config_id, db)
        self._set_paused(config)
        config.is_deleted = True
        config.deleted_at = self.clock.now()
        await db.flush()
        logger.info("Report config deleted: %s (%s)", config.name, config_id)

    # ---------- State machine ----------

    def _set_active(self, config: ReportConfig) -> None:
        config.next_run_at = self.compute_next_run(config)
        config.status = ReportConfigStatus.ACTIVE.value

    def _set_paused(self, config: ReportConfig) -> None:
        config.status = ReportConfigStatus.PAUSED.value
        config.next_run_at = None

    async def activate(self, config_id: uuid.UUID, db: AsyncSession) -> ReportConfig:
        config = await self.get_config(config_id, db)
        self._set_active(config)
        await db.flush()
        await db.refresh(config)
        logger.info("Report config activated: %s next run %s", config.id, config.next_run_at)
        return config

    async def pause(self, config_id: uuid.UUID, db: AsyncSession) -> ReportConfig:
        config = await self.get_config(config_id, db)
        self._set_paused(config)
        await db.flush()
        await db.refresh(config)
        logger.info("Report config paused: %s", config.id)
        return config

    async def recalculate_all_next_runs(self, db: AsyncSession) -> int:
        result = await db.execute(
            select(ReportConfig).where(
                ReportConfig.status == ReportConfigStatus.ACTIVE.value,
                ReportConfig.is_deleted.is_(False),
            )
        )
        configs = result.scalars().all()
        for config in configs:
            config.next_run_at = self.compute_next_run(config)
        await db.flush()
        logger.info("Recalculated next run for %d active report config(s)", len(configs))
        return len(configs)

    # ---------- Running ----------

    async def _deliver(
        self,
        report: GeneratedReport,
        report_file: ReportFile,
        recipients: list[str],
        db: AsyncSession,
    ) -> None:
        """Send a completed report; failures are recorded, never raised."""
        if not recipients:
            return
        body = ReportBody.model_validate(report.report_data)
        try:
            delivered = await deliver_report(
                self.email_client, report.title, body, report_file, recipients
            )
        except DeliveryFailedError as e:
            report.delivery_status = DeliveryStatus.FAILED.value
            report.delivery_error = e.detail
            report.sent_to = [r for r in recipients if r not in e.failed_recipients]
            logger.error("Delivery failed for report %s: %s", report.id, e.detail)
        else:
            report.delivery_status = DeliveryStatus.SENT.value
            report.delivery_error = None
            report.sent_to = delivered
            report.sent_at = self.clock.now()
        await db.flush()

    async def run_config(self, config: ReportConfig, db: AsyncSession) -> GeneratedReport:
        """Generate and deliver one scheduled run, then advance the schedule.

        The next run is recomputed even when generation fails so a broken
        config cannot fire every minute.
        """
        try:
            report, report_file = await self.generator.generate(
                db,
                ReportType(config.period),
                ReportFormat.CSV,
                report_config=config,
                is_manual=False,
            )
            await self._deliver(report, report_file, list(config.recipients), db)
        finally:
            config.next_run_at = self.compute_next_run(config)
            config.last_generated_at = self.clock.now()
            await db.flush()
        return report

    async def trigger_scheduled(self, db: AsyncSession) -> ScheduledRunSummary:
        """Run every active config whose ``next_run_at`` has passed.

        Each config is its own unit of work and is committed on its own; one
        config failing never stops the others.
        """
        now = self.clock.now()
        result = await db.execute(
            select(ReportConfig.id)
            .where(
                ReportConfig.status == ReportConfigStatus.ACTIVE.value,
                ReportConfig.is_deleted.is_(False),
                ReportConfig.next_run_at.is_not(None),
                ReportConfig.next_run_at <= now,
            )
            .order_by(ReportConfig.next_run_at)
        )
        due_ids = list(result.scalars().all())

        if not due_ids:
            logger.debug("No scheduled reports due at %s", now.isoformat())
            return ScheduledRunSummary(processed=0, completed=0, failed=0, report_ids=[])

        logger.info("Found %d scheduled report(s) due", len(due_ids))
        completed = failed = 0
        report_ids: list[uuid.UUID] = []

        for config_id in due_ids:
            try:
                config = await self.get_config(config_id, db)
                report = await self.run_config(config, db)
                await db.commit()
                completed += 1
                report_ids.append(report.id)
            except GenerationFailedError as e:
                await db.commit()
                failed += 1
                report_ids.append(uuid.UUID(e.report_id))
                logger.error("Scheduled report for config %s failed: %s", config_id, e.reason)
            except Exception as e:
                await db.rollback()
                failed += 1
                logger.error("Scheduled run for config %s aborted: %s", config_id, e)

        logger.info(
            "Scheduled report run finished: %d completed, %d failed", completed, failed
        )
        return ScheduledRunSummary(
            processed=len(due_ids), completed=completed, failed=failed, report_ids=report_ids
        )

    async def generate_now(
        self,
        db: AsyncSession,
        config_id: uuid.UUID | None = None,
        report_type: ReportType = ReportType.WEEKLY,
        fmt: ReportFormat = ReportFormat.CSV,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> tuple[GeneratedReport, ReportFile]:
        """Ad-hoc generation. Never touches ``next_run_at``.

        With a config the report covers the config's period and is delivered
        to its recipients; without one it is only returned to the caller.
        """
        config = None
        if config_id is not None:
            config = await self.get_config(config_id, db)
            report_type = ReportType(config.period)

        report, report_file = await self.generator.generate(
            db,
            report_type,
            fmt,
            start_date=start_date,
            end_date=end_date,
            report_config=config,
            is_manual=True,
        )
        if config is not None:
            await self._deliver(report, report_file, list(config.recipients), db)
        await db.refresh(report)
        return report, report_file

    async def resend_report(self, report_id: uuid.UUID, db: AsyncSession) -> GeneratedReport:
        """Operator retry: re-deliver a completed report to its config's recipients."""
        report = await self.get_generated_report(report_id, db)
        if report.status != GeneratedReportStatus.COMPLETED:
            raise BadRequestError("Only completed reports can be resent")
        if report.report_config_id is None:
            raise BadRequestError("Report has no schedule with recipients")
        config = await self.get_config(report.report_config_id, db)

        await self._deliver(report, self.generator.render(report), list(config.recipients), db)
        await db.refresh(report)
        logger.info("Report %s resent: %s", report.id, report.delivery_status)
        return report

    # ---------- Generated reports ----------

    async def list_generated_reports(
        self,
        db: AsyncSession,
        params: PaginationParams,
        config_id: uuid.UUID | None = None,
        period: ReportType | None = None,
        status: GeneratedReportStatus | None = None,
    ) -> tuple[list[GeneratedReport], int]:
        query = select(GeneratedReport).where(GeneratedReport.is_deleted.is_(False))
        if config_id:
            query = query.where(GeneratedReport.report_config_id == config_id)
        if period:
            query = query.where(GeneratedReport.period == period.value)
        if status:
            query = query.where(GeneratedReport.status == status.value)
        if params.search:
            query = query.where(GeneratedReport.title.ilike(f"%{params.search}%"))
        return await paginate(db, query, params, GeneratedReport)

    async def get_generated_report(
        self, report_id: uuid.UUID, db: AsyncSession
    ) -> GeneratedReport:
        result = await db.execute(
            select(GeneratedReport).where(
                GeneratedReport.id == report_id, GeneratedReport.is_deleted.is_(False)
            )
        )
        report = result.scalar_one_or_none()
        if not report:
            raise NotFoundError("Generated report", str(report_id))
        return report

