import asyncio
import uuid

from partnerhub.common.logging import get_logger
from partnerhub.tasks.celery_app import app

logger = get_logger("tasks.report")


def _run_async(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


@app.task(name="partnerhub.tasks.report_tasks.trigger_scheduled_reports")
def trigger_scheduled_reports():
    """Celery Beat task: run every report config whose next run has passed."""

    async def _trigger():
        from partnerhub.core.reporting.scheduler import ReportScheduleManager
        from partnerhub.db.session import async_session_factory

        async with async_session_factory() as db:
            summary = await ReportScheduleManager().trigger_scheduled(db)
            await db.commit()
            return summary.model_dump(mode="json")

    return _run_async(_trigger())


@app.task(name="partnerhub.tasks.report_tasks.recalculate_report_schedules")
def recalculate_report_schedules():
    """Celery Beat task: recompute next_run_at for all active configs."""

    async def _recalculate():
        from partnerhub.core.reporting.scheduler import ReportScheduleManager
        from partnerhub.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                count = await ReportScheduleManager().recalculate_all_next_runs(db)
                await db.commit()
                return count
            except Exception as e:
                await db.rollback()
                logger.error("Schedule recalculation failed: %s", e)
                raise

    return _run_async(_recalculate())


@app.task(name="partnerhub.tasks.report_tasks.generate_report_now")
def generate_report_now(config_id: str):
    """Generate and deliver a config's report outside its schedule."""
    logger.info("Generating report now for config %s", config_id)

    async def _generate():
        from partnerhub.common.exceptions import GenerationFailedError
        from partnerhub.core.reporting.scheduler import ReportScheduleManager
        from partnerhub.db.session import async_session_factory

        async with async_session_factory() as db:
            try:
                report, _ = await ReportScheduleManager().generate_now(
                    db, config_id=uuid.UUID(config_id)
                )
                await db.commit()
                return str(report.id)
            except GenerationFailedError as e:
                await db.commit()
                logger.error("Report generation failed for config %s: %s", config_id, e.reason)
                raise
            except Exception as e:
                await db.rollback()
                logger.error("Report generation failed for config %s: %s", config_id, e)
                raise

    return _run_async(_generate())
