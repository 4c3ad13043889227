from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.common.clock import Clock, system_clock
from partnerhub.core.analytics.service import AnalyticsService
from partnerhub.core.reporting.generator import ReportGenerator
from partnerhub.core.reporting.scheduler import ReportScheduleManager
from partnerhub.db.session import async_session_factory
from partnerhub.integrations.sendgrid import EmailClient


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_clock() -> Clock:
    return system_clock


def get_analytics_service(clock: Clock = Depends(get_clock)) -> AnalyticsService:
    return AnalyticsService(clock)


def get_schedule_manager(clock: Clock = Depends(get_clock)) -> ReportScheduleManager:
    return ReportScheduleManager(
        generator=ReportGenerator(clock),
        email_client=EmailClient(),
        clock=clock,
    )
