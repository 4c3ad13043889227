import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from partnerhub.api.deps import get_db, get_schedule_manager
from partnerhub.common.enums import (
    GeneratedReportStatus,
    ReportConfigStatus,
    ReportPeriod,
    ReportType,
)
from partnerhub.common.exceptions import GenerationFailedError
from partnerhub.common.pagination import PaginatedResponse, PaginationParams
from partnerhub.core.reporting.schemas import (
    GeneratedReportDetail,
    GeneratedReportResponse,
    ReportConfigCreate,
    ReportConfigResponse,
    ReportConfigUpdate,
    ScheduledRunSummary,
)
from partnerhub.core.reporting.scheduler import ReportScheduleManager

router = APIRouter(prefix="/reports", tags=["Reports"])


# ---------- Configs ----------


@router.get("/configs", response_model=PaginatedResponse[ReportConfigResponse])
async def list_report_configs(
    period: ReportPeriod | None = Query(None),
    config_status: ReportConfigStatus | None = Query(None, alias="status"),
    params: PaginationParams = Depends(),
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    items, total = await manager.list_configs(db, params, period=period, status=config_status)
    return PaginatedResponse[ReportConfigResponse].build(
        [ReportConfigResponse.model_validate(c) for c in items], total, params
    )


@router.post(
    "/configs", response_model=ReportConfigResponse, status_code=status.HTTP_201_CREATED
)
async def create_report_config(
    body: ReportConfigCreate,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.create_config(body, db)


@router.get("/configs/{config_id}", response_model=ReportConfigResponse)
async def get_report_config(
    config_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.get_config(config_id, db)


@router.patch("/configs/{config_id}", response_model=ReportConfigResponse)
async def update_report_config(
    config_id: uuid.UUID,
    body: ReportConfigUpdate,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.update_config(config_id, body, db)


@router.delete("/configs/{config_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_report_config(
    config_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    await manager.delete_config(config_id, db)


@router.post("/configs/{config_id}/activate", response_model=ReportConfigResponse)
async def activate_report_config(
    config_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.activate(config_id, db)


@router.post("/configs/{config_id}/pause", response_model=ReportConfigResponse)
async def pause_report_config(
    config_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.pause(config_id, db)


@router.post("/configs/{config_id}/generate", response_model=GeneratedReportResponse)
async def generate_report_for_config(
    config_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    try:
        report, _ = await manager.generate_now(db, config_id=config_id)
    except GenerationFailedError:
        await db.commit()
        raise
    return report


# ---------- Scheduling ----------


@router.post("/trigger-scheduled", response_model=ScheduledRunSummary)
async def trigger_scheduled_reports(
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.trigger_scheduled(db)


# ---------- Generated reports ----------


@router.get("", response_model=PaginatedResponse[GeneratedReportResponse])
async def list_generated_reports(
    config_id: uuid.UUID | None = Query(None),
    period: ReportType | None = Query(None),
    report_status: GeneratedReportStatus | None = Query(None, alias="status"),
    params: PaginationParams = Depends(),
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    items, total = await manager.list_generated_reports(
        db, params, config_id=config_id, period=period, status=report_status
    )
    return PaginatedResponse[GeneratedReportResponse].build(
        [GeneratedReportResponse.model_validate(r) for r in items], total, params
    )


@router.get("/{report_id}", response_model=GeneratedReportDetail)
async def get_generated_report(
    report_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.get_generated_report(report_id, db)


@router.post("/{report_id}/resend", response_model=GeneratedReportResponse)
async def resend_generated_report(
    report_id: uuid.UUID,
    manager: ReportScheduleManager = Depends(get_schedule_manager),
    db: AsyncSession = Depends(get_db),
):
    return await manager.resend_report(report_id, db)
