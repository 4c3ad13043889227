import uuid
from datetime import date, datetime

from pydantic import BaseModel, EmailStr, Field, model_validator

from partnerhub.common.enums import (
    DeliveryStatus,
    GeneratedReportStatus,
    ReportConfigStatus,
    ReportFormat,
    ReportPeriod,
    ReportType,
)
from partnerhub.core.analytics.schemas import (
    DeadlineItem,
    HealthScoreStats,
    ManagerProjectSummary,
    ManagerTaskSummary,
    OverdueItems,
    OverviewStats,
    PartnerPerformance,
    ProjectTaskSummary,
    RiskAssessment,
    TaskDistribution,
    TimelineCounts,
)

SEND_TIME_PATTERN = r"^([01]\d|2[0-3]):([0-5]\d)$"


# ---------- Report body ----------


class DateRange(BaseModel):
    start: date
    end: date


class Highlights(BaseModel):
    key_achievements: list[str]
    issues: list[str]
    upcoming_deadlines: list[DeadlineItem]


class ReportBody(BaseModel):
    report_type: ReportType
    generated_at: datetime
    date_range: DateRange
    overview: OverviewStats
    project_summary: ManagerProjectSummary
    task_summary: ManagerTaskSummary
    project_summaries: list[ProjectTaskSummary]
    partner_performance: list[PartnerPerformance]
    task_distribution: TaskDistribution
    overdue_items: OverdueItems
    health_score_stats: HealthScoreStats
    timeline: TimelineCounts
    projects_at_risk: list[RiskAssessment]
    highlights: Highlights


class ReportFile(BaseModel):
    file_content: bytes
    file_name: str
    mime_type: str


# ---------- Report configs ----------


class ReportConfigCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    period: ReportPeriod = ReportPeriod.WEEKLY
    day_of_week: int | None = Field(None, ge=0, le=6)
    day_of_month: int | None = Field(None, ge=1, le=31)
    send_time: str = Field("09:00", pattern=SEND_TIME_PATTERN)
    recipients: list[EmailStr] = Field(..., min_length=1)
    status: ReportConfigStatus = ReportConfigStatus.ACTIVE

    @model_validator(mode="after")
    def _day_matches_period(self):
        if self.period == ReportPeriod.WEEKLY and self.day_of_week is None:
            raise ValueError("day_of_week is required for weekly reports")
        if self.period == ReportPeriod.MONTHLY and self.day_of_month is None:
            raise ValueError("day_of_month is required for monthly reports")
        return self


class ReportConfigUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None
    period: ReportPeriod | None = None
    day_of_week: int | None = Field(None, ge=0, le=6)
    day_of_month: int | None = Field(None, ge=1, le=31)
    send_time: str | None = Field(None, pattern=SEND_TIME_PATTERN)
    recipients: list[EmailStr] | None = Field(None, min_length=1)
    status: ReportConfigStatus | None = None


class ReportConfigResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    period: ReportPeriod
    day_of_week: int | None
    day_of_month: int | None
    send_time: str
    recipients: list[str]
    status: ReportConfigStatus
    next_run_at: datetime | None
    last_generated_at: datetime | None
    created_by_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ---------- Generated reports ----------


class GeneratedReportResponse(BaseModel):
    id: uuid.UUID
    report_config_id: uuid.UUID | None
    title: str
    period: ReportType
    format: ReportFormat
    date_range_start: datetime
    date_range_end: datetime
    status: GeneratedReportStatus
    file_name: str | None
    error_message: str | None
    is_manual: bool
    sent_to: list[str]
    sent_at: datetime | None
    delivery_status: DeliveryStatus
    delivery_error: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class GeneratedReportDetail(GeneratedReportResponse):
    report_data: dict | None


class GenerateReportRequest(BaseModel):
    report_type: ReportType = ReportType.WEEKLY
    format: ReportFormat = ReportFormat.CSV
    start_date: date | None = None
    end_date: date | None = None


class ScheduledRunSummary(BaseModel):
    processed: int
    completed: int
    failed: int
    report_ids: list[uuid.UUID]
