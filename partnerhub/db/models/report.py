import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from partnerhub.common.enums import (
    DeliveryStatus,
    GeneratedReportStatus,
    ReportConfigStatus,
    ReportFormat,
    ReportPeriod,
    ReportType,
)
from partnerhub.db.base import BaseModel


class ReportConfig(BaseModel):
    __tablename__ = "report_configs"

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    period: Mapped[ReportPeriod] = mapped_column(
        String(20), nullable=False, default=ReportPeriod.WEEKLY
    )
    # 0=Sunday ... 6=Saturday
    day_of_week: Mapped[int | None] = mapped_column(Integer, nullable=True)
    day_of_month: Mapped[int | None] = mapped_column(Integer, nullable=True)
    send_time: Mapped[str] = mapped_column(String(5), nullable=False, default="09:00")
    recipients: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    status: Mapped[ReportConfigStatus] = mapped_column(
        String(20), nullable=False, default=ReportConfigStatus.PAUSED
    )
    next_run_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    last_generated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id"), nullable=True
    )

    # Relationships
    generated_reports = relationship("GeneratedReport", back_populates="report_config")


class GeneratedReport(BaseModel):
    __tablename__ = "generated_reports"

    report_config_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("report_configs.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    period: Mapped[ReportType] = mapped_column(String(20), nullable=False)
    format: Mapped[ReportFormat] = mapped_column(
        String(10), nullable=False, default=ReportFormat.CSV
    )
    date_range_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    date_range_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[GeneratedReportStatus] = mapped_column(
        String(20), nullable=False, default=GeneratedReportStatus.PENDING
    )
    report_data: Mapped[dict | None] = mapped_column(JSONB, nullable=True)
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_manual: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    sent_to: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    sent_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        String(20), nullable=False, default=DeliveryStatus.NOT_REQUESTED
    )
    delivery_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Relationships
    report_config = relationship("ReportConfig", back_populates="generated_reports")
