"""CSV rendering of report bodies.

One section per metric group, each introduced by a ``=== Title ===`` line
and a header row, separated by blank lines. Output is UTF-8 with a BOM so
spreadsheet applications detect the encoding. Numbers are written bare and
text is quoted only when it contains the delimiter, a quote or a newline.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Callable, Iterable
from typing import Any

from partnerhub.common.enums import ReportFormat, ReportType
from partnerhub.core.reporting.schemas import ReportBody, ReportFile

CSV_MIME_TYPE = "text/csv; charset=utf-8"
CSV_ENCODING = "utf-8-sig"

Row = Iterable[Any]


def _cell(value: Any) -> Any:
    if value is None:
        return "-"
    if hasattr(value, "value"):
        return value.value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return value


class _SectionWriter:
    def __init__(self) -> None:
        self.buffer = io.StringIO()
        self.writer = csv.writer(self.buffer, quoting=csv.QUOTE_MINIMAL)
        self._started = False

    def section(self, title: str, header: Row, rows: Iterable[Row]) -> None:
        if self._started:
            self.writer.writerow([])
        self._started = True
        self.writer.writerow([f"=== {title} ==="])
        self.writer.writerow(list(header))
        for row in rows:
            self.writer.writerow([_cell(v) for v in row])

    def getvalue(self) -> str:
        return self.buffer.getvalue()


def render_csv(body: ReportBody) -> str:
    out = _SectionWriter()
    overview = body.overview

    out.section(
        "Report period",
        ["Start", "End", "Report type"],
        [[body.date_range.start, body.date_range.end, body.report_type]],
    )
    out.section(
        "Overview",
        ["Metric", "Value"],
        [
            ["Total projects", overview.total_projects],
            ["Active projects", overview.active_projects],
            ["Completed projects", overview.completed_projects],
            ["Total tasks", overview.total_tasks],
            ["Completed tasks", overview.completed_tasks],
            ["Pending tasks", overview.pending_tasks],
            ["Overdue tasks", overview.overdue_tasks],
            ["Total partners", overview.total_partners],
            ["Active partners", overview.active_partners],
        ],
    )
    out.section(
        "Project summaries",
        ["Project", "Status", "Progress", "End date", "Tasks", "Completed tasks", "Overdue tasks"],
        [
            [
                p.name,
                p.status,
                p.progress,
                p.end_date,
                p.tasks_count,
                p.completed_tasks_count,
                p.overdue_tasks_count,
            ]
            for p in body.project_summaries
        ],
    )
    out.section(
        "Partner performance",
        [
            "Partner",
            "Rating",
            "Total projects",
            "Completed projects",
            "Active projects",
            "Active tasks",
            "Completed tasks",
            "On-time delivery rate",
        ],
        [
            [
                p.partner_name,
                p.rating,
                p.total_projects,
                p.completed_projects,
                p.active_projects,
                p.active_tasks,
                p.completed_tasks,
                p.on_time_delivery_rate,
            ]
            for p in body.partner_performance
        ],
    )

    distribution = body.task_distribution
    for title, groups in (
        ("Tasks by status", distribution.by_status),
        ("Tasks by priority", distribution.by_priority),
        ("Tasks by type", distribution.by_type),
    ):
        out.section(title, ["Group", "Count"], sorted(groups.items()))

    out.section(
        "Overdue items",
        ["Type", "Name", "Due date", "Days remaining", "Project"],
        [
            [item.type, item.name, item.due_date, item.days_remaining, item.project_name]
            for item in body.overdue_items.projects + body.overdue_items.tasks
        ],
    )

    stats = body.health_score_stats
    dist = stats.score_distribution
    out.section(
        "Health scores",
        ["Metric", "Value"],
        [
            ["Projects scored", stats.total_projects],
            ["Average score", stats.average_score],
            ["Average on-time rate", stats.average_on_time_rate],
            ["Average completion rate", stats.average_completion_rate],
            ["Average budget health", stats.average_budget_health],
            ["Projects at risk", stats.projects_at_risk],
            ["Excellent", dist.excellent],
            ["Good", dist.good],
            ["Fair", dist.fair],
            ["Poor", dist.poor],
        ],
    )
    timeline = body.timeline
    out.section(
        "Timeline",
        ["On track", "At risk", "Delayed", "Excluded"],
        [[timeline.on_track, timeline.at_risk, timeline.delayed, timeline.excluded]],
    )
    out.section(
        "Projects at risk",
        ["Project", "Risk level", "Progress", "Days remaining", "Overdue tasks", "Reasons"],
        [
            [
                r.name,
                r.risk_level,
                r.progress,
                r.days_remaining,
                r.overdue_task_count,
                "; ".join(r.reasons),
            ]
            for r in body.projects_at_risk
        ],
    )
    return out.getvalue()


def report_file_name(report_type: ReportType, body: ReportBody, extension: str) -> str:
    stamp = body.generated_at.strftime("%Y%m%d")
    return f"dashboard_{report_type.value}_report_{stamp}.{extension}"


def serialize_csv(body: ReportBody) -> ReportFile:
    return ReportFile(
        file_content=render_csv(body).encode(CSV_ENCODING),
        file_name=report_file_name(body.report_type, body, "csv"),
        mime_type=CSV_MIME_TYPE,
    )


SERIALIZERS: dict[ReportFormat, Callable[[ReportBody], ReportFile]] = {
    ReportFormat.CSV: serialize_csv,
}


def serialize(body: ReportBody, fmt: ReportFormat) -> ReportFile:
    try:
        serializer = SERIALIZERS[fmt]
    except KeyError:
        raise ValueError(f"Unsupported report format: {fmt}") from None
    return serializer(body)
