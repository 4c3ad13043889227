import csv
import io
from datetime import date, datetime, timedelta, timezone

import pytest

from partnerhub.common.enums import ProjectStatus, ReportFormat, ReportType, TaskStatus
from partnerhub.core.reporting import csv_export
from partnerhub.core.reporting.report_body import build_highlights, build_report_body

NOW = datetime(2024, 1, 16, tzinfo=timezone.utc)
WEEK_AGO = NOW - timedelta(days=7)

SECTION_ORDER = [
    "=== Report period ===",
    "=== Overview ===",
    "=== Project summaries ===",
    "=== Partner performance ===",
    "=== Tasks by status ===",
    "=== Tasks by priority ===",
    "=== Tasks by type ===",
    "=== Overdue items ===",
    "=== Health scores ===",
    "=== Timeline ===",
    "=== Projects at risk ===",
]


@pytest.fixture
def body(snap):
    partner = snap.partner(name='Say "hi" Ltd', rating=4.5)
    project = snap.project(
        name="Smith, Jones & Co",
        start_date=date(2024, 1, 1),
        end_date=date(2024, 1, 25),
        progress=20,
        partner_ids=(partner.id,),
    )
    undated = snap.project(name="Backlog")
    tasks = [
        snap.task(project.id, title="Late", due_date=date(2024, 1, 10)),
        snap.task(
            project.id,
            status=TaskStatus.COMPLETED,
            partner_id=partner.id,
            completed_at=NOW - timedelta(days=1),
        ),
    ]
    return build_report_body(
        ReportType.WEEKLY, WEEK_AGO, NOW, [project, undated], tasks, [partner], [], NOW
    )


def _rows(text: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(text)))


def test_csv_starts_with_utf8_bom(body):
    report_file = csv_export.serialize(body, ReportFormat.CSV)

    assert report_file.file_content.startswith(b"\xef\xbb\xbf")
    assert report_file.mime_type == "text/csv; charset=utf-8"
    assert report_file.file_name == "dashboard_weekly_report_20240116.csv"


def test_sections_appear_in_order(body):
    text = csv_export.render_csv(body)
    positions = [text.index(title) for title in SECTION_ORDER]

    assert positions == sorted(positions)


def test_sections_are_separated_by_blank_rows(body):
    rows = _rows(csv_export.render_csv(body))
    titles = [i for i, row in enumerate(rows) if row and row[0].startswith("=== ")]

    assert len(titles) == len(SECTION_ORDER)
    for index in titles[1:]:
        assert rows[index - 1] == []


def test_text_with_delimiters_is_quoted(body):
    text = csv_export.render_csv(body)

    assert '"Smith, Jones & Co"' in text
    assert '"Say ""hi"" Ltd"' in text


def test_values_round_trip_through_a_csv_reader(body):
    rows = _rows(csv_export.render_csv(body))

    summary = next(r for r in rows if r and r[0] == "Smith, Jones & Co")
    assert summary[1:5] == ["in_progress", "20", "2024-01-25", "2"]
    backlog = next(r for r in rows if r and r[0] == "Backlog")
    assert backlog[3] == "-"
    assert ["Overdue tasks", "1"] in rows


def test_risk_reasons_are_joined(body):
    rows = _rows(csv_export.render_csv(body))

    at_risk = [r for r in rows if r and r[0] == "Smith, Jones & Co" and len(r) == 6]
    assert len(at_risk) == 1
    assert at_risk[0][1] == "critical"
    assert "; " in at_risk[0][5]


def test_unsupported_format_is_rejected(body):
    with pytest.raises(ValueError):
        csv_export.serialize(body, "pdf")


def test_highlights_are_scoped_to_the_range(snap):
    shipped = snap.project(
        name="Shipped", status=ProjectStatus.COMPLETED, updated_at=NOW - timedelta(days=2)
    )
    old = snap.project(
        name="Old", status=ProjectStatus.COMPLETED, updated_at=NOW - timedelta(days=30)
    )
    active = snap.project(name="Active", end_date=date(2024, 1, 19))
    tasks = [
        snap.task(active.id, status=TaskStatus.COMPLETED, completed_at=NOW - timedelta(days=3)),
        snap.task(active.id, status=TaskStatus.COMPLETED, completed_at=NOW - timedelta(days=20)),
        snap.task(active.id, due_date=date(2024, 1, 2)),
        snap.task(active.id, title="Upcoming", due_date=date(2024, 1, 18)),
    ]

    highlights = build_highlights([shipped, old, active], tasks, [], WEEK_AGO, NOW, NOW)

    assert highlights.key_achievements == [
        'Project "Shipped" was completed',
        "1 task(s) completed during the period",
    ]
    assert highlights.issues == ["1 task(s) are overdue"]
    assert [d.name for d in highlights.upcoming_deadlines] == ["Active", "Upcoming"]
