"""Email delivery of generated reports.

The engine only decides that a report goes out and to whom; the transport
is the SendGrid ``EmailClient``.
"""

from __future__ import annotations

from html import escape

from partnerhub.common.exceptions import DeliveryFailedError
from partnerhub.common.logging import get_logger
from partnerhub.config import settings
from partnerhub.core.reporting.schemas import ReportBody, ReportFile
from partnerhub.integrations.sendgrid import EmailClient, build_attachment

logger = get_logger("reporting.delivery")


def _stat(label: str, value: object) -> str:
    return f"<td><strong>{escape(str(value))}</strong><br><small>{escape(label)}</small></td>"


def build_email_html(title: str, body: ReportBody) -> str:
    projects = body.project_summary
    tasks = body.task_summary
    rows = [
        f"<h2>{escape(title)}</h2>",
        f"<p>{body.date_range.start.isoformat()} - {body.date_range.end.isoformat()}</p>",
        "<h3>Projects</h3><table><tr>"
        + _stat("Total", projects.total)
        + _stat("In progress", projects.active)
        + _stat("Completed", projects.completed)
        + _stat("Delayed", projects.delayed)
        + "</tr></table>",
        "<h3>Tasks</h3><table><tr>"
        + _stat("Total", tasks.total)
        + _stat("Completed", tasks.completed)
        + _stat("In progress", tasks.in_progress)
        + _stat("Overdue", tasks.overdue)
        + _stat("Completion rate", f"{tasks.completion_rate}%")
        + "</tr></table>",
    ]

    if body.partner_performance:
        rows.append(
            "<h3>Partner performance</h3><table>"
            "<tr><th>Partner</th><th>Active projects</th><th>Completed tasks</th>"
            "<th>On-time rate</th><th>Rating</th></tr>"
        )
        for p in body.partner_performance:
            rows.append(
                f"<tr><td>{escape(p.partner_name)}</td><td>{p.active_projects}</td>"
                f"<td>{p.completed_tasks}/{p.tasks_total}</td>"
                f"<td>{p.on_time_delivery_rate}%</td><td>{p.rating:.1f}</td></tr>"
            )
        rows.append("</table>")

    highlights = body.highlights
    if highlights.key_achievements:
        rows.append("<h3>Key achievements</h3><ul>")
        rows.extend(f"<li>{escape(a)}</li>" for a in highlights.key_achievements)
        rows.append("</ul>")
    if highlights.issues:
        rows.append("<h3>Issues</h3><ul>")
        rows.extend(f"<li>{escape(i)}</li>" for i in highlights.issues)
        rows.append("</ul>")
    if highlights.upcoming_deadlines:
        rows.append("<h3>Upcoming deadlines</h3><ul>")
        rows.extend(
            f"<li>{escape(d.type)}: {escape(d.name)} ({d.due_date.isoformat()}, "
            f"{d.days_remaining} day(s) left)</li>"
            for d in highlights.upcoming_deadlines
        )
        rows.append("</ul>")

    rows.append(
        f'<p><small>Sent automatically by <a href="{settings.APP_URL}">PartnerHub</a>.</small></p>'
    )
    return "\n".join(rows)


async def deliver_report(
    email_client: EmailClient,
    title: str,
    body: ReportBody,
    report_file: ReportFile,
    recipients: list[str],
) -> list[str]:
    """Send the report to every recipient; return the addresses that accepted it.

    Raises ``DeliveryFailedError`` listing the recipients that failed, after
    attempting all of them.
    """
    html_body = build_email_html(title, body)
    attachment = build_attachment(
        report_file.file_content, report_file.file_name, report_file.mime_type.split(";")[0]
    )

    delivered: list[str] = []
    failed: list[str] = []
    for recipient in recipients:
        result = await email_client.send_email(
            to=recipient,
            subject=f"[PartnerHub] {title}",
            html_body=html_body,
            attachments=[attachment],
        )
        if result.get("status") == "sent":
            delivered.append(recipient)
        else:
            failed.append(recipient)
            logger.error("Report delivery to %s failed: %s", recipient, result.get("error"))

    if failed:
        raise DeliveryFailedError(failed, f"{len(delivered)} of {len(recipients)} delivered")
    logger.info("Report '%s' delivered to %d recipient(s)", title, len(delivered))
    return delivered
