"""
Best-effort SMTP delivery. Failures are logged and reported as False, never raised.
"""
import smtplib
from email.message import EmailMessage
from html import escape
from typing import Iterable, Optional

import structlog

from ..config import settings


def email_configured() -> bool:
    return bool(settings.enable_email and settings.smtp_host and settings.mail_from)


def send_email(to: str, subject: str, html: str) -> bool:
    log = structlog.get_logger("shiftdesk.mailer")
    if not email_configured():
        log.info("email_skipped", to=to, subject=subject, reason="smtp_not_configured")
        return False
    try:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = settings.mail_from
        msg["To"] = to
        msg.set_content("This message requires an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as s:
            if settings.smtp_tls:
                s.starttls()
            if settings.smtp_username and settings.smtp_password:
                s.login(settings.smtp_username, settings.smtp_password)
            s.send_message(msg)
    except Exception as e:
        log.warning("email_send_failed", to=to, subject=subject, error=str(e))
        return False
    log.info("email_sent", to=to, subject=subject)
    return True


def render_shift_assignment_html(week: str, building_name: str, role_name: Optional[str], days: Iterable[dict]) -> str:
    rows = "".join(
        f"<li><strong>{escape(d['day_name'])}:</strong> {escape(d['shift_type_name'])} "
        f"({escape(d['start_time'])} - {escape(d['end_time'])})</li>"
        for d in days
    )
    return (
        "<h2>You have been assigned to a new shift</h2>"
        "<p>You have been assigned to a new shift. Here are the details:</p>"
        "<ul>"
        f"<li><strong>Building:</strong> {escape(building_name)}</li>"
        f"<li><strong>Role:</strong> {escape(role_name or 'N/A')}</li>"
        f"<li><strong>Week:</strong> {escape(week)}</li>"
        f"{rows}"
        "</ul>"
        "<p>Please log in to the system to view more details and respond.</p>"
        f"<p>Best regards,<br/>{escape(settings.app_name)}</p>"
    )


def send_shift_assignment_email(
    to: str, week: str, building_name: str, role_name: Optional[str], days: Iterable[dict]
) -> bool:
    html = render_shift_assignment_html(week, building_name, role_name, days)
    return send_email(to, "New Shift Assignment", html)
