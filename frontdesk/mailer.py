import smtplib
from email.message import EmailMessage
from html import escape

import structlog

from .config import settings
from .models import DailyReport, Property
from .pdf_export import build_daily_report_pdf, report_pdf_filename

log = structlog.get_logger("frontdesk.mailer")


class MailNotConfiguredError(RuntimeError):
    pass


def smtp_configured() -> bool:
    return bool(settings.SMTP_HOST and settings.SMTP_USER and settings.SMTP_PASS)


def send_mail(
    recipients: list[str],
    subject: str,
    html_body: str,
    text_body: str | None = None,
    attachments: list[tuple[str, bytes, str]] | None = None,
) -> None:
    """Send one message over SMTP. Raises on any delivery problem."""
    if not smtp_configured():
        raise MailNotConfiguredError("SMTP credentials are not configured")
    to = [r.strip() for r in recipients if r and r.strip()]
    if not to:
        raise ValueError("no recipients")

    sender = settings.SMTP_FROM or settings.SMTP_USER
    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = ", ".join(to)
    msg.set_content(text_body or "This message requires an HTML-capable mail client.")
    msg.add_alternative(html_body, subtype="html")
    for filename, payload, mime in attachments or []:
        maintype, subtype = mime.split("/", 1)
        msg.add_attachment(payload, maintype=maintype, subtype=subtype, filename=filename)

    timeout = max(1, int(settings.SMTP_TIMEOUT_SECONDS))
    if int(settings.SMTP_PORT) == 465:
        with smtplib.SMTP_SSL(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout) as server:
            server.login(settings.SMTP_USER, settings.SMTP_PASS)
            server.send_message(msg)
    else:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=timeout) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(settings.SMTP_USER, settings.SMTP_PASS)
            server.send_message(msg)
    log.info("mail_sent", recipients=len(to), subject=subject)


def _esc(value) -> str:
    return escape(str(value or ""))


def _package_lines(packages, empty: str, detail) -> str:
    if not packages:
        return f"<p><em>{escape(empty)}</em></p>"
    items = "".join(f"<li>{detail(p)}</li>" for p in packages)
    return f"<ul>{items}</ul>"


def render_report_html(report: DailyReport, property_name: str | None, manual: bool = False) -> str:
    audits = list(report.package_audits)
    active = [p for p in audits if p.status == "active"]
    picked_up = [p for p in audits if p.status == "picked_up"]
    returned = [p for p in audits if p.status == "returned_to_sender"]

    parts = [
        "<h2>Front Desk Daily Report</h2>",
        f"<p><strong>Property:</strong> {_esc(property_name or 'Unknown')}</p>",
        f"<p><strong>Date:</strong> {_esc(report.report_date.isoformat())}</p>",
        f"<p><strong>Agent:</strong> {_esc(report.agent_name)}</p>",
    ]
    if report.shift_time:
        parts.append(f"<p><strong>Shift:</strong> {_esc(report.current_shift)} ({_esc(report.shift_time)})</p>")
    if manual:
        parts.append("<p><strong>Manually Sent</strong></p>")

    checkins = list(report.guest_checkins)
    parts.append(f"<h3>Guest Check-ins ({len(checkins)})</h3>")
    if checkins:
        parts.append("<ul>")
        for guest in checkins:
            note = f" ({_esc(guest.notes)})" if guest.notes else ""
            parts.append(f"<li>{_esc(guest.guest_name)} - Apt {_esc(guest.apartment)} at {_esc(guest.check_in_time)}{note}</li>")
        parts.append("</ul>")
    else:
        parts.append("<p><em>No check-ins recorded</em></p>")

    parts.append("<h3>Package Summary</h3>")
    parts.append(
        f"<p><strong>Total Packages:</strong> {len(audits)} | <strong>Active:</strong> {len(active)} | "
        f"<strong>Picked Up:</strong> {len(picked_up)} | <strong>Returned:</strong> {len(returned)}</p>"
    )

    def active_detail(p) -> str:
        line = (
            f"<strong>{_esc(p.resident_name)}</strong> - Room {_esc(p.room_number)}<br/>"
            f"Storage: {_esc(p.storage_location)} | Received: {_esc(p.received_time)} | Shift: {_esc(p.shift)}"
        )
        if p.carrier:
            line += f"<br/>Carrier: {_esc(p.carrier)}"
            if p.tracking_number:
                line += f" | Tracking: {_esc(p.tracking_number)}"
        if p.package_type:
            line += f"<br/>Type: {_esc(p.package_type)}"
        if p.notes:
            line += f"<br/>Notes: {_esc(p.notes)}"
        return line

    def closed_detail(label: str):
        def render(p) -> str:
            stamp = p.status_changed_at.isoformat(timespec="minutes") if p.status_changed_at else "Unknown"
            line = (
                f"<strong>{_esc(p.resident_name)}</strong> - Room {_esc(p.room_number)}<br/>"
                f"Received: {_esc(p.received_time)} | {label}: {_esc(stamp)}"
            )
            if p.status_changed_by:
                line += f"<br/>Handled by: {_esc(p.status_changed_by)}"
            return line
        return render

    parts.append(f"<h4>Active Packages ({len(active)})</h4>")
    parts.append(_package_lines(active, "No active packages awaiting pickup", active_detail))
    parts.append(f"<h4>Picked Up Today ({len(picked_up)})</h4>")
    parts.append(_package_lines(picked_up, "No packages picked up today", closed_detail("Picked up")))
    parts.append(f"<h4>Returned to Sender ({len(returned)})</h4>")
    parts.append(_package_lines(returned, "No packages returned to sender today", closed_detail("Returned")))

    parts.append("<h3>Daily Duties</h3><ul>")
    for duty in report.daily_duties:
        mark = "[x]" if duty.completed else "[ ]"
        parts.append(f"<li>{mark} {_esc(duty.task)}</li>")
    parts.append("</ul>")

    notes = [n for n in report.shift_notes if (n.content or "").strip()]
    if notes:
        parts.append("<h3>Shift Notes</h3>")
        for note in notes:
            who = f" - {_esc(note.agent_name)}" if note.agent_name else ""
            parts.append(f"<h4>{_esc(note.shift)} shift{who}</h4><p>{_esc(note.content)}</p>")
    return "\n".join(parts)


def report_subject(report: DailyReport, property_name: str | None, manual: bool = False) -> str:
    subject = f"Daily Report - {property_name or 'Unknown'} - {report.report_date.isoformat()}"
    return f"[MANUAL] {subject}" if manual else subject


def send_report_email(
    report: DailyReport,
    prop: Property | None,
    recipients: list[str],
    *,
    manual: bool = False,
    attach_pdf: bool = False,
) -> None:
    property_name = prop.name if prop else None
    attachments = []
    if attach_pdf:
        attachments.append(
            (report_pdf_filename(report), build_daily_report_pdf(report, property_name), "application/pdf")
        )
    send_mail(
        recipients,
        report_subject(report, property_name, manual=manual),
        render_report_html(report, property_name, manual=manual),
        attachments=attachments,
    )


def send_password_reset_email(to_email: str, full_name: str, reset_url: str) -> None:
    minutes = max(1, int(settings.PASSWORD_RESET_TOKEN_MINUTES))
    html_body = (
        f"<p>Hello {escape(full_name)},</p>"
        "<p>A password reset was requested for your front desk account.</p>"
        f'<p><a href="{escape(reset_url)}">Reset your password</a></p>'
        f"<p>This link expires in {minutes} minutes. If you did not request it, ignore this message.</p>"
    )
    text_body = (
        f"Hello {full_name},\n\n"
        f"Reset your password here: {reset_url}\n\n"
        f"This link expires in {minutes} minutes."
    )
    send_mail([to_email], "Password Reset Request", html_body, text_body=text_body)
