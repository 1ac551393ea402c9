"""End-of-shift report dispatch.

A cron job fires when each shift ends and e-mails every report of the day
whose current shift is the one that just ended. ``shift_status[shift]["sent"]``
is only set after a successful send, and reports already marked are skipped.
Failures are logged and not retried.
"""
from datetime import date
from typing import Callable, Optional

import structlog
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy import select
from sqlalchemy.orm import Session

from .config import settings
from .db import SessionLocal
from .mailer import send_report_email
from .models import DailyReport, utc_now_naive
from .services import get_email_settings, get_property, get_report_with_data
from .shifts import SHIFT_END_HOURS, local_now

log = structlog.get_logger("frontdesk.scheduler")

ReportSender = Callable[[Session, DailyReport], None]

_scheduler: BackgroundScheduler | None = None


def send_shift_report(db: Session, report: DailyReport) -> None:
    """Default sender: property recipients, else REPORT_EMAIL_RECIPIENTS."""
    email_settings = get_email_settings(db, report.property_id)
    recipients = list(email_settings.recipients or []) if email_settings else []
    if not recipients:
        recipients = list(settings.REPORT_EMAIL_RECIPIENTS)
    if not recipients:
        raise ValueError("no report recipients configured")

    full = get_report_with_data(db, report.id) or report
    attach_pdf = bool(email_settings and email_settings.format in ("pdf", "both"))
    send_report_email(full, get_property(db, report.property_id), recipients, attach_pdf=attach_pdf)


def dispatch_shift_reports(
    db: Session,
    shift: str,
    today: Optional[date] = None,
    sender: Optional[ReportSender] = None,
) -> dict:
    day = today or local_now().date()
    send = sender or send_shift_report
    log.info("dispatch_started", shift=shift, date=day.isoformat())

    reports = list(
        db.execute(
            select(DailyReport)
            .where(DailyReport.report_date == day, DailyReport.current_shift == shift)
            .order_by(DailyReport.created_at.asc())
        )
        .scalars()
        .all()
    )
    summary = {"shift": shift, "date": day.isoformat(), "found": len(reports), "sent": 0, "skipped": 0, "failed": 0}

    for report in reports:
        report_id = report.id
        status = dict(report.shift_status or {})
        entry = dict(status.get(shift) or {})
        if entry.get("sent"):
            summary["skipped"] += 1
            log.info("report_skipped_already_sent", report_id=report_id, shift=shift)
            continue

        try:
            send(db, report)
            entry["sent"] = True
            entry["sent_at"] = utc_now_naive().isoformat()
            status[shift] = entry
            report.shift_status = status
            db.commit()
        except Exception as exc:
            db.rollback()
            summary["failed"] += 1
            log.error("report_send_failed", report_id=report_id, shift=shift, error=str(exc), error_type=type(exc).__name__)
            continue

        summary["sent"] += 1
        log.info("report_sent", report_id=report_id, shift=shift)

    log.info("dispatch_finished", **summary)
    return summary


def run_dispatch_job(shift: str) -> dict:
    with SessionLocal() as db:
        return dispatch_shift_reports(db, shift)


def start_scheduler() -> BackgroundScheduler:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    tz = settings.TIMEZONE or None
    scheduler = BackgroundScheduler(timezone=tz) if tz else BackgroundScheduler()
    for shift, hour in SHIFT_END_HOURS.items():
        scheduler.add_job(
            func=run_dispatch_job,
            trigger=CronTrigger(hour=hour, minute=0, timezone=tz) if tz else CronTrigger(hour=hour, minute=0),
            args=[shift],
            id=f"dispatch_{shift}_shift",
            replace_existing=True,
            coalesce=True,
            misfire_grace_time=15 * 60,
        )
    scheduler.start()
    _scheduler = scheduler
    log.info("scheduler_started", jobs=sorted(SHIFT_END_HOURS), timezone=tz or "local")
    return scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is None:
        return
    if _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None
    log.info("scheduler_stopped")
