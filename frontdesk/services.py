from datetime import date, datetime
from typing import Optional

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from .models import (
    AgentShiftAssignment,
    DailyDuty,
    DailyReport,
    DutyTemplate,
    EmailSettings,
    GuestCheckin,
    PackageAudit,
    Property,
    ShiftNotes,
    utc_now_naive,
)
from .shifts import classify_shift, local_now, match_agent_assignment, shift_time_range

log = structlog.get_logger("frontdesk.services")

DEFAULT_DUTIES = (
    "Check and organize mail room",
    "Update resident directory",
    "Clean and sanitize front desk area",
    "Check amenity areas (pool, gym, common areas)",
    "Review maintenance requests",
    "Process package deliveries",
    "Update security logs",
    "Charge concierge desk phone",
    "Audit lock box at beginning and end of shift",
    "Complete daily facility inspection",
    "Update visitor access logs",
    "Review and respond to resident communications",
)

PACKAGE_AUDIT_FINAL_STATUSES = {"picked_up", "returned_to_sender"}
DEFAULT_AGENT_NAME = "Agent"


# Properties


def list_properties(db: Session, include_inactive: bool = True) -> list[Property]:
    q = select(Property).order_by(Property.name.asc())
    if not include_inactive:
        q = q.where(Property.is_active.is_(True))
    return list(db.execute(q).scalars().all())


def get_property(db: Session, property_id: str) -> Property | None:
    return db.get(Property, property_id)


def create_property(db: Session, name: str, address: str | None = None, is_active: bool = True) -> Property:
    row = Property(name=name.strip(), address=(address or "").strip() or None, is_active=is_active)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_property(db: Session, property_id: str, **fields) -> Property | None:
    row = get_property(db, property_id)
    if not row:
        return None
    for key, value in fields.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


# Daily reports


def list_reports(db: Session, property_id: str | None = None, limit: int = 100) -> list[DailyReport]:
    q = select(DailyReport)
    if property_id:
        q = q.where(DailyReport.property_id == property_id)
    q = q.order_by(DailyReport.report_date.desc(), DailyReport.created_at.desc()).limit(max(1, min(limit, 1000)))
    return list(db.execute(q).scalars().all())


def get_report(db: Session, report_id: str) -> DailyReport | None:
    return db.get(DailyReport, report_id)


def get_report_with_data(db: Session, report_id: str) -> DailyReport | None:
    return db.execute(
        select(DailyReport)
        .where(DailyReport.id == report_id)
        .options(
            selectinload(DailyReport.guest_checkins),
            selectinload(DailyReport.package_audits),
            selectinload(DailyReport.daily_duties),
            selectinload(DailyReport.shift_notes),
        )
    ).scalar_one_or_none()


def get_report_by_date(db: Session, property_id: str, report_date: date) -> DailyReport | None:
    return db.execute(
        select(DailyReport).where(
            DailyReport.property_id == property_id,
            DailyReport.report_date == report_date,
        )
    ).scalar_one_or_none()


def _duty_tasks_for(db: Session, report: DailyReport) -> list[str]:
    templates = list(
        db.execute(
            select(DutyTemplate)
            .where(DutyTemplate.property_id == report.property_id)
            .order_by(DutyTemplate.display_order.asc(), DutyTemplate.task.asc())
        )
        .scalars()
        .all()
    )
    if report.current_shift:
        for_shift = [t for t in templates if t.shift == report.current_shift]
        if for_shift:
            return [t.task for t in for_shift]
    if templates:
        return [t.task for t in templates]
    return list(DEFAULT_DUTIES)


def seed_default_duties(db: Session, report: DailyReport) -> int:
    """Add the duty checklist to a report that has none. Does not commit."""
    existing = db.execute(select(DailyDuty.id).where(DailyDuty.report_id == report.id).limit(1)).first()
    if existing:
        return 0
    tasks = _duty_tasks_for(db, report)
    for position, task in enumerate(tasks):
        db.add(DailyDuty(report_id=report.id, task=task, position=position, completed=False))
    return len(tasks)


def create_report(
    db: Session,
    *,
    property_id: str,
    report_date: date,
    agent_name: str,
    shift_time: str | None = None,
    current_shift: str | None = None,
) -> tuple[DailyReport, bool]:
    """Create the report for (property, date) or return the one already there.

    The second element of the result tells whether a new row was created.
    """
    if not get_property(db, property_id):
        raise LookupError("Property not found")

    existing = get_report_by_date(db, property_id, report_date)
    if existing:
        return existing, False

    report = DailyReport(
        property_id=property_id,
        report_date=report_date,
        agent_name=agent_name.strip() or DEFAULT_AGENT_NAME,
        shift_time=shift_time,
        current_shift=current_shift,
        shift_status={},
    )
    try:
        db.add(report)
        db.flush()
        seeded = seed_default_duties(db, report)
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = get_report_by_date(db, property_id, report_date)
        if existing:
            log.info("report_create_race_resolved", property_id=property_id, report_date=report_date.isoformat())
            return existing, False
        raise
    db.refresh(report)
    log.info(
        "report_created",
        report_id=report.id,
        property_id=property_id,
        report_date=report_date.isoformat(),
        duties_seeded=seeded,
    )
    return report, True


def update_report(db: Session, report_id: str, **fields) -> DailyReport | None:
    report = get_report(db, report_id)
    if not report:
        return None
    for key, value in fields.items():
        setattr(report, key, value)
    db.commit()
    db.refresh(report)
    return report


def get_or_create_current_report(db: Session, property_id: str, now: Optional[datetime] = None) -> DailyReport:
    moment = now or local_now()
    shift = classify_shift(moment.hour)
    today = moment.date()

    report = get_report_by_date(db, property_id, today)
    if report is None:
        assignment = find_current_agent(db, property_id, moment.hour)
        report, _created = create_report(
            db,
            property_id=property_id,
            report_date=today,
            agent_name=assignment.agent_name if assignment else DEFAULT_AGENT_NAME,
            shift_time=shift_time_range(shift),
            current_shift=shift,
        )
        return report

    if report.current_shift != shift:
        report.current_shift = shift
        report.shift_time = shift_time_range(shift)
        db.commit()
        db.refresh(report)
    return report


def end_shift(db: Session, report_id: str, now: Optional[datetime] = None) -> DailyReport | None:
    report = get_report(db, report_id)
    if not report:
        return None
    shift = report.current_shift or "unknown"
    status = dict(report.shift_status or {})
    entry = dict(status.get(shift) or {})
    entry["completed"] = True
    entry["completed_at"] = (now or utc_now_naive()).isoformat()
    status[shift] = entry
    # JSON column is not mutation-tracked; assign a fresh dict.
    report.shift_status = status
    db.commit()
    db.refresh(report)
    return report


# Guest check-ins


def list_checkins(db: Session, report_id: str) -> list[GuestCheckin]:
    return list(
        db.execute(
            select(GuestCheckin).where(GuestCheckin.report_id == report_id).order_by(GuestCheckin.check_in_time.asc())
        )
        .scalars()
        .all()
    )


def create_checkin(db: Session, report_id: str, **fields) -> GuestCheckin:
    if not get_report(db, report_id):
        raise LookupError("Report not found")
    row = GuestCheckin(report_id=report_id, **fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def delete_checkin(db: Session, checkin_id: str) -> bool:
    row = db.get(GuestCheckin, checkin_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


# Package audit lines


def list_package_audits(db: Session, report_id: str) -> list[PackageAudit]:
    return list(
        db.execute(select(PackageAudit).where(PackageAudit.report_id == report_id).order_by(PackageAudit.received_time.asc()))
        .scalars()
        .all()
    )


def create_package_audit(db: Session, report_id: str, **fields) -> PackageAudit:
    if not get_report(db, report_id):
        raise LookupError("Report not found")
    row = PackageAudit(report_id=report_id, status="active", **fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_package_audit_status(
    db: Session,
    audit_id: str,
    new_status: str,
    changed_by: str | None = None,
) -> PackageAudit | None:
    if new_status not in PACKAGE_AUDIT_FINAL_STATUSES:
        raise ValueError("Invalid status")
    row = db.get(PackageAudit, audit_id)
    if not row:
        return None
    row.status = new_status
    row.status_changed_at = utc_now_naive()
    row.status_changed_by = (changed_by or "").strip() or DEFAULT_AGENT_NAME
    db.commit()
    db.refresh(row)
    return row


def delete_package_audit(db: Session, audit_id: str) -> bool:
    row = db.get(PackageAudit, audit_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


# Daily duties


def list_duties(db: Session, report_id: str) -> list[DailyDuty]:
    return list(
        db.execute(select(DailyDuty).where(DailyDuty.report_id == report_id).order_by(DailyDuty.position.asc()))
        .scalars()
        .all()
    )


def create_duty(db: Session, report_id: str, task: str, completed: bool = False) -> DailyDuty:
    if not get_report(db, report_id):
        raise LookupError("Report not found")
    last = db.execute(
        select(DailyDuty.position).where(DailyDuty.report_id == report_id).order_by(DailyDuty.position.desc()).limit(1)
    ).scalar_one_or_none()
    row = DailyDuty(
        report_id=report_id,
        task=task.strip(),
        position=(last + 1) if last is not None else 0,
        completed=completed,
        completed_at=utc_now_naive() if completed else None,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_duty(db: Session, duty_id: str, task: str | None = None, completed: bool | None = None) -> DailyDuty | None:
    row = db.get(DailyDuty, duty_id)
    if not row:
        return None
    if task is not None:
        row.task = task.strip()
    if completed is not None:
        row.completed = completed
        row.completed_at = utc_now_naive() if completed else None
    db.commit()
    db.refresh(row)
    return row


# Shift notes


def list_notes(db: Session, report_id: str) -> list[ShiftNotes]:
    return list(
        db.execute(select(ShiftNotes).where(ShiftNotes.report_id == report_id).order_by(ShiftNotes.shift.asc()))
        .scalars()
        .all()
    )


def _find_notes(db: Session, report_id: str, shift: str) -> ShiftNotes | None:
    return db.execute(
        select(ShiftNotes).where(ShiftNotes.report_id == report_id, ShiftNotes.shift == shift)
    ).scalar_one_or_none()


def upsert_notes(
    db: Session,
    *,
    report_id: str,
    shift: str,
    content: str,
    agent_name: str | None = None,
    shift_time: str | None = None,
) -> ShiftNotes:
    if not get_report(db, report_id):
        raise LookupError("Report not found")

    row = _find_notes(db, report_id, shift)
    if row is None:
        row = ShiftNotes(report_id=report_id, shift=shift, content=content, agent_name=agent_name, shift_time=shift_time)
        db.add(row)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            row = _find_notes(db, report_id, shift)
            if row is None:
                raise
            row.content = content
            row.agent_name = agent_name
            row.shift_time = shift_time
            db.commit()
    else:
        row.content = content
        row.agent_name = agent_name
        row.shift_time = shift_time
        db.commit()
    db.refresh(row)
    return row


# E-mail settings


def get_email_settings(db: Session, property_id: str) -> EmailSettings | None:
    return db.execute(select(EmailSettings).where(EmailSettings.property_id == property_id)).scalar_one_or_none()


def upsert_email_settings(
    db: Session,
    *,
    property_id: str,
    recipients: list[str],
    daily_send_time: str = "06:30",
    format: str = "both",
    auto_send: bool = True,
) -> EmailSettings:
    if not get_property(db, property_id):
        raise LookupError("Property not found")
    row = get_email_settings(db, property_id)
    if row is None:
        row = EmailSettings(property_id=property_id)
        db.add(row)
    row.recipients = list(recipients)
    row.daily_send_time = daily_send_time
    row.format = format
    row.auto_send = auto_send
    db.commit()
    db.refresh(row)
    return row


# Duty templates


def list_duty_templates(db: Session, property_id: str, shift: str | None = None) -> list[DutyTemplate]:
    q = select(DutyTemplate).where(DutyTemplate.property_id == property_id)
    if shift:
        q = q.where(DutyTemplate.shift == shift)
    q = q.order_by(DutyTemplate.shift.asc(), DutyTemplate.display_order.asc())
    return list(db.execute(q).scalars().all())


def create_duty_template(db: Session, *, property_id: str, shift: str, task: str, display_order: int = 0) -> DutyTemplate:
    if not get_property(db, property_id):
        raise LookupError("Property not found")
    row = DutyTemplate(property_id=property_id, shift=shift, task=task.strip(), display_order=display_order)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_duty_template(db: Session, template_id: str, **fields) -> DutyTemplate | None:
    row = db.get(DutyTemplate, template_id)
    if not row:
        return None
    for key, value in fields.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def delete_duty_template(db: Session, template_id: str) -> bool:
    row = db.get(DutyTemplate, template_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


# Agent shift assignments


def list_agent_shifts(db: Session, property_id: str) -> list[AgentShiftAssignment]:
    return list(
        db.execute(
            select(AgentShiftAssignment)
            .where(AgentShiftAssignment.property_id == property_id)
            .order_by(AgentShiftAssignment.created_at.asc(), AgentShiftAssignment.id.asc())
        )
        .scalars()
        .all()
    )


def upsert_agent_shift(db: Session, *, property_id: str, shift: str, agent_name: str) -> AgentShiftAssignment:
    if not get_property(db, property_id):
        raise LookupError("Property not found")
    row = db.execute(
        select(AgentShiftAssignment).where(
            AgentShiftAssignment.property_id == property_id,
            AgentShiftAssignment.shift == shift,
        )
    ).scalar_one_or_none()
    if row is None:
        row = AgentShiftAssignment(property_id=property_id, shift=shift, agent_name=agent_name.strip())
        db.add(row)
    else:
        row.agent_name = agent_name.strip()
    db.commit()
    db.refresh(row)
    return row


def delete_agent_shift(db: Session, assignment_id: str) -> bool:
    row = db.get(AgentShiftAssignment, assignment_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


def find_current_agent(db: Session, property_id: str, hour: int) -> AgentShiftAssignment | None:
    return match_agent_assignment(list_agent_shifts(db, property_id), hour)
