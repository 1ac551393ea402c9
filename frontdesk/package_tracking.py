"""Property-level package tracking.

``received_date`` and the pickup/return stamps are local wall-clock times in
the configured time zone, so "days old" and per-shift counts line up with the
front desk's calendar.
"""
from datetime import date, datetime, time, timedelta
from typing import Optional

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from .config import settings
from .models import Package
from .shifts import local_now

log = structlog.get_logger("frontdesk.packages")

PACKAGE_STATUSES = {"pending", "picked_up", "returned_to_sender"}
PACKAGE_SORTS = {"received_date", "apartment_number", "days_old"}


def days_old(pkg: Package, now: Optional[datetime] = None) -> int:
    moment = now or local_now()
    return max(0, (moment.date() - pkg.received_date.date()).days)


def list_packages(
    db: Session,
    property_id: str,
    *,
    status: str | None = None,
    search: str | None = None,
    sort_by: str | None = None,
    limit: int | None = None,
    offset: int | None = None,
) -> list[Package]:
    q = select(Package).where(Package.property_id == property_id)
    if status:
        if status not in PACKAGE_STATUSES:
            raise ValueError(f"invalid status: {status}")
        q = q.where(Package.status == status)

    needle = (search or "").strip().lower()
    if needle:
        pattern = f"%{needle}%"
        q = q.where(
            or_(
                func.lower(Package.recipient_name).like(pattern),
                func.lower(Package.apartment_number).like(pattern),
                func.lower(func.coalesce(Package.tracking_number, "")).like(pattern),
            )
        )

    sort_key = sort_by or "received_date"
    if sort_key not in PACKAGE_SORTS:
        raise ValueError(f"invalid sort_by: {sort_by}")
    if sort_key == "apartment_number":
        q = q.order_by(Package.apartment_number.asc(), Package.received_date.desc())
    elif sort_key == "days_old":
        q = q.order_by(Package.received_date.asc())
    else:
        q = q.order_by(Package.received_date.desc())

    if offset:
        q = q.offset(max(0, int(offset)))
    if limit:
        q = q.limit(max(1, int(limit)))
    return list(db.execute(q).scalars().all())


def package_alerts(db: Session, property_id: str, now: Optional[datetime] = None) -> list[dict]:
    """Pending packages old enough to chase, oldest first."""
    moment = now or local_now()
    warning_days = max(1, int(settings.PACKAGE_ALERT_WARNING_DAYS))
    overdue_days = max(warning_days, int(settings.PACKAGE_ALERT_OVERDUE_DAYS))
    cutoff = datetime.combine(moment.date() - timedelta(days=warning_days - 1), time.min)

    rows = (
        db.execute(
            select(Package)
            .where(
                Package.property_id == property_id,
                Package.status == "pending",
                Package.keep_extended.is_(False),
                Package.received_date < cutoff,
            )
            .order_by(Package.received_date.asc())
        )
        .scalars()
        .all()
    )

    alerts = []
    for pkg in rows:
        age = days_old(pkg, moment)
        if age < warning_days:
            continue
        alerts.append({
            "package": pkg,
            "days_old": age,
            "level": "overdue" if age >= overdue_days else "warning",
        })
    return alerts


def count_packages(db: Session, property_id: str, shift: str, on_date: date) -> int:
    start = datetime.combine(on_date, time.min)
    end = start + timedelta(days=1)
    return int(
        db.execute(
            select(func.count(Package.id)).where(
                Package.property_id == property_id,
                Package.received_shift == shift,
                Package.received_date >= start,
                Package.received_date < end,
            )
        ).scalar_one()
    )


def _stamp_status(pkg: Package, fields: dict, now: datetime) -> None:
    new_status = fields.get("status")
    if new_status == "picked_up" and "picked_up_date" not in fields:
        pkg.picked_up_date = now
    elif new_status == "returned_to_sender" and "returned_date" not in fields:
        pkg.returned_date = now


def create_package(db: Session, property_id: str, **fields) -> Package:
    now = local_now()
    if fields.get("received_date") is None:
        fields["received_date"] = now
    fields["received_date"] = fields["received_date"].replace(tzinfo=None)
    pkg = Package(property_id=property_id, **fields)
    _stamp_status(pkg, fields, now)
    db.add(pkg)
    db.commit()
    db.refresh(pkg)
    log.info("package_received", package_id=pkg.id, property_id=property_id, shift=pkg.received_shift)
    return pkg


def get_package(db: Session, package_id: str) -> Package | None:
    return db.get(Package, package_id)


def update_package(db: Session, package_id: str, **fields) -> Package | None:
    pkg = get_package(db, package_id)
    if not pkg:
        return None
    for key, value in fields.items():
        if isinstance(value, datetime):
            value = value.replace(tzinfo=None)
        setattr(pkg, key, value)
    _stamp_status(pkg, fields, local_now())
    db.commit()
    db.refresh(pkg)
    return pkg


def delete_package(db: Session, package_id: str) -> bool:
    pkg = get_package(db, package_id)
    if not pkg:
        return False
    db.delete(pkg)
    db.commit()
    return True
