from datetime import date
from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.orm import Session

from .csv_export import export_report_csv
from .db import get_db
from .guards import require_manager, staff_guard
from .mailer import send_report_email
from .models import DailyReport
from .pdf_export import build_daily_report_pdf, report_pdf_filename
from .schemas import (
    CheckinCreate,
    CheckinOut,
    DutyCreate,
    DutyOut,
    DutyUpdate,
    EmailSettingsOut,
    EmailSettingsSet,
    EndShiftOut,
    MessageOut,
    NotesOut,
    NotesUpsert,
    PackageAuditCreate,
    PackageAuditOut,
    PackageAuditStatusUpdate,
    PropertyCreate,
    PropertyOut,
    PropertyUpdate,
    ReportCreate,
    ReportDetailOut,
    ReportOut,
    ReportUpdate,
)
from .services import (
    create_checkin,
    create_duty,
    create_package_audit,
    create_property,
    create_report,
    delete_checkin,
    delete_package_audit,
    end_shift,
    get_email_settings,
    get_or_create_current_report,
    get_property,
    get_report,
    get_report_by_date,
    get_report_with_data,
    list_checkins,
    list_duties,
    list_notes,
    list_package_audits,
    list_properties,
    list_reports,
    update_duty,
    update_package_audit_status,
    update_property,
    update_report,
    upsert_email_settings,
    upsert_notes,
)

router = APIRouter(prefix="/api", dependencies=[Depends(staff_guard)])
log = structlog.get_logger("frontdesk.api")


def _not_found(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _to_report_detail_out(db: Session, report: DailyReport) -> ReportDetailOut:
    out = ReportDetailOut.model_validate(report)
    prop = get_property(db, report.property_id)
    out.property = PropertyOut.model_validate(prop) if prop else None
    return out


def _load_report(db: Session, report_id: str) -> DailyReport:
    report = get_report_with_data(db, report_id)
    if not report:
        raise _not_found("Report")
    return report


# Properties


@router.get("/properties", response_model=List[PropertyOut])
def get_properties(
    include_inactive: bool = Query(default=True),
    db: Session = Depends(get_db),
):
    return list_properties(db, include_inactive=include_inactive)


@router.get("/properties/{property_id}", response_model=PropertyOut)
def get_property_endpoint(property_id: str, db: Session = Depends(get_db)):
    prop = get_property(db, property_id)
    if not prop:
        raise _not_found("Property")
    return prop


@router.post("/properties", response_model=PropertyOut, status_code=status.HTTP_201_CREATED)
def add_property(
    payload: PropertyCreate,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    return create_property(db, name=payload.name, address=payload.address, is_active=payload.is_active)


@router.patch("/properties/{property_id}", response_model=PropertyOut)
def patch_property(
    property_id: str,
    payload: PropertyUpdate,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    prop = update_property(db, property_id, **fields)
    if not prop:
        raise _not_found("Property")
    return prop


# Reports


@router.get("/reports", response_model=List[ReportOut])
def get_reports(
    property_id: Optional[str] = Query(default=None),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    return list_reports(db, property_id=property_id, limit=limit)


@router.get("/reports/current/{property_id}", response_model=ReportOut)
def get_current_report(property_id: str, db: Session = Depends(get_db)):
    if not get_property(db, property_id):
        raise _not_found("Property")
    return get_or_create_current_report(db, property_id)


@router.get("/reports/by-date/{report_date}/{property_id}", response_model=ReportOut)
def get_report_for_date(report_date: date, property_id: str, db: Session = Depends(get_db)):
    report = get_report_by_date(db, property_id, report_date)
    if not report:
        raise _not_found("Report")
    return report


@router.post("/reports", response_model=ReportOut, status_code=status.HTTP_201_CREATED)
def add_report(payload: ReportCreate, response: Response, db: Session = Depends(get_db)):
    try:
        report, created = create_report(db, **payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if not created:
        response.status_code = status.HTTP_200_OK
    return report


@router.get("/reports/{report_id}", response_model=ReportDetailOut)
def get_report_detail(report_id: str, db: Session = Depends(get_db)):
    return _to_report_detail_out(db, _load_report(db, report_id))


@router.put("/reports/{report_id}", response_model=ReportOut)
def put_report(report_id: str, payload: ReportUpdate, db: Session = Depends(get_db)):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    report = update_report(db, report_id, **fields)
    if not report:
        raise _not_found("Report")
    return report


@router.post("/reports/{report_id}/end-shift", response_model=EndShiftOut)
def end_shift_endpoint(report_id: str, db: Session = Depends(get_db)):
    report = end_shift(db, report_id)
    if not report:
        raise _not_found("Report")
    log.info("shift_ended", report_id=report.id, shift=report.current_shift)
    return EndShiftOut(message="Shift ended successfully", report=ReportOut.model_validate(report))


# Guest check-ins


@router.get("/reports/{report_id}/checkins", response_model=List[CheckinOut])
def get_checkins(report_id: str, db: Session = Depends(get_db)):
    return list_checkins(db, report_id)


@router.post("/checkins", response_model=CheckinOut, status_code=status.HTTP_201_CREATED)
def add_checkin(payload: CheckinCreate, db: Session = Depends(get_db)):
    fields = payload.model_dump()
    report_id = fields.pop("report_id")
    try:
        return create_checkin(db, report_id, **fields)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.delete("/checkins/{checkin_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_checkin(checkin_id: str, db: Session = Depends(get_db)):
    if not delete_checkin(db, checkin_id):
        raise _not_found("Check-in")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Package audit lines


@router.get("/reports/{report_id}/packages", response_model=List[PackageAuditOut])
def get_package_audits(report_id: str, db: Session = Depends(get_db)):
    return list_package_audits(db, report_id)


@router.post("/package-audits", response_model=PackageAuditOut, status_code=status.HTTP_201_CREATED)
def add_package_audit(payload: PackageAuditCreate, db: Session = Depends(get_db)):
    fields = payload.model_dump()
    report_id = fields.pop("report_id")
    try:
        return create_package_audit(db, report_id, **fields)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.patch("/package-audits/{audit_id}/status", response_model=PackageAuditOut)
def patch_package_audit_status(audit_id: str, payload: PackageAuditStatusUpdate, db: Session = Depends(get_db)):
    try:
        row = update_package_audit_status(db, audit_id, payload.status, payload.changed_by)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if not row:
        raise _not_found("Package")
    return row


@router.delete("/package-audits/{audit_id}", response_model=MessageOut)
def remove_package_audit(audit_id: str, db: Session = Depends(get_db)):
    if not delete_package_audit(db, audit_id):
        raise _not_found("Package")
    return MessageOut(message="Package deleted successfully")


# Daily duties


@router.get("/reports/{report_id}/duties", response_model=List[DutyOut])
def get_duties(report_id: str, db: Session = Depends(get_db)):
    return list_duties(db, report_id)


@router.post("/duties", response_model=DutyOut, status_code=status.HTTP_201_CREATED)
def add_duty(payload: DutyCreate, db: Session = Depends(get_db)):
    try:
        return create_duty(db, payload.report_id, payload.task, completed=payload.completed)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.put("/duties/{duty_id}", response_model=DutyOut)
def put_duty(duty_id: str, payload: DutyUpdate, db: Session = Depends(get_db)):
    duty = update_duty(db, duty_id, task=payload.task, completed=payload.completed)
    if not duty:
        raise _not_found("Duty")
    return duty


# Shift notes


@router.get("/reports/{report_id}/notes", response_model=List[NotesOut])
def get_notes(report_id: str, db: Session = Depends(get_db)):
    return list_notes(db, report_id)


@router.put("/notes", response_model=NotesOut)
def put_notes(payload: NotesUpsert, db: Session = Depends(get_db)):
    try:
        return upsert_notes(db, **payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# E-mail settings


@router.get("/email-settings/{property_id}", response_model=EmailSettingsOut)
def get_email_settings_endpoint(property_id: str, db: Session = Depends(get_db)):
    row = get_email_settings(db, property_id)
    if not row:
        raise _not_found("Email settings")
    return row


@router.put("/email-settings", response_model=EmailSettingsOut)
def put_email_settings(
    payload: EmailSettingsSet,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    try:
        return upsert_email_settings(db, **payload.model_dump())
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# Exports and e-mail


@router.post("/reports/{report_id}/export/pdf")
def export_report_pdf(report_id: str, db: Session = Depends(get_db)):
    report = _load_report(db, report_id)
    prop = get_property(db, report.property_id)
    pdf_bytes = build_daily_report_pdf(report, prop.name if prop else None)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{report_pdf_filename(report)}"'},
    )


@router.post("/reports/{report_id}/export/csv")
def export_report_csv_endpoint(report_id: str, db: Session = Depends(get_db)):
    report = _load_report(db, report_id)
    csv_text = export_report_csv(report)
    return Response(
        content=csv_text,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="daily-report-{report.report_date.isoformat()}.csv"'},
    )


def _email_report(db: Session, report_id: str, *, manual: bool) -> None:
    report = _load_report(db, report_id)
    email_settings = get_email_settings(db, report.property_id)
    if not email_settings or not email_settings.recipients:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email settings not configured for this property",
        )
    try:
        send_report_email(
            report,
            get_property(db, report.property_id),
            list(email_settings.recipients),
            manual=manual,
            attach_pdf=email_settings.format in ("pdf", "both"),
        )
    except Exception as exc:
        log.error("report_email_failed", report_id=report_id, manual=manual, error=str(exc), error_type=type(exc).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to send report" if manual else "Failed to send email",
        )
    log.info("report_email_sent", report_id=report_id, manual=manual, recipients=len(email_settings.recipients))


@router.post("/reports/{report_id}/send-email", response_model=MessageOut)
def send_report_email_endpoint(report_id: str, db: Session = Depends(get_db)):
    _email_report(db, report_id, manual=False)
    return MessageOut(message="Email sent successfully")


@router.post("/reports/{report_id}/send-now", response_model=MessageOut)
def send_report_now(report_id: str, db: Session = Depends(get_db)):
    _email_report(db, report_id, manual=True)
    return MessageOut(message="Report sent manually")
