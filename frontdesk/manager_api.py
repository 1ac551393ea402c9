from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .db import get_db
from .guards import require_manager, staff_guard
from .residents import (
    bulk_create_residents,
    create_resident,
    delete_resident,
    list_residents,
    lookup_residents,
    preview_import,
    rows_to_residents,
    update_resident,
)
from .scheduler import dispatch_shift_reports
from .schemas import (
    AgentShiftMatchOut,
    AgentShiftOut,
    AgentShiftSet,
    DispatchSummaryOut,
    DutyTemplateCreate,
    DutyTemplateOut,
    DutyTemplateUpdate,
    MessageOut,
    ResidentBulkImport,
    ResidentBulkImportOut,
    ResidentCreate,
    ResidentCsvImportIn,
    ResidentCsvPreviewOut,
    ResidentOut,
    ResidentUpdate,
    Shift,
)
from .services import (
    create_duty_template,
    delete_agent_shift,
    delete_duty_template,
    find_current_agent,
    list_agent_shifts,
    list_duty_templates,
    update_duty_template,
    upsert_agent_shift,
)
from .shifts import SHIFTS, local_now

router = APIRouter(prefix="/api", tags=["manager"], dependencies=[Depends(staff_guard)])
log = structlog.get_logger("frontdesk.manager")


def _bad_request(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


def _missing(exc: LookupError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# Residents


@router.get("/residents/{property_id}", response_model=List[ResidentOut])
def get_residents(property_id: str, db: Session = Depends(get_db)):
    return list_residents(db, property_id)


@router.get("/residents/{property_id}/lookup", response_model=List[ResidentOut])
def get_residents_for_apartment(
    property_id: str,
    apartment_number: str = Query(..., min_length=1, max_length=40),
    db: Session = Depends(get_db),
):
    return lookup_residents(db, property_id, apartment_number)


@router.post("/residents", response_model=ResidentOut, status_code=status.HTTP_201_CREATED)
def add_resident(payload: ResidentCreate, db: Session = Depends(get_db)):
    try:
        return create_resident(db, **payload.model_dump())
    except LookupError as exc:
        raise _missing(exc)


@router.patch("/residents/{resident_id}", response_model=ResidentOut)
def patch_resident(resident_id: str, payload: ResidentUpdate, db: Session = Depends(get_db)):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    row = update_resident(db, resident_id, **fields)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resident not found")
    return row


@router.delete("/residents/{resident_id}", response_model=MessageOut)
def remove_resident(resident_id: str, db: Session = Depends(get_db)):
    if not delete_resident(db, resident_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Resident not found")
    return MessageOut(message="Resident deleted successfully")


@router.post("/residents/import", response_model=ResidentBulkImportOut)
def import_residents(
    payload: ResidentBulkImport,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    try:
        rows = bulk_create_residents(db, [item.model_dump() for item in payload.residents])
    except ValueError as exc:
        raise _bad_request(exc)
    except LookupError as exc:
        raise _missing(exc)
    return ResidentBulkImportOut(imported=len(rows), residents=[ResidentOut.model_validate(r) for r in rows])


@router.post("/residents/import/preview", response_model=ResidentCsvPreviewOut)
def preview_resident_import(payload: ResidentCsvImportIn, _manager=Depends(require_manager)):
    try:
        result = preview_import(payload.csv_text, payload.column_mapping)
    except ValueError as exc:
        raise _bad_request(exc)
    return ResidentCsvPreviewOut(
        headers=result["headers"],
        column_mapping=result["column_mapping"],
        row_count=result["row_count"],
        errors=result["errors"],
        preview=result["preview"],
    )


@router.post("/residents/import/csv", response_model=ResidentBulkImportOut)
def import_residents_csv(
    payload: ResidentCsvImportIn,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    try:
        result = preview_import(payload.csv_text, payload.column_mapping)
    except ValueError as exc:
        raise _bad_request(exc)
    if result["errors"]:
        log.info("resident_csv_rejected", property_id=payload.property_id, errors=len(result["errors"]))
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": "Validation failed", "errors": result["errors"]},
        )

    residents = rows_to_residents(payload.property_id, result["rows"], result["column_mapping"])
    try:
        rows = bulk_create_residents(db, residents)
    except ValueError as exc:
        raise _bad_request(exc)
    except LookupError as exc:
        raise _missing(exc)
    return ResidentBulkImportOut(imported=len(rows), residents=[ResidentOut.model_validate(r) for r in rows])


# Duty templates


@router.get("/duty-templates/{property_id}", response_model=List[DutyTemplateOut])
def get_duty_templates(
    property_id: str,
    shift: Optional[Shift] = Query(default=None),
    db: Session = Depends(get_db),
):
    return list_duty_templates(db, property_id, shift=shift)


@router.post("/duty-templates", response_model=DutyTemplateOut, status_code=status.HTTP_201_CREATED)
def add_duty_template(
    payload: DutyTemplateCreate,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    try:
        return create_duty_template(db, **payload.model_dump())
    except LookupError as exc:
        raise _missing(exc)


@router.patch("/duty-templates/{template_id}", response_model=DutyTemplateOut)
def patch_duty_template(
    template_id: str,
    payload: DutyTemplateUpdate,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    row = update_duty_template(db, template_id, **fields)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Duty template not found")
    return row


@router.delete("/duty-templates/{template_id}", response_model=MessageOut)
def remove_duty_template(
    template_id: str,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    if not delete_duty_template(db, template_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Duty template not found")
    return MessageOut(message="Duty template deleted successfully")


# Agent shift assignments


@router.get("/agent-shifts/{property_id}", response_model=List[AgentShiftOut])
def get_agent_shifts(property_id: str, db: Session = Depends(get_db)):
    return list_agent_shifts(db, property_id)


@router.get("/agent-shifts/{property_id}/current", response_model=AgentShiftMatchOut)
def get_current_agent(
    property_id: str,
    hour: Optional[int] = Query(default=None, ge=0, le=23),
    db: Session = Depends(get_db),
):
    at_hour = local_now().hour if hour is None else hour
    assignment = find_current_agent(db, property_id, at_hour)
    if assignment is None:
        return AgentShiftMatchOut(matched=False)
    return AgentShiftMatchOut(matched=True, agent_name=assignment.agent_name, shift=assignment.shift)


@router.post("/agent-shifts", response_model=AgentShiftOut)
def set_agent_shift(
    payload: AgentShiftSet,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    try:
        return upsert_agent_shift(db, **payload.model_dump())
    except LookupError as exc:
        raise _missing(exc)


@router.delete("/agent-shifts/{assignment_id}", response_model=MessageOut)
def remove_agent_shift(
    assignment_id: str,
    db: Session = Depends(get_db),
    _manager=Depends(require_manager),
):
    if not delete_agent_shift(db, assignment_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Agent shift not found")
    return MessageOut(message="Agent shift deleted successfully")


# Report dispatch


@router.post("/dispatch/{shift}", response_model=DispatchSummaryOut)
def run_dispatch(shift: str, db: Session = Depends(get_db), manager=Depends(require_manager)):
    """Run the end-of-shift e-mail dispatch now, outside the cron schedule."""
    if shift not in SHIFTS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"shift must be one of: {', '.join(SHIFTS)}")
    log.info("dispatch_requested", shift=shift, user_id=manager.id)
    return dispatch_shift_reports(db, shift)
