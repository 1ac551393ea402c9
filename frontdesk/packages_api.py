from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .db import get_db
from .guards import staff_guard
from .package_tracking import (
    count_packages,
    create_package,
    delete_package,
    list_packages,
    package_alerts,
    update_package,
)
from .schemas import MessageOut, PackageAlertOut, PackageCountOut, PackageCreate, PackageOut, PackageUpdate, Shift
from .services import get_property
from .shifts import local_now

router = APIRouter(prefix="/api", tags=["packages"], dependencies=[Depends(staff_guard)])


def _require_property(db: Session, property_id: str) -> None:
    if not get_property(db, property_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Property not found")


@router.get("/properties/{property_id}/packages", response_model=List[PackageOut])
def get_packages(
    property_id: str,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    search: Optional[str] = Query(default=None, max_length=120),
    sort_by: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None, ge=1, le=1000),
    offset: Optional[int] = Query(default=None, ge=0),
    db: Session = Depends(get_db),
):
    _require_property(db, property_id)
    try:
        return list_packages(
            db,
            property_id,
            status=status_filter,
            search=search,
            sort_by=sort_by,
            limit=limit,
            offset=offset,
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/properties/{property_id}/packages/alerts", response_model=List[PackageAlertOut])
def get_package_alerts(property_id: str, db: Session = Depends(get_db)):
    _require_property(db, property_id)
    return [
        PackageAlertOut(package=PackageOut.model_validate(item["package"]), days_old=item["days_old"], level=item["level"])
        for item in package_alerts(db, property_id)
    ]


@router.get("/properties/{property_id}/packages/count", response_model=PackageCountOut)
def get_package_count(
    property_id: str,
    shift: Shift = Query(...),
    on_date: Optional[date] = Query(default=None, alias="date"),
    db: Session = Depends(get_db),
):
    _require_property(db, property_id)
    return PackageCountOut(count=count_packages(db, property_id, shift, on_date or local_now().date()))


@router.post("/properties/{property_id}/packages", response_model=PackageOut, status_code=status.HTTP_201_CREATED)
def add_package(property_id: str, payload: PackageCreate, db: Session = Depends(get_db)):
    _require_property(db, property_id)
    return create_package(db, property_id, **payload.model_dump())


@router.patch("/packages/{package_id}", response_model=PackageOut)
def patch_package(package_id: str, payload: PackageUpdate, db: Session = Depends(get_db)):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    pkg = update_package(db, package_id, **fields)
    if not pkg:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Package not found")
    return pkg


@router.delete("/packages/{package_id}", response_model=MessageOut)
def remove_package(package_id: str, db: Session = Depends(get_db)):
    if not delete_package(db, package_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Package not found")
    return MessageOut(message="Package deleted successfully")
