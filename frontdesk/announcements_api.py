from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from .announcements import (
    create_announcement,
    delete_announcement,
    get_announcement,
    list_announcements,
    mark_read,
    unread_count,
    update_announcement,
)
from .authn import MANAGER_ROLES
from .db import get_db
from .guards import get_current_user, require_manager, require_user, staff_guard
from .models import User
from .schemas import (
    AnnouncementBatchRead,
    AnnouncementCreate,
    AnnouncementOut,
    AnnouncementUpdate,
    MessageOut,
    UnreadCountOut,
)

router = APIRouter(prefix="/api/announcements", tags=["announcements"], dependencies=[Depends(staff_guard)])


def _to_out(row, is_read=None) -> AnnouncementOut:
    out = AnnouncementOut.model_validate(row)
    out.is_read = is_read
    return out


@router.get("", response_model=List[AnnouncementOut])
def get_announcements(
    include_archived: bool = Query(default=False),
    include_drafts: bool = Query(default=False),
    user: User | None = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    can_see_drafts = bool(user and user.role in MANAGER_ROLES)
    rows = list_announcements(
        db,
        user_id=user.id if user else None,
        include_archived=include_archived,
        include_drafts=include_drafts and can_see_drafts,
    )
    return [_to_out(row, is_read) for row, is_read in rows]


@router.get("/unread-count", response_model=UnreadCountOut)
def get_unread_count(user: User = Depends(require_user), db: Session = Depends(get_db)):
    return UnreadCountOut(count=unread_count(db, user.id))


@router.post("/batch-read", response_model=MessageOut)
def batch_mark_read(
    payload: AnnouncementBatchRead,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    added = mark_read(db, payload.announcement_ids, user.id)
    return MessageOut(message=f"Marked {added} announcement(s) as read")


@router.get("/{announcement_id}", response_model=AnnouncementOut)
def get_announcement_endpoint(announcement_id: str, db: Session = Depends(get_db)):
    row = get_announcement(db, announcement_id)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return _to_out(row)


@router.post("", response_model=AnnouncementOut, status_code=status.HTTP_201_CREATED)
def add_announcement(
    payload: AnnouncementCreate,
    db: Session = Depends(get_db),
    manager: User = Depends(require_manager),
):
    return _to_out(create_announcement(db, author=manager.full_name, **payload.model_dump()))


@router.patch("/{announcement_id}", response_model=AnnouncementOut)
def patch_announcement(
    announcement_id: str,
    payload: AnnouncementUpdate,
    db: Session = Depends(get_db),
    _manager: User = Depends(require_manager),
):
    fields = payload.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No fields to update")
    row = update_announcement(db, announcement_id, **fields)
    if not row:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return _to_out(row)


@router.delete("/{announcement_id}", response_model=MessageOut)
def remove_announcement(
    announcement_id: str,
    db: Session = Depends(get_db),
    _manager: User = Depends(require_manager),
):
    if not delete_announcement(db, announcement_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    return MessageOut(message="Announcement deleted successfully")


@router.post("/{announcement_id}/read", response_model=MessageOut)
def mark_announcement_read(
    announcement_id: str,
    user: User = Depends(require_user),
    db: Session = Depends(get_db),
):
    if not get_announcement(db, announcement_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Announcement not found")
    mark_read(db, [announcement_id], user.id)
    return MessageOut(message="Announcement marked as read")
