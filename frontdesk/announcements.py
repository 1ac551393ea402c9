from datetime import datetime

import nh3
import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .models import Announcement, AnnouncementRead, utc_now_naive

log = structlog.get_logger("frontdesk.announcements")

ALLOWED_TAGS = {
    "p", "br", "b", "i", "em", "strong", "a", "ul", "ol", "li",
    "h1", "h2", "h3", "h4", "h5", "h6", "blockquote",
}
ALLOWED_ATTRIBUTES = {"a": {"href", "target", "rel"}}
ALLOWED_URL_SCHEMES = {"http", "https", "mailto"}


def sanitize_html(html: str) -> str:
    """Strip everything but the rich-text subset announcements may carry."""
    # rel is author-controlled here, so nh3 must not inject its own.
    return nh3.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        url_schemes=ALLOWED_URL_SCHEMES,
        link_rel=None,
    )


def _read_ids(db: Session, user_id: str | None) -> set[str]:
    if not user_id:
        return set()
    return set(
        db.execute(select(AnnouncementRead.announcement_id).where(AnnouncementRead.user_id == user_id)).scalars().all()
    )


def list_announcements(
    db: Session,
    *,
    user_id: str | None = None,
    include_archived: bool = False,
    include_drafts: bool = False,
) -> list[tuple[Announcement, bool | None]]:
    """Announcements with a per-user read flag; the flag is None for anonymous callers."""
    q = select(Announcement)
    if not include_archived:
        q = q.where(Announcement.archived_at.is_(None))
    if not include_drafts:
        q = q.where(Announcement.is_published.is_(True))
    q = q.order_by(
        Announcement.is_pinned.desc(),
        Announcement.published_at.is_(None),
        Announcement.published_at.desc(),
        Announcement.created_at.desc(),
    )
    rows = db.execute(q).scalars().all()

    read = _read_ids(db, user_id)
    return [(row, (row.id in read) if user_id else None) for row in rows]


def unread_count(db: Session, user_id: str) -> int:
    read_subq = select(AnnouncementRead.announcement_id).where(AnnouncementRead.user_id == user_id)
    return int(
        db.execute(
            select(func.count(Announcement.id)).where(
                Announcement.is_published.is_(True),
                Announcement.archived_at.is_(None),
                Announcement.id.not_in(read_subq),
            )
        ).scalar_one()
    )


def get_announcement(db: Session, announcement_id: str) -> Announcement | None:
    return db.get(Announcement, announcement_id)


def create_announcement(db: Session, *, author: str, **fields) -> Announcement:
    fields["content"] = sanitize_html(fields["content"])
    if fields.get("is_published") and not fields.get("published_at"):
        fields["published_at"] = utc_now_naive()
    if fields.get("published_at"):
        fields["published_at"] = fields["published_at"].replace(tzinfo=None)
    row = Announcement(author=author, **fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    log.info("announcement_created", announcement_id=row.id, published=row.is_published)
    return row


def update_announcement(db: Session, announcement_id: str, **fields) -> Announcement | None:
    row = get_announcement(db, announcement_id)
    if not row:
        return None
    if fields.get("content"):
        fields["content"] = sanitize_html(fields["content"])
    if fields.get("is_published") is True and not fields.get("published_at") and not row.published_at:
        fields["published_at"] = utc_now_naive()
    for key, value in fields.items():
        if isinstance(value, datetime):
            value = value.replace(tzinfo=None)
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def delete_announcement(db: Session, announcement_id: str) -> bool:
    row = get_announcement(db, announcement_id)
    if not row:
        return False
    db.query(AnnouncementRead).filter(AnnouncementRead.announcement_id == announcement_id).delete()
    db.delete(row)
    db.commit()
    return True


def mark_read(db: Session, announcement_ids: list[str], user_id: str) -> int:
    """Record reads; ids already read or not found are skipped. Returns rows added."""
    wanted = set(announcement_ids)
    if not wanted:
        return 0
    existing = set(
        db.execute(select(Announcement.id).where(Announcement.id.in_(wanted))).scalars().all()
    )
    already = _read_ids(db, user_id)
    added = 0
    for announcement_id in existing - already:
        db.add(AnnouncementRead(announcement_id=announcement_id, user_id=user_id))
        added += 1
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request recorded the same read.
        db.rollback()
        return 0
    return added
