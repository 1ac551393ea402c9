import uuid
from datetime import date, datetime, timezone

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(String(200), index=True)
    address: Mapped[str | None] = mapped_column(String(300), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class DailyReport(Base):
    __tablename__ = "daily_reports"
    __table_args__ = (UniqueConstraint("property_id", "report_date", name="uq_daily_reports_property_date"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id"), index=True)
    report_date: Mapped[date] = mapped_column(Date, index=True)
    agent_name: Mapped[str] = mapped_column(String(120))
    shift_time: Mapped[str | None] = mapped_column(String(40), nullable=True)
    current_shift: Mapped[str | None] = mapped_column(String(8), nullable=True, index=True)
    shift_status: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)

    guest_checkins = relationship("GuestCheckin", cascade="all, delete-orphan", order_by="GuestCheckin.check_in_time")
    package_audits = relationship("PackageAudit", cascade="all, delete-orphan")
    daily_duties = relationship("DailyDuty", cascade="all, delete-orphan", order_by="DailyDuty.position")
    shift_notes = relationship("ShiftNotes", cascade="all, delete-orphan", order_by="ShiftNotes.shift")


class GuestCheckin(Base):
    __tablename__ = "guest_checkins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    report_id: Mapped[str] = mapped_column(ForeignKey("daily_reports.id"), index=True)
    guest_name: Mapped[str] = mapped_column(String(160))
    apartment: Mapped[str] = mapped_column(String(40))
    check_in_time: Mapped[str] = mapped_column(String(20))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    shift: Mapped[str] = mapped_column(String(8))


class PackageAudit(Base):
    __tablename__ = "package_audits"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    report_id: Mapped[str] = mapped_column(ForeignKey("daily_reports.id"), index=True)
    resident_name: Mapped[str | None] = mapped_column(String(160), nullable=True)
    room_number: Mapped[str] = mapped_column(String(40))
    storage_location: Mapped[str | None] = mapped_column(String(120), nullable=True)
    carrier: Mapped[str | None] = mapped_column(String(40), nullable=True)
    tracking_number: Mapped[str | None] = mapped_column(String(120), nullable=True)
    package_type: Mapped[str | None] = mapped_column(String(40), nullable=True)
    received_time: Mapped[str | None] = mapped_column(String(20), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    shift: Mapped[str] = mapped_column(String(8))
    status: Mapped[str] = mapped_column(String(32), default="active", index=True)
    status_changed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    status_changed_by: Mapped[str | None] = mapped_column(String(120), nullable=True)


class Package(Base):
    __tablename__ = "packages"
    __table_args__ = (
        Index("packages_property_id_status_idx", "property_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id"), index=True)
    tracking_number: Mapped[str | None] = mapped_column(String(120), nullable=True)
    recipient_name: Mapped[str] = mapped_column(String(160))
    apartment_number: Mapped[str] = mapped_column(String(40))
    carrier: Mapped[str | None] = mapped_column(String(16), nullable=True)
    package_size: Mapped[str | None] = mapped_column(String(16), nullable=True)
    storage_location: Mapped[str | None] = mapped_column(String(120), nullable=True)
    received_date: Mapped[datetime] = mapped_column(DateTime, index=True)
    received_by_agent: Mapped[str] = mapped_column(String(120))
    received_shift: Mapped[str] = mapped_column(String(8))
    status: Mapped[str] = mapped_column(String(32), default="pending")
    picked_up_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    picked_up_by_agent: Mapped[str | None] = mapped_column(String(120), nullable=True)
    returned_date: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    returned_by_agent: Mapped[str | None] = mapped_column(String(120), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    keep_extended: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, onupdate=utc_now_naive)


class DailyDuty(Base):
    __tablename__ = "daily_duties"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    report_id: Mapped[str] = mapped_column(ForeignKey("daily_reports.id"), index=True)
    task: Mapped[str] = mapped_column(String(300))
    position: Mapped[int] = mapped_column(Integer, default=0)
    completed: Mapped[bool] = mapped_column(Boolean, default=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)


class ShiftNotes(Base):
    __tablename__ = "shift_notes"
    __table_args__ = (UniqueConstraint("report_id", "shift", name="uq_shift_notes_report_shift"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    report_id: Mapped[str] = mapped_column(ForeignKey("daily_reports.id"), index=True)
    content: Mapped[str] = mapped_column(Text)
    shift: Mapped[str] = mapped_column(String(8))
    agent_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    shift_time: Mapped[str | None] = mapped_column(String(40), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, onupdate=utc_now_naive)


class EmailSettings(Base):
    __tablename__ = "email_settings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id"), unique=True, index=True)
    recipients: Mapped[list] = mapped_column(JSON, default=list)
    daily_send_time: Mapped[str] = mapped_column(String(5), default="06:30")
    format: Mapped[str] = mapped_column(String(8), default="both")
    auto_send: Mapped[bool] = mapped_column(Boolean, default=True)


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    username: Mapped[str] = mapped_column(String(80), unique=True, index=True)
    email: Mapped[str | None] = mapped_column(String(160), unique=True, nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255))
    full_name: Mapped[str] = mapped_column(String(160))
    role: Mapped[str] = mapped_column(String(16), default="agent")
    requires_password_change: Mapped[bool] = mapped_column(Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)


class PasswordResetToken(Base):
    __tablename__ = "password_reset_tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    token: Mapped[str] = mapped_column(String(128), unique=True, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime)
    used: Mapped[bool] = mapped_column(Boolean, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)


class Resident(Base):
    __tablename__ = "residents"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id"), index=True)
    apartment_number: Mapped[str] = mapped_column(String(40), index=True)
    resident_name: Mapped[str] = mapped_column(String(160))
    email: Mapped[str | None] = mapped_column(String(160), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    move_in_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    lease_end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)


class DutyTemplate(Base):
    __tablename__ = "duty_templates"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id"), index=True)
    shift: Mapped[str] = mapped_column(String(8))
    task: Mapped[str] = mapped_column(String(300))
    display_order: Mapped[int] = mapped_column(Integer, default=0)


class AgentShiftAssignment(Base):
    __tablename__ = "agent_shift_assignments"
    __table_args__ = (UniqueConstraint("property_id", "shift", name="uq_agent_shift_property_shift"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    property_id: Mapped[str] = mapped_column(ForeignKey("properties.id"), index=True)
    shift: Mapped[str] = mapped_column(String(40))
    agent_name: Mapped[str] = mapped_column(String(120))
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)


class Announcement(Base):
    __tablename__ = "announcements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(String(200))
    category: Mapped[str] = mapped_column(String(40), default="General")
    content: Mapped[str] = mapped_column(Text)
    author: Mapped[str] = mapped_column(String(160))
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    published_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    archived_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive, onupdate=utc_now_naive)


class AnnouncementRead(Base):
    __tablename__ = "announcement_reads"
    __table_args__ = (UniqueConstraint("announcement_id", "user_id", name="uq_announcement_reads_pair"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    announcement_id: Mapped[str] = mapped_column(ForeignKey("announcements.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[str] = mapped_column(ForeignKey("users.id"), index=True)
    read_at: Mapped[datetime] = mapped_column(DateTime, default=utc_now_naive)
