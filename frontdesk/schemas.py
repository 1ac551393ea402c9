import re
from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, validator

from .shifts import AGENT_SHIFT_LABELS

Shift = Literal["1st", "2nd", "3rd"]
PackageStatus = Literal["pending", "picked_up", "returned_to_sender"]

ANNOUNCEMENT_CATEGORIES = (
    "Company Update",
    "Recognition",
    "Policy Change",
    "Event",
    "Celebration",
    "General",
)

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _not_null(value):
    if value is None:
        raise ValueError("may not be null")
    return value


def _clean_email(value: str | None) -> str | None:
    raw = (value or "").strip()
    if not raw:
        return None
    if not _EMAIL_RE.match(raw):
        raise ValueError("invalid email address")
    return raw


class OrmModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PropertyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    address: str | None = Field(default=None, max_length=300)
    is_active: bool = True


class PropertyUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    address: str | None = Field(default=None, max_length=300)
    is_active: bool | None = None

    @validator("name", "is_active", pre=True)
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class PropertyOut(OrmModel):
    id: str
    name: str
    address: str | None = None
    is_active: bool


class ReportCreate(BaseModel):
    property_id: str = Field(min_length=1, max_length=36)
    report_date: date
    agent_name: str = Field(min_length=1, max_length=120)
    shift_time: str | None = Field(default=None, max_length=40)
    current_shift: Shift | None = None


class ReportUpdate(BaseModel):
    agent_name: str | None = Field(default=None, min_length=1, max_length=120)
    shift_time: str | None = Field(default=None, max_length=40)
    current_shift: Shift | None = None

    @validator("agent_name", pre=True)
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class ReportOut(OrmModel):
    id: str
    property_id: str
    report_date: date
    agent_name: str
    shift_time: str | None = None
    current_shift: str | None = None
    shift_status: dict = Field(default_factory=dict)
    created_at: datetime


class CheckinCreate(BaseModel):
    report_id: str = Field(min_length=1, max_length=36)
    guest_name: str = Field(min_length=1, max_length=160)
    apartment: str = Field(min_length=1, max_length=40)
    check_in_time: str = Field(min_length=1, max_length=20)
    notes: str | None = Field(default=None, max_length=2000)
    shift: Shift


class CheckinOut(OrmModel):
    id: str
    report_id: str
    guest_name: str
    apartment: str
    check_in_time: str
    notes: str | None = None
    shift: str


class PackageAuditCreate(BaseModel):
    report_id: str = Field(min_length=1, max_length=36)
    resident_name: str | None = Field(default=None, max_length=160)
    room_number: str = Field(min_length=1, max_length=40)
    storage_location: str | None = Field(default=None, max_length=120)
    carrier: str | None = Field(default=None, max_length=40)
    tracking_number: str | None = Field(default=None, max_length=120)
    package_type: str | None = Field(default=None, max_length=40)
    received_time: str | None = Field(default=None, max_length=20)
    notes: str | None = Field(default=None, max_length=2000)
    shift: Shift


class PackageAuditStatusUpdate(BaseModel):
    status: str
    changed_by: str | None = Field(default=None, max_length=120)


class PackageAuditOut(OrmModel):
    id: str
    report_id: str
    resident_name: str | None = None
    room_number: str
    storage_location: str | None = None
    carrier: str | None = None
    tracking_number: str | None = None
    package_type: str | None = None
    received_time: str | None = None
    notes: str | None = None
    shift: str
    status: str
    status_changed_at: datetime | None = None
    status_changed_by: str | None = None


class DutyCreate(BaseModel):
    report_id: str = Field(min_length=1, max_length=36)
    task: str = Field(min_length=1, max_length=300)
    completed: bool = False


class DutyUpdate(BaseModel):
    task: str | None = Field(default=None, min_length=1, max_length=300)
    completed: bool | None = None


class DutyOut(OrmModel):
    id: str
    report_id: str
    task: str
    completed: bool
    completed_at: datetime | None = None


class NotesUpsert(BaseModel):
    report_id: str = Field(min_length=1, max_length=36)
    content: str = Field(max_length=20000)
    shift: Shift
    agent_name: str | None = Field(default=None, max_length=120)
    shift_time: str | None = Field(default=None, max_length=40)


class NotesOut(OrmModel):
    id: str
    report_id: str
    content: str
    shift: str
    agent_name: str | None = None
    shift_time: str | None = None
    updated_at: datetime


class ReportDetailOut(ReportOut):
    property: PropertyOut | None = None
    guest_checkins: list[CheckinOut] = Field(default_factory=list)
    package_audits: list[PackageAuditOut] = Field(default_factory=list)
    daily_duties: list[DutyOut] = Field(default_factory=list)
    shift_notes: list[NotesOut] = Field(default_factory=list)


class EndShiftOut(BaseModel):
    message: str
    report: ReportOut


class EmailSettingsSet(BaseModel):
    property_id: str = Field(min_length=1, max_length=36)
    recipients: list[str] = Field(default_factory=list)
    daily_send_time: str = Field(default="06:30", pattern=r"^\d{2}:\d{2}$")
    format: Literal["pdf", "html", "both"] = "both"
    auto_send: bool = True

    @validator("recipients")
    @classmethod
    def validate_recipients(cls, value: list[str]) -> list[str]:
        cleaned = [item.strip() for item in value if item and item.strip()]
        for item in cleaned:
            if not _EMAIL_RE.match(item):
                raise ValueError(f"invalid email address: {item}")
        return cleaned


class EmailSettingsOut(OrmModel):
    id: str
    property_id: str
    recipients: list[str]
    daily_send_time: str
    format: str
    auto_send: bool


class MessageOut(BaseModel):
    message: str


class PackageCreate(BaseModel):
    tracking_number: str | None = Field(default=None, max_length=120)
    recipient_name: str = Field(min_length=1, max_length=160)
    apartment_number: str = Field(min_length=1, max_length=40)
    carrier: Literal["UPS", "FedEx", "USPS", "Amazon", "Other"] | None = None
    package_size: Literal["Small", "Medium", "Large", "Oversized"] | None = None
    storage_location: str | None = Field(default=None, max_length=120)
    received_date: datetime | None = None
    received_by_agent: str = Field(min_length=1, max_length=120)
    received_shift: Shift
    status: PackageStatus = "pending"
    notes: str | None = Field(default=None, max_length=2000)
    keep_extended: bool = False


class PackageUpdate(BaseModel):
    tracking_number: str | None = Field(default=None, max_length=120)
    recipient_name: str | None = Field(default=None, min_length=1, max_length=160)
    apartment_number: str | None = Field(default=None, min_length=1, max_length=40)
    carrier: Literal["UPS", "FedEx", "USPS", "Amazon", "Other"] | None = None
    package_size: Literal["Small", "Medium", "Large", "Oversized"] | None = None
    storage_location: str | None = Field(default=None, max_length=120)
    status: PackageStatus | None = None
    picked_up_date: datetime | None = None
    picked_up_by_agent: str | None = Field(default=None, max_length=120)
    returned_date: datetime | None = None
    returned_by_agent: str | None = Field(default=None, max_length=120)
    notes: str | None = Field(default=None, max_length=2000)
    keep_extended: bool | None = None

    @validator("recipient_name", "apartment_number", "status", "keep_extended", pre=True)
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class PackageOut(OrmModel):
    id: str
    property_id: str
    tracking_number: str | None = None
    recipient_name: str
    apartment_number: str
    carrier: str | None = None
    package_size: str | None = None
    storage_location: str | None = None
    received_date: datetime
    received_by_agent: str
    received_shift: str
    status: str
    picked_up_date: datetime | None = None
    picked_up_by_agent: str | None = None
    returned_date: datetime | None = None
    returned_by_agent: str | None = None
    notes: str | None = None
    keep_extended: bool
    created_at: datetime
    updated_at: datetime


class PackageAlertOut(BaseModel):
    package: PackageOut
    days_old: int
    level: Literal["warning", "overdue"]


class PackageCountOut(BaseModel):
    count: int


class ResidentCreate(BaseModel):
    property_id: str = Field(min_length=1, max_length=36)
    apartment_number: str = Field(min_length=1, max_length=40)
    resident_name: str = Field(min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=160)
    phone: str | None = Field(default=None, max_length=40)
    move_in_date: date | None = None
    lease_end_date: date | None = None

    @validator("email")
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return _clean_email(value)


class ResidentUpdate(BaseModel):
    apartment_number: str | None = Field(default=None, min_length=1, max_length=40)
    resident_name: str | None = Field(default=None, min_length=1, max_length=160)
    email: str | None = Field(default=None, max_length=160)
    phone: str | None = Field(default=None, max_length=40)
    move_in_date: date | None = None
    lease_end_date: date | None = None

    @validator("apartment_number", "resident_name", pre=True)
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)

    @validator("email")
    @classmethod
    def validate_email(cls, value: str | None) -> str | None:
        return _clean_email(value)


class ResidentOut(OrmModel):
    id: str
    property_id: str
    apartment_number: str
    resident_name: str
    email: str | None = None
    phone: str | None = None
    move_in_date: date | None = None
    lease_end_date: date | None = None
    created_at: datetime


class ResidentBulkImport(BaseModel):
    residents: list[ResidentCreate]


class ResidentBulkImportOut(BaseModel):
    success: bool = True
    imported: int
    residents: list[ResidentOut]


class ResidentCsvImportIn(BaseModel):
    property_id: str = Field(min_length=1, max_length=36)
    csv_text: str = Field(min_length=1)
    column_mapping: dict[str, str] | None = None


class ImportErrorOut(BaseModel):
    row: int
    field: str
    message: str


class ResidentCsvPreviewOut(BaseModel):
    headers: list[str]
    column_mapping: dict[str, str]
    row_count: int
    errors: list[ImportErrorOut]
    preview: list[dict[str, str]]


class DutyTemplateCreate(BaseModel):
    property_id: str = Field(min_length=1, max_length=36)
    shift: Shift
    task: str = Field(min_length=1, max_length=300)
    display_order: int = Field(default=0, ge=0)


class DutyTemplateUpdate(BaseModel):
    shift: Shift | None = None
    task: str | None = Field(default=None, min_length=1, max_length=300)
    display_order: int | None = Field(default=None, ge=0)

    @validator("shift", "task", "display_order", pre=True)
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)


class DutyTemplateOut(OrmModel):
    id: str
    property_id: str
    shift: str
    task: str
    display_order: int


class AgentShiftSet(BaseModel):
    property_id: str = Field(min_length=1, max_length=36)
    shift: str
    agent_name: str = Field(min_length=1, max_length=120)

    @validator("shift")
    @classmethod
    def validate_shift_label(cls, value: str) -> str:
        if value not in AGENT_SHIFT_LABELS:
            raise ValueError(f"shift must be one of: {', '.join(AGENT_SHIFT_LABELS)}")
        return value


class AgentShiftOut(OrmModel):
    id: str
    property_id: str
    shift: str
    agent_name: str
    created_at: datetime


class AgentShiftMatchOut(BaseModel):
    matched: bool
    agent_name: str | None = None
    shift: str | None = None


class AnnouncementCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    category: str = "General"
    content: str = Field(min_length=1)
    image_url: str | None = Field(default=None, max_length=500)
    is_pinned: bool = False
    is_published: bool = False
    published_at: datetime | None = None

    @validator("category")
    @classmethod
    def validate_category(cls, value: str) -> str:
        if value not in ANNOUNCEMENT_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(ANNOUNCEMENT_CATEGORIES)}")
        return value


class AnnouncementUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    category: str | None = None
    content: str | None = Field(default=None, min_length=1)
    image_url: str | None = Field(default=None, max_length=500)
    is_pinned: bool | None = None
    is_published: bool | None = None
    published_at: datetime | None = None
    archived_at: datetime | None = None

    @validator("title", "category", "content", "is_pinned", "is_published", pre=True)
    @classmethod
    def reject_null(cls, value):
        return _not_null(value)

    @validator("category")
    @classmethod
    def validate_category(cls, value: str | None) -> str | None:
        if value is not None and value not in ANNOUNCEMENT_CATEGORIES:
            raise ValueError(f"category must be one of: {', '.join(ANNOUNCEMENT_CATEGORIES)}")
        return value


class AnnouncementOut(OrmModel):
    id: str
    title: str
    category: str
    content: str
    author: str
    image_url: str | None = None
    is_pinned: bool
    is_published: bool
    published_at: datetime | None = None
    archived_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
    is_read: bool | None = None


class AnnouncementBatchRead(BaseModel):
    announcement_ids: list[str] = Field(min_length=1, max_length=500)


class UnreadCountOut(BaseModel):
    count: int


class DispatchSummaryOut(BaseModel):
    shift: str
    date: str
    found: int
    sent: int
    skipped: int
    failed: int
