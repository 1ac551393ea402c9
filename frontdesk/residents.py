import csv
import re
from datetime import date
from io import StringIO

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from .models import Resident
from .services import get_property

log = structlog.get_logger("frontdesk.residents")

RESIDENT_FIELDS = (
    "apartment_number",
    "resident_name",
    "email",
    "phone",
    "move_in_date",
    "lease_end_date",
)

FIELD_LABELS = {
    "apartment_number": "Apartment Number",
    "resident_name": "Resident Name",
    "email": "Email",
    "phone": "Phone",
    "move_in_date": "Move-in Date",
    "lease_end_date": "Lease End Date",
}

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def list_residents(db: Session, property_id: str) -> list[Resident]:
    return list(
        db.execute(
            select(Resident)
            .where(Resident.property_id == property_id)
            .order_by(Resident.apartment_number.asc(), Resident.resident_name.asc())
        )
        .scalars()
        .all()
    )


def lookup_residents(db: Session, property_id: str, apartment_number: str) -> list[Resident]:
    return list(
        db.execute(
            select(Resident)
            .where(
                Resident.property_id == property_id,
                Resident.apartment_number == apartment_number.strip(),
            )
            .order_by(Resident.resident_name.asc())
        )
        .scalars()
        .all()
    )


def create_resident(db: Session, **fields) -> Resident:
    if not get_property(db, fields["property_id"]):
        raise LookupError("Property not found")
    row = Resident(**fields)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row


def update_resident(db: Session, resident_id: str, **fields) -> Resident | None:
    row = db.get(Resident, resident_id)
    if not row:
        return None
    for key, value in fields.items():
        setattr(row, key, value)
    db.commit()
    db.refresh(row)
    return row


def delete_resident(db: Session, resident_id: str) -> bool:
    row = db.get(Resident, resident_id)
    if not row:
        return False
    db.delete(row)
    db.commit()
    return True


def bulk_create_residents(db: Session, residents: list[dict]) -> list[Resident]:
    """Insert every resident in one transaction; nothing is written if any row fails."""
    if not residents:
        raise ValueError("Invalid import data - expected a non-empty list of residents")

    property_ids = {item["property_id"] for item in residents}
    for property_id in property_ids:
        if not get_property(db, property_id):
            raise LookupError("Property not found")

    rows = [Resident(**item) for item in residents]
    try:
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise
    for row in rows:
        db.refresh(row)
    log.info("residents_imported", count=len(rows), property_ids=sorted(property_ids))
    return rows


def auto_map_columns(headers: list[str]) -> dict[str, str]:
    """Guess which CSV header feeds which resident field.

    Headers are checked in order, so a later header wins over an earlier one
    for the same field. Each header maps to at most one field.
    """
    mapping: dict[str, str] = {}
    for header in headers:
        lower = header.lower().strip()
        if "unit" in lower or "apartment" in lower or lower == "apt":
            mapping["apartment_number"] = header
        elif "name" in lower or "resident" in lower:
            mapping["resident_name"] = header
        elif "email" in lower:
            mapping["email"] = header
        elif "phone" in lower or "tel" in lower:
            mapping["phone"] = header
        elif "move" in lower:
            mapping["move_in_date"] = header
        elif "lease" in lower or "end" in lower:
            mapping["lease_end_date"] = header
    return mapping


def parse_csv(csv_text: str) -> tuple[list[str], list[dict[str, str]]]:
    reader = csv.DictReader(StringIO(csv_text.lstrip("\ufeff")))
    headers = [h.strip() for h in (reader.fieldnames or [])]
    reader.fieldnames = headers
    rows = []
    for raw in reader:
        row = {key: (value or "").strip() for key, value in raw.items() if key is not None}
        if any(row.values()):
            rows.append(row)
    return headers, rows


def _check_date(value: str) -> str | None:
    if not ISO_DATE_RE.match(value):
        return "Date must be in YYYY-MM-DD format"
    try:
        date.fromisoformat(value)
    except ValueError:
        return "Date is not a valid calendar date"
    return None


def validate_rows(rows: list[dict[str, str]], mapping: dict[str, str]) -> list[dict]:
    errors: list[dict] = []
    for field in ("apartment_number", "resident_name"):
        if not mapping.get(field):
            errors.append({
                "row": 0,
                "field": FIELD_LABELS[field],
                "message": f"{FIELD_LABELS[field]} is required - please map this column",
            })
    if errors:
        return errors

    for index, row in enumerate(rows, start=1):
        if not row.get(mapping["apartment_number"], ""):
            errors.append({"row": index, "field": "Apartment Number", "message": "Apartment number is required"})
        if not row.get(mapping["resident_name"], ""):
            errors.append({"row": index, "field": "Resident Name", "message": "Resident name is required"})

        email_col = mapping.get("email")
        email = row.get(email_col, "") if email_col else ""
        if email and not EMAIL_RE.match(email):
            errors.append({"row": index, "field": "Email", "message": "Invalid email format"})

        for field in ("move_in_date", "lease_end_date"):
            col = mapping.get(field)
            value = row.get(col, "") if col else ""
            if value:
                problem = _check_date(value)
                if problem:
                    errors.append({"row": index, "field": FIELD_LABELS[field], "message": problem})
    return errors


def rows_to_residents(property_id: str, rows: list[dict[str, str]], mapping: dict[str, str]) -> list[dict]:
    residents = []
    for row in rows:
        item: dict = {"property_id": property_id}
        for field in RESIDENT_FIELDS:
            col = mapping.get(field)
            value = row.get(col, "") if col else ""
            if field in ("move_in_date", "lease_end_date"):
                item[field] = date.fromisoformat(value) if value else None
            elif field in ("apartment_number", "resident_name"):
                item[field] = value
            else:
                item[field] = value or None
        residents.append(item)
    return residents


def preview_import(csv_text: str, column_mapping: dict[str, str] | None = None) -> dict:
    headers, rows = parse_csv(csv_text)
    mapping = dict(column_mapping) if column_mapping else auto_map_columns(headers)
    unknown = [field for field in mapping if field not in RESIDENT_FIELDS]
    if unknown:
        raise ValueError(f"unknown resident fields in column_mapping: {', '.join(sorted(unknown))}")
    missing = [col for col in mapping.values() if col not in headers]
    if missing:
        raise ValueError(f"columns not found in CSV: {', '.join(missing)}")
    return {
        "headers": headers,
        "column_mapping": mapping,
        "row_count": len(rows),
        "errors": validate_rows(rows, mapping),
        "preview": rows[:10],
        "rows": rows,
    }
