from io import BytesIO

from reportlab.lib.pagesizes import LETTER
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .models import DailyReport

LEFT = 50
RIGHT = 50
LINE = 15
BOTTOM = 60


def report_pdf_filename(report: DailyReport) -> str:
    return f"daily-report-{report.report_date.isoformat()}.pdf"


class _Writer:
    """Top-down text cursor that starts a new page when it runs out of room."""

    def __init__(self, c: canvas.Canvas, width: float, height: float):
        self.c = c
        self.width = width
        self.height = height
        self.y = height - 50
        self.font = ("Helvetica", 11)

    def set_font(self, name: str, size: int) -> None:
        self.font = (name, size)
        self.c.setFont(name, size)

    def line(self, text: str, indent: int = 0, gap: int = LINE) -> None:
        max_width = self.width - LEFT - RIGHT - indent
        for chunk in simpleSplit(text, self.font[0], self.font[1], max_width) or [""]:
            if self.y < BOTTOM:
                self.c.showPage()
                self.y = self.height - 50
                self.c.setFont(*self.font)
            self.c.drawString(LEFT + indent, self.y, chunk)
            self.y -= gap

    def heading(self, text: str) -> None:
        self.y -= 8
        self.set_font("Helvetica-Bold", 13)
        self.line(text, gap=18)
        self.set_font("Helvetica", 11)


def build_daily_report_pdf(report: DailyReport, property_name: str | None) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=LETTER)
    width, height = LETTER
    w = _Writer(c, width, height)

    w.set_font("Helvetica-Bold", 18)
    w.line("Front Desk Daily Report", gap=28)
    w.set_font("Helvetica", 12)
    w.line(f"Property: {property_name or 'Unknown'}")
    w.line(f"Date: {report.report_date.isoformat()}")
    w.line(f"Agent: {report.agent_name}")
    if report.shift_time:
        w.line(f"Shift: {report.current_shift or '-'} ({report.shift_time})")

    checkins = list(report.guest_checkins)
    w.heading(f"Guest Check-ins ({len(checkins)})")
    if not checkins:
        w.line("No check-ins recorded", indent=10)
    for guest in checkins:
        w.line(f"{guest.check_in_time}  {guest.guest_name} - Apt {guest.apartment} [{guest.shift}]", indent=10)
        if guest.notes:
            w.line(f"Notes: {guest.notes}", indent=24)

    audits = list(report.package_audits)
    w.heading(f"Package Audit ({len(audits)})")
    groups = (
        ("Active", "active"),
        ("Picked Up", "picked_up"),
        ("Returned to Sender", "returned_to_sender"),
    )
    for label, status in groups:
        rows = [p for p in audits if p.status == status]
        w.set_font("Helvetica-Bold", 11)
        w.line(f"{label} ({len(rows)})", indent=10)
        w.set_font("Helvetica", 11)
        for pkg in rows:
            w.line(
                f"{pkg.resident_name or 'Unknown'} - Room {pkg.room_number} | "
                f"{pkg.storage_location or '-'} | {pkg.carrier or '-'} | {pkg.received_time or '-'}",
                indent=24,
            )
            if pkg.status_changed_by:
                w.line(f"Handled by {pkg.status_changed_by}", indent=36)

    duties = list(report.daily_duties)
    done = sum(1 for d in duties if d.completed)
    w.heading(f"Daily Duties ({done}/{len(duties)} complete)")
    for duty in duties:
        mark = "[x]" if duty.completed else "[ ]"
        w.line(f"{mark} {duty.task}", indent=10)

    notes = [n for n in report.shift_notes if (n.content or "").strip()]
    w.heading("Shift Notes")
    if not notes:
        w.line("No notes", indent=10)
    for note in notes:
        who = f" - {note.agent_name}" if note.agent_name else ""
        w.set_font("Helvetica-Bold", 11)
        w.line(f"{note.shift} shift{who}", indent=10)
        w.set_font("Helvetica", 11)
        for text_line in note.content.splitlines():
            w.line(text_line, indent=24)

    c.showPage()
    c.save()
    return buf.getvalue()
