import csv
from io import StringIO

from .models import DailyReport

CSV_HEADER = ["Type", "Name", "Apartment", "Time", "Shift", "Status", "Notes"]


def export_report_csv(report: DailyReport) -> str:
    out = StringIO()
    w = csv.writer(out)
    w.writerow(CSV_HEADER)

    for guest in report.guest_checkins:
        w.writerow(["Check-in", guest.guest_name, guest.apartment, guest.check_in_time, guest.shift, "", guest.notes or ""])

    for pkg in report.package_audits:
        w.writerow(
            [
                "Package",
                pkg.resident_name or "",
                pkg.room_number,
                pkg.received_time or "",
                pkg.shift,
                pkg.status,
                pkg.notes or "",
            ]
        )

    for duty in report.daily_duties:
        stamp = duty.completed_at.isoformat(timespec="minutes") if duty.completed_at else ""
        w.writerow(["Duty", duty.task, "", stamp, report.current_shift or "", "Completed" if duty.completed else "Pending", ""])

    for note in report.shift_notes:
        w.writerow(["Note", note.agent_name or "", "", note.shift_time or "", note.shift, "", note.content])

    return out.getvalue()
