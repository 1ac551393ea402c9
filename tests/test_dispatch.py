from datetime import date

from frontdesk.models import DailyReport, EmailSettings, Property
from frontdesk.scheduler import dispatch_shift_reports, shutdown_scheduler, start_scheduler

DAY = date(2026, 3, 2)


def _property(db, name="Ascher Tower"):
    prop = Property(name=name)
    db.add(prop)
    db.commit()
    return prop


def _report(db, prop, shift="1st", day=DAY, shift_status=None):
    report = DailyReport(
        property_id=prop.id,
        report_date=day,
        agent_name="Jordan",
        current_shift=shift,
        shift_status=shift_status or {},
    )
    db.add(report)
    db.commit()
    return report


def test_dispatch_sends_matching_reports_and_marks_them(db):
    morning = _report(db, _property(db, "A"))
    _report(db, _property(db, "B"), shift="2nd")
    _report(db, _property(db, "C"), day=date(2026, 3, 1))

    sent = []
    summary = dispatch_shift_reports(db, "1st", today=DAY, sender=lambda _db, r: sent.append(r.id))

    assert sent == [morning.id]
    assert summary == {"shift": "1st", "date": "2026-03-02", "found": 1, "sent": 1, "skipped": 0, "failed": 0}
    db.refresh(morning)
    assert morning.shift_status["1st"]["sent"] is True
    assert morning.shift_status["1st"]["sent_at"]


def test_dispatch_skips_reports_already_sent(db):
    report = _report(db, _property(db), shift_status={"1st": {"sent": True, "sent_at": "2026-03-02T15:00:00"}})

    sent = []
    summary = dispatch_shift_reports(db, "1st", today=DAY, sender=lambda _db, r: sent.append(r.id))

    assert sent == []
    assert summary["skipped"] == 1
    db.refresh(report)
    assert report.shift_status["1st"]["sent_at"] == "2026-03-02T15:00:00"


def test_one_failed_send_does_not_stop_the_rest(db):
    broken = _report(db, _property(db, "Broken"))
    healthy = _report(db, _property(db, "Healthy"))

    def sender(_db, report):
        if report.id == broken.id:
            raise RuntimeError("smtp down")

    summary = dispatch_shift_reports(db, "1st", today=DAY, sender=sender)

    assert summary["found"] == 2
    assert summary["sent"] == 1
    assert summary["failed"] == 1
    db.refresh(broken)
    db.refresh(healthy)
    assert "sent" not in broken.shift_status.get("1st", {})
    assert healthy.shift_status["1st"]["sent"] is True


def test_default_sender_leaves_report_unsent_without_smtp(db):
    prop = _property(db)
    db.add(EmailSettings(property_id=prop.id, recipients=["ops@example.com"], format="html"))
    db.commit()
    report = _report(db, prop)

    summary = dispatch_shift_reports(db, "1st", today=DAY)

    assert summary["failed"] == 1
    db.refresh(report)
    assert not report.shift_status.get("1st", {}).get("sent")


def test_default_sender_fails_without_any_recipients(db):
    _report(db, _property(db))
    summary = dispatch_shift_reports(db, "1st", today=DAY)
    assert summary["failed"] == 1
    assert summary["sent"] == 0


def test_scheduler_registers_one_job_per_shift_end(monkeypatch):
    from frontdesk.config import settings

    monkeypatch.setattr(settings, "TIMEZONE", "America/New_York")
    scheduler = start_scheduler()
    try:
        jobs = {job.id: job for job in scheduler.get_jobs()}
        assert set(jobs) == {"dispatch_1st_shift", "dispatch_2nd_shift", "dispatch_3rd_shift"}
        assert jobs["dispatch_3rd_shift"].args == ("3rd",)
        assert start_scheduler() is scheduler
    finally:
        shutdown_scheduler()
