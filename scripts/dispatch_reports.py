import argparse
import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from frontdesk.db import SessionLocal  # noqa: E402
from frontdesk.logging_config import setup_logging  # noqa: E402
from frontdesk.scheduler import dispatch_shift_reports  # noqa: E402
from frontdesk.shifts import SHIFTS  # noqa: E402


def main() -> int:
    parser = argparse.ArgumentParser(description="Send end-of-shift reports once, outside the scheduler")
    parser.add_argument("--shift", required=True, choices=SHIFTS)
    parser.add_argument("--date", default=None, help="Report date as YYYY-MM-DD (default: today, local time)")
    args = parser.parse_args()

    setup_logging()
    day = date.fromisoformat(args.date) if args.date else None
    with SessionLocal() as db:
        summary = dispatch_shift_reports(db, args.shift, today=day)
    print(summary)
    return 1 if summary["failed"] else 0


if __name__ == "__main__":
    raise SystemExit(main())
