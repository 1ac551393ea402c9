import argparse
import sys
from pathlib import Path

from sqlalchemy import select

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from frontdesk.authn import create_user, get_user_by_username, hash_password  # noqa: E402
from frontdesk.db import SessionLocal, init_db  # noqa: E402
from frontdesk.models import Property  # noqa: E402

DEFAULT_PASSWORD = "Welcome2024!"

DEFAULT_PROPERTIES = (
    "Queen City Elite - Main",
    "Queen City Elite - North",
    "The Ascher North CLT",
    "Greystar Property A",
    "Greystar Property B",
    "Extreme Property Service - Tower",
    "Extreme Property Service - Plaza",
    "Downtown Luxury Apartments",
    "Midtown Residences",
    "Eastside Commons",
    "Westgate Manor",
    "Northpoint Towers",
    "Southside Gardens",
)

MANAGER_ACCOUNTS = (
    ("admin", "Site Admin", "admin"),
    ("manager.north", "North Region Manager", "manager"),
    ("manager.south", "South Region Manager", "manager"),
    ("manager.east", "East Region Manager", "manager"),
    ("manager.west", "West Region Manager", "manager"),
)


def seed_properties(db) -> int:
    existing = set(db.execute(select(Property.name)).scalars().all())
    added = 0
    for name in DEFAULT_PROPERTIES:
        if name in existing:
            continue
        db.add(Property(name=name, is_active=True))
        added += 1
    db.commit()
    return added


def seed_accounts(db, password: str, reset_existing: bool) -> None:
    for username, full_name, role in MANAGER_ACCOUNTS:
        user = get_user_by_username(db, username)
        if user is None:
            create_user(db, username=username, password=password, full_name=full_name, role=role)
            print(f"[OK] Created user {username} ({full_name})")
        elif reset_existing:
            user.password_hash = hash_password(password)
            user.requires_password_change = True
            db.commit()
            print(f"[OK] Reset password for {username}")
        else:
            print(f"[SKIP] User already exists: {username}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed default properties and manager accounts")
    parser.add_argument("--password", default=DEFAULT_PASSWORD, help="Initial password for every account")
    parser.add_argument("--reset-existing", action="store_true", help="Reset the password of accounts that already exist")
    args = parser.parse_args()

    init_db()
    with SessionLocal() as db:
        added = seed_properties(db)
        print(f"[OK] Properties added: {added}")
        seed_accounts(db, args.password, args.reset_existing)

    print(f"Accounts use the password {args.password!r} and must change it on first login.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
