from __future__ import annotations

"""Create the scheduling tables and seed the global rule rows.

Safe to run multiple times: existing tables and rules are left untouched.
"""

import argparse
import sys
from pathlib import Path

# Allow running this script from any working directory.
BACKEND_DIR = Path(__file__).resolve().parents[1]
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import inspect, select
from sqlalchemy.orm import Session

from core.bootstrap import bootstrap_schema
from core.database import ENGINE
from models import Base, Rule


GLOBAL_RULES = [
    ("Period uniqueness", "SCHEDULE_OVERLAP", "A student may take at most one course per period."),
    ("Seat capacity", "CAPACITY", "A course may not enroll more students than its capacity."),
    ("Prerequisites", "PREREQUISITE", "Declared prerequisites must be completed or concurrently scheduled."),
]


def main() -> None:
    parser = argparse.ArgumentParser()
    parser.add_argument("--yes", action="store_true", help="Actually apply changes")
    args = parser.parse_args()

    existing = set(inspect(ENGINE).get_table_names())
    missing = [name for name in Base.metadata.tables if name not in existing]

    if not args.yes:
        print("Dry run. Re-run with --yes to apply.")
        print("Tables to create:", ", ".join(missing) if missing else "(none)")
        print("Global rules to seed:", ", ".join(name for name, _t, _d in GLOBAL_RULES))
        return

    bootstrap_schema(ENGINE)

    with Session(ENGINE) as db:
        have = set(db.execute(select(Rule.name)).scalars().all())
        added = 0
        for name, rule_type, description in GLOBAL_RULES:
            if name in have:
                continue
            db.add(Rule(name=name, type=rule_type, description=description, is_active=True))
            added += 1
        db.commit()

    print(f"Created {len(missing)} table(s); seeded {added} global rule(s).")


if __name__ == "__main__":
    main()
