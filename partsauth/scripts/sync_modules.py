"""
Insert a modules row for every ModuleName that is missing, so startup validation passes:
  python -m partsauth.scripts.sync_modules [--dry-run]
"""
import argparse
import logging
import sys

from sqlalchemy import select
from sqlalchemy.orm import Session

from partsauth.core.database import SessionLocal
from partsauth.models import Module
from partsauth.services.permissions import ModuleName, normalize_module_name

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def missing_modules(db: Session) -> list[ModuleName]:
    present = {normalize_module_name(name) for name in db.execute(select(Module.name)).scalars()}
    return [m for m in ModuleName if m.value not in present]


def sync_modules(db: Session, dry_run: bool = False) -> list[ModuleName]:
    """Add rows for missing modules; returns what was (or would be) added."""
    missing = missing_modules(db)
    if missing and not dry_run:
        db.add_all(Module(name=m.value) for m in missing)
        db.commit()
    return missing


def main() -> int:
    parser = argparse.ArgumentParser(description="Create missing permission modules.")
    parser.add_argument("--dry-run", action="store_true", help="Only list missing modules")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        added = sync_modules(db, dry_run=args.dry_run)
        verb = "Missing" if args.dry_run else "Added"
        logger.info("%s modules: %s", verb, ", ".join(m.value for m in added) or "none")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
