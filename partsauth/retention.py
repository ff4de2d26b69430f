"""
CLI entrypoint for the retention job. Run from cron, e.g.:

  python -m partsauth.retention

Or hourly: 0 * * * * cd /path/to/partsauth && .venv/bin/python -m partsauth.retention
"""

import logging
import sys

from sqlalchemy.exc import SQLAlchemyError

from partsauth.core.config import get_settings
from partsauth.core.database import SessionLocal
from partsauth.services.retention import run_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run retention: purge expired refresh tokens and old login attempts."""
    settings = get_settings()
    db = SessionLocal()
    try:
        tokens_deleted, attempts_deleted = run_retention(db, settings)
        logger.info(
            "Retention completed: tokens_deleted=%s attempts_deleted=%s",
            tokens_deleted,
            attempts_deleted,
        )
        return 0
    except SQLAlchemyError as e:
        logger.exception("Retention job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
