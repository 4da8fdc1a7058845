"""
CLI entrypoint for the scan retention backfill. Run from cron, e.g.:

  python -m app.retention

Ingestion already trims each project as scans arrive; this job catches up
after a plan downgrade. Nightly: 0 3 * * * cd /path/to/scangate && .venv/bin/python -m app.retention
"""

import logging
import sys

from app.core.config import get_settings
from app.core.database import SessionLocal
from app.services.retention import run_retention

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%SZ",
)
logger = logging.getLogger(__name__)


def main() -> int:
    """Run retention: trim every project to its plan's stored-scan cap."""
    settings = get_settings()
    if SessionLocal is None:
        logger.error("DATABASE_URL is not set; nothing to trim.")
        return 1
    db = SessionLocal()
    try:
        projects_trimmed, scans_deleted = run_retention(db, settings)
        logger.info(
            "Retention completed: projects_trimmed=%s scans_deleted=%s",
            projects_trimmed,
            scans_deleted,
        )
        return 0
    except Exception as e:
        logger.exception("Retention job failed: %s", e)
        return 1
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
