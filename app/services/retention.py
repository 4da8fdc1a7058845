"""Retention: keep at most a plan's number of stored scans per project."""

import logging
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.models import Finding, Organization, Project, Scan
from app.services.capabilities import get_capabilities

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def trim_scans(session: Session, project_id: int, max_scans: int) -> int:
    """
    Delete the oldest scans beyond max_scans (and their findings). Commits.

    Returns the number of scans deleted. Concurrent trims may both delete; at
    worst a few extra old scans go, which is acceptable.
    """
    count = session.query(Scan).filter(Scan.project_id == project_id).count()
    if count <= max_scans:
        return 0

    ids = [
        row[0]
        for row in session.query(Scan.id)
        .filter(Scan.project_id == project_id)
        .order_by(Scan.created_at.asc(), Scan.id.asc())
        .limit(count - max_scans)
    ]
    if not ids:
        return 0

    session.query(Finding).filter(Finding.scan_id.in_(ids)).delete(synchronize_session=False)
    deleted = session.query(Scan).filter(Scan.id.in_(ids)).delete(synchronize_session=False)
    session.commit()
    logger.info(
        "Retention: project_id=%s limit=%s scans_deleted=%s",
        project_id,
        max_scans,
        deleted,
    )
    return deleted


def run_retention(session: Session, settings: "Settings") -> tuple[int, int]:
    """
    Trim every project to its plan's stored-scan cap.

    Returns (projects_trimmed, scans_deleted). Idempotent: safe to run repeatedly.
    """
    if not settings.RETENTION_ENABLED:
        logger.info("Retention is disabled (RETENTION_ENABLED=false); skipping.")
        return (0, 0)

    projects_trimmed = 0
    scans_deleted = 0
    rows = (
        session.query(Project.id, Organization.plan)
        .join(Organization, Organization.id == Project.org_id)
        .order_by(Project.id)
        .all()
    )
    for project_id, plan in rows:
        deleted = trim_scans(session, project_id, get_capabilities(plan).max_scans_stored)
        if deleted:
            projects_trimmed += 1
            scans_deleted += deleted
    return (projects_trimmed, scans_deleted)
