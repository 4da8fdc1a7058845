"""Upsert deduplicated issue groups for a scan and link its findings to them."""

import logging
from collections.abc import Callable
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from app.models import Finding, IssueGroup
from app.services.grouping import compute_fingerprint, group_findings

logger = logging.getLogger(__name__)

GROUP_LINK_BATCH_SIZE = 500
_CONFLICT_TARGET = ["org_id", "project_id", "fingerprint"]


class GroupingSummary(BaseModel):
    groups: int = 0
    created: int = 0
    findings_linked: int = 0


def _dialect_insert(db: Session) -> Callable:
    name = db.get_bind().dialect.name
    if name == "postgresql":
        return postgresql.insert
    if name == "sqlite":
        return sqlite.insert
    raise RuntimeError(f"Issue-group upsert is not supported on dialect {name!r}")


def _upsert_group(
    db: Session,
    *,
    org_id: int,
    project_id: int,
    scan_id: int,
    fingerprint: str,
    members: list[Finding],
    now: datetime,
) -> tuple[int, int | None]:
    """
    INSERT ... ON CONFLICT DO UPDATE for one group.

    Returns (group id, first_seen_scan_id as stored after the upsert).
    first_seen_* are not in the payload; see _mark_first_seen.
    """
    canonical = members[0]
    affected_files = sorted({m.file_path for m in members if m.file_path})
    insert = _dialect_insert(db)
    stmt = insert(IssueGroup).values(
        org_id=org_id,
        project_id=project_id,
        fingerprint=fingerprint,
        rule_id=canonical.rule_id,
        category=canonical.category,
        severity=canonical.severity,
        canonical_file=canonical.file_path,
        canonical_line=canonical.line_number,
        canonical_snippet=canonical.snippet,
        occurrence_count=len(members),
        affected_files=affected_files,
        status="open",
        last_seen_at=now,
        last_seen_scan_id=scan_id,
    )
    table = IssueGroup.__table__
    stmt = stmt.on_conflict_do_update(
        index_elements=_CONFLICT_TARGET,
        set_={
            "rule_id": stmt.excluded.rule_id,
            "category": stmt.excluded.category,
            "severity": stmt.excluded.severity,
            "canonical_file": stmt.excluded.canonical_file,
            "canonical_line": stmt.excluded.canonical_line,
            "canonical_snippet": stmt.excluded.canonical_snippet,
            "occurrence_count": table.c.occurrence_count + stmt.excluded.occurrence_count,
            "affected_files": stmt.excluded.affected_files,
            "status": "open",
            "last_seen_at": stmt.excluded.last_seen_at,
            "last_seen_scan_id": stmt.excluded.last_seen_scan_id,
        },
    ).returning(table.c.id, table.c.first_seen_scan_id)
    row = db.execute(stmt).one()
    return row[0], row[1]


def _mark_first_seen(db: Session, group_id: int, scan_id: int, now: datetime) -> bool:
    """
    Set first_seen_* only while still null. Under concurrent upserts of the same
    fingerprint exactly one writer wins; returns whether this call did.
    """
    result = db.execute(
        update(IssueGroup)
        .where(IssueGroup.id == group_id, IssueGroup.first_seen_scan_id.is_(None))
        .values(first_seen_at=now, first_seen_scan_id=scan_id)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def _link_findings(db: Session, group_id: int, finding_ids: list[int]) -> None:
    for start in range(0, len(finding_ids), GROUP_LINK_BATCH_SIZE):
        batch = finding_ids[start : start + GROUP_LINK_BATCH_SIZE]
        db.execute(
            update(Finding)
            .where(Finding.id.in_(batch))
            .values(group_id=group_id)
            .execution_options(synchronize_session=False)
        )


def upsert_issue_groups(
    db: Session,
    *,
    org_id: int,
    project_id: int,
    scan_id: int,
    findings: list[Finding],
    now: datetime,
    line_window: int = 0,
) -> GroupingSummary:
    """
    Deduplicate a scan's persisted findings into issue groups and back-link them.

    Commits on success. The uniqueness constraint on (org_id, project_id,
    fingerprint) turns a racing second writer into an update.
    """
    summary = GroupingSummary()
    groups = group_findings(findings, line_window=line_window)
    for (rule_id, file_path, line_number), members in groups.items():
        fingerprint = compute_fingerprint(project_id, rule_id, file_path, line_number)
        group_id, first_seen_scan_id = _upsert_group(
            db,
            org_id=org_id,
            project_id=project_id,
            scan_id=scan_id,
            fingerprint=fingerprint,
            members=members,
            now=now,
        )
        if first_seen_scan_id is None and _mark_first_seen(db, group_id, scan_id, now):
            summary.created += 1
        _link_findings(db, group_id, [m.id for m in members])
        summary.groups += 1
        summary.findings_linked += len(members)
    db.commit()
    logger.info(
        "Issue groups for scan %s: groups=%s created=%s findings_linked=%s",
        scan_id,
        summary.groups,
        summary.created,
        summary.findings_linked,
    )
    return summary
