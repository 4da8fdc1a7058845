"""Write the scan row and its findings."""

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.models import Finding, Project, Scan
from app.schemas.findings import NormalizedFinding, NormalizedReport
from app.schemas.gate import GateResult

FINDING_INSERT_BATCH_SIZE = 500
INHERITED_OVERRIDE_REASON = "Inherited override"


def find_commit_override(db: Session, project_id: int, commit_hash: str) -> Scan | None:
    """An earlier scan of the same commit whose gate failure was overridden."""
    return (
        db.query(Scan)
        .filter(
            Scan.project_id == project_id,
            Scan.commit_hash == commit_hash,
            Scan.is_overridden.is_(True),
        )
        .order_by(Scan.created_at.desc())
        .first()
    )


def build_scan_stats(report: NormalizedReport, gate: GateResult) -> dict[str, Any]:
    """Client summary merged with the aggregate counts and a snapshot of the gate decision."""
    stats: dict[str, Any] = dict(report.summary)
    stats.update(
        {
            "total_findings": len(report.findings),
            "new_issues": gate.unsuppressed_new_count,
            "legacy_issues": gate.legacy_count,
            "suppressed_new_issues": gate.suppressed_new_count,
            "gate": {
                "enabled": gate.enabled,
                "mode": gate.mode,
                "passed": gate.passed,
                "reason": gate.reason,
                "thresholds": gate.thresholds,
                "unsuppressed_new_by_category": gate.unsuppressed_new_by_category,
                "unsuppressed_new_by_severity": gate.unsuppressed_new_by_severity,
            },
        }
    )
    if report.truncated_from is not None:
        stats["truncated_from"] = report.truncated_from
    return stats


def create_scan(
    db: Session,
    *,
    project: Project,
    report: NormalizedReport,
    gate: GateResult,
    is_whitelisted: bool,
    diff_context: dict[str, Any] | None,
    now: datetime,
) -> Scan:
    """Add and flush the scan row so it has an id; the caller commits."""
    scan = Scan(
        project_id=project.id,
        commit_hash=report.commit_hash,
        branch=report.branch,
        actor=report.actor,
        tool=report.tool,
        diff_context=diff_context,
        stats=build_scan_stats(report, gate),
        quality_gate_passed=gate.passed,
        is_overridden=is_whitelisted,
        override_reason=INHERITED_OVERRIDE_REASON if is_whitelisted else None,
        created_at=now,
    )
    db.add(scan)
    db.flush()
    return scan


def _finding_row(scan_id: int, f: NormalizedFinding) -> Finding:
    return Finding(
        scan_id=scan_id,
        rule_id=f.rule_id,
        tool_rule_id=f.tool_rule_id,
        file_path=f.file_path,
        line_number=f.line_number,
        message=f.message,
        snippet=f.snippet,
        severity=f.severity,
        category=f.category,
        is_new=f.is_new,
        new_reason=f.new_reason,
        is_suppressed=f.is_suppressed,
    )


def insert_findings(
    db: Session,
    scan_id: int,
    findings: list[NormalizedFinding],
) -> list[Finding]:
    """Insert findings in batches, flushing each so rows get ids. Order is preserved."""
    rows: list[Finding] = []
    for start in range(0, len(findings), FINDING_INSERT_BATCH_SIZE):
        batch = [
            _finding_row(scan_id, f)
            for f in findings[start : start + FINDING_INSERT_BATCH_SIZE]
        ]
        db.add_all(batch)
        db.flush()
        rows.extend(batch)
    return rows
