"""Pick the previous scan a new report is compared against."""

from collections import Counter
from typing import Literal

from pydantic import BaseModel
from sqlalchemy.orm import Session

from app.models import Finding, Project, Scan
from app.services.normalize import normalize_path

BaselineSource = Literal["same-branch", "default-branch", "none"]

_DEFAULT_BRANCH = "main"


class Baseline(BaseModel):
    """The comparison scan, or none for a project's first scan on these branches."""

    scan_id: int | None = None
    branch: str | None = None
    source: BaselineSource = "none"

    @property
    def has_baseline(self) -> bool:
        return self.scan_id is not None


def _latest_scan_id(db: Session, project_id: int, branch: str) -> int | None:
    row = (
        db.query(Scan.id)
        .filter(Scan.project_id == project_id, Scan.branch == branch)
        .order_by(Scan.created_at.desc(), Scan.id.desc())
        .first()
    )
    return row[0] if row else None


def resolve_baseline(db: Session, project: Project, branch: str) -> Baseline:
    """
    Latest scan on the same branch; else, off the default branch, the latest
    scan on the default branch; else no baseline.
    """
    scan_id = _latest_scan_id(db, project.id, branch)
    if scan_id is not None:
        return Baseline(scan_id=scan_id, branch=branch, source="same-branch")

    default_branch = (project.default_branch or "").strip() or _DEFAULT_BRANCH
    if branch != default_branch:
        scan_id = _latest_scan_id(db, project.id, default_branch)
        if scan_id is not None:
            return Baseline(scan_id=scan_id, branch=default_branch, source="default-branch")

    return Baseline()


def baseline_key(rule_id: object, file_path: object) -> tuple[str, str]:
    """Credit key: rule plus normalized file (line numbers deliberately excluded)."""
    return (str(rule_id or "UNKNOWN"), normalize_path(file_path or ""))


def load_baseline_credits(db: Session, baseline: Baseline) -> Counter[tuple[str, str]]:
    """Multiset of (rule_id, file_path) occurrences in the baseline scan."""
    credits: Counter[tuple[str, str]] = Counter()
    if not baseline.has_baseline:
        return credits
    rows = db.query(Finding.rule_id, Finding.file_path).filter(
        Finding.scan_id == baseline.scan_id
    )
    for rule_id, file_path in rows:
        credits[baseline_key(rule_id, file_path)] += 1
    return credits
