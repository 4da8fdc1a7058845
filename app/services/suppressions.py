"""Match findings against a project's active suppressions."""

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import Protocol

from sqlalchemy.orm import Session

from app.models import Suppression
from app.schemas.findings import NormalizedFinding
from app.services.normalize import normalize_path

SuppressionKey = tuple[str, str, int]


class SuppressionLike(Protocol):
    rule_id: str
    file_path: str
    line_number: int
    expires_at: datetime | None
    revoked_at: datetime | None


def _as_utc(value: datetime) -> datetime:
    """Naive datetimes (e.g. from SQLite) are read as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_suppression_active(suppression: SuppressionLike, now: datetime) -> bool:
    """Not revoked, and either no expiry or an expiry strictly after now."""
    if suppression.revoked_at is not None:
        return False
    if suppression.expires_at is None:
        return True
    return _as_utc(suppression.expires_at) > _as_utc(now)


def suppression_key(rule_id: object, file_path: object, line_number: object) -> SuppressionKey:
    try:
        line = int(line_number or 0)
    except (TypeError, ValueError):
        line = 0
    return (str(rule_id or "UNKNOWN"), normalize_path(file_path or ""), line)


def active_suppression_keys(
    suppressions: Iterable[SuppressionLike],
    now: datetime,
) -> set[SuppressionKey]:
    return {
        suppression_key(s.rule_id, s.file_path, s.line_number)
        for s in suppressions
        if is_suppression_active(s, now)
    }


def load_active_suppression_keys(
    db: Session,
    project_id: int,
    now: datetime,
) -> set[SuppressionKey]:
    """Unrevoked suppressions of a project, filtered by expiry against now."""
    rows = (
        db.query(Suppression)
        .filter(Suppression.project_id == project_id, Suppression.revoked_at.is_(None))
        .all()
    )
    return active_suppression_keys(rows, now)


def apply_suppressions(
    findings: list[NormalizedFinding],
    active_keys: set[SuppressionKey],
    enabled: bool,
) -> list[NormalizedFinding]:
    """Flag is_suppressed on exact (rule, file, line) matches. is_new is left as is."""
    return [
        f.model_copy(
            update={
                "is_suppressed": enabled
                and suppression_key(f.rule_id, f.file_path, f.line_number) in active_keys
            }
        )
        for f in findings
    ]
