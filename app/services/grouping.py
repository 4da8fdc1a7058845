"""Group a scan's findings and derive the fingerprint that identifies each group."""

import hashlib
from typing import Protocol

from app.services.normalize import normalize_path

FINGERPRINT_LENGTH = 16

GroupKey = tuple[str, str, int]


class GroupableFinding(Protocol):
    rule_id: str
    file_path: str
    line_number: int


def compute_fingerprint(
    project_id: int,
    rule_id: str,
    file_path: str,
    line_number: int,
) -> str:
    """
    Stable id of "the same defect": project, rule, normalized file and line.
    Message and snippet are not part of it, so text drift never splits a group.
    """
    raw = f"{project_id}|{rule_id}|{normalize_path(file_path)}|{int(line_number or 0)}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def group_findings(
    findings: list[GroupableFinding],
    line_window: int = 0,
) -> dict[GroupKey, list[GroupableFinding]]:
    """
    Group by (rule_id, file_path, line_number) in first-encounter order.

    The first member of each group is its canonical finding and its line is the
    group's line. With line_window > 0 a finding joins an existing group of the
    same rule and file whose canonical line is within the window.
    """
    groups: dict[GroupKey, list[GroupableFinding]] = {}
    by_rule_file: dict[tuple[str, str], list[GroupKey]] = {}
    for f in findings:
        key: GroupKey = (f.rule_id, f.file_path, int(f.line_number or 0))
        if key not in groups and line_window > 0:
            for existing in by_rule_file.get((f.rule_id, f.file_path), []):
                if abs(existing[2] - key[2]) <= line_window:
                    key = existing
                    break
        if key not in groups:
            groups[key] = []
            by_rule_file.setdefault((f.rule_id, f.file_path), []).append(key)
        groups[key].append(f)
    return groups
