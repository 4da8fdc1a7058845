"""Decide, per finding, whether it is new in this scan and why."""

from collections import Counter
from typing import Literal

from app.schemas.capabilities import PlanCapabilities
from app.schemas.findings import NormalizedFinding
from app.services.baseline import baseline_key
from app.services.pr_diff import DiffScope

DetectionMode = Literal["pr-diff", "baseline", "first-scan"]


def detection_mode(
    diff_scope: DiffScope | None,
    capabilities: PlanCapabilities,
    has_baseline: bool,
) -> DetectionMode:
    """Which of the three classification strategies applies to this scan."""
    if capabilities.pr_diff_enabled and diff_scope is not None:
        return "pr-diff"
    if not has_baseline:
        return "first-scan"
    return "baseline"


def classify_by_diff(finding: NormalizedFinding, scope: DiffScope) -> NormalizedFinding:
    """
    New iff the finding sits on a PR-changed line. Files whose patch GitHub did
    not return count as wholly changed.
    """
    lines = scope.changed_lines.get(finding.file_path)
    if lines is not None:
        if finding.line_number in lines:
            return finding.model_copy(update={"is_new": True, "new_reason": "pr-changed-line"})
        return finding.model_copy(update={"is_new": False, "new_reason": "legacy"})
    if finding.file_path in scope.changed_files:
        return finding.model_copy(update={"is_new": True, "new_reason": "pr-file-fallback"})
    return finding.model_copy(update={"is_new": False, "new_reason": "legacy"})


def classify_findings(
    findings: list[NormalizedFinding],
    *,
    diff_scope: DiffScope | None,
    capabilities: PlanCapabilities,
    baseline_credits: Counter[tuple[str, str]],
    has_baseline: bool,
) -> list[NormalizedFinding]:
    """
    Set is_new/new_reason on every finding.

    PR-diff data wins when enabled and available. Without a baseline nothing is
    new. Otherwise each finding consumes one baseline credit for its
    (rule_id, file_path); once a key's credits run out, further findings with
    that key are new. Line numbers are ignored so moved code stays legacy.
    """
    mode = detection_mode(diff_scope, capabilities, has_baseline)
    if mode == "pr-diff":
        return [classify_by_diff(f, diff_scope) for f in findings]  # type: ignore[arg-type]
    if mode == "first-scan":
        return [
            f.model_copy(update={"is_new": False, "new_reason": "first-scan-baseline"})
            for f in findings
        ]

    credits = Counter(baseline_credits)
    classified: list[NormalizedFinding] = []
    for f in findings:
        key = baseline_key(f.rule_id, f.file_path)
        if credits[key] > 0:
            credits[key] -= 1
            classified.append(f.model_copy(update={"is_new": False, "new_reason": "legacy"}))
        else:
            classified.append(
                f.model_copy(update={"is_new": True, "new_reason": "not-in-baseline"})
            )
    return classified
