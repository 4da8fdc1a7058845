"""Quality gate: pass/fail for a scan from classified findings and project policy."""

import math
from collections import Counter
from typing import Any

from app.schemas.capabilities import PlanCapabilities
from app.schemas.findings import NormalizedFinding
from app.schemas.gate import GatePolicy, GateResult

GATE_MODES = ("zero-new", "category", "severity", "both")
DEFAULT_MODE = "zero-new"

# Buckets always evaluated in threshold modes; a missing limit means 0.
CATEGORY_BUCKETS = ("SECURITY", "SECRET", "QUALITY", "DEAD_CODE")
SEVERITY_BUCKETS = ("CRITICAL", "HIGH", "MEDIUM", "LOW")


def _limit(value: Any) -> int:
    """max(0, floor(value)); anything non-numeric counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number):
        return 0
    if math.isinf(number):
        return 0 if number < 0 else 2**31 - 1
    return max(0, math.floor(number))


def _thresholds(raw: Any, buckets: tuple[str, ...]) -> dict[str, int]:
    configured = raw if isinstance(raw, dict) else {}
    limits = {bucket: _limit(configured.get(bucket)) for bucket in buckets}
    for key, value in configured.items():
        name = str(key).strip().upper()
        if name and name not in limits:
            limits[name] = _limit(value)
    return limits


def gate_policy_from_config(policy_config: Any) -> GatePolicy:
    """Read policy_config["gate"]; only an explicit `enabled: false` disables the gate."""
    policy = policy_config if isinstance(policy_config, dict) else {}
    gate = policy.get("gate") if isinstance(policy.get("gate"), dict) else {}
    mode = str(gate.get("mode") or DEFAULT_MODE).strip().lower()
    if mode not in GATE_MODES:
        mode = DEFAULT_MODE
    return GatePolicy(
        enabled=gate.get("enabled") is not False,
        mode=mode,
        by_category=_thresholds(gate.get("by_category"), CATEGORY_BUCKETS),
        by_severity=_thresholds(gate.get("by_severity"), SEVERITY_BUCKETS),
    )


def _is_critical_security(f: NormalizedFinding) -> bool:
    return f.severity == "CRITICAL" and f.category == "SECURITY"


def _within(counts: Counter[str], limits: dict[str, int]) -> bool:
    return all(counts.get(bucket, 0) <= limit for bucket, limit in limits.items())


def evaluate_gate(
    findings: list[NormalizedFinding],
    policy: GatePolicy,
    *,
    is_whitelisted: bool,
    capabilities: PlanCapabilities,
) -> GateResult:
    """
    Evaluate the gate; the first matching rule decides:

    1. commit override (plan must allow overrides) -> pass
    2. gate disabled -> pass
    3. any unsuppressed CRITICAL SECURITY finding, new or legacy -> fail
    4. zero-new mode -> pass iff no unsuppressed new finding
    5. threshold modes -> pass iff every bucket is within its limit

    Suppressed findings never block, including CRITICAL SECURITY ones.
    """
    unsuppressed_new = [f for f in findings if f.is_new and not f.is_suppressed]
    suppressed_new = sum(1 for f in findings if f.is_new and f.is_suppressed)
    by_category: Counter[str] = Counter(f.category for f in unsuppressed_new)
    by_severity: Counter[str] = Counter(f.severity for f in unsuppressed_new)
    critical_security = sum(
        1 for f in findings if not f.is_suppressed and _is_critical_security(f)
    )

    if is_whitelisted and capabilities.overrides_enabled:
        passed, reason = True, "override"
    elif not policy.enabled:
        passed, reason = True, "gate-disabled"
    elif critical_security > 0:
        passed, reason = False, "critical-security"
    elif policy.mode == "zero-new":
        passed, reason = not unsuppressed_new, "zero-new"
    else:
        passed = True
        if policy.mode in ("category", "both"):
            passed = passed and _within(by_category, policy.by_category)
        if policy.mode in ("severity", "both"):
            passed = passed and _within(by_severity, policy.by_severity)
        reason = "thresholds"

    return GateResult(
        passed=passed,
        reason=reason,
        enabled=policy.enabled,
        mode=policy.mode,
        unsuppressed_new_count=len(unsuppressed_new),
        suppressed_new_count=suppressed_new,
        legacy_count=len(findings) - len(unsuppressed_new) - suppressed_new,
        critical_security_count=critical_security,
        unsuppressed_new_by_category=dict(by_category),
        unsuppressed_new_by_severity=dict(by_severity),
        thresholds={"by_category": policy.by_category, "by_severity": policy.by_severity},
    )


def gate_message(result: GateResult) -> str:
    if result.passed:
        return "Quality Gate Passed."
    if result.reason == "critical-security":
        return (
            f"Quality Gate Failed! {result.critical_security_count} critical security "
            f"issue(s) found; {result.unsuppressed_new_count} new violations introduced."
        )
    return f"Quality Gate Failed! {result.unsuppressed_new_count} new violations introduced."
