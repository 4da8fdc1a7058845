"""Convert SARIF 2.1 documents into native report findings and a summary."""

import math
from typing import Any

_SNIPPET_MAX = 2000
_DEFAULT_TOOL = "SARIF"
_NATIVE_TOOL = "skylos"

_CATEGORIES = frozenset({"SECURITY", "QUALITY", "DEAD_CODE", "SECRET"})

# Rule-id prefixes emitted by the native analyzer.
_RULE_PREFIX_CATEGORIES: tuple[tuple[str, str], ...] = (
    ("SKY-D", "SECURITY"),
    ("SKY-S", "SECRET"),
    ("SKY-U", "DEAD_CODE"),
    ("SKY-Q", "QUALITY"),
)

_SECRET_TOOLS = ("gitleaks", "trufflehog")
_SECRET_WORDS = ("secret", "apikey", "api key", "token")
_SECURITY_TOOLS = ("codeql", "semgrep", "snyk", "trivy", "bandit")


def is_sarif(body: object) -> bool:
    """True for an object carrying a `runs` array (the SARIF top-level shape)."""
    return isinstance(body, dict) and isinstance(body.get("runs"), list)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def pick_severity(level: object, security_severity: object) -> str:
    """Numeric security-severity wins (CVSS-like bands); else map the SARIF level."""
    if security_severity is not None and not isinstance(security_severity, bool):
        try:
            score = float(security_severity)
        except (TypeError, ValueError):
            score = None
        if score is not None and not math.isnan(score):
            if score >= 9:
                return "CRITICAL"
            if score >= 7:
                return "HIGH"
            if score >= 4:
                return "MEDIUM"
            return "LOW"
    lvl = str(level or "").lower()
    if lvl == "error":
        return "HIGH"
    if lvl == "warning":
        return "MEDIUM"
    return "LOW"


def _category_from_rule_id(rule_id: str) -> str | None:
    rid = rule_id.upper()
    for prefix, category in _RULE_PREFIX_CATEGORIES:
        if rid.startswith(prefix):
            return category
    return None


def pick_category(
    tool_name: str,
    rule_id: str,
    rule: dict[str, Any],
    result: dict[str, Any],
    message: str,
) -> str:
    """
    Category for a SARIF result: explicit property, then native rule prefix,
    then tool/tag/message heuristics, defaulting to QUALITY.
    """
    explicit = str(_as_dict(result.get("properties")).get("category") or "").upper()
    if explicit in _CATEGORIES:
        return explicit

    inferred = _category_from_rule_id(rule_id)
    if inferred:
        return inferred

    tool = tool_name.lower()
    tags = [str(t).lower() for t in _as_list(_as_dict(rule.get("properties")).get("tags"))]
    msg = message.lower()

    if (
        "secret" in tags
        or "secrets" in tags
        or any(name in tool for name in _SECRET_TOOLS)
        or any(word in msg for word in _SECRET_WORDS)
    ):
        return "SECRET"
    if "security" in tags or "sast" in tags or any(name in tool for name in _SECURITY_TOOLS):
        return "SECURITY"
    if "deadcode" in tags or "dead-code" in tags or "dead code" in msg or "unused" in msg:
        return "DEAD_CODE"
    return "QUALITY"


def _result_to_finding(
    tool_name: str,
    rules_by_id: dict[str, dict[str, Any]],
    result: dict[str, Any],
) -> dict[str, Any]:
    tool_rule_id = str(result.get("ruleId") or _as_dict(result.get("rule")).get("id") or "UNKNOWN")
    rule = rules_by_id.get(tool_rule_id, {})

    message_obj = _as_dict(result.get("message"))
    message = str(message_obj.get("text") or message_obj.get("markdown") or "Issue")

    locations = _as_list(result.get("locations"))
    physical = _as_dict(_as_dict(locations[0]).get("physicalLocation")) if locations else {}
    uri = str(_as_dict(physical.get("artifactLocation")).get("uri") or "")
    region = _as_dict(physical.get("region"))
    snippet_text = _as_dict(region.get("snippet")).get("text")

    rule_props = _as_dict(rule.get("properties"))
    security_severity = rule_props.get("security-severity", rule_props.get("securitySeverity"))

    # Native rule ids stay bare (e.g. SKY-D211); other tools are namespaced "Tool:Rule".
    is_native = tool_name.lower() == _NATIVE_TOOL
    return {
        "rule_id": tool_rule_id if is_native else f"{tool_name}:{tool_rule_id}",
        "tool_rule_id": tool_rule_id,
        "file_path": uri or "unknown",
        "line_number": region.get("startLine") or 0,
        "message": message,
        "severity": pick_severity(result.get("level"), security_severity),
        "category": pick_category(tool_name, tool_rule_id, rule, result, message),
        "snippet": snippet_text[:_SNIPPET_MAX] if isinstance(snippet_text, str) else None,
    }


def sarif_to_payload(sarif: dict[str, Any]) -> dict[str, Any]:
    """
    Flatten every run's results into finding dicts and build a summary.

    Returns {"summary": {...}, "findings": [...]}; findings still go through the
    regular per-finding normalization afterwards.
    """
    findings: list[dict[str, Any]] = []
    tools: list[str] = []

    for run in _as_list(sarif.get("runs")):
        run = _as_dict(run)
        driver = _as_dict(_as_dict(run.get("tool")).get("driver"))
        tool_name = str(driver.get("name") or _DEFAULT_TOOL)
        if tool_name not in tools:
            tools.append(tool_name)

        rules_by_id: dict[str, dict[str, Any]] = {}
        for rule in _as_list(driver.get("rules")):
            rule = _as_dict(rule)
            rule_id = str(rule.get("id") or "")
            if rule_id:
                rules_by_id[rule_id] = rule

        for result in _as_list(run.get("results")):
            findings.append(_result_to_finding(tool_name, rules_by_id, _as_dict(result)))

    summary = {
        "source": "sarif",
        "tools": tools,
        "danger_count": sum(
            1
            for f in findings
            if f["category"] == "SECURITY" and f["severity"] in ("HIGH", "CRITICAL")
        ),
        "quality_count": sum(1 for f in findings if f["category"] == "QUALITY"),
        "secret_count": sum(1 for f in findings if f["category"] == "SECRET"),
        "dead_code_count": sum(1 for f in findings if f["category"] == "DEAD_CODE"),
        "total_issues": len(findings),
    }
    return {"summary": summary, "findings": findings}
