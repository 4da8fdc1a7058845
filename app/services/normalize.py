"""Normalize incoming scan reports (native or SARIF) to the canonical NormalizedReport."""

import logging
import math
import re
from typing import Any
from urllib.parse import unquote

from app.schemas.findings import (
    CATEGORY_VALUES,
    DEFAULT_CATEGORY,
    DEFAULT_SEVERITY,
    SEVERITY_VALUES,
    NormalizedFinding,
    NormalizedReport,
)
from app.services.sarif import is_sarif, sarif_to_payload

logger = logging.getLogger(__name__)

MAX_BODY_SIZE_MB = 5
MAX_BODY_BYTES = MAX_BODY_SIZE_MB * 1024 * 1024
MAX_FINDINGS = 5000
MAX_RULE_ID_LENGTH = 100
MAX_FILE_PATH_LENGTH = 500
MAX_MESSAGE_LENGTH = 1000
MAX_SNIPPET_LENGTH = 2000
MAX_REF_LENGTH = 255
# Largest value the INTEGER line column holds.
MAX_LINE_NUMBER = 2**31 - 1

_DEFAULT_RULE_ID = "UNKNOWN"
_DEFAULT_COMMIT = "local"
_DEFAULT_BRANCH = "main"
_DEFAULT_ACTOR = "unknown"
_DEFAULT_SARIF_ACTOR = "sarif"

# Severity aliases (already uppercased) -> canonical level.
_SEVERITY_ALIASES: dict[str, str] = {
    "CRIT": "CRITICAL",
    "BLOCKER": "CRITICAL",
    "ERROR": "HIGH",
    "MAJOR": "HIGH",
    "MED": "MEDIUM",
    "MODERATE": "MEDIUM",
    "WARNING": "MEDIUM",
    "WARN": "MEDIUM",
    "MINOR": "LOW",
    "NOTE": "LOW",
    "INFORMATIONAL": "INFO",
    "INFORMATIVE": "INFO",
}

_CATEGORY_ALIASES: dict[str, str] = {
    "SECRETS": "SECRET",
    "DEADCODE": "DEAD_CODE",
    "DEAD-CODE": "DEAD_CODE",
    "DEAD CODE": "DEAD_CODE",
    "UNUSED": "DEAD_CODE",
    "SEC": "SECURITY",
}

_FILE_URI_PREFIX = re.compile(r"^file:/*", re.IGNORECASE)
_DRIVE_LETTER = re.compile(r"^[A-Za-z]:/")
_LEADING_SLASHES = re.compile(r"^/+")
# CI workspace checkouts: GitHub-hosted runners, container jobs, and actions' /github/workspace.
_CI_WORKSPACE_PREFIXES = (
    re.compile(r"^home/runner/work/[^/]+/[^/]+/"),
    re.compile(r"^__w/[^/]+/[^/]+/"),
    re.compile(r"^github/workspace/"),
)


def _normalize_path_once(path: str) -> str:
    s = path
    try:
        s = unquote(s, errors="strict")
    except UnicodeDecodeError:
        pass
    s = s.replace("\\", "/")
    s = _FILE_URI_PREFIX.sub("", s)
    s = _DRIVE_LETTER.sub("", s)
    s = _LEADING_SLASHES.sub("", s)
    for prefix in _CI_WORKSPACE_PREFIXES:
        s = prefix.sub("", s)
    return s.strip()


def normalize_path(path: object) -> str:
    """
    Make a reported file path repo-relative with forward slashes.

    Percent-decodes, converts backslashes, strips file:// URIs, drive letters,
    leading slashes and CI workspace prefixes. Applied until stable, so
    normalize_path(normalize_path(p)) == normalize_path(p).
    """
    current = "" if path is None else str(path)
    # Every changing pass shortens the string or removes backslashes, so this ends.
    while True:
        nxt = _normalize_path_once(current)
        if nxt == current:
            return current
        current = nxt


def truncate(value: object, max_len: int) -> str | None:
    """Cap text at max_len characters, appending an ellipsis when cut; empty -> None."""
    if value is None:
        return None
    text = value if isinstance(value, str) else str(value)
    if not text:
        return None
    return text[:max_len] + "..." if len(text) > max_len else text


def normalize_severity(raw: object) -> str:
    """Uppercase severity in the fixed vocabulary; unknown values become MEDIUM."""
    if raw is None:
        return DEFAULT_SEVERITY
    value = str(raw).strip().upper()
    if value in SEVERITY_VALUES:
        return value
    return _SEVERITY_ALIASES.get(value, DEFAULT_SEVERITY)


def normalize_category(raw: object) -> str:
    """Uppercase category in the fixed vocabulary; unknown values become QUALITY."""
    if raw is None:
        return DEFAULT_CATEGORY
    value = str(raw).strip().upper()
    if value in CATEGORY_VALUES:
        return value
    return _CATEGORY_ALIASES.get(value, DEFAULT_CATEGORY)


def coerce_line_number(raw: object) -> int:
    """Non-negative integer line; unparseable, negative, boolean or out-of-range values are 0."""
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return raw if 0 < raw <= MAX_LINE_NUMBER else 0
    if isinstance(raw, float):
        number = raw
    else:
        try:
            number = float(str(raw).strip())
        except ValueError:
            return 0
    if math.isnan(number) or math.isinf(number) or number <= 0 or number > MAX_LINE_NUMBER:
        return 0
    return int(math.floor(number))


def _first_present(raw: dict[str, Any], *keys: str) -> Any:
    """First truthy value among keys (mirrors `a || b` field coalescing of CLI payloads)."""
    for key in keys:
        value = raw.get(key)
        if value:
            return value
    return None


def normalize_finding(raw: dict[str, Any]) -> NormalizedFinding:
    """Normalize one finding dict from either source; always yields the required fields."""
    rule_id = str(raw.get("rule_id") or _DEFAULT_RULE_ID)[:MAX_RULE_ID_LENGTH]
    tool_rule_id = raw.get("tool_rule_id")
    file_path = normalize_path(_first_present(raw, "file_path", "file") or "")
    return NormalizedFinding(
        rule_id=rule_id,
        tool_rule_id=str(tool_rule_id)[:MAX_RULE_ID_LENGTH] if tool_rule_id else None,
        file_path=truncate(file_path, MAX_FILE_PATH_LENGTH) or "",
        line_number=coerce_line_number(_first_present(raw, "line_number", "line")),
        message=truncate(raw.get("message"), MAX_MESSAGE_LENGTH),
        snippet=truncate(raw.get("snippet"), MAX_SNIPPET_LENGTH),
        severity=normalize_severity(raw.get("severity")),
        category=normalize_category(raw.get("category")),
    )


def normalize_findings(items: object) -> tuple[list[NormalizedFinding], int | None]:
    """
    Cap and normalize a findings list.

    Returns (findings, truncated_from); truncated_from is the original length
    when more than MAX_FINDINGS were sent, else None. Non-object items are skipped.
    """
    if not isinstance(items, list):
        if items is not None:
            logger.warning("Ignoring findings of type %s; expected a list", type(items).__name__)
        return [], None
    truncated_from: int | None = None
    if len(items) > MAX_FINDINGS:
        logger.warning("Truncated findings from %s to %s", len(items), MAX_FINDINGS)
        truncated_from = len(items)
        items = items[:MAX_FINDINGS]
    findings: list[NormalizedFinding] = []
    skipped = 0
    for item in items:
        if not isinstance(item, dict):
            skipped += 1
            continue
        findings.append(normalize_finding(item))
    if skipped:
        logger.warning("Skipped %s finding entries that were not objects", skipped)
    return findings, truncated_from


def _ref(value: object, default: str) -> str:
    """String field with a default for missing/blank values, capped to the column size."""
    if value is None or isinstance(value, (dict, list)):
        return default
    text = str(value).strip()
    return text[:MAX_REF_LENGTH] if text else default


def normalize_report(body: dict[str, Any]) -> NormalizedReport:
    """
    Turn a decoded request body into a NormalizedReport.

    SARIF documents (detected by shape) go through the SARIF converter; anything
    else is treated as a native report. Either way each finding is normalized.
    """
    if is_sarif(body):
        payload = sarif_to_payload(body)
        summary = payload["summary"]
        raw_findings = payload["findings"]
        actor_default = _DEFAULT_SARIF_ACTOR
        tool = "sarif"
    else:
        summary = body.get("summary") if isinstance(body.get("summary"), dict) else {}
        raw_findings = body.get("findings")
        actor_default = _DEFAULT_ACTOR
        tool = "skylos"

    findings, truncated_from = normalize_findings(raw_findings)
    return NormalizedReport(
        summary=summary,
        findings=findings,
        commit_hash=_ref(body.get("commit_hash"), _DEFAULT_COMMIT),
        branch=_ref(body.get("branch"), _DEFAULT_BRANCH),
        actor=_ref(body.get("actor"), actor_default),
        tool=tool,
        truncated_from=truncated_from,
    )
