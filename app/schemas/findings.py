"""Pydantic schemas for findings: the canonical shape every report is normalized into."""

from typing import Any, Literal

from pydantic import BaseModel, Field

# Fixed vocabularies; the normalizer maps anything else to the defaults below.
SeverityLevel = Literal["CRITICAL", "HIGH", "MEDIUM", "LOW", "INFO"]
CategoryName = Literal["SECURITY", "SECRET", "QUALITY", "DEAD_CODE"]

SEVERITY_VALUES: tuple[str, ...] = ("CRITICAL", "HIGH", "MEDIUM", "LOW", "INFO")
CATEGORY_VALUES: tuple[str, ...] = ("SECURITY", "SECRET", "QUALITY", "DEAD_CODE")
DEFAULT_SEVERITY = "MEDIUM"
DEFAULT_CATEGORY = "QUALITY"

NewReason = Literal[
    "pr-changed-line",
    "pr-file-fallback",
    "legacy",
    "not-in-baseline",
    "first-scan-baseline",
]

NEW_REASON_VALUES: tuple[str, ...] = (
    "pr-changed-line",
    "pr-file-fallback",
    "legacy",
    "not-in-baseline",
    "first-scan-baseline",
)

ReportTool = Literal["skylos", "sarif"]


class NormalizedFinding(BaseModel):
    """
    One finding after normalization, plus the classification flags set later
    in the pipeline (is_new, new_reason, is_suppressed).
    """

    rule_id: str = Field(..., min_length=1, max_length=100)
    tool_rule_id: str | None = Field(default=None, max_length=100)
    file_path: str = Field(default="", description="Normalized, repo-relative path.")
    line_number: int = Field(default=0, ge=0)
    message: str | None = None
    snippet: str | None = None
    severity: SeverityLevel = DEFAULT_SEVERITY
    category: CategoryName = DEFAULT_CATEGORY

    is_new: bool = False
    new_reason: NewReason | None = None
    is_suppressed: bool = False


class NormalizedReport(BaseModel):
    """Canonical report: the only shape that leaves the normalizer."""

    summary: dict[str, Any] = Field(default_factory=dict)
    findings: list[NormalizedFinding] = Field(default_factory=list)
    commit_hash: str = "local"
    branch: str = "main"
    actor: str = "unknown"
    tool: ReportTool = "skylos"
    truncated_from: int | None = Field(
        default=None,
        description="Original finding count when the list was capped; None when not truncated.",
    )
