"""Response schemas for the report submission endpoint."""

from typing import Literal

from pydantic import BaseModel, Field


class QualityGateSummary(BaseModel):
    passed: bool
    new_violations: int = Field(..., ge=0)
    suppressed_new_violations: int = Field(..., ge=0)
    message: str


class BaselineExplain(BaseModel):
    scan_id: int | None = None
    branch: str | None = None
    source: Literal["same-branch", "default-branch", "none"] = "none"


class ReportExplain(BaseModel):
    """How the new-vs-legacy decision was made for this scan."""

    baseline: BaselineExplain
    detection_mode: Literal["pr-diff", "baseline", "first-scan"]
    suppressions_enabled: bool
    strict_mode: bool
    force_disabled_when_strict: bool
    new_reason_values: list[str]


class CapabilitiesSummary(BaseModel):
    pr_diff: bool
    suppressions: bool
    check_runs: bool
    slack: bool
    discord: bool


class ReportResponse(BaseModel):
    """
    Result of POST /report.

    scanId and scan_id carry the same value for older and newer CLI clients.
    """

    success: bool
    scanId: int
    scan_id: int
    quality_gate: QualityGateSummary
    explain: ReportExplain
    plan: str
    capabilities: CapabilitiesSummary
    upgrade_hint: str | None = None
    upgrade_url: str | None = None
