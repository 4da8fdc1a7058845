"""Pydantic request/response schemas."""

from app.schemas.capabilities import PlanCapabilities
from app.schemas.findings import (
    CATEGORY_VALUES,
    NEW_REASON_VALUES,
    SEVERITY_VALUES,
    NormalizedFinding,
    NormalizedReport,
)
from app.schemas.gate import GatePolicy, GateResult
from app.schemas.health import HealthResponse
from app.schemas.issue_groups import IssueGroupItem, IssueGroupsResponse
from app.schemas.report import ReportResponse

__all__ = [
    "CATEGORY_VALUES",
    "GatePolicy",
    "GateResult",
    "HealthResponse",
    "IssueGroupItem",
    "IssueGroupsResponse",
    "NEW_REASON_VALUES",
    "NormalizedFinding",
    "NormalizedReport",
    "PlanCapabilities",
    "ReportResponse",
    "SEVERITY_VALUES",
]
