"""Response schemas for listing issue groups."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class IssueGroupItem(BaseModel):
    """One deduplicated issue as stored."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    org_id: int
    project_id: int
    fingerprint: str
    rule_id: str
    category: str
    severity: str
    canonical_file: str
    canonical_line: int
    canonical_snippet: str | None = None
    occurrence_count: int
    affected_files: list[str] = Field(default_factory=list)
    status: str
    first_seen_at: datetime | None = None
    first_seen_scan_id: int | None = None
    last_seen_at: datetime | None = None
    last_seen_scan_id: int | None = None


class IssueGroupsResponse(BaseModel):
    groups: list[IssueGroupItem]
