"""Payload schemas for gate notifications (Slack, Discord, check runs)."""

from pydantic import BaseModel, Field


class NotifyTarget(BaseModel):
    """Where a notification goes and what it links to."""

    webhook_url: str
    project_name: str
    branch: str
    commit_hash: str
    repo_url: str | None = None
    scan_id: int
    site_url: str


class GateNotification(BaseModel):
    """Gate outcome as shown in chat messages."""

    passed: bool
    is_recovery: bool = False
    new_issues: int = Field(default=0, ge=0)
    critical_count: int = Field(default=0, ge=0)
    high_count: int = Field(default=0, ge=0)
    medium_count: int = Field(default=0, ge=0)
    low_count: int = Field(default=0, ge=0)
    suppressed_count: int = Field(default=0, ge=0)
