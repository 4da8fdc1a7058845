"""ORM model for deduplicated, cross-scan issue groups."""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from app.models.base import Base, JSONType


class IssueGroup(Base):
    """
    The persistent identity of a recurring finding, keyed by fingerprint.

    Unique per (org_id, project_id, fingerprint). first_seen_* are written once;
    last_seen_* move with every scan that reproduces the fingerprint. The scan
    references are plain integers so trimming old scans keeps the history.
    """

    __tablename__ = "issue_groups"
    __table_args__ = (
        UniqueConstraint(
            "org_id",
            "project_id",
            "fingerprint",
            name="uq_issue_groups_org_project_fingerprint",
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    org_id = Column(Integer, nullable=False, index=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    fingerprint = Column(String(64), nullable=False)
    rule_id = Column(String(100), nullable=False)
    category = Column(String(32), nullable=False)
    severity = Column(String(16), nullable=False)
    canonical_file = Column(String(1024), nullable=False, default="")
    canonical_line = Column(Integer, nullable=False, default=0)
    canonical_snippet = Column(Text, nullable=True)
    occurrence_count = Column(Integer, nullable=False, default=0)
    affected_files = Column(JSONType, nullable=False, default=list)
    status = Column(String(32), nullable=False, default="open", index=True)
    first_seen_at = Column(DateTime(timezone=True), nullable=True)
    first_seen_scan_id = Column(Integer, nullable=True)
    last_seen_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_seen_scan_id = Column(Integer, nullable=True, index=True)
