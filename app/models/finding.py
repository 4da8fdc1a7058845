"""ORM model for raw findings reported in a scan."""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Text

from app.models.base import Base


class Finding(Base):
    """
    One rule violation detected in one scan, at a normalized file path and line.

    group_id is set once the issue-group pass has linked the finding.
    """

    __tablename__ = "findings"

    id = Column(Integer, primary_key=True, autoincrement=True)
    scan_id = Column(
        Integer,
        ForeignKey("scans.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_id = Column(String(100), nullable=False, index=True)
    tool_rule_id = Column(String(100), nullable=True)
    file_path = Column(String(1024), nullable=False, default="")
    line_number = Column(Integer, nullable=False, default=0)
    message = Column(Text, nullable=True)
    snippet = Column(Text, nullable=True)
    severity = Column(String(16), nullable=False, default="MEDIUM")
    category = Column(String(32), nullable=False, default="QUALITY")
    is_new = Column(Boolean, nullable=False, default=False)
    new_reason = Column(String(32), nullable=True)
    is_suppressed = Column(Boolean, nullable=False, default=False)
    group_id = Column(
        Integer,
        ForeignKey("issue_groups.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
