"""ORM model for scans (one row per report submission)."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)

from app.models.base import Base, JSONType


class Scan(Base):
    """One ingestion event. Immutable after creation apart from override fields."""

    __tablename__ = "scans"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    commit_hash = Column(String(255), nullable=False, default="local")
    branch = Column(String(255), nullable=False, default="main", index=True)
    actor = Column(String(255), nullable=False, default="unknown")
    tool = Column(String(32), nullable=False, default="skylos")
    diff_context = Column(JSONType, nullable=True)
    stats = Column(JSONType, nullable=True)
    quality_gate_passed = Column(Boolean, nullable=False, default=False)
    is_overridden = Column(Boolean, nullable=False, default=False)
    override_reason = Column(Text, nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        index=True,
    )
