"""ORM model for user-created suppressions (rule + file + line exemptions)."""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, func

from app.models.base import Base


class Suppression(Base):
    """
    Exempts one rule at one file/line of a project from the quality gate.

    Active while revoked_at is null and expires_at is null or in the future.
    """

    __tablename__ = "suppressions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(
        Integer,
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    rule_id = Column(String(100), nullable=False)
    file_path = Column(String(1024), nullable=False, default="")
    line_number = Column(Integer, nullable=False, default=0)
    reason = Column(Text, nullable=True)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
