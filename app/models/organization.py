"""ORM models for organizations and the projects that report scans into them."""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import relationship

from app.models.base import Base, JSONType


class Organization(Base):
    """
    Billing owner of projects.

    plan: 'free', 'pro' or 'enterprise'; anything else is treated as 'free'.
    """

    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    plan = Column(String(32), nullable=False, default="free")
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    projects = relationship("Project", back_populates="organization")


class Project(Base):
    """
    A code repository reporting scans. `api_key` is the bearer token the CLI sends.

    policy_config holds the quality gate policy under the "gate" key.
    """

    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, autoincrement=True)
    org_id = Column(
        Integer,
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(255), nullable=False)
    repo_url = Column(String(1024), nullable=True)
    default_branch = Column(String(255), nullable=False, default="main")
    api_key = Column(String(255), nullable=False, unique=True, index=True)
    strict_mode = Column(Boolean, nullable=False, default=False)
    policy_config = Column(JSONType, nullable=True)

    github_installation_id = Column(BigInteger, nullable=True)
    slack_webhook_url = Column(String(1024), nullable=True)
    slack_notifications_enabled = Column(Boolean, nullable=False, default=True)
    slack_notify_on = Column(String(32), nullable=False, default="failure")
    discord_webhook_url = Column(String(1024), nullable=True)
    discord_notifications_enabled = Column(Boolean, nullable=False, default=True)
    discord_notify_on = Column(String(32), nullable=False, default="failure")

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    organization = relationship("Organization", back_populates="projects")
