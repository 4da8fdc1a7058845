"""SQLAlchemy ORM models."""

from app.models.base import Base
from app.models.finding import Finding
from app.models.issue_group import IssueGroup
from app.models.organization import Organization, Project
from app.models.scan import Scan
from app.models.suppression import Suppression

__all__ = [
    "Base",
    "Finding",
    "IssueGroup",
    "Organization",
    "Project",
    "Scan",
    "Suppression",
]
