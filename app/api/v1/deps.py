"""Shared route dependencies: project API-key authentication."""

from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, joinedload

from app.core.errors import ReportError
from app.models import Project

bearer = HTTPBearer(auto_error=False)

MISSING_TOKEN_MESSAGE = "Missing token. Run with --token or set SKYLOS_TOKEN env var."
INVALID_TOKEN_MESSAGE = "Invalid API Token. Check your SKYLOS_TOKEN."


def authenticate_project(
    db: Session, credentials: HTTPAuthorizationCredentials | None
) -> Project:
    """
    Resolve the bearer API key to its project (organization loaded).

    Raises ReportError 401 NO_TOKEN when the header is missing or not a bearer
    token, and 403 INVALID_TOKEN when no project owns the key.
    """
    token = credentials.credentials.strip() if credentials is not None else ""
    if not token:
        raise ReportError(401, MISSING_TOKEN_MESSAGE, code="NO_TOKEN")
    project = (
        db.query(Project)
        .options(joinedload(Project.organization))
        .filter(Project.api_key == token)
        .first()
    )
    if project is None:
        raise ReportError(403, INVALID_TOKEN_MESSAGE, code="INVALID_TOKEN")
    return project
