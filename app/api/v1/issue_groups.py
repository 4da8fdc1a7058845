"""List deduplicated issue groups for the authenticated project."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.api.v1.deps import authenticate_project, bearer
from app.core.database import get_db
from app.models import IssueGroup
from app.schemas.issue_groups import IssueGroupItem, IssueGroupsResponse

router = APIRouter()


@router.get("", response_model=IssueGroupsResponse)
def list_issue_groups(
    db: Annotated[Session, Depends(get_db)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
    status: Annotated[str, Query(max_length=32)] = "open",
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
) -> IssueGroupsResponse:
    """Most recently seen groups first."""
    project = authenticate_project(db, credentials)
    rows = (
        db.query(IssueGroup)
        .filter(IssueGroup.project_id == project.id, IssueGroup.status == status)
        .order_by(IssueGroup.last_seen_at.desc(), IssueGroup.id.desc())
        .limit(limit)
        .all()
    )
    return IssueGroupsResponse(groups=[IssueGroupItem.model_validate(r) for r in rows])
