"""Report submission endpoint: authenticate, ingest, then run side effects in the background."""

import json
import logging
from typing import Annotated, Any

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.api.v1.deps import authenticate_project, bearer
from app.core.config import Settings, get_settings
from app.core.database import get_db
from app.core.errors import ReportError
from app.services.effects import dispatch_effects
from app.services.ingest import ingest_report
from app.services.normalize import MAX_BODY_BYTES, MAX_BODY_SIZE_MB

logger = logging.getLogger(__name__)

router = APIRouter()

STRICT_MODE_MESSAGE = (
    "STRICT MODE ENABLED. The '--force' flag is disabled by your administrator."
)


def _check_content_length(request: Request) -> None:
    raw = request.headers.get("content-length")
    if raw is None:
        return
    try:
        length = int(raw)
    except ValueError:
        return
    if length > MAX_BODY_BYTES:
        raise ReportError(413, f"Payload too large. Max {MAX_BODY_SIZE_MB}MB allowed.")


async def _read_body(request: Request) -> dict[str, Any]:
    raw = await request.body()
    if len(raw) > MAX_BODY_BYTES:
        raise ReportError(413, f"Payload too large. Max {MAX_BODY_SIZE_MB}MB allowed.")
    try:
        body = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ReportError(400, "Invalid JSON body", code="INVALID_BODY") from e
    if not isinstance(body, dict):
        raise ReportError(400, "Invalid JSON body", code="INVALID_BODY")
    return body


@router.post("")
async def submit_report(
    request: Request,
    background_tasks: BackgroundTasks,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer)],
) -> JSONResponse:
    """
    Ingest a native or SARIF scan report for the project owning the bearer API key.

    Not idempotent: every accepted call creates a new scan. Notifications and
    check runs are dispatched after the response is sent.
    """
    _check_content_length(request)
    project = authenticate_project(db, credentials)
    body = await _read_body(request)

    if project.strict_mode and bool(body.get("is_forced")):
        return JSONResponse(
            status_code=403,
            content={"success": False, "error": STRICT_MODE_MESSAGE, "code": "STRICT_MODE"},
        )

    try:
        result = await ingest_report(db, project=project, body=body, settings=settings)
    except Exception as e:
        db.rollback()
        logger.exception("Report processing failed for project %s", project.id)
        content: dict[str, Any] = {"error": "Server error processing report"}
        if settings.APP_ENV != "prod":
            content["details"] = str(e)
        return JSONResponse(status_code=500, content=content)

    if result.effects:
        background_tasks.add_task(dispatch_effects, result.effects)
    content = result.response.model_dump()
    for key in ("upgrade_hint", "upgrade_url"):
        if content.get(key) is None:
            content.pop(key, None)
    return JSONResponse(content=content)
