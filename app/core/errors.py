"""Client-facing API errors and the handlers that render them as JSON."""

import logging
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.database import StoreNotConfiguredError

logger = logging.getLogger(__name__)


class ReportError(Exception):
    """
    Raised by route helpers to stop a request with a specific status.

    Rendered as {"error": ..., "code": ...} plus any extra keys; `code` is
    omitted when not given.
    """

    def __init__(
        self,
        status_code: int,
        error: str,
        code: str | None = None,
        **extra: Any,
    ) -> None:
        self.status_code = status_code
        self.error = error
        self.code = code
        self.extra = extra
        super().__init__(error)

    def to_body(self) -> dict[str, Any]:
        body: dict[str, Any] = dict(self.extra)
        body["error"] = self.error
        if self.code is not None:
            body["code"] = self.code
        return body


async def report_error_handler(_request: Request, exc: ReportError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def store_not_configured_handler(
    _request: Request, exc: StoreNotConfiguredError
) -> JSONResponse:
    logger.error("Database is not configured; missing=%s", exc.missing)
    return JSONResponse(
        status_code=500,
        content={"error": "Server misconfigured", "missing": exc.missing},
    )
