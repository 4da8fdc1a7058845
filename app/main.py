"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

import logging

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1 import issue_groups, report
from app.api.v1 import router as v1_router
from app.core.config import settings
from app.core.database import StoreNotConfiguredError
from app.core.errors import ReportError, report_error_handler, store_not_configured_handler

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

app = FastAPI(
    title="Scangate API",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.APP_ENV == "dev" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(ReportError, report_error_handler)
app.add_exception_handler(StoreNotConfiguredError, store_not_configured_handler)

# CLI clients post to /report and /issue-groups at the root; the same routes live under /api/v1.
app.include_router(report.router, prefix="/report", tags=["report"])
app.include_router(issue_groups.router, prefix="/issue-groups", tags=["issue-groups"])
app.include_router(v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/")
def root() -> dict[str, str]:
    """Root route; minimal payload for discovery."""
    return {"message": "Scangate API"}
