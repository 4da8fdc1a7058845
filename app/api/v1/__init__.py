"""API v1 routes."""

from fastapi import APIRouter

from app.api.v1 import health, issue_groups, report

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(report.router, prefix="/report", tags=["report"])
router.include_router(issue_groups.router, prefix="/issue-groups", tags=["issue-groups"])
