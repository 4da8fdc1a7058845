"""Pydantic schemas for health check responses."""

from typing import Literal

from pydantic import BaseModel, Field

DatabaseStatus = Literal["connected", "disconnected", "not-configured"]


class HealthResponse(BaseModel):
    """Response body for the health check endpoint."""

    status: Literal["ok"] = Field(default="ok", description="Service status")
    service: str = Field(default="scangate", description="Service name")
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    database: DatabaseStatus | None = Field(
        default=None,
        description="Database connectivity; not-configured when DATABASE_URL is unset",
    )
