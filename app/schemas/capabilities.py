"""Plan capability value passed through the ingestion pipeline."""

from pydantic import BaseModel, ConfigDict, Field


class PlanCapabilities(BaseModel):
    """Features enabled for an organization's plan. Immutable for a request's lifetime."""

    model_config = ConfigDict(frozen=True)

    max_scans_stored: int = Field(..., ge=1)
    pr_diff_enabled: bool = False
    suppressions_enabled: bool = False
    overrides_enabled: bool = False
    check_runs_enabled: bool = False
    sarif_enabled: bool = False
    slack_enabled: bool = False
    discord_enabled: bool = False
