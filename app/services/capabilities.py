"""Resolve an organization's plan tier to the capabilities it unlocks."""

from types import MappingProxyType
from typing import Literal

from app.schemas.capabilities import PlanCapabilities

Plan = Literal["free", "pro", "enterprise"]

DEFAULT_PLAN: Plan = "free"

PLAN_CAPABILITIES: MappingProxyType[str, PlanCapabilities] = MappingProxyType(
    {
        "free": PlanCapabilities(max_scans_stored=10),
        "pro": PlanCapabilities(
            max_scans_stored=500,
            pr_diff_enabled=True,
            suppressions_enabled=True,
            overrides_enabled=True,
            check_runs_enabled=True,
            sarif_enabled=True,
            slack_enabled=True,
            discord_enabled=True,
        ),
        "enterprise": PlanCapabilities(
            max_scans_stored=10_000,
            pr_diff_enabled=True,
            suppressions_enabled=True,
            overrides_enabled=True,
            check_runs_enabled=True,
            sarif_enabled=True,
            slack_enabled=True,
            discord_enabled=True,
        ),
    }
)


def resolve_plan(raw_plan: object) -> Plan:
    """Canonical plan name; unknown, missing or non-string values fail safe to 'free'."""
    if not isinstance(raw_plan, str):
        return DEFAULT_PLAN
    plan = raw_plan.strip().lower()
    if plan in PLAN_CAPABILITIES:
        return plan  # type: ignore[return-value]
    return DEFAULT_PLAN


def get_capabilities(raw_plan: object) -> PlanCapabilities:
    """Return the (frozen) capability set for a plan value."""
    return PLAN_CAPABILITIES[resolve_plan(raw_plan)]
