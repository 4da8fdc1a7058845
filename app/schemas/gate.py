"""Quality gate policy and decision schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

GateMode = Literal["zero-new", "category", "severity", "both"]
GateReason = Literal[
    "override",
    "gate-disabled",
    "critical-security",
    "zero-new",
    "thresholds",
]


class GatePolicy(BaseModel):
    """Gate settings read from a project's policy_config["gate"]; limits already floored."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    mode: GateMode = "zero-new"
    by_category: dict[str, int] = Field(default_factory=dict)
    by_severity: dict[str, int] = Field(default_factory=dict)


class GateResult(BaseModel):
    """Pass/fail decision plus the counts it was computed from."""

    passed: bool
    reason: GateReason
    enabled: bool
    mode: GateMode
    unsuppressed_new_count: int = Field(..., ge=0)
    suppressed_new_count: int = Field(..., ge=0)
    legacy_count: int = Field(..., ge=0)
    critical_security_count: int = Field(..., ge=0)
    unsuppressed_new_by_category: dict[str, int] = Field(default_factory=dict)
    unsuppressed_new_by_severity: dict[str, int] = Field(default_factory=dict)
    thresholds: dict[str, dict[str, int]] = Field(default_factory=dict)
