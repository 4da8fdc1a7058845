"""
Report ingestion pipeline.

normalize -> diff scope -> override / baseline / suppressions -> classify ->
suppress -> gate -> persist -> group -> retention -> effects -> response.
Each stage depends on the previous one, so they run strictly in order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from sqlalchemy.orm import Session

from app.models import Project
from app.schemas.findings import NEW_REASON_VALUES
from app.schemas.report import (
    BaselineExplain,
    CapabilitiesSummary,
    QualityGateSummary,
    ReportExplain,
    ReportResponse,
)
from app.services.baseline import load_baseline_credits, resolve_baseline
from app.services.capabilities import get_capabilities, resolve_plan
from app.services.diff_classifier import classify_findings, detection_mode
from app.services.effects import Effect
from app.services.issue_groups import upsert_issue_groups
from app.services.normalize import normalize_report
from app.services.notifications import plan_effects
from app.services.persistence import create_scan, find_commit_override, insert_findings
from app.services.pr_diff import diff_context_for_db, get_diff_scope
from app.services.quality_gate import evaluate_gate, gate_message, gate_policy_from_config
from app.services.retention import trim_scans
from app.services.suppressions import apply_suppressions, load_active_suppression_keys

if TYPE_CHECKING:
    import httpx

    from app.core.config import Settings

logger = logging.getLogger(__name__)

UPGRADE_HINT = (
    "Upgrade to Pro for PR diff analysis, suppressions, check runs, "
    "and Slack/Discord notifications."
)
UPGRADE_URL = "/dashboard/settings?upgrade=true"


@dataclass
class IngestionResult:
    """The response body plus side effects to run once it has been sent."""

    response: ReportResponse
    effects: list[Effect] = field(default_factory=list)


async def ingest_report(
    db: Session,
    *,
    project: Project,
    body: dict[str, Any],
    settings: Settings,
    now: datetime | None = None,
    github_transport: httpx.AsyncBaseTransport | None = None,
) -> IngestionResult:
    """
    Run one report through the pipeline for an authenticated project.

    Commits after the scan and findings are written, again after grouping,
    and once more inside retention. Failures propagate to the caller, which
    rolls back.
    """
    now = now or datetime.now(timezone.utc)
    plan = resolve_plan(project.organization.plan if project.organization else None)
    capabilities = get_capabilities(plan)

    report = normalize_report(body)
    if report.tool == "sarif" and not capabilities.sarif_enabled:
        logger.info("Accepting SARIF upload on %s plan for project %s", plan, project.id)

    diff_scope = None
    if capabilities.pr_diff_enabled:
        diff_scope = await get_diff_scope(
            project.repo_url, report.commit_hash, settings, transport=github_transport
        )

    is_whitelisted = False
    if capabilities.overrides_enabled:
        is_whitelisted = find_commit_override(db, project.id, report.commit_hash) is not None

    baseline = resolve_baseline(db, project, report.branch)
    credits = load_baseline_credits(db, baseline)
    active_keys = (
        load_active_suppression_keys(db, project.id, now)
        if capabilities.suppressions_enabled
        else set()
    )

    findings = classify_findings(
        report.findings,
        diff_scope=diff_scope,
        capabilities=capabilities,
        baseline_credits=credits,
        has_baseline=baseline.has_baseline,
    )
    findings = apply_suppressions(findings, active_keys, capabilities.suppressions_enabled)

    gate = evaluate_gate(
        findings,
        gate_policy_from_config(project.policy_config),
        is_whitelisted=is_whitelisted,
        capabilities=capabilities,
    )

    scan = create_scan(
        db,
        project=project,
        report=report.model_copy(update={"findings": findings}),
        gate=gate,
        is_whitelisted=is_whitelisted,
        diff_context=diff_context_for_db(diff_scope),
        now=now,
    )
    rows = insert_findings(db, scan.id, findings)
    db.commit()

    upsert_issue_groups(
        db,
        org_id=project.org_id,
        project_id=project.id,
        scan_id=scan.id,
        findings=rows,
        now=now,
    )
    trim_scans(db, project.id, capabilities.max_scans_stored)

    effects = plan_effects(
        db,
        project=project,
        scan=scan,
        findings=findings,
        gate=gate,
        capabilities=capabilities,
        diff_scope=diff_scope,
        settings=settings,
    )

    mode = detection_mode(diff_scope, capabilities, baseline.has_baseline)
    logger.info(
        "Scan %s for project %s on %s: findings=%s new=%s suppressed=%s mode=%s passed=%s",
        scan.id,
        project.id,
        report.branch,
        len(findings),
        gate.unsuppressed_new_count,
        gate.suppressed_new_count,
        mode,
        gate.passed,
    )

    response = ReportResponse(
        success=gate.passed,
        scanId=scan.id,
        scan_id=scan.id,
        quality_gate=QualityGateSummary(
            passed=gate.passed,
            new_violations=gate.unsuppressed_new_count,
            suppressed_new_violations=gate.suppressed_new_count,
            message=gate_message(gate),
        ),
        explain=ReportExplain(
            baseline=BaselineExplain(
                scan_id=baseline.scan_id, branch=baseline.branch, source=baseline.source
            ),
            detection_mode=mode,
            suppressions_enabled=capabilities.suppressions_enabled,
            strict_mode=bool(project.strict_mode),
            force_disabled_when_strict=bool(project.strict_mode),
            new_reason_values=list(NEW_REASON_VALUES),
        ),
        plan=plan,
        capabilities=CapabilitiesSummary(
            pr_diff=capabilities.pr_diff_enabled,
            suppressions=capabilities.suppressions_enabled,
            check_runs=capabilities.check_runs_enabled,
            slack=capabilities.slack_enabled,
            discord=capabilities.discord_enabled,
        ),
    )
    if plan == "free":
        response.upgrade_hint = UPGRADE_HINT
        response.upgrade_url = UPGRADE_URL
    return IngestionResult(response=response, effects=effects)
