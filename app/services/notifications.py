"""Decide which post-ingestion notifications fire and package them as effects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from app.models import Project, Scan
from app.schemas.capabilities import PlanCapabilities
from app.schemas.findings import NormalizedFinding
from app.schemas.gate import GateResult
from app.schemas.notifications import GateNotification, NotifyTarget
from app.services.discord import send_discord_notification
from app.services.effects import Effect
from app.services.github_checks import CheckRunRequest, publish_check_run, should_publish
from app.services.pr_diff import DiffScope
from app.services.slack import send_slack_notification

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

NOTIFY_ALWAYS = "always"
NOTIFY_FAILURE = "failure"
NOTIFY_RECOVERY = "recovery"
DEFAULT_NOTIFY_ON = NOTIFY_FAILURE


@dataclass(frozen=True)
class NotifyDecision:
    notify: bool
    is_recovery: bool = False


def should_notify(
    notify_on: str | None,
    channel_enabled: bool,
    *,
    passed: bool,
    previous_passed: bool | None,
) -> NotifyDecision:
    """
    Apply a channel's notify_on setting to this scan's outcome.

    previous_passed is None when there is no earlier scan on the branch; a
    recovery needs an earlier failure followed by a pass.
    """
    if not channel_enabled:
        return NotifyDecision(notify=False)
    mode = notify_on or DEFAULT_NOTIFY_ON
    if mode == NOTIFY_ALWAYS:
        return NotifyDecision(notify=True)
    if mode == NOTIFY_FAILURE:
        return NotifyDecision(notify=not passed)
    if mode == NOTIFY_RECOVERY:
        is_recovery = previous_passed is False and passed
        return NotifyDecision(notify=(not passed) or is_recovery, is_recovery=is_recovery)
    return NotifyDecision(notify=False)


def previous_scan_passed(
    db: Session, project_id: int, branch: str, exclude_scan_id: int
) -> bool | None:
    """Gate outcome of the scan just before exclude_scan_id on the branch, or None."""
    row = (
        db.query(Scan.quality_gate_passed)
        .filter(
            Scan.project_id == project_id,
            Scan.branch == branch,
            Scan.id != exclude_scan_id,
        )
        .order_by(Scan.created_at.desc(), Scan.id.desc())
        .first()
    )
    return None if row is None else bool(row[0])


def build_gate_notification(
    findings: list[NormalizedFinding], gate: GateResult, *, is_recovery: bool = False
) -> GateNotification:
    """Severity counts over new, unsuppressed findings."""
    new = [f for f in findings if f.is_new and not f.is_suppressed]
    return GateNotification(
        passed=gate.passed,
        is_recovery=is_recovery,
        new_issues=len(new),
        critical_count=sum(1 for f in new if f.severity == "CRITICAL"),
        high_count=sum(1 for f in new if f.severity == "HIGH"),
        medium_count=sum(1 for f in new if f.severity == "MEDIUM"),
        low_count=sum(1 for f in new if f.severity in ("LOW", "INFO")),
        suppressed_count=gate.suppressed_new_count,
    )


def plan_effects(
    db: Session,
    *,
    project: Project,
    scan: Scan,
    findings: list[NormalizedFinding],
    gate: GateResult,
    capabilities: PlanCapabilities,
    diff_scope: DiffScope | None,
    settings: Settings,
) -> list[Effect]:
    """
    Build the effects for this scan: Slack, Discord and the GitHub check run,
    each only when the plan allows it and the project opted in.
    """
    slack_on = (
        capabilities.slack_enabled
        and bool(project.slack_notifications_enabled)
        and bool(project.slack_webhook_url)
    )
    discord_on = (
        capabilities.discord_enabled
        and bool(project.discord_notifications_enabled)
        and bool(project.discord_webhook_url)
    )

    previous_passed: bool | None = None
    if (slack_on and project.slack_notify_on == NOTIFY_RECOVERY) or (
        discord_on and project.discord_notify_on == NOTIFY_RECOVERY
    ):
        previous_passed = previous_scan_passed(db, project.id, scan.branch, scan.id)

    effects: list[Effect] = []
    timeout = settings.WEBHOOK_REQUEST_TIMEOUT_SEC

    def target(url: str) -> NotifyTarget:
        return NotifyTarget(
            webhook_url=url,
            project_name=project.name,
            branch=scan.branch,
            commit_hash=scan.commit_hash,
            repo_url=project.repo_url,
            scan_id=scan.id,
            site_url=settings.APP_BASE_URL,
        )

    slack = should_notify(
        project.slack_notify_on, slack_on, passed=gate.passed, previous_passed=previous_passed
    )
    if slack.notify:
        slack_target = target(project.slack_webhook_url)
        slack_payload = build_gate_notification(findings, gate, is_recovery=slack.is_recovery)
        effects.append(
            Effect(
                "slack",
                lambda: send_slack_notification(slack_target, slack_payload, timeout=timeout),
            )
        )

    discord = should_notify(
        project.discord_notify_on, discord_on, passed=gate.passed, previous_passed=previous_passed
    )
    if discord.notify:
        discord_target = target(project.discord_webhook_url)
        discord_payload = build_gate_notification(findings, gate, is_recovery=discord.is_recovery)
        effects.append(
            Effect(
                "discord",
                lambda: send_discord_notification(
                    discord_target, discord_payload, timeout=timeout
                ),
            )
        )

    if capabilities.check_runs_enabled and should_publish(project.repo_url, scan.commit_hash):
        check = CheckRunRequest(
            repo_url=project.repo_url,
            sha=scan.commit_hash,
            scan_id=scan.id,
            passed=gate.passed,
            findings=list(findings),
            diff_scope=diff_scope,
            installation_id=project.github_installation_id,
        )
        effects.append(Effect("check-run", lambda: _publish(check, settings)))

    if effects:
        logger.info(
            "Scan %s queued effects: %s", scan.id, ", ".join(e.name for e in effects)
        )
    return effects


async def _publish(check: CheckRunRequest, settings: Settings) -> None:
    await publish_check_run(check, settings)
