"""Discord embed message for a quality gate result."""

import logging
from typing import Any

import httpx

from app.schemas.notifications import GateNotification, NotifyTarget
from app.services.webhooks import commit_url, post_webhook, scan_url, truncate_label

logger = logging.getLogger(__name__)

COLOR_FAILURE = 0xED4245
COLOR_SUCCESS = 0x57F287


def build_discord_embed(target: NotifyTarget, result: GateNotification) -> dict[str, Any]:
    if result.passed and result.is_recovery:
        title, color = "✅ Quality Gate Recovered", COLOR_SUCCESS
    elif result.passed:
        title, color = "✅ Quality Gate Passed", COLOR_SUCCESS
    else:
        title, color = "🚨 Quality Gate Failed", COLOR_FAILURE

    short_sha = (target.commit_hash or "local")[:7]
    link = commit_url(target.repo_url, target.commit_hash)
    sha_text = f"[`{short_sha}`]({link})" if link else f"`{short_sha}`"
    description = [
        f"**{truncate_label(target.project_name, 30)}** • "
        f"`{truncate_label(target.branch, 30)}` • {sha_text}"
    ]

    fields: list[dict[str, Any]] = []
    if not result.passed or result.new_issues > 0:
        counts = [
            (result.critical_count, "🔴 Critical"),
            (result.high_count, "🟠 High"),
            (result.medium_count, "🟡 Medium"),
            (result.low_count, "🔵 Low"),
        ]
        for n, label in counts:
            if n > 0:
                fields.append({"name": label, "value": str(n), "inline": True})
        description.append(f"\n**New Issues Found: {result.new_issues}**")
        if result.suppressed_count > 0:
            plural = "" if result.suppressed_count == 1 else "s"
            description.append(f"_{result.suppressed_count} issue{plural} suppressed_")
    else:
        description.append("\n🎉 No new issues detected. Great job!")

    return {
        "title": title,
        "description": "\n".join(description),
        "color": color,
        "url": scan_url(target.site_url, target.scan_id),
        "fields": fields,
    }


async def send_discord_notification(
    target: NotifyTarget,
    result: GateNotification,
    *,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    payload = {"embeds": [build_discord_embed(target, result)]}
    await post_webhook(
        target.webhook_url, payload, timeout=timeout, channel="Discord", transport=transport
    )
    logger.info("Discord notification sent for scan %s", target.scan_id)
