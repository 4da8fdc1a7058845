"""Slack Block Kit message for a quality gate result."""

import logging
from typing import Any

import httpx

from app.schemas.notifications import GateNotification, NotifyTarget
from app.services.webhooks import commit_url, post_webhook, scan_url, truncate_label

logger = logging.getLogger(__name__)


def _header(result: GateNotification) -> str:
    if result.passed and result.is_recovery:
        return "✅ Quality Gate Recovered"
    if result.passed:
        return "✅ Quality Gate Passed"
    return "🚨 Quality Gate Failed"


def build_slack_blocks(target: NotifyTarget, result: GateNotification) -> list[dict[str, Any]]:
    short_sha = (target.commit_hash or "local")[:7]
    link = commit_url(target.repo_url, target.commit_hash)
    sha_text = f"<{link}|`{short_sha}`>" if link else f"`{short_sha}`"

    blocks: list[dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": _header(result), "emoji": True}},
        {
            "type": "context",
            "elements": [
                {
                    "type": "mrkdwn",
                    "text": "  •  ".join(
                        [
                            f"*{truncate_label(target.project_name, 30)}*",
                            f"`{truncate_label(target.branch, 30)}`",
                            sha_text,
                        ]
                    ),
                }
            ],
        },
        {"type": "divider"},
    ]

    if not result.passed or result.new_issues > 0:
        counts = [
            (result.critical_count, "🔴", "Critical"),
            (result.high_count, "🟠", "High"),
            (result.medium_count, "🟡", "Medium"),
            (result.low_count, "🔵", "Low"),
        ]
        lines = [f"{icon} *{n}* {label}" for n, icon, label in counts if n > 0]
        if lines:
            blocks.append(
                {
                    "type": "section",
                    "text": {
                        "type": "mrkdwn",
                        "text": f"*New Issues Found: {result.new_issues}*\n" + "  •  ".join(lines),
                    },
                }
            )
        if result.suppressed_count > 0:
            plural = "" if result.suppressed_count == 1 else "s"
            blocks.append(
                {
                    "type": "context",
                    "elements": [
                        {
                            "type": "mrkdwn",
                            "text": f"_{result.suppressed_count} issue{plural} suppressed_",
                        }
                    ],
                }
            )
    else:
        blocks.append(
            {
                "type": "section",
                "text": {"type": "mrkdwn", "text": "🎉 No new issues detected. Great job!"},
            }
        )

    blocks.append(
        {
            "type": "actions",
            "elements": [
                {
                    "type": "button",
                    "text": {"type": "plain_text", "text": "📊 View Full Report", "emoji": True},
                    "url": scan_url(target.site_url, target.scan_id),
                    "style": "primary" if result.passed else "danger",
                }
            ],
        }
    )
    return blocks


async def send_slack_notification(
    target: NotifyTarget,
    result: GateNotification,
    *,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    payload = {"text": _header(result), "blocks": build_slack_blocks(target, result)}
    await post_webhook(
        target.webhook_url, payload, timeout=timeout, channel="Slack", transport=transport
    )
    logger.info("Slack notification sent for scan %s", target.scan_id)
