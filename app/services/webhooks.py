"""Deliver JSON payloads to chat incoming webhooks."""

from typing import Any

import httpx


class WebhookDeliveryError(Exception):
    """Raised when a webhook endpoint rejects a message or cannot be reached."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def truncate_label(text: str, length: int) -> str:
    """Shorten display text to length characters, ending in '...' when cut."""
    return text if len(text) <= length else text[: length - 3] + "..."


def commit_url(repo_url: str | None, commit_hash: str) -> str | None:
    if not repo_url or not commit_hash or commit_hash == "local":
        return None
    base = repo_url.rstrip("/")
    if base.endswith(".git"):
        base = base[: -len(".git")]
    return f"{base}/commit/{commit_hash}"


def scan_url(site_url: str, scan_id: int) -> str:
    return f"{site_url.rstrip('/')}/dashboard/scans/{scan_id}"


async def post_webhook(
    url: str,
    payload: dict[str, Any],
    *,
    timeout: float,
    channel: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> None:
    """POST payload as JSON; any non-2xx status or transport error raises WebhookDeliveryError."""
    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            resp = await client.post(url, json=payload)
    except httpx.HTTPError as e:
        raise WebhookDeliveryError(f"{channel} webhook unreachable: {e!s}") from e
    if resp.status_code < 200 or resp.status_code >= 300:
        raise WebhookDeliveryError(
            f"{channel} webhook returned status {resp.status_code}: {resp.text[:200]}",
            resp.status_code,
        )
