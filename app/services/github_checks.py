"""
Publish the quality gate result as a GitHub check run.

Two auth paths: a GitHub App installation (JWT -> installation token, check
run created or updated by name) and a plain GITHUB_TOKEN that posts a new
completed check run on every scan.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx
import jwt

from app.schemas.findings import NormalizedFinding
from app.services.pr_diff import DiffScope, GitHubApiError, github_headers, parse_repo_path
from app.services.webhooks import scan_url

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

MAX_ANNOTATIONS = 50
MAX_RAW_DETAILS = 60000
APP_JWT_TTL_SEC = 600
# Backdate iat to tolerate clock drift between us and GitHub.
APP_JWT_CLOCK_SKEW_SEC = 60


@dataclass(frozen=True)
class CheckRunRequest:
    """Everything needed to render and publish one check run."""

    repo_url: str | None
    sha: str
    scan_id: int
    passed: bool
    findings: list[NormalizedFinding] = field(default_factory=list)
    diff_scope: DiffScope | None = None
    installation_id: int | None = None


def should_publish(repo_url: str | None, sha: str | None) -> bool:
    """Check runs need a real commit sha and a GitHub repo URL."""
    if not sha or sha == "local":
        return False
    return parse_repo_path(repo_url) is not None


def annotation_level(severity: str | None) -> str:
    sev = str(severity or "").upper()
    if sev in ("CRITICAL", "HIGH"):
        return "failure"
    if sev == "MEDIUM":
        return "warning"
    return "notice"


def build_annotations(findings: list[NormalizedFinding]) -> list[dict[str, Any]]:
    """Annotations for new, unsuppressed findings (at most MAX_ANNOTATIONS)."""
    annotations = []
    for f in [f for f in findings if f.is_new and not f.is_suppressed][:MAX_ANNOTATIONS]:
        line = f.line_number or 1
        annotation: dict[str, Any] = {
            "path": f.file_path,
            "start_line": line,
            "end_line": line,
            "annotation_level": annotation_level(f.severity),
            "title": f"{f.rule_id} • {f.category}",
            "message": (f.message or "Issue")
            + (f" [scope:{f.new_reason}]" if f.new_reason else ""),
        }
        if f.snippet:
            annotation["raw_details"] = f.snippet[:MAX_RAW_DETAILS]
        annotations.append(annotation)
    return annotations


def build_summary(request: CheckRunRequest, details_url: str, shown: int) -> str:
    candidates = [f for f in request.findings if f.is_new and not f.is_suppressed]
    scope = request.diff_scope
    lines = [f"**New unsuppressed issues:** {len(candidates)}"]
    if scope is not None:
        by_line = sum(1 for f in candidates if f.new_reason == "pr-changed-line")
        by_file = sum(1 for f in candidates if f.new_reason == "pr-file-fallback")
        lines.append(f"- changed-line hits: {by_line}")
        lines.append(f"- file-fallback hits: {by_file}")
        lines.append("")
        lines.append(f"**PR:** #{scope.pr_number}")
        if scope.base_sha and scope.head_sha:
            lines.append(
                f"**Range:** {scope.base_ref}@{scope.base_sha[:7]} → {scope.head_sha[:7]}"
            )
        scope_line = "**Scope:** changed-lines"
        if scope.files_missing_patch:
            scope_line += (
                f" (fallback-to-file for {len(scope.files_missing_patch)} file(s) without patch)"
            )
        lines.append(scope_line)
        lines.append(f"**Files changed:** {len(scope.changed_files)}")
    else:
        lines.append("")
        lines.append("**PR:** (not detected from sha)")
        lines.append("**Scope:** (no diff context; showing all new findings)")
    lines.append("")
    omitted = len(candidates) - shown
    if omitted > 0:
        lines.append(f"Showing first {shown}. {omitted} more omitted.")
        lines.append("")
    lines.append(f"Open full details: {details_url}")
    return "\n".join(lines)


def build_check_run_body(request: CheckRunRequest, settings: Settings) -> dict[str, Any]:
    details_url = scan_url(settings.APP_BASE_URL, request.scan_id)
    annotations = build_annotations(request.findings)
    return {
        "name": settings.CHECK_RUN_NAME,
        "head_sha": request.sha,
        "status": "completed",
        "conclusion": "success" if request.passed else "failure",
        "details_url": details_url,
        "output": {
            "title": "Quality Gate Passed" if request.passed else "Quality Gate Failed",
            "summary": build_summary(request, details_url, len(annotations)),
            "annotations": annotations,
        },
    }


def create_app_jwt(app_id: str, private_key: str, now: int | None = None) -> str:
    """Short-lived RS256 JWT identifying the GitHub App."""
    issued = int(time.time()) if now is None else now
    payload = {
        "iat": issued - APP_JWT_CLOCK_SKEW_SEC,
        "exp": issued + APP_JWT_TTL_SEC - APP_JWT_CLOCK_SKEW_SEC,
        "iss": app_id,
    }
    return jwt.encode(payload, private_key, algorithm="RS256")


async def _request_json(
    client: httpx.AsyncClient, method: str, url: str, **kwargs: Any
) -> Any:
    resp = await client.request(method, url, **kwargs)
    if resp.status_code >= 400:
        raise GitHubApiError(
            f"GitHub API {method} {resp.status_code}: {resp.text[:200]}", resp.status_code
        )
    return resp.json() if resp.content else None


async def get_installation_token(
    client: httpx.AsyncClient, api_url: str, app_jwt: str, installation_id: int
) -> str:
    data = await _request_json(
        client,
        "POST",
        f"{api_url}/app/installations/{installation_id}/access_tokens",
        headers={
            "Authorization": f"Bearer {app_jwt}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        },
    )
    token = (data or {}).get("token")
    if not token:
        raise GitHubApiError("Installation token response had no token")
    return str(token)


async def upsert_check_run(
    client: httpx.AsyncClient,
    api_url: str,
    repo_path: str,
    token: str,
    body: dict[str, Any],
) -> str:
    """Update the existing check run with this name on the sha, else create one."""
    headers = github_headers(token)
    existing = await _request_json(
        client,
        "GET",
        f"{api_url}/repos/{repo_path}/commits/{body['head_sha']}/check-runs",
        headers=headers,
        params={"check_name": body["name"]},
    )
    runs = (existing or {}).get("check_runs") or []
    if runs:
        run_id = runs[0]["id"]
        update = {k: v for k, v in body.items() if k != "head_sha"}
        await _request_json(
            client, "PATCH", f"{api_url}/repos/{repo_path}/check-runs/{run_id}",
            headers=headers, json=update,
        )
        return "updated"
    await _request_json(
        client, "POST", f"{api_url}/repos/{repo_path}/check-runs", headers=headers, json=body
    )
    return "created"


async def publish_check_run(
    request: CheckRunRequest,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str | None:
    """
    Publish the gate result for request.sha.

    Returns "created", "updated" or None when skipped (no credentials, local sha
    or non-GitHub repo). GitHub failures raise GitHubApiError.
    """
    repo_path = parse_repo_path(request.repo_url)
    if not repo_path or not request.sha or request.sha == "local":
        return None

    body = build_check_run_body(request, settings)
    api_url = settings.GITHUB_API_URL
    use_app = (
        request.installation_id is not None
        and settings.GITHUB_APP_ID is not None
        and settings.GITHUB_APP_PRIVATE_KEY is not None
    )
    if not use_app and settings.GITHUB_TOKEN is None:
        logger.info("No GitHub credentials configured; skipping check run for scan %s", request.scan_id)
        return None

    async with httpx.AsyncClient(
        timeout=settings.GITHUB_REQUEST_TIMEOUT_SEC, transport=transport
    ) as client:
        if use_app:
            app_jwt = create_app_jwt(
                settings.GITHUB_APP_ID, settings.GITHUB_APP_PRIVATE_KEY.get_secret_value()
            )
            token = await get_installation_token(
                client, api_url, app_jwt, request.installation_id
            )
            outcome = await upsert_check_run(client, api_url, repo_path, token, body)
        else:
            await _request_json(
                client,
                "POST",
                f"{api_url}/repos/{repo_path}/check-runs",
                headers=github_headers(settings.GITHUB_TOKEN.get_secret_value()),
                json=body,
            )
            outcome = "created"

    logger.info(
        "Check run %s for %s@%s (scan %s, conclusion=%s)",
        outcome, repo_path, request.sha[:7], request.scan_id, body["conclusion"],
    )
    return outcome
