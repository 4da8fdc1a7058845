"""
Changed-line scope of the pull request a commit belongs to, fetched from GitHub.

Used by the diff classifier to mark findings on PR-changed lines as new.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

_REPO_PATH_PATTERN = re.compile(r"github\.com[/:]([^/]+/[^/]+?)(?:\.git)?/?$", re.IGNORECASE)
_HUNK_HEADER_PATTERN = re.compile(r"^@@ -\d+(?:,\d+)? \+(\d+)(?:,\d+)? @@")

FILES_PER_PAGE = 100
MAX_FILE_PAGES = 20


class GitHubApiError(Exception):
    """Raised when a GitHub REST call returns an error status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass(frozen=True)
class DiffScope:
    """Files and new-file line numbers touched by a pull request."""

    repo_path: str
    pr_number: int
    base_ref: str
    base_sha: str
    head_sha: str
    changed_files: frozenset[str] = field(default_factory=frozenset)
    changed_lines: dict[str, frozenset[int]] = field(default_factory=dict)
    files_missing_patch: frozenset[str] = field(default_factory=frozenset)


def parse_repo_path(repo_url: str | None) -> str | None:
    """'owner/repo' from a GitHub URL (https, .git suffix or ssh form), else None."""
    if not repo_url:
        return None
    match = _REPO_PATH_PATTERN.search(repo_url.strip())
    return match.group(1) if match else None


def _diff_path(path: str) -> str:
    return str(path or "").replace("\\", "/").lstrip("/").strip()


def changed_lines_from_patch(patch: str) -> frozenset[int]:
    """New-file line numbers added by a unified diff patch."""
    changed: set[int] = set()
    new_line = 0
    for raw in patch.split("\n"):
        header = _HUNK_HEADER_PATTERN.match(raw)
        if header:
            new_line = int(header.group(1))
            continue
        if new_line == 0:
            continue
        if raw.startswith("+++ ") or raw.startswith("--- "):
            continue
        if raw.startswith("+"):
            changed.add(new_line)
            new_line += 1
        elif raw.startswith(" "):
            new_line += 1
        # "-" lines and "\ No newline at end of file" do not advance the new file.
    return frozenset(changed)


def build_diff_scope(
    repo_path: str,
    pull: dict[str, Any],
    files: list[dict[str, Any]],
) -> DiffScope:
    """Assemble a DiffScope from a PR detail payload and its file list."""
    changed_files: set[str] = set()
    changed_lines: dict[str, frozenset[int]] = {}
    missing_patch: set[str] = set()
    for entry in files:
        name = _diff_path(entry.get("filename", ""))
        if not name:
            continue
        changed_files.add(name)
        patch = entry.get("patch")
        if isinstance(patch, str) and patch:
            changed_lines[name] = changed_lines_from_patch(patch)
        else:
            missing_patch.add(name)
    base = pull.get("base") or {}
    head = pull.get("head") or {}
    return DiffScope(
        repo_path=repo_path,
        pr_number=int(pull.get("number") or 0),
        base_ref=str(base.get("ref") or ""),
        base_sha=str(base.get("sha") or ""),
        head_sha=str(head.get("sha") or ""),
        changed_files=frozenset(changed_files),
        changed_lines=changed_lines,
        files_missing_patch=frozenset(missing_patch),
    )


async def _get_json(client: httpx.AsyncClient, url: str, **kwargs: Any) -> Any:
    resp = await client.get(url, **kwargs)
    if resp.status_code >= 400:
        raise GitHubApiError(
            f"GitHub API {resp.status_code}: {resp.text[:200]}", resp.status_code
        )
    return resp.json()


async def fetch_diff_scope(
    client: httpx.AsyncClient,
    api_url: str,
    repo_path: str,
    sha: str,
) -> DiffScope | None:
    """Find the PR containing sha and collect its changed files; None when there is no PR."""
    pulls = await _get_json(
        client,
        f"{api_url}/repos/{repo_path}/commits/{sha}/pulls",
        headers={"Accept": "application/vnd.github+json, application/vnd.github.groot-preview+json"},
    )
    if not isinstance(pulls, list) or not pulls:
        return None
    pr_number = pulls[0].get("number")
    if not pr_number:
        return None

    pull = await _get_json(client, f"{api_url}/repos/{repo_path}/pulls/{pr_number}")

    files: list[dict[str, Any]] = []
    for page in range(1, MAX_FILE_PAGES + 1):
        batch = await _get_json(
            client,
            f"{api_url}/repos/{repo_path}/pulls/{pr_number}/files",
            params={"per_page": FILES_PER_PAGE, "page": page},
        )
        if not isinstance(batch, list) or not batch:
            break
        files.extend(b for b in batch if isinstance(b, dict))
        if len(batch) < FILES_PER_PAGE:
            break

    return build_diff_scope(repo_path, pull, files)


def github_headers(token: str) -> dict[str, str]:
    return {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": "2022-11-28",
    }


async def get_diff_scope(
    repo_url: str | None,
    sha: str | None,
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> DiffScope | None:
    """
    Diff scope for a commit, or None when unavailable.

    Returns None without a GITHUB_TOKEN, a parseable repo URL, or a real sha.
    GitHub errors are logged and also yield None so classification falls back
    to baseline matching.
    """
    if settings.GITHUB_TOKEN is None:
        return None
    if not sha or sha == "local":
        return None
    repo_path = parse_repo_path(repo_url)
    if not repo_path:
        return None

    token = settings.GITHUB_TOKEN.get_secret_value()
    try:
        async with httpx.AsyncClient(
            headers=github_headers(token),
            timeout=settings.GITHUB_REQUEST_TIMEOUT_SEC,
            transport=transport,
        ) as client:
            return await fetch_diff_scope(client, settings.GITHUB_API_URL, repo_path, sha)
    except (GitHubApiError, httpx.HTTPError, ValueError) as e:
        logger.warning("PR diff lookup failed for %s@%s: %s", repo_path, sha, e)
        return None


def diff_context_for_db(scope: DiffScope | None) -> dict[str, Any] | None:
    """JSON snapshot of the PR scope stored on the scan row."""
    if scope is None:
        return None
    return {
        "prNumber": scope.pr_number,
        "baseRef": scope.base_ref,
        "baseSha": scope.base_sha,
        "headSha": scope.head_sha,
        "filesMissingPatch": sorted(scope.files_missing_patch),
        "changedFilesCount": len(scope.changed_files),
    }
