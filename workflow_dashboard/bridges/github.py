"""GitHub REST bridge for repository browsing and commit/PR operations.

Each method maps to one GitHub REST v3 call on the configured repository.
There is no retry and no caching.

Usage::

    async with GitHubBridge.from_settings(settings.github) as gh:
        tree = await gh.get_repo_tree("src")
        file = await gh.get_file("README.md")
"""

from __future__ import annotations

import base64
from typing import Any, Literal, Optional

import httpx
import structlog

from workflow_dashboard.core.config import GitHubSettings
from workflow_dashboard.core.exceptions import ConfigurationError, GitHubError

logger = structlog.get_logger(__name__)

GITHUB_API_URL = "https://api.github.com"

PullRequestState = Literal["open", "closed", "all"]


def _encode(content: str) -> str:
    return base64.b64encode(content.encode("utf-8")).decode("ascii")


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return response.text or f"GitHub API returned {response.status_code}"
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"GitHub API returned {response.status_code}"


class GitHubBridge:
    """Thin async wrapper around the GitHub REST API for one repository.

    Args:
        token: Personal access token.
        owner: Repository owner.
        repo: Repository name.
        default_branch: Ref used when a call names none.
        base_url: API root (override for GitHub Enterprise).
        timeout: HTTP timeout in seconds.
        transport: Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        default_branch: str = "main",
        base_url: str = GITHUB_API_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.default_branch = default_branch
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )

    @classmethod
    def from_settings(
        cls,
        settings: GitHubSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "GitHubBridge":
        """Build a bridge from :class:`GitHubSettings`.

        Raises:
            ConfigurationError: Unless token, owner and repo are all set.
        """
        if not settings.is_configured:
            raise ConfigurationError("GitHub credentials not configured")
        return cls(
            token=settings.token.get_secret_value(),
            owner=settings.owner,
            repo=settings.repo,
            default_branch=settings.default_branch,
            base_url=settings.api_url,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "GitHubBridge":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ── Internals ─────────────────────────────────────────────────

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        response = await self._client.request(method, url, **kwargs)
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "github_request_failed",
                method=method,
                url=url,
                status_code=response.status_code,
                error=message,
            )
            raise GitHubError(message, status_code=response.status_code)
        if not response.content:
            return None
        return response.json()

    # ── Contents ──────────────────────────────────────────────────

    async def get_repo_tree(self, path: str = "", ref: Optional[str] = None) -> Any:
        """List a directory (or describe a file) at *path*."""
        return await self._request(
            "GET",
            f"{self._repo_path}/contents/{path}",
            params={"ref": ref or self.default_branch},
        )

    async def get_file(self, path: str, ref: Optional[str] = None) -> dict[str, Any]:
        """Fetch a file and decode its content.

        Raises:
            GitHubError: If *path* is a directory or other non-file entry.
        """
        data = await self.get_repo_tree(path, ref)
        if not isinstance(data, dict) or "content" not in data:
            raise GitHubError("Not a file")
        return {
            "content": base64.b64decode(data["content"]).decode("utf-8"),
            "sha": data["sha"],
            "path": data["path"],
            "name": data["name"],
        }

    async def update_file(
        self,
        path: str,
        content: str,
        message: str,
        sha: str,
        branch: Optional[str] = None,
    ) -> Any:
        return await self._request(
            "PUT",
            f"{self._repo_path}/contents/{path}",
            json={
                "message": message,
                "content": _encode(content),
                "sha": sha,
                "branch": branch or self.default_branch,
            },
        )

    async def create_file(
        self,
        path: str,
        content: str,
        message: str,
        branch: Optional[str] = None,
    ) -> Any:
        return await self._request(
            "PUT",
            f"{self._repo_path}/contents/{path}",
            json={
                "message": message,
                "content": _encode(content),
                "branch": branch or self.default_branch,
            },
        )

    # ── Branches & pull requests ──────────────────────────────────

    async def create_branch(self, branch_name: str, from_branch: Optional[str] = None) -> Any:
        """Create ``refs/heads/<branch_name>`` at the tip of *from_branch*."""
        base = from_branch or self.default_branch
        ref_data = await self._request("GET", f"{self._repo_path}/git/ref/heads/{base}")
        return await self._request(
            "POST",
            f"{self._repo_path}/git/refs",
            json={"ref": f"refs/heads/{branch_name}", "sha": ref_data["object"]["sha"]},
        )

    async def get_branches(self) -> Any:
        return await self._request("GET", f"{self._repo_path}/branches")

    async def create_pull_request(
        self,
        title: str,
        head: str,
        base: Optional[str] = None,
        body: Optional[str] = None,
    ) -> Any:
        payload: dict[str, Any] = {
            "title": title,
            "head": head,
            "base": base or self.default_branch,
        }
        if body is not None:
            payload["body"] = body
        return await self._request("POST", f"{self._repo_path}/pulls", json=payload)

    async def get_pull_requests(self, state: PullRequestState = "open") -> Any:
        return await self._request("GET", f"{self._repo_path}/pulls", params={"state": state})

    # ── History & metadata ────────────────────────────────────────

    async def get_recent_commits(self, limit: int = 10) -> Any:
        return await self._request(
            "GET", f"{self._repo_path}/commits", params={"per_page": limit}
        )

    async def get_commit_diff(self, ref: str) -> Any:
        return await self._request("GET", f"{self._repo_path}/commits/{ref}")

    async def get_repo_info(self) -> Any:
        return await self._request("GET", self._repo_path)

    # ── Issues & search ───────────────────────────────────────────

    async def create_issue(
        self,
        title: str,
        body: Optional[str] = None,
        labels: Optional[list[str]] = None,
    ) -> Any:
        payload: dict[str, Any] = {"title": title}
        if body is not None:
            payload["body"] = body
        if labels:
            payload["labels"] = labels
        return await self._request("POST", f"{self._repo_path}/issues", json=payload)

    async def search_code(self, query: str) -> Any:
        """Search code, scoped to the configured repository."""
        return await self._request(
            "GET",
            "/search/code",
            params={"q": f"{query} repo:{self.owner}/{self.repo}"},
        )

    def __repr__(self) -> str:
        return f"<GitHubBridge repo={self.owner}/{self.repo}>"
