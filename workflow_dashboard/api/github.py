"""REST API exposing the GitHub bridge to the dashboard frontend."""

from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from workflow_dashboard.api.deps import get_github
from workflow_dashboard.bridges.github import GitHubBridge, PullRequestState
from workflow_dashboard.models.schemas import CamelModel

router = APIRouter(prefix="/api/github", tags=["github"])


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class FileUpdateRequest(CamelModel):
    path: Optional[str] = None
    content: Optional[str] = None
    message: Optional[str] = None
    sha: Optional[str] = None
    branch: Optional[str] = None


class BranchCreateRequest(CamelModel):
    branch_name: Optional[str] = None
    from_branch: Optional[str] = None


class PullRequestCreateRequest(CamelModel):
    title: Optional[str] = None
    head: Optional[str] = None
    base: Optional[str] = None
    body: Optional[str] = None


class IssueCreateRequest(CamelModel):
    title: Optional[str] = None
    body: Optional[str] = None
    labels: Optional[list[str]] = None


def _bad_request(message: str) -> HTTPException:
    return HTTPException(status_code=400, detail=message)


# ---------------------------------------------------------------------------
# Contents
# ---------------------------------------------------------------------------


@router.get("/tree")
async def get_tree(
    path: str = Query(default=""),
    ref: Optional[str] = Query(default=None),
    github: GitHubBridge = Depends(get_github),
) -> Any:
    return await github.get_repo_tree(path, ref)


@router.get("/file")
async def get_file(
    path: Optional[str] = Query(default=None),
    ref: Optional[str] = Query(default=None),
    github: GitHubBridge = Depends(get_github),
) -> Any:
    if not path:
        raise _bad_request("Path is required")
    return await github.get_file(path, ref)


@router.put("/file")
async def update_file(body: FileUpdateRequest, github: GitHubBridge = Depends(get_github)) -> Any:
    if not (body.path and body.content and body.message and body.sha):
        raise _bad_request("Missing required fields")
    return await github.update_file(body.path, body.content, body.message, body.sha, body.branch)


@router.post("/file")
async def create_file(body: FileUpdateRequest, github: GitHubBridge = Depends(get_github)) -> Any:
    if not (body.path and body.content and body.message):
        raise _bad_request("Missing required fields")
    return await github.create_file(body.path, body.content, body.message, body.branch)


# ---------------------------------------------------------------------------
# Branches & pull requests
# ---------------------------------------------------------------------------


@router.post("/branch")
async def create_branch(body: BranchCreateRequest, github: GitHubBridge = Depends(get_github)) -> Any:
    if not body.branch_name:
        raise _bad_request("Branch name is required")
    return await github.create_branch(body.branch_name, body.from_branch)


@router.get("/branches")
async def list_branches(github: GitHubBridge = Depends(get_github)) -> Any:
    return await github.get_branches()


@router.post("/pull-request")
async def create_pull_request(
    body: PullRequestCreateRequest, github: GitHubBridge = Depends(get_github)
) -> Any:
    if not (body.title and body.head):
        raise _bad_request("Title and head branch are required")
    return await github.create_pull_request(body.title, body.head, body.base, body.body)


@router.get("/pull-requests")
async def list_pull_requests(
    state: PullRequestState = Query(default="open"),
    github: GitHubBridge = Depends(get_github),
) -> Any:
    return await github.get_pull_requests(state)


# ---------------------------------------------------------------------------
# History, metadata, issues, search
# ---------------------------------------------------------------------------


@router.get("/commits")
async def list_commits(
    limit: int = Query(default=10, ge=1, le=100),
    github: GitHubBridge = Depends(get_github),
) -> Any:
    return await github.get_recent_commits(limit)


@router.get("/commits/{ref}")
async def get_commit(ref: str, github: GitHubBridge = Depends(get_github)) -> Any:
    return await github.get_commit_diff(ref)


@router.get("/repo")
async def get_repo(github: GitHubBridge = Depends(get_github)) -> Any:
    return await github.get_repo_info()


@router.post("/issue")
async def create_issue(body: IssueCreateRequest, github: GitHubBridge = Depends(get_github)) -> Any:
    if not body.title:
        raise _bad_request("Title is required")
    return await github.create_issue(body.title, body.body, body.labels)


@router.get("/search")
async def search_code(
    q: Optional[str] = Query(default=None),
    github: GitHubBridge = Depends(get_github),
) -> Any:
    if not q:
        raise _bad_request("Query is required")
    return await github.search_code(q)
