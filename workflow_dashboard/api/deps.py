"""FastAPI dependencies resolving collaborators wired by ``create_app``."""

from typing import AsyncIterator

from fastapi import Request

from workflow_dashboard.agents.catalog import AgentCatalog
from workflow_dashboard.agents.executor import AgentExecutor
from workflow_dashboard.api.websocket import EventHub
from workflow_dashboard.bridges.github import GitHubBridge
from workflow_dashboard.core.config import Settings
from workflow_dashboard.storage.database import Database


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_catalog(request: Request) -> AgentCatalog:
    return request.app.state.catalog


def get_executor(request: Request) -> AgentExecutor:
    return request.app.state.executor


def get_event_hub(request: Request) -> EventHub:
    return request.app.state.event_hub


async def get_github(request: Request) -> AsyncIterator[GitHubBridge]:
    """Per-request GitHub bridge; raises ConfigurationError when unconfigured."""
    settings: Settings = request.app.state.settings
    bridge = GitHubBridge.from_settings(
        settings.github,
        transport=getattr(request.app.state, "github_transport", None),
    )
    try:
        yield bridge
    finally:
        await bridge.aclose()
