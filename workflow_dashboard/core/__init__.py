"""Core configuration, logging and error types."""

from workflow_dashboard.core.config import (
    AgentCatalogSettings,
    ClaudeSettings,
    DatabaseSettings,
    GitHubSettings,
    MasterSettings,
    ServerSettings,
    Settings,
    SystemSettings,
)
from workflow_dashboard.core.exceptions import (
    AgentNotFoundError,
    ArtifactNotFoundError,
    ConfigurationError,
    DashboardError,
    ExecutionNotFoundError,
    GitHubError,
    NotFoundError,
    ProjectNotFoundError,
)
from workflow_dashboard.core.logging import configure_logging

__all__ = [
    # Configuration
    "SystemSettings",
    "ServerSettings",
    "DatabaseSettings",
    "ClaudeSettings",
    "AgentCatalogSettings",
    "GitHubSettings",
    "MasterSettings",
    "Settings",
    # Errors
    "DashboardError",
    "ConfigurationError",
    "NotFoundError",
    "AgentNotFoundError",
    "ProjectNotFoundError",
    "ExecutionNotFoundError",
    "ArtifactNotFoundError",
    "GitHubError",
    # Logging
    "configure_logging",
]
