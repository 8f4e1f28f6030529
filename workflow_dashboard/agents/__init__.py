"""Agent catalog and execution service."""

from workflow_dashboard.agents.catalog import (
    AGENT_FILES,
    AgentCatalog,
    AgentConfig,
    AgentMetadata,
)
from workflow_dashboard.agents.executor import AgentExecutor, build_project_context

__all__ = [
    "AGENT_FILES",
    "AgentCatalog",
    "AgentConfig",
    "AgentMetadata",
    "AgentExecutor",
    "build_project_context",
]
