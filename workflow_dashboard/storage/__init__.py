"""Persistence layer: ORM models and the async database handle."""

from workflow_dashboard.storage.database import Database
from workflow_dashboard.storage.models import (
    AgentExecution,
    Artifact,
    ArtifactStatus,
    Base,
    ExecutionStatus,
    Message,
    MessageRole,
    Project,
    ProjectStatus,
    User,
)

__all__ = [
    "Database",
    "AgentExecution",
    "Artifact",
    "ArtifactStatus",
    "Base",
    "ExecutionStatus",
    "Message",
    "MessageRole",
    "Project",
    "ProjectStatus",
    "User",
]
