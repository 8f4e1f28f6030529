"""Models package for LLM integration and API payloads."""

from workflow_dashboard.models.claude_client import ClaudeClient, calculate_cost
from workflow_dashboard.models.schemas import (
    AgentMetadataRead,
    ArtifactRead,
    ExecuteAgentResult,
    ExecutionDetail,
    ExecutionRead,
    LLMRequest,
    LLMResponse,
    MessageRead,
    ProjectDetail,
    ProjectRead,
)

__all__ = [
    # LLM
    "ClaudeClient",
    "calculate_cost",
    "LLMRequest",
    "LLMResponse",
    # API payloads
    "AgentMetadataRead",
    "ArtifactRead",
    "ExecuteAgentResult",
    "ExecutionDetail",
    "ExecutionRead",
    "MessageRead",
    "ProjectDetail",
    "ProjectRead",
]
