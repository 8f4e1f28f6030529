"""Shared Pydantic models for LLM calls and the records the API returns."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class LLMRequest(BaseModel):
    """Request schema for a single LLM completion."""

    prompt: str = Field(..., description="The user-role message content")
    system_prompt: Optional[str] = Field(
        default=None, description="System message to guide LLM behavior"
    )
    max_tokens: int = Field(default=8000, gt=0, description="Maximum tokens in response")

    class Config:
        """Pydantic configuration."""

        json_schema_extra = {
            "example": {
                "prompt": "Project: Invoicing SaaS\n\nUser Request:\nDraft the PRD",
                "system_prompt": "You are a product manager.",
                "max_tokens": 8000,
            }
        }


class LLMResponse(BaseModel):
    """Response schema from an LLM completion."""

    content: str = Field(..., description="Text of the first content block")
    model_used: str = Field(..., description="Name of the model that generated this")
    input_tokens: int = Field(default=0, ge=0, description="Prompt tokens billed")
    output_tokens: int = Field(default=0, ge=0, description="Completion tokens billed")
    cost_estimate: float = Field(default=0.0, ge=0, description="Estimated cost in USD")
    latency_ms: Optional[float] = Field(default=None, description="Response time in milliseconds")
    stop_reason: Optional[str] = Field(
        default=None,
        description="Reason generation stopped (e.g., 'end_turn', 'max_tokens')",
    )

    @property
    def tokens_used(self) -> int:
        """Total tokens consumed (input + output)."""
        return self.input_tokens + self.output_tokens


class CamelModel(BaseModel):
    """Base for API payloads: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AgentMetadataRead(CamelModel):
    id: int
    name: str
    role: str


class MessageRead(CamelModel):
    id: str
    project_id: str
    execution_id: Optional[str] = None
    role: str
    agent_id: Optional[int] = None
    content: str
    created_at: datetime


class ExecutionRead(CamelModel):
    id: str
    project_id: str
    agent_id: int
    status: str
    input: str
    output: Optional[str] = None
    error: Optional[str] = None
    duration: Optional[int] = None
    tokens_used: Optional[int] = None
    cost: Optional[float] = None
    created_at: datetime
    completed_at: Optional[datetime] = None


class ExecutionDetail(ExecutionRead):
    """Execution plus its messages in creation order."""

    messages: list[MessageRead] = Field(default_factory=list)


class ExecuteAgentResult(CamelModel):
    """Outcome of a successful agent execution."""

    execution_id: str
    output: str
    tokens_used: int
    cost: float


class ArtifactRead(CamelModel):
    id: str
    project_id: str
    type: str
    version: str
    content: str
    status: str
    agent_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime


class ProjectRead(CamelModel):
    id: str
    user_id: str
    name: str
    description: Optional[str] = None
    constraints: Optional[str] = None
    status: str
    stage: int
    created_at: datetime
    updated_at: datetime


class ProjectDetail(ProjectRead):
    artifacts: list[ArtifactRead] = Field(default_factory=list)
    executions: list[ExecutionRead] = Field(default_factory=list)
    messages: list[MessageRead] = Field(default_factory=list)
