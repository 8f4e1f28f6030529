"""Agent execution service.

Runs one catalog agent against one project:

1. resolve the agent definition,
2. record a RUNNING execution,
3. assemble the prompt from project metadata and locked artifacts,
4. make a single Claude call,
5. persist the USER/AGENT message pair and mark the execution COMPLETED.

Any failure after step 2 marks the execution FAILED and is re-raised
unchanged. There is no retry and no locking; concurrent calls for the same
project/agent pair each get their own execution.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timezone
from typing import Any, Optional, Protocol, Sequence

import structlog
from sqlalchemy import select, update
from sqlalchemy.orm import selectinload

from workflow_dashboard.agents.catalog import AgentCatalog
from workflow_dashboard.core.exceptions import (
    AgentNotFoundError,
    ConfigurationError,
    ProjectNotFoundError,
)
from workflow_dashboard.models.claude_client import calculate_cost
from workflow_dashboard.models.schemas import (
    ExecuteAgentResult,
    ExecutionDetail,
    LLMRequest,
    LLMResponse,
)
from workflow_dashboard.storage.database import Database
from workflow_dashboard.storage.models import (
    AgentExecution,
    Artifact,
    ArtifactStatus,
    ExecutionStatus,
    Message,
    MessageRole,
    Project,
)

logger = structlog.get_logger(__name__)

NOT_SPECIFIED = "Not specified"
DEFAULT_MAX_TOKENS = 8000


class LLMClient(Protocol):
    async def complete(self, request: LLMRequest) -> LLMResponse: ...


def _constraint_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join(_constraint_text(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def _format_constraint(value: Any) -> str:
    # Empty lists and objects count as given; None, false, 0 and "" do not.
    if value is None or value is False or value == 0 or value == "":
        return NOT_SPECIFIED
    return _constraint_text(value)


def build_project_context(project: Project, artifacts: Sequence[Artifact]) -> str:
    """Render project metadata and locked artifacts as prompt context.

    Artifacts are rendered in the order given. Constraints that fail to parse,
    or parse to ``null``, are skipped silently. Any other JSON value renders
    the block, with fields it does not carry shown as "Not specified".
    """
    context = f"Project: {project.name}\n"

    if project.description:
        context += f"Description: {project.description}\n"

    if project.constraints:
        try:
            constraints = json.loads(project.constraints)
        except (TypeError, ValueError):
            constraints = None
        if constraints is not None:
            fields = constraints if isinstance(constraints, dict) else {}
            context += "\nConstraints:\n"
            context += f"- Timeline: {_format_constraint(fields.get('timeline'))}\n"
            context += f"- Budget: {_format_constraint(fields.get('budget'))}\n"
            context += f"- Tech Stack: {_format_constraint(fields.get('techStack'))}\n"

    if artifacts:
        context += "\n--- Previous Artifacts ---\n\n"
        for artifact in artifacts:
            context += f"## {artifact.type} ({artifact.version})\n\n"
            context += f"{artifact.content}\n\n"
            context += "---\n\n"

    return context


def build_user_content(context: str, user_message: str) -> str:
    return f"{context}\n\nUser Request:\n{user_message}"


class AgentExecutor:
    """Executes catalog agents and records the outcome.

    Args:
        database: Persistence handle.
        catalog: Source of agent definitions.
        llm_client: Claude client; ``None`` when no API key is configured.
        max_tokens: Output token cap per call.
    """

    def __init__(
        self,
        database: Database,
        catalog: AgentCatalog,
        llm_client: Optional[LLMClient],
        max_tokens: int = DEFAULT_MAX_TOKENS,
    ) -> None:
        self.database = database
        self.catalog = catalog
        self.llm_client = llm_client
        self.max_tokens = max_tokens

    async def execute_agent(
        self,
        project_id: str,
        agent_id: int,
        user_message: str,
        context: Any = None,
    ) -> ExecuteAgentResult:
        """Run *agent_id* against *project_id* with *user_message*.

        Raises:
            AgentNotFoundError: The agent does not resolve (no record created).
            ConfigurationError: No LLM client is configured (no record created).
            ProjectNotFoundError: The project does not exist (record FAILED).
            Exception: Any LLM or persistence error, unchanged (record FAILED).
        """
        agent = self.catalog.load_agent_prompt(agent_id)
        if agent is None:
            raise AgentNotFoundError(agent_id)
        if self.llm_client is None:
            raise ConfigurationError("ANTHROPIC_API_KEY not set in environment variables")

        async with self.database.session() as session:
            execution = AgentExecution(
                project_id=project_id,
                agent_id=agent_id,
                status=ExecutionStatus.RUNNING.value,
                input=json.dumps({"userMessage": user_message, "context": context}),
            )
            session.add(execution)
            await session.flush()
            execution_id = execution.id

        await logger.ainfo(
            "agent_execution_started",
            execution_id=execution_id,
            project_id=project_id,
            agent_id=agent_id,
            agent_name=agent.name,
        )

        try:
            async with self.database.session() as session:
                project = await session.get(Project, project_id)
                if project is None:
                    raise ProjectNotFoundError()
                artifacts = (
                    await session.scalars(
                        select(Artifact)
                        .where(
                            Artifact.project_id == project_id,
                            Artifact.status == ArtifactStatus.LOCKED.value,
                        )
                        .order_by(Artifact.created_at.asc())
                    )
                ).all()
                context_message = build_project_context(project, artifacts)

            started = time.monotonic()
            response = await self.llm_client.complete(
                LLMRequest(
                    prompt=build_user_content(context_message, user_message),
                    system_prompt=agent.system_prompt,
                    max_tokens=self.max_tokens,
                )
            )
            duration_ms = int((time.monotonic() - started) * 1000)

            output = response.content
            tokens_used = response.input_tokens + response.output_tokens
            cost = calculate_cost(response.input_tokens, response.output_tokens)

            async with self.database.session() as session:
                session.add(
                    Message(
                        project_id=project_id,
                        execution_id=execution_id,
                        role=MessageRole.USER.value,
                        agent_id=None,
                        content=user_message,
                    )
                )
                session.add(
                    Message(
                        project_id=project_id,
                        execution_id=execution_id,
                        role=MessageRole.AGENT.value,
                        agent_id=agent_id,
                        content=output,
                    )
                )
                await session.execute(
                    update(AgentExecution)
                    .where(AgentExecution.id == execution_id)
                    .values(
                        status=ExecutionStatus.COMPLETED.value,
                        output=json.dumps({"text": output}),
                        duration=duration_ms,
                        tokens_used=tokens_used,
                        cost=cost,
                        completed_at=datetime.now(timezone.utc),
                    )
                )
        except Exception as exc:
            await self._mark_failed(execution_id, exc)
            raise

        await logger.ainfo(
            "agent_execution_completed",
            execution_id=execution_id,
            agent_id=agent_id,
            duration_ms=duration_ms,
            tokens_used=tokens_used,
            cost=cost,
        )
        return ExecuteAgentResult(
            execution_id=execution_id,
            output=output,
            tokens_used=tokens_used,
            cost=cost,
        )

    async def _mark_failed(self, execution_id: str, exc: BaseException) -> None:
        await logger.aerror(
            "agent_execution_failed",
            execution_id=execution_id,
            error=str(exc),
            error_type=type(exc).__name__,
        )
        try:
            async with self.database.session() as session:
                await session.execute(
                    update(AgentExecution)
                    .where(AgentExecution.id == execution_id)
                    .values(
                        status=ExecutionStatus.FAILED.value,
                        error=str(exc),
                        completed_at=datetime.now(timezone.utc),
                    )
                )
        except Exception as db_exc:
            # The caller re-raises the execution error.
            await logger.aerror(
                "agent_execution_fail_record_failed",
                execution_id=execution_id,
                error=str(db_exc),
            )

    async def get_execution_status(self, execution_id: str) -> Optional[ExecutionDetail]:
        """Fetch an execution and its messages, or ``None`` if it does not exist."""
        async with self.database.session() as session:
            execution = await session.scalar(
                select(AgentExecution)
                .where(AgentExecution.id == execution_id)
                .options(selectinload(AgentExecution.messages))
            )
            if execution is None:
                return None
            return ExecutionDetail.model_validate(execution)
