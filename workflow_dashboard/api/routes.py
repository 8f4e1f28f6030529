"""REST API for projects, artifacts, agents and agent executions."""

from __future__ import annotations

import json
from typing import Any, Optional, Union

import structlog
from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy import select
from sqlalchemy.orm import selectinload

from workflow_dashboard.agents.catalog import AgentCatalog
from workflow_dashboard.agents.executor import AgentExecutor
from workflow_dashboard.api.deps import get_catalog, get_database, get_event_hub, get_executor
from workflow_dashboard.api.websocket import EventHub
from workflow_dashboard.core.exceptions import (
    ArtifactNotFoundError,
    ExecutionNotFoundError,
    ProjectNotFoundError,
)
from workflow_dashboard.models.schemas import (
    AgentMetadataRead,
    ArtifactRead,
    CamelModel,
    ExecuteAgentResult,
    ExecutionDetail,
    ProjectDetail,
    ProjectRead,
)
from workflow_dashboard.storage.database import Database
from workflow_dashboard.storage.models import (
    Artifact,
    ArtifactStatus,
    Project,
    ProjectStatus,
    User,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api", tags=["dashboard"])

DEFAULT_USER_EMAIL = "default@example.com"
DEFAULT_USER_NAME = "Default User"


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class ProjectCreateRequest(CamelModel):
    """Body for POST /api/projects."""
    name: str
    description: Optional[str] = None
    constraints: Optional[Union[str, dict[str, Any]]] = None


class ProjectUpdateRequest(CamelModel):
    """Body for PUT /api/projects/{id}."""
    name: Optional[str] = None
    description: Optional[str] = None
    constraints: Optional[Union[str, dict[str, Any]]] = None
    status: Optional[ProjectStatus] = None
    stage: Optional[int] = None


class ExecuteRequest(CamelModel):
    """Body for POST /api/projects/{id}/agents/{agent_id}/execute."""
    user_message: Optional[str] = None
    context: Optional[Any] = None


class ArtifactCreateRequest(CamelModel):
    """Body for POST /api/projects/{id}/artifacts."""
    type: str
    content: str = ""
    version: str = "v1"
    status: ArtifactStatus = ArtifactStatus.DRAFT
    agent_id: Optional[int] = None


class ArtifactUpdateRequest(CamelModel):
    """Body for PUT /api/artifacts/{id}."""
    content: Optional[str] = None
    status: Optional[ArtifactStatus] = None
    version: Optional[str] = None


def _serialize_constraints(value: Optional[Union[str, dict[str, Any]]]) -> Optional[str]:
    if isinstance(value, dict):
        return json.dumps(value)
    return value


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


@router.get("/projects", response_model=list[ProjectRead])
async def list_projects(database: Database = Depends(get_database)) -> list[ProjectRead]:
    """All projects, most recently updated first."""
    async with database.session() as session:
        projects = (
            await session.scalars(select(Project).order_by(Project.updated_at.desc()))
        ).all()
        return [ProjectRead.model_validate(p) for p in projects]


@router.post("/projects", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreateRequest, database: Database = Depends(get_database)
) -> ProjectRead:
    """Create a project owned by the default user (created on first use)."""
    async with database.session() as session:
        user = await session.scalar(select(User).limit(1))
        if user is None:
            user = User(email=DEFAULT_USER_EMAIL, name=DEFAULT_USER_NAME)
            session.add(user)
            await session.flush()

        project = Project(
            user_id=user.id,
            name=body.name,
            description=body.description,
            constraints=_serialize_constraints(body.constraints),
        )
        session.add(project)
        await session.flush()
        await session.refresh(project)
        await logger.ainfo("project_created", project_id=project.id, name=project.name)
        return ProjectRead.model_validate(project)


@router.get("/projects/{project_id}", response_model=ProjectDetail)
async def get_project(project_id: str, database: Database = Depends(get_database)) -> ProjectDetail:
    """A project with its artifacts, executions and messages."""
    async with database.session() as session:
        project = await session.scalar(
            select(Project)
            .where(Project.id == project_id)
            .options(
                selectinload(Project.artifacts),
                selectinload(Project.executions),
                selectinload(Project.messages),
            )
        )
        if project is None:
            raise ProjectNotFoundError()
        return ProjectDetail.model_validate(project)


@router.put("/projects/{project_id}", response_model=ProjectRead)
async def update_project(
    project_id: str,
    body: ProjectUpdateRequest,
    database: Database = Depends(get_database),
) -> ProjectRead:
    """Partial update; fields left out or null are unchanged."""
    async with database.session() as session:
        project = await session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError()

        if body.name:
            project.name = body.name
        if body.description:
            project.description = body.description
        if body.constraints:
            project.constraints = _serialize_constraints(body.constraints)
        if body.status is not None:
            project.status = body.status.value
        if body.stage is not None:
            project.stage = body.stage

        await session.flush()
        await session.refresh(project)
        return ProjectRead.model_validate(project)


@router.delete("/projects/{project_id}", status_code=204)
async def delete_project(project_id: str, database: Database = Depends(get_database)) -> Response:
    async with database.session() as session:
        project = await session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError()
        await session.delete(project)
    await logger.ainfo("project_deleted", project_id=project_id)
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Agents & executions
# ---------------------------------------------------------------------------


@router.get("/agents", response_model=list[AgentMetadataRead])
async def list_agents(catalog: AgentCatalog = Depends(get_catalog)) -> list[AgentMetadataRead]:
    """Metadata (without prompts) for every agent that loads."""
    return [
        AgentMetadataRead(id=meta.id, name=meta.name, role=meta.role)
        for meta in catalog.get_all_agent_metadata()
    ]


@router.post("/projects/{project_id}/agents/{agent_id}/execute", response_model=ExecuteAgentResult)
async def execute_agent(
    project_id: str,
    agent_id: int,
    body: ExecuteRequest,
    executor: AgentExecutor = Depends(get_executor),
    hub: EventHub = Depends(get_event_hub),
) -> ExecuteAgentResult:
    """Run an agent against a project and return its output."""
    if not body.user_message:
        raise HTTPException(status_code=400, detail="userMessage is required")

    await hub.publish(project_id, "execution:started", {"agentId": agent_id})
    try:
        result = await executor.execute_agent(
            project_id=project_id,
            agent_id=agent_id,
            user_message=body.user_message,
            context=body.context,
        )
    except Exception as exc:
        await hub.publish(
            project_id, "execution:failed", {"agentId": agent_id, "error": str(exc)}
        )
        raise

    await hub.publish(
        project_id,
        "execution:completed",
        {"agentId": agent_id, **result.model_dump(by_alias=True)},
    )
    return result


@router.get("/executions/{execution_id}", response_model=ExecutionDetail)
async def get_execution(
    execution_id: str, executor: AgentExecutor = Depends(get_executor)
) -> ExecutionDetail:
    execution = await executor.get_execution_status(execution_id)
    if execution is None:
        raise ExecutionNotFoundError()
    return execution


# ---------------------------------------------------------------------------
# Artifacts
# ---------------------------------------------------------------------------


@router.get("/projects/{project_id}/artifacts", response_model=list[ArtifactRead])
async def list_artifacts(
    project_id: str, database: Database = Depends(get_database)
) -> list[ArtifactRead]:
    async with database.session() as session:
        artifacts = (
            await session.scalars(
                select(Artifact)
                .where(Artifact.project_id == project_id)
                .order_by(Artifact.updated_at.desc())
            )
        ).all()
        return [ArtifactRead.model_validate(a) for a in artifacts]


@router.post("/projects/{project_id}/artifacts", response_model=ArtifactRead, status_code=201)
async def create_artifact(
    project_id: str,
    body: ArtifactCreateRequest,
    database: Database = Depends(get_database),
) -> ArtifactRead:
    async with database.session() as session:
        if await session.get(Project, project_id) is None:
            raise ProjectNotFoundError()
        artifact = Artifact(
            project_id=project_id,
            type=body.type,
            content=body.content,
            version=body.version,
            status=body.status.value,
            agent_id=body.agent_id,
        )
        session.add(artifact)
        await session.flush()
        await session.refresh(artifact)
        return ArtifactRead.model_validate(artifact)


@router.get("/artifacts/{artifact_id}", response_model=ArtifactRead)
async def get_artifact(artifact_id: str, database: Database = Depends(get_database)) -> ArtifactRead:
    async with database.session() as session:
        artifact = await session.get(Artifact, artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError()
        return ArtifactRead.model_validate(artifact)


@router.put("/artifacts/{artifact_id}", response_model=ArtifactRead)
async def update_artifact(
    artifact_id: str,
    body: ArtifactUpdateRequest,
    database: Database = Depends(get_database),
) -> ArtifactRead:
    """Partial update of content, status or version."""
    async with database.session() as session:
        artifact = await session.get(Artifact, artifact_id)
        if artifact is None:
            raise ArtifactNotFoundError()
        if body.content:
            artifact.content = body.content
        if body.status is not None:
            artifact.status = body.status.value
        if body.version:
            artifact.version = body.version
        await session.flush()
        await session.refresh(artifact)
        return ArtifactRead.model_validate(artifact)
