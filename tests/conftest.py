"""Pytest configuration and fixtures for the workflow dashboard tests."""

import asyncio
from pathlib import Path
from typing import Awaitable, Callable, Optional

import pytest

from workflow_dashboard.agents.catalog import AGENT_FILES, AgentCatalog
from workflow_dashboard.models.schemas import LLMRequest, LLMResponse
from workflow_dashboard.storage.database import Database
from workflow_dashboard.storage.models import Project, User


def agent_markdown(agent_id: int) -> str:
    return f"""# Agent {agent_id}: Specialist {agent_id}

## Role
Specialist number {agent_id} in the workflow.

## Inputs
- Locked artifacts

## System Prompt
```
You are specialist {agent_id}.
Answer with a markdown document.
```
"""


class FakeLLM:
    """Stand-in for ClaudeClient that records requests."""

    def __init__(
        self,
        content: str = "Generated document",
        input_tokens: int = 1000,
        output_tokens: int = 1000,
        error: Optional[Exception] = None,
    ) -> None:
        self.content = content
        self.input_tokens = input_tokens
        self.output_tokens = output_tokens
        self.error = error
        self.requests: list[LLMRequest] = []

    async def complete(self, request: LLMRequest) -> LLMResponse:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return LLMResponse(
            content=self.content,
            model_used="fake-model",
            input_tokens=self.input_tokens,
            output_tokens=self.output_tokens,
        )


@pytest.fixture
def agents_dir(tmp_path: Path) -> Path:
    """A directory holding all ten agent definitions."""
    directory = tmp_path / "agents"
    directory.mkdir()
    for agent_id, filename in enumerate(AGENT_FILES):
        (directory / filename).write_text(agent_markdown(agent_id), encoding="utf-8")
    return directory


@pytest.fixture
def catalog(agents_dir: Path) -> AgentCatalog:
    return AgentCatalog(agents_dir)


@pytest.fixture
def fake_llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def database_url(tmp_path: Path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'dashboard.db'}"


@pytest.fixture
def run_with_db(database_url: str) -> Callable[[Callable[[Database], Awaitable]], object]:
    """Run an async scenario against a fresh schema inside one event loop."""

    def runner(scenario: Callable[[Database], Awaitable]) -> object:
        async def wrapper() -> object:
            database = Database(database_url)
            await database.create_schema()
            try:
                return await scenario(database)
            finally:
                await database.disconnect()

        return asyncio.run(wrapper())

    return runner


async def seed_project(
    database: Database,
    name: str = "Ledger",
    description: Optional[str] = "Invoicing for freelancers",
    constraints: Optional[str] = None,
) -> str:
    async with database.session() as session:
        user = User(email=f"{name.lower()}@example.com", name="Owner")
        session.add(user)
        await session.flush()
        project = Project(
            user_id=user.id,
            name=name,
            description=description,
            constraints=constraints,
        )
        session.add(project)
        await session.flush()
        return project.id


@pytest.fixture
def make_project() -> Callable[..., Awaitable[str]]:
    return seed_project
