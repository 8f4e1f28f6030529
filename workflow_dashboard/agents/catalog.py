"""Agent catalog: the ten workflow personas defined as markdown files.

Each agent lives in ``<agents_dir>/agent-<id>-<slug>.md``. The loader pulls
three fields out of the markdown:

- the first ``# `` heading is the display name,
- the paragraph after ``## Role`` is the role description,
- the fenced block after ``## System Prompt`` is the system prompt.

Files are re-read on every call; nothing is cached.
"""

from __future__ import annotations

import pathlib
import re
from typing import Optional

import structlog
from pydantic import BaseModel, ConfigDict, Field

logger = structlog.get_logger(__name__)


AGENT_FILES: tuple[str, ...] = (
    "agent-0-orchestrator.md",
    "agent-1-problem-framer.md",
    "agent-2-competitive-mapper.md",
    "agent-3-product-manager.md",
    "agent-4-ux-designer.md",
    "agent-5-system-architect.md",
    "agent-6-engineer.md",
    "agent-7-qa-test-engineer.md",
    "agent-8-devops-deployment.md",
    "agent-9-analytics-growth.md",
)

DEFAULT_ROLE = "AI Agent"

_SYSTEM_PROMPT_RE = re.compile(r"## System Prompt\s*```([^`]+)```")
_NAME_RE = re.compile(r"^#\s+(.+)$", re.M)
_ROLE_RE = re.compile(r"## Role\s+(.+?)(?=\n##|\n\n)", re.S)


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class AgentMetadata(BaseModel):
    """Lightweight listing view of an agent (no prompt)."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0, lt=len(AGENT_FILES), description="Catalog index")
    name: str = Field(description="Display name")
    role: str = Field(description="Role description")


class AgentConfig(AgentMetadata):
    """Full agent definition as parsed from its markdown file."""

    system_prompt: str = Field(description="System prompt sent with every execution")
    file_path: pathlib.Path = Field(description="Source markdown file")

    def metadata(self) -> AgentMetadata:
        return AgentMetadata(id=self.id, name=self.name, role=self.role)


def parse_agent_markdown(agent_id: int, content: str, file_path: pathlib.Path) -> AgentConfig:
    """Extract name, role and system prompt from an agent definition."""
    prompt_match = _SYSTEM_PROMPT_RE.search(content)
    system_prompt = prompt_match.group(1).strip() if prompt_match else content

    name_match = _NAME_RE.search(content)
    name = name_match.group(1).strip() if name_match else f"Agent {agent_id}"

    role_match = _ROLE_RE.search(content)
    role = role_match.group(1).strip() if role_match else DEFAULT_ROLE

    return AgentConfig(
        id=agent_id,
        name=name,
        role=role,
        system_prompt=system_prompt,
        file_path=file_path,
    )


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class AgentCatalog:
    """Reads agent definitions from a directory of markdown files.

    Args:
        agents_dir: Directory containing the files named in ``AGENT_FILES``.
    """

    def __init__(self, agents_dir: pathlib.Path | str) -> None:
        self.agents_dir = pathlib.Path(agents_dir)

    def path_for(self, agent_id: int) -> Optional[pathlib.Path]:
        """Return the definition path for *agent_id*, or ``None`` if out of range."""
        if agent_id < 0 or agent_id >= len(AGENT_FILES):
            return None
        return self.agents_dir / AGENT_FILES[agent_id]

    def load_agent_prompt(self, agent_id: int) -> Optional[AgentConfig]:
        """Load and parse one agent.

        Never raises: an unknown id, a missing file, or an unreadable file
        all yield ``None``.
        """
        file_path = self.path_for(agent_id)
        if file_path is None:
            return None

        try:
            if not file_path.is_file():
                logger.error("agent_file_not_found", agent_id=agent_id, path=str(file_path))
                return None
            content = file_path.read_text(encoding="utf-8")
            return parse_agent_markdown(agent_id, content, file_path)
        except (OSError, ValueError) as exc:
            logger.error(
                "agent_load_failed",
                agent_id=agent_id,
                path=str(file_path),
                error=str(exc),
            )
            return None

    def load_all_agents(self) -> dict[int, AgentConfig]:
        """Load every agent that resolves, keyed and ordered by id."""
        agents: dict[int, AgentConfig] = {}
        for agent_id in range(len(AGENT_FILES)):
            agent = self.load_agent_prompt(agent_id)
            if agent is not None:
                agents[agent_id] = agent
        return agents

    def get_agent_metadata(self, agent_id: int) -> Optional[AgentMetadata]:
        agent = self.load_agent_prompt(agent_id)
        return agent.metadata() if agent else None

    def get_all_agent_metadata(self) -> list[AgentMetadata]:
        return [agent.metadata() for agent in self.load_all_agents().values()]

    def __repr__(self) -> str:
        return f"<AgentCatalog dir={self.agents_dir}>"
