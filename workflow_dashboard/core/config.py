"""Configuration management for the workflow dashboard using Pydantic Settings."""

import pathlib
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from workflow_dashboard.core.exceptions import ConfigurationError

# Value shipped in the example .env; treated the same as a missing key.
PLACEHOLDER_API_KEY = "your-api-key-here"


class SystemSettings(BaseSettings):
    """System-level configuration settings.

    Attributes:
        name: Display name of the dashboard.
        environment: Deployment environment (development, staging, production).
        debug: Enable debug mode (stack traces in error responses).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        json_logs: Render log lines as JSON instead of the console format.
    """

    name: str = Field(default="Workflow Dashboard", description="System name")
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Deployment environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    json_logs: bool = Field(default=False, description="Emit JSON log lines")

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_SYSTEM_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ServerSettings(BaseSettings):
    """HTTP server configuration settings.

    Attributes:
        host: Interface to bind.
        port: Port to listen on.
        frontend_url: Origin of the dashboard frontend, allowed by CORS.
    """

    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=4000, description="Listen port", gt=0)
    frontend_url: str = Field(
        default="http://localhost:3000",
        description="Frontend origin allowed by CORS",
        validation_alias=AliasChoices("DASHBOARD_SERVER_FRONTEND_URL", "FRONTEND_URL", "frontend_url"),
    )

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_SERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


class DatabaseSettings(BaseSettings):
    """Database configuration settings.

    Attributes:
        url: SQLAlchemy async connection URL.
        echo: Log every SQL statement.
    """

    url: str = Field(
        default="sqlite+aiosqlite:///./dashboard.db",
        description="SQLAlchemy async database URL",
    )
    echo: bool = Field(default=False, description="Echo SQL statements")

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_DATABASE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class ClaudeSettings(BaseSettings):
    """Anthropic Claude LLM configuration settings.

    Attributes:
        api_key: Anthropic API key.
        model: Claude model used for every agent execution.
        max_tokens: Maximum output tokens per execution.
        timeout: Request timeout in seconds.
    """

    api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Anthropic API key",
        validation_alias=AliasChoices("DASHBOARD_CLAUDE_API_KEY", "ANTHROPIC_API_KEY", "api_key"),
    )
    model: str = Field(default="claude-sonnet-4-20250514", description="Claude model")
    max_tokens: int = Field(default=8000, description="Maximum output tokens", gt=0, le=200000)
    timeout: float = Field(default=600.0, description="Request timeout in seconds", gt=0)

    @property
    def is_configured(self) -> bool:
        """Whether a real API key has been provided."""
        key = self.api_key.get_secret_value().strip()
        return bool(key) and key != PLACEHOLDER_API_KEY

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_CLAUDE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


class AgentCatalogSettings(BaseSettings):
    """Agent catalog configuration.

    Attributes:
        agents_dir: Directory holding the ``agent-N-*.md`` definition files.
    """

    agents_dir: pathlib.Path = Field(
        default=pathlib.Path("agents"), description="Agent markdown directory"
    )

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_AGENTS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


class GitHubSettings(BaseSettings):
    """GitHub integration configuration settings.

    Attributes:
        token: Personal access token.
        owner: Repository owner (user or organisation).
        repo: Repository name.
        default_branch: Branch used when a request names none.
        api_url: GitHub REST API base URL.
    """

    token: SecretStr = Field(
        default=SecretStr(""),
        description="GitHub token",
        validation_alias=AliasChoices("DASHBOARD_GITHUB_TOKEN", "GITHUB_TOKEN", "token"),
    )
    owner: str = Field(
        default="",
        description="Repository owner",
        validation_alias=AliasChoices("DASHBOARD_GITHUB_OWNER", "GITHUB_OWNER", "owner"),
    )
    repo: str = Field(
        default="",
        description="Repository name",
        validation_alias=AliasChoices("DASHBOARD_GITHUB_REPO", "GITHUB_REPO", "repo"),
    )
    default_branch: str = Field(default="main", description="Default branch")
    api_url: str = Field(default="https://api.github.com", description="GitHub API base URL")

    @property
    def is_configured(self) -> bool:
        """Whether token, owner and repo are all set."""
        return bool(self.token.get_secret_value() and self.owner and self.repo)

    model_config = SettingsConfigDict(
        env_prefix="DASHBOARD_GITHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


class MasterSettings(BaseSettings):
    """Master settings combining all configuration classes."""

    system: SystemSettings = Field(default_factory=SystemSettings)
    server: ServerSettings = Field(default_factory=ServerSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    claude: ClaudeSettings = Field(default_factory=ClaudeSettings)
    agents: AgentCatalogSettings = Field(default_factory=AgentCatalogSettings)
    github: GitHubSettings = Field(default_factory=GitHubSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_env(cls) -> "MasterSettings":
        """Load settings from environment variables and .env file.

        Returns:
            MasterSettings instance with all configuration loaded.
        """
        return cls(
            system=SystemSettings(),
            server=ServerSettings(),
            database=DatabaseSettings(),
            claude=ClaudeSettings(),
            agents=AgentCatalogSettings(),
            github=GitHubSettings(),
        )

    def validate_startup(self) -> None:
        """Check the settings every process needs before serving requests.

        Raises:
            ConfigurationError: If the Anthropic API key is missing or still
                the placeholder value.
        """
        if not self.claude.is_configured:
            raise ConfigurationError("ANTHROPIC_API_KEY not set in environment variables")


# Alias so callers can do: from workflow_dashboard.core.config import Settings
Settings = MasterSettings
