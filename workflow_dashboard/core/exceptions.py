"""Exception hierarchy shared by the dashboard services and the HTTP layer."""

from typing import Optional


class DashboardError(Exception):
    """Base class for errors the HTTP layer knows how to report.

    Attributes:
        status_code: HTTP status the error maps to.
    """

    status_code: int = 500


class ConfigurationError(DashboardError):
    """Required configuration is missing or invalid."""

    status_code = 503


class NotFoundError(DashboardError):
    """A requested record does not exist."""

    status_code = 404


class AgentNotFoundError(NotFoundError):
    """The agent id does not resolve to a catalog entry."""

    def __init__(self, agent_id: int) -> None:
        super().__init__(f"Agent {agent_id} not found")
        self.agent_id = agent_id


class ProjectNotFoundError(NotFoundError):
    def __init__(self, message: str = "Project not found") -> None:
        super().__init__(message)


class ExecutionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Execution not found") -> None:
        super().__init__(message)


class ArtifactNotFoundError(NotFoundError):
    def __init__(self, message: str = "Artifact not found") -> None:
        super().__init__(message)


class GitHubError(DashboardError):
    """The GitHub API rejected a request.

    Args:
        message: GitHub's error message.
        status_code: Upstream HTTP status, if a response was received.
    """

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = status_code
        # Surface client errors as-is; anything else is a bad gateway.
        if status_code is not None and 400 <= status_code < 500:
            self.status_code = status_code
        else:
            self.status_code = 502
