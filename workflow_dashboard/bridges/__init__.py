"""Bridges to external services."""

from workflow_dashboard.bridges.github import GitHubBridge

__all__ = ["GitHubBridge"]
