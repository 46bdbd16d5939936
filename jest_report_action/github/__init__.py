"""GitHub REST API client."""

from jest_report_action.github.client import GitHubApiError, GitHubClient
from jest_report_action.github.config import GitHubConfig

__all__ = ["GitHubApiError", "GitHubClient", "GitHubConfig"]
