"""Identity of the repository, commit and pull request being reported on."""

from pydantic import Field

from jest_report_action.models.base import Model


class RequestContext(Model):
    """Repository, commit and pull request the action runs for."""

    owner: str
    repo: str
    sha: str = Field(..., description="Commit SHA that triggered the workflow")
    pull_number: int = Field(default=0, description="0 when not a pull request")
    pull_head_sha: str | None = None
    base_ref: str | None = Field(
        default=None, description="Base branch of the pull request, if any"
    )

    @property
    def head_sha(self) -> str:
        """SHA to attach checks to: the PR head when available."""
        return self.pull_head_sha or self.sha

    @property
    def is_pull_request(self) -> bool:
        """Whether the workflow runs for a pull request."""
        return self.pull_number > 0
