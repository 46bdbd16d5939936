"""Action inputs and the GitHub Actions request context."""

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

from jest_report_action.models.context import RequestContext

log = logging.getLogger(__name__)


class ActionConfig(BaseModel):
    """Configuration of one action run."""

    model_config = ConfigDict(validate_default=True)

    working_directory: Path = Path()
    test_command: str = "npx jest"
    coverage_comment: bool = True
    changes_only: bool = False
    token: SecretStr | None = None
    api_base_url: str = "https://api.github.com"

    @field_validator("working_directory")
    @classmethod
    def _resolve_working_directory(cls, value: Path) -> Path:
        return value.resolve()

    @field_validator("coverage_comment", "changes_only", mode="before")
    @classmethod
    def _parse_json_boolean(cls, value: Any) -> Any:
        # Action inputs arrive as strings ("true", "false", "")
        if isinstance(value, str):
            return bool(json.loads(value)) if value.strip() else False
        return value


class ContextError(ValueError):
    """Raised when the GitHub Actions environment is incomplete."""


def load_event_payload(event_path: str | None) -> Mapping[str, Any]:
    """Load the webhook payload of the triggering event, if any."""
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.exists():
        log.warning("Event payload not found: %s", path)
        return {}
    payload: Mapping[str, Any] = json.loads(path.read_text(encoding="utf-8"))
    return payload


def load_request_context(environ: Mapping[str, str]) -> RequestContext:
    """Build the request context from the GitHub Actions environment.

    Args:
        environ: Environment variables (GITHUB_REPOSITORY, GITHUB_SHA and
            GITHUB_EVENT_PATH are read)

    Raises:
        ContextError: If the repository or commit is not set

    """
    repository = environ.get("GITHUB_REPOSITORY", "")
    owner, _, repo = repository.partition("/")
    if not owner or not repo:
        raise ContextError(f"GITHUB_REPOSITORY not set or invalid: {repository!r}")

    sha = environ.get("GITHUB_SHA", "")
    if not sha:
        raise ContextError("GITHUB_SHA not set.")

    pull_request = load_event_payload(environ.get("GITHUB_EVENT_PATH")).get(
        "pull_request"
    )
    if not pull_request:
        return RequestContext(owner=owner, repo=repo, sha=sha)

    return RequestContext(
        owner=owner,
        repo=repo,
        sha=sha,
        pull_number=pull_request.get("number") or 0,
        pull_head_sha=(pull_request.get("head") or {}).get("sha"),
        base_ref=(pull_request.get("base") or {}).get("ref"),
    )
