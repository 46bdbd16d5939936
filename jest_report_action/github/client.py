"""GitHub REST client for check runs and pull request comments."""

import logging
from collections.abc import AsyncGenerator, Sequence
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import aiohttp

from jest_report_action.github.config import GitHubConfig
from jest_report_action.github.models import CheckRun, IssueComment
from jest_report_action.models.payloads import (
    Annotation,
    CheckPayload,
    CommentPayload,
)

log = logging.getLogger(__name__)

# GitHub accepts at most 50 annotations per check run request.
MAX_ANNOTATIONS_PER_REQUEST = 50
COMMENTS_PER_PAGE = 100


class GitHubApiError(RuntimeError):
    """Raised when the GitHub API answers with an unexpected status."""

    def __init__(self, action: str, status: int, text: str) -> None:
        super().__init__(f"Failed to {action}: {status} {text}")
        self.status = status
        self.text = text


async def _raise_for_status(
    response: aiohttp.ClientResponse, action: str, expected: int
) -> None:
    if response.status != expected:
        raise GitHubApiError(action, response.status, await response.text())


@dataclass(frozen=True, kw_only=True)
class GitHubClient:
    """Thin client over the checks and issues endpoints the action needs."""

    config: GitHubConfig
    session: aiohttp.ClientSession = field(repr=False)

    @classmethod
    @asynccontextmanager
    async def from_config(
        cls, config: GitHubConfig
    ) -> AsyncGenerator["GitHubClient", None]:
        """Create client with managed session lifecycle."""
        headers = {
            "Authorization": f"Bearer {config.token.get_secret_value()}",
            "Accept": "application/vnd.github+json",
        }
        async with aiohttp.ClientSession(
            base_url=config.api_base_url,
            headers=headers,
        ) as session:
            yield cls(config=config, session=session)

    async def create_check(self, payload: CheckPayload) -> CheckRun:
        """Create a completed check run, uploading annotations in batches.

        The first batch of annotations is sent with the create request; the
        remaining ones are appended by updating the check run.
        """
        annotations = payload.output.annotations
        batches = [
            annotations[i : i + MAX_ANNOTATIONS_PER_REQUEST]
            for i in range(0, len(annotations), MAX_ANNOTATIONS_PER_REQUEST)
        ] or [[]]

        body = payload.model_dump(exclude={"owner", "repo"})
        body["output"]["annotations"] = [a.model_dump() for a in batches[0]]

        url = f"repos/{payload.owner}/{payload.repo}/check-runs"
        log.info(
            "Creating check run: url=%s, head_sha=%s, conclusion=%s, annotations=%d",
            url,
            payload.head_sha,
            payload.conclusion,
            len(annotations),
        )
        async with self.session.post(url, json=body) as response:
            await _raise_for_status(response, "create check run", 201)
            check_run = CheckRun.model_validate(await response.json())

        for batch in batches[1:]:
            await self._append_annotations(payload, check_run.id, batch)

        return check_run

    async def _append_annotations(
        self,
        payload: CheckPayload,
        check_run_id: int,
        annotations: Sequence[Annotation],
    ) -> None:
        url = f"repos/{payload.owner}/{payload.repo}/check-runs/{check_run_id}"
        body = {
            "output": {
                "title": payload.output.title,
                "summary": payload.output.summary,
                "annotations": [a.model_dump() for a in annotations],
            }
        }
        log.info(
            "Adding %d annotation(s) to check run %d", len(annotations), check_run_id
        )
        async with self.session.patch(url, json=body) as response:
            await _raise_for_status(response, "update check run", 200)

    async def list_comments(
        self, owner: str, repo: str, issue_number: int
    ) -> Sequence[IssueComment]:
        """List all comments of an issue or pull request."""
        url = f"repos/{owner}/{repo}/issues/{issue_number}/comments"
        comments: list[IssueComment] = []
        page = 1

        while True:
            params = {"per_page": str(COMMENTS_PER_PAGE), "page": str(page)}

            async with self.session.get(url, params=params) as response:
                await _raise_for_status(response, "list comments", 200)
                data = await response.json()

            page_comments = [IssueComment.model_validate(item) for item in data]
            comments.extend(page_comments)

            if len(page_comments) < COMMENTS_PER_PAGE:
                break

            page += 1

        return comments

    async def delete_comment(self, owner: str, repo: str, comment_id: int) -> None:
        """Delete an issue comment."""
        url = f"repos/{owner}/{repo}/issues/comments/{comment_id}"
        async with self.session.delete(url) as response:
            await _raise_for_status(response, "delete comment", 204)

    async def create_comment(self, payload: CommentPayload) -> IssueComment:
        """Post a comment on an issue or pull request."""
        url = (
            f"repos/{payload.owner}/{payload.repo}"
            f"/issues/{payload.issue_number}/comments"
        )
        async with self.session.post(url, json={"body": payload.body}) as response:
            await _raise_for_status(response, "create comment", 201)
            return IssueComment.model_validate(await response.json())
