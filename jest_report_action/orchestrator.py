"""Sequence the test run, the check run and the coverage comment."""

import logging
import os
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

import aiohttp
from pydantic import ValidationError

from jest_report_action.config import ActionConfig
from jest_report_action.github.client import GitHubApiError, GitHubClient
from jest_report_action.models.context import RequestContext
from jest_report_action.models.results import TestRunResult
from jest_report_action.reporting.check import get_check_payload, get_comment_payload
from jest_report_action.reporting.coverage_table import (
    COVERAGE_HEADER,
    get_coverage_table,
)
from jest_report_action.runner import (
    RESULTS_FILE_NAME,
    InvalidResultsError,
    ResultsFileNotFoundError,
    exec_jest,
    get_jest_command,
    parse_results,
)

log = logging.getLogger(__name__)

BOT_LOGIN = "github-actions[bot]"

# Failures of a single GitHub request, including unexpected response bodies.
API_ERRORS = (GitHubApiError, aiohttp.ClientError, TimeoutError, ValidationError)


@dataclass(frozen=True, kw_only=True)
class ReportOutcome:
    """Overall result of the action: failure messages, empty on success."""

    messages: Sequence[str] = ()

    @property
    def success(self) -> bool:
        """Whether the tests passed and every report was published."""
        return not self.messages


@dataclass(frozen=True, kw_only=True)
class ReportOrchestrator:
    """Runs Jest and publishes its results to GitHub."""

    config: ActionConfig
    context: RequestContext
    client: GitHubClient
    root_path: Path = field(default_factory=Path.cwd)

    @property
    def results_file(self) -> Path:
        """Where Jest writes its JSON results."""
        return self.config.working_directory / RESULTS_FILE_NAME

    async def run(self) -> ReportOutcome:
        """Run the tests, then report them as a check run and coverage comment.

        Every step is attempted even if an earlier report failed to publish;
        only a missing or invalid results file stops the run.
        """
        cwd = self.config.working_directory
        log.info("Running tests in %s", cwd)
        log.info("Results file: %s", self.results_file)

        cmd = get_jest_command(
            self.config.test_command,
            self.results_file,
            coverage=self.config.coverage_comment,
            changed_since=self.context.base_ref if self.config.changes_only else None,
        )
        log.info("Running jest with command: %s", cmd)
        std = await exec_jest(cmd, cwd)

        try:
            results = parse_results(self.results_file)
        except (ResultsFileNotFoundError, InvalidResultsError) as e:
            log.error("%s", e)
            return ReportOutcome(messages=[str(e)])

        log.info(
            "Parsed results: success=%s, tests=%d, failed=%d",
            results.success,
            results.num_total_tests,
            results.num_failed_tests,
        )

        messages: list[str] = []

        check_payload = get_check_payload(results, f"{cwd}{os.sep}", std, self.context)
        try:
            check_run = await self.client.create_check(check_payload)
            log.info("Check created: %s", check_run.html_url or check_run.id)
        except API_ERRORS as e:
            log.error("Error creating check: %s", e)
            messages.append(f"Error creating check: {e}")

        if self.context.is_pull_request and self.config.coverage_comment:
            messages.extend(await self.comment_coverage(results))

        if not results.success:
            messages.append("Some jest tests failed.")

        return ReportOutcome(messages=messages)

    async def comment_coverage(self, results: TestRunResult) -> Sequence[str]:
        """Replace the coverage comment on the pull request.

        Returns:
            Failure messages, empty when the comment was published or there
            was no coverage to report

        """
        try:
            body = get_coverage_table(results, str(self.root_path))
        except Exception as e:
            log.error("Error building coverage table: %s", e, exc_info=e)
            return [f"Error building coverage table: {e}"]

        if not body:
            log.info("No coverage to report, skipping comment")
            return []

        messages = list(await self.delete_previous_comments())

        try:
            await self.client.create_comment(get_comment_payload(body, self.context))
            log.info("Comment created")
        except API_ERRORS as e:
            log.error("Error creating comment: %s", e)
            messages.append(f"Error creating comment: {e}")

        return messages

    async def delete_previous_comments(self) -> Sequence[str]:
        """Delete coverage comments posted by earlier runs.

        Returns:
            Failure messages, empty when every stale comment was deleted

        """
        owner, repo = self.context.owner, self.context.repo
        try:
            comments = await self.client.list_comments(
                owner, repo, self.context.pull_number
            )
        except API_ERRORS as e:
            log.error("Error getting comments: %s", e)
            return [f"Error getting comments: {e}"]

        stale = [
            comment
            for comment in comments
            if comment.user is not None
            and comment.user.login == BOT_LOGIN
            and (comment.body or "").startswith(COVERAGE_HEADER)
        ]
        log.info(
            "Found %d comment(s), %d previous coverage comment(s)",
            len(comments),
            len(stale),
        )

        messages: list[str] = []
        for comment in stale:
            try:
                await self.client.delete_comment(owner, repo, comment.id)
                log.info("Deleted comment %d", comment.id)
            except API_ERRORS as e:
                log.error("Error deleting comment: %s", e)
                messages.append(f"Error deleting comment {comment.id}: {e}")
        return messages
