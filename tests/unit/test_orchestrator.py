"""Tests for the report orchestrator."""

import json
import logging
from collections.abc import Generator
from pathlib import Path
from typing import Any, Protocol
from unittest.mock import AsyncMock, Mock, patch

import aiohttp
import pytest
from pydantic import ValidationError

from jest_report_action.config import ActionConfig
from jest_report_action.github.client import GitHubApiError, GitHubClient
from jest_report_action.github.models import CheckRun, IssueComment, User
from jest_report_action.models.payloads import CheckPayload, CommentPayload
from jest_report_action.orchestrator import ReportOrchestrator
from jest_report_action.reporting.coverage_table import COVERAGE_HEADER
from jest_report_action.runner import RESULTS_FILE_NAME
from jest_report_action.testing.factories import (
    ExecOutputFactory,
    RequestContextFactory,
)
from jest_report_action.testing.payloads import coverage_map_data, file_coverage_data


class WriteResultsFn(Protocol):
    """Protocol for the results file writer."""

    def __call__(self, *, success: bool = True, coverage: bool = True) -> None:
        """Write a Jest results file into the working directory."""


class OrchestratorFn(Protocol):
    """Protocol for the orchestrator builder."""

    def __call__(
        self,
        *,
        pull_number: int = 0,
        coverage_comment: bool = True,
        changes_only: bool = False,
    ) -> ReportOrchestrator:
        """Build an orchestrator around the mocked client."""


def comment(comment_id: int, login: str, body: str) -> IssueComment:
    return IssueComment(id=comment_id, user=User(login=login), body=body)


@pytest.fixture
def client_mock() -> Mock:
    """Create mock GitHub client."""
    client = Mock(spec=GitHubClient)
    client.create_check.return_value = CheckRun(id=1)
    client.list_comments.return_value = []
    return client


@pytest.fixture
def exec_jest_mock() -> Generator[AsyncMock, None, None]:
    """Replace the test command with a canned output."""
    with patch(
        "jest_report_action.orchestrator.exec_jest",
        new_callable=AsyncMock,
        return_value=ExecOutputFactory.build(out="PASS src/a.test.ts"),
    ) as mock:
        yield mock


@pytest.fixture
def write_results(tmp_path: Path) -> WriteResultsFn:
    """Return a function writing a results file into the working directory."""

    def _write(*, success: bool = True, coverage: bool = True) -> None:
        data: dict[str, Any] = {
            "success": success,
            "numTotalTests": 2,
            "numPassedTests": 2 if success else 1,
            "numFailedTests": 0 if success else 1,
            "numTotalTestSuites": 1,
            "numPassedTestSuites": 1 if success else 0,
            "numFailedTestSuites": 0 if success else 1,
            "testResults": [
                {
                    "name": str(tmp_path.resolve() / "src" / "a.test.ts"),
                    "assertionResults": [
                        {
                            "status": "passed" if success else "failed",
                            "title": "works",
                            "ancestorTitles": ["a"],
                            "location": {"line": 3, "column": 1},
                            "failureMessages": [] if success else ["Error: no"],
                        }
                    ],
                }
            ],
        }
        if coverage:
            data["coverageMap"] = coverage_map_data(
                file_coverage_data("/repo/src/a.ts", statements=[1, 1, 0])
            )
        (tmp_path / RESULTS_FILE_NAME).write_text(json.dumps(data))

    return _write


@pytest.fixture
def make_orchestrator(
    tmp_path: Path, client_mock: Mock, exec_jest_mock: AsyncMock
) -> OrchestratorFn:
    """Return a function building orchestrators for the temporary directory."""

    def _make(
        *,
        pull_number: int = 0,
        coverage_comment: bool = True,
        changes_only: bool = False,
    ) -> ReportOrchestrator:
        return ReportOrchestrator(
            config=ActionConfig(
                working_directory=tmp_path,
                test_command="npx jest",
                coverage_comment=coverage_comment,
                changes_only=changes_only,
            ),
            context=RequestContextFactory.build(
                pull_number=pull_number,
                pull_head_sha="head-sha" if pull_number else None,
                base_ref="main" if pull_number else None,
            ),
            client=client_mock,
            root_path=Path("/repo"),
        )

    return _make


async def test_successful_run_creates_check(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
    exec_jest_mock: AsyncMock,
    tmp_path: Path,
) -> None:
    """Passing tests create a successful check and nothing else."""
    write_results(success=True)

    outcome = await make_orchestrator().run()

    assert outcome.success
    assert outcome.messages == []

    cmd, cwd = exec_jest_mock.call_args.args
    assert cmd.startswith("npx jest -- --testLocationInResults --json --coverage")
    assert cwd == tmp_path.resolve()

    client_mock.create_check.assert_called_once()
    payload: CheckPayload = client_mock.create_check.call_args.args[0]
    assert payload.conclusion == "success"
    assert payload.head_sha == "abc123"
    assert payload.output.text == "PASS src/a.test.ts"
    client_mock.list_comments.assert_not_called()
    client_mock.create_comment.assert_not_called()


async def test_failed_tests_fail_the_run(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """Failing tests still create the check, then fail the run."""
    write_results(success=False)

    outcome = await make_orchestrator().run()

    assert not outcome.success
    assert outcome.messages == ["Some jest tests failed."]
    payload: CheckPayload = client_mock.create_check.call_args.args[0]
    assert payload.conclusion == "failure"
    assert len(payload.output.annotations) == 1
    assert payload.output.annotations[0].path == "src/a.test.ts"
    assert payload.output.annotations[0].start_line == 3


async def test_missing_results_file(
    make_orchestrator: OrchestratorFn,
    client_mock: Mock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """Without a results file nothing is reported and the run fails."""
    with caplog.at_level(logging.ERROR):
        outcome = await make_orchestrator().run()

    assert not outcome.success
    assert "Results file not found" in outcome.messages[0]
    assert "Results file not found" in caplog.text
    client_mock.create_check.assert_not_called()


async def test_check_failure_is_reported_and_run_continues(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """A failed check submission fails the run but coverage is still posted."""
    write_results(success=True)
    client_mock.create_check.side_effect = GitHubApiError(
        "create check run", 403, "Resource not accessible by integration"
    )

    outcome = await make_orchestrator(pull_number=5).run()

    assert not outcome.success
    assert outcome.messages == [
        "Error creating check: Failed to create check run: 403 "
        "Resource not accessible by integration"
    ]
    client_mock.create_comment.assert_called_once()


async def test_replaces_previous_coverage_comment(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """Only bot comments with the coverage header are deleted before posting."""
    write_results(success=True)
    client_mock.list_comments.return_value = [
        comment(1, "github-actions[bot]", f"{COVERAGE_HEADER}\nold"),
        comment(2, "github-actions[bot]", "Some other bot message"),
        comment(3, "octocat", f"{COVERAGE_HEADER} quoted by a human"),
        IssueComment(id=4, user=None, body=COVERAGE_HEADER),
    ]

    outcome = await make_orchestrator(pull_number=5).run()

    assert outcome.success
    client_mock.list_comments.assert_called_once_with("test-owner", "test-repo", 5)
    client_mock.delete_comment.assert_called_once_with("test-owner", "test-repo", 1)

    payload: CommentPayload = client_mock.create_comment.call_args.args[0]
    assert payload.issue_number == 5
    assert payload.body.startswith(COVERAGE_HEADER)
    assert "<code>a.ts</code>" in payload.body

    check_payload: CheckPayload = client_mock.create_check.call_args.args[0]
    assert check_payload.head_sha == "head-sha"


async def test_coverage_comment_disabled(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
    exec_jest_mock: AsyncMock,
) -> None:
    """Coverage is neither collected nor posted when disabled."""
    write_results(success=True)

    outcome = await make_orchestrator(pull_number=5, coverage_comment=False).run()

    assert outcome.success
    assert "--coverage" not in exec_jest_mock.call_args.args[0]
    client_mock.list_comments.assert_not_called()
    client_mock.create_comment.assert_not_called()


async def test_no_coverage_data_skips_comment(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """A run without coverage data leaves existing comments alone."""
    write_results(success=True, coverage=False)

    outcome = await make_orchestrator(pull_number=5).run()

    assert outcome.success
    client_mock.list_comments.assert_not_called()
    client_mock.delete_comment.assert_not_called()
    client_mock.create_comment.assert_not_called()


async def test_delete_failure_still_posts_comment(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """Deleting is not transactional: a failed delete still posts the new one."""
    write_results(success=True)
    client_mock.list_comments.return_value = [
        comment(1, "github-actions[bot]", COVERAGE_HEADER),
        comment(2, "github-actions[bot]", COVERAGE_HEADER),
    ]
    client_mock.delete_comment.side_effect = [
        aiohttp.ClientConnectionError("connection reset"),
        None,
    ]

    outcome = await make_orchestrator(pull_number=5).run()

    assert not outcome.success
    assert outcome.messages == ["Error deleting comment 1: connection reset"]
    assert client_mock.delete_comment.call_count == 2
    client_mock.create_comment.assert_called_once()


async def test_list_failure_still_posts_comment(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """When listing comments fails, the new comment is still posted."""
    write_results(success=True)
    client_mock.list_comments.side_effect = GitHubApiError("list comments", 500, "")

    outcome = await make_orchestrator(pull_number=5).run()

    assert outcome.messages == [
        "Error getting comments: Failed to list comments: 500 "
    ]
    client_mock.delete_comment.assert_not_called()
    client_mock.create_comment.assert_called_once()


async def test_comment_failure_fails_run(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """A failed comment submission fails the run."""
    write_results(success=True)
    client_mock.create_comment.side_effect = GitHubApiError(
        "create comment", 422, "Body is too long"
    )

    outcome = await make_orchestrator(pull_number=5).run()

    assert outcome.messages == [
        "Error creating comment: Failed to create comment: 422 Body is too long"
    ]


async def test_coverage_build_error_does_not_stop_check(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
    caplog: pytest.LogCaptureFixture,
) -> None:
    """A broken coverage table is logged while the check is still created."""
    write_results(success=False)

    with (
        patch(
            "jest_report_action.orchestrator.get_coverage_table",
            side_effect=ValueError("bad coverage"),
        ),
        caplog.at_level(logging.ERROR),
    ):
        outcome = await make_orchestrator(pull_number=5).run()

    assert outcome.messages == [
        "Error building coverage table: bad coverage",
        "Some jest tests failed.",
    ]
    assert "Error building coverage table" in caplog.text
    client_mock.create_check.assert_called_once()
    client_mock.create_comment.assert_not_called()


async def test_changes_only_uses_base_ref(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    exec_jest_mock: AsyncMock,
) -> None:
    """Only tests related to changes since the base branch are run."""
    write_results(success=True)

    await make_orchestrator(pull_number=5, changes_only=True).run()

    assert "--changedSince=main" in exec_jest_mock.call_args.args[0]


async def test_changes_only_without_pull_request(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    exec_jest_mock: AsyncMock,
) -> None:
    """Outside pull requests there is no base ref to compare against."""
    write_results(success=True)

    await make_orchestrator(changes_only=True).run()

    assert "--changedSince" not in exec_jest_mock.call_args.args[0]


async def test_check_timeout_still_posts_comment(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """A timed out check submission is reported and coverage is still posted."""
    write_results(success=True)
    client_mock.create_check.side_effect = TimeoutError()

    outcome = await make_orchestrator(pull_number=5).run()

    assert outcome.messages == ["Error creating check: "]
    client_mock.create_comment.assert_called_once()


async def test_unexpected_comment_response_is_reported(
    make_orchestrator: OrchestratorFn,
    write_results: WriteResultsFn,
    client_mock: Mock,
) -> None:
    """A comment response that does not validate fails the run without raising."""
    write_results(success=True)
    with pytest.raises(ValidationError) as exc_info:
        IssueComment.model_validate({"body": "no id"})
    client_mock.create_comment.side_effect = exc_info.value

    outcome = await make_orchestrator(pull_number=5).run()

    assert len(outcome.messages) == 1
    assert outcome.messages[0].startswith(
        "Error creating comment: 1 validation error for IssueComment"
    )
