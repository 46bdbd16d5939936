"""Check run and comment payloads."""

from jest_report_action.models.context import RequestContext
from jest_report_action.models.payloads import CheckOutput, CheckPayload, CommentPayload
from jest_report_action.models.results import ExecOutput, TestRunResult
from jest_report_action.reporting.annotations import get_annotations
from jest_report_action.reporting.html_table import CHAR_LIMIT
from jest_report_action.reporting.text import truncate_right

ACTION_NAME = "jest-github-action"


def get_summary(results: TestRunResult) -> str:
    """One-line pass/fail summary of the run."""
    if results.success:
        suites = results.num_passed_test_suites
        plural = "s" if suites > 1 else ""
        return f"{results.num_passed_tests} tests passing in {suites} suite{plural}."
    return (
        f"Failed tests: {results.num_failed_tests}/{results.num_total_tests}. "
        f"Failed suites: {results.num_failed_test_suites}"
        f"/{results.num_total_test_suites}."
    )


def get_output_text(std: ExecOutput) -> str:
    """Captured runner output, stderr after stdout, limited to ``CHAR_LIMIT``."""
    text = std.out
    if std.err:
        text += f"\n\n{std.err}"
    return truncate_right(text, CHAR_LIMIT)


def get_check_payload(
    results: TestRunResult,
    cwd: str,
    std: ExecOutput,
    context: RequestContext,
) -> CheckPayload:
    """Build the completed check run reporting the Jest results."""
    return CheckPayload(
        owner=context.owner,
        repo=context.repo,
        head_sha=context.head_sha,
        name=ACTION_NAME,
        status="completed",
        conclusion="success" if results.success else "failure",
        output=CheckOutput(
            title="Jest tests passed" if results.success else "Jest tests failed",
            summary=get_summary(results),
            text=get_output_text(std),
            annotations=get_annotations(results, cwd),
        ),
    )


def get_comment_payload(body: str, context: RequestContext) -> CommentPayload:
    """Build the pull request comment carrying the coverage report."""
    return CommentPayload(
        owner=context.owner,
        repo=context.repo,
        issue_number=context.pull_number,
        body=body,
    )
