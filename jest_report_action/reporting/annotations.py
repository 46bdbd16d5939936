"""Check annotations for failed Jest assertions."""

import logging
from collections.abc import Sequence

from jest_report_action.models.payloads import Annotation
from jest_report_action.models.results import (
    AssertionResult,
    SuiteResult,
    TestRunResult,
)
from jest_report_action.reporting.text import strip_ansi

log = logging.getLogger(__name__)

TITLE_SEPARATOR = " > "


def to_annotation(
    suite: SuiteResult, assertion: AssertionResult, cwd: str
) -> Annotation:
    """Point a failed assertion at its test file and line."""
    line = assertion.location.line if assertion.location is not None else 0
    return Annotation(
        path=suite.name.removeprefix(cwd),
        start_line=line,
        end_line=line,
        annotation_level="failure",
        title=TITLE_SEPARATOR.join([*assertion.ancestor_titles, assertion.title]),
        message=strip_ansi("\n\n".join(assertion.failure_messages or [])),
    )


def get_annotations(results: TestRunResult, cwd: str) -> Sequence[Annotation]:
    """One annotation per failed assertion, in suite then assertion order.

    Args:
        results: Parsed Jest results
        cwd: Working directory prefix (with trailing separator) to strip from
            suite paths

    Returns:
        Annotations, empty when the run succeeded

    """
    if results.success:
        return []

    annotations = [
        to_annotation(suite, assertion, cwd)
        for suite in results.test_results
        for assertion in suite.assertion_results
        if assertion.status == "failed"
    ]
    log.debug("Annotations: %s", [a.model_dump() for a in annotations])
    return annotations
