"""Models for a Jest run: the JSON results file and the captured output."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from pydantic import Field

from jest_report_action.models.base import CamelModel


class Location(CamelModel):
    """Source position of an assertion (``--testLocationInResults``)."""

    line: int = Field(..., ge=0, description="1-based line of the test call")
    column: int = Field(default=0, ge=0, description="Column of the test call")


class AssertionResult(CamelModel):
    """Outcome of a single test within a suite."""

    status: str = Field(
        ..., description="passed, failed, pending, todo, skipped or disabled"
    )
    title: str = Field(..., description="Title of the test itself")
    ancestor_titles: Sequence[str] = Field(
        default_factory=list, description="Titles of enclosing describe blocks"
    )
    location: Location | None = Field(
        default=None, description="Test location, when requested from Jest"
    )
    failure_messages: Sequence[str] | None = Field(
        default=None, description="Failure messages, possibly ANSI-styled"
    )


class SuiteResult(CamelModel):
    """Results of one test file."""

    name: str = Field(..., description="Absolute path of the test file")
    assertion_results: Sequence[AssertionResult] = Field(default_factory=list)


class TestRunResult(CamelModel):
    """Aggregated results of a Jest run."""

    __test__ = False

    success: bool
    num_total_tests: int = 0
    num_passed_tests: int = 0
    num_failed_tests: int = 0
    num_pending_tests: int = 0
    num_total_test_suites: int = 0
    num_passed_test_suites: int = 0
    num_failed_test_suites: int = 0
    test_results: Sequence[SuiteResult] = Field(default_factory=list)
    coverage_map: Mapping[str, Any] | None = Field(
        default=None, description="Raw Istanbul coverage data keyed by file path"
    )


@dataclass(frozen=True, kw_only=True)
class ExecOutput:
    """Captured output of the test command."""

    out: str = ""
    err: str = ""
    returncode: int = 0
