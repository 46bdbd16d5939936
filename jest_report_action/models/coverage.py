"""Istanbul coverage data and the summaries derived from it.

Jest serialises its coverage map in Istanbul's JSON format: a mapping of
absolute file path to per-file hit counters. Only the counters are needed to
produce a summary, so source ranges are kept as plain positions.
"""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Self

from pydantic import Field

from jest_report_action.models.base import CamelModel


class Position(CamelModel):
    """A line/column position in a source file."""

    line: int
    column: int | None = None


class Range(CamelModel):
    """A start/end range in a source file."""

    start: Position
    end: Position


class FileCoverage(CamelModel):
    """Coverage counters for a single file."""

    path: str
    statement_map: Mapping[str, Range] = Field(default_factory=dict)
    s: Mapping[str, int] = Field(default_factory=dict)
    f: Mapping[str, int] = Field(default_factory=dict)
    b: Mapping[str, Sequence[int]] = Field(default_factory=dict)

    def get_line_coverage(self) -> Mapping[int, int]:
        """Hits per line, using the highest count of statements starting there."""
        lines: dict[int, int] = {}
        for statement_id, count in self.s.items():
            if (statement := self.statement_map.get(statement_id)) is None:
                continue
            line = statement.start.line
            if line not in lines or lines[line] < count:
                lines[line] = count
        return lines

    def to_summary(self) -> "CoverageSummary":
        """Summarise the statement, branch, function and line counters."""
        branch_hits = [hit for hits in self.b.values() for hit in hits]
        return CoverageSummary(
            statements=CoverageMetric.from_hits(self.s.values()),
            branches=CoverageMetric.from_hits(branch_hits),
            functions=CoverageMetric.from_hits(self.f.values()),
            lines=CoverageMetric.from_hits(self.get_line_coverage().values()),
        )


def percent(covered: int, total: int) -> float:
    """Percentage truncated (not rounded) to two decimals; 100 when empty."""
    if total <= 0:
        return 100.0
    return (10000 * covered // total) / 100


@dataclass(frozen=True, kw_only=True)
class CoverageMetric:
    """Covered/total counts for one metric.

    ``pct`` is None when no percentage is known. Metrics built from counts
    always carry one, 100 when nothing was measured.
    """

    total: int
    covered: int
    pct: float | None

    @classmethod
    def from_counts(cls, covered: int, total: int) -> Self:
        """Build a metric, computing its percentage."""
        return cls(total=total, covered=covered, pct=percent(covered, total))

    @classmethod
    def from_hits(cls, hits: Iterable[int]) -> Self:
        """Build a metric from hit counters, counting non-zero entries as covered."""
        counts = list(hits)
        return cls.from_counts(sum(1 for hit in counts if hit > 0), len(counts))

    def merge(self, other: "CoverageMetric") -> "CoverageMetric":
        """Add the counts of another metric."""
        return CoverageMetric.from_counts(
            self.covered + other.covered, self.total + other.total
        )


def _empty_metric() -> CoverageMetric:
    return CoverageMetric.from_counts(0, 0)


@dataclass(frozen=True, kw_only=True)
class CoverageSummary:
    """The four Istanbul coverage metrics."""

    statements: CoverageMetric
    branches: CoverageMetric
    functions: CoverageMetric
    lines: CoverageMetric

    @classmethod
    def empty(cls) -> Self:
        """Summary with no measured entries."""
        return cls(
            statements=_empty_metric(),
            branches=_empty_metric(),
            functions=_empty_metric(),
            lines=_empty_metric(),
        )

    def merge(self, other: "CoverageSummary") -> "CoverageSummary":
        """Combine two summaries."""
        return CoverageSummary(
            statements=self.statements.merge(other.statements),
            branches=self.branches.merge(other.branches),
            functions=self.functions.merge(other.functions),
            lines=self.lines.merge(other.lines),
        )


def _unwrap(data: Mapping[str, Any]) -> Mapping[str, Any]:
    """Strip the ``{"data": ...}`` envelope produced by Istanbul's toJSON."""
    inner = data.get("data")
    if isinstance(inner, Mapping):
        return inner
    return data


@dataclass(frozen=True, kw_only=True)
class CoverageMap:
    """Per-file coverage keyed by absolute path, in the order Jest reported it."""

    data: Mapping[str, FileCoverage]

    @classmethod
    def from_data(cls, raw: Mapping[str, Any]) -> Self:
        """Parse raw Istanbul coverage map data."""
        data: dict[str, FileCoverage] = {}
        for path, file_data in _unwrap(raw).items():
            file_data = _unwrap(file_data)
            data[path] = FileCoverage.model_validate({**file_data, "path": path})
        return cls(data=data)

    def files(self) -> Sequence[str]:
        """Absolute paths of all covered files."""
        return list(self.data)

    def file_coverage_for(self, path: str) -> FileCoverage:
        """Return coverage for a file.

        Raises:
            KeyError: If the file is not part of the coverage map

        """
        return self.data[path]

    def get_coverage_summary(self) -> CoverageSummary:
        """Summary across all files."""
        summary = CoverageSummary.empty()
        for file_coverage in self.data.values():
            summary = summary.merge(file_coverage.to_summary())
        return summary
