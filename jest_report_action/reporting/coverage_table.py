"""Coverage comment rendering."""

import logging
import os
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from jest_report_action.models.coverage import CoverageMap, CoverageSummary
from jest_report_action.models.results import TestRunResult
from jest_report_action.reporting.html_table import CHAR_LIMIT, Row, to_html_table
from jest_report_action.reporting.text import format_number, truncate_left

log = logging.getLogger(__name__)

COVERAGE_HEADER = "# :open_umbrella: Code Coverage"
MAX_DIRECTORY_LENGTH = 50

SUMMARY_HEADERS = ("% Stmts", "% Branch", "% Funcs", "% Lines")
FULL_HEADERS = ("File", *SUMMARY_HEADERS)


@dataclass(frozen=True, kw_only=True)
class FileEntry:
    """A covered file, located relative to the repository root."""

    relative: str
    file_name: str
    path: str
    coverage: CoverageSummary


def format_if_poor(pct: float | None) -> str:
    """Label a percentage with a coloured circle; unmeasured metrics are N/A."""
    if pct is None:
        return "N/A :white_circle:"
    label = format_number(pct)
    if pct > 80:
        return f"{label} :green_circle:"
    if pct > 65:
        return f"{label} :yellow_circle:"
    if pct > 50:
        return f"{label} :orange_circle:"
    return f"{label} :red_circle:"


def summary_to_row(summary: CoverageSummary) -> Row:
    """Banded statement, branch, function and line cells."""
    return [
        format_if_poor(summary.statements.pct),
        format_if_poor(summary.branches.pct),
        format_if_poor(summary.functions.pct),
        format_if_poor(summary.lines.pct),
    ]


def parse_file(coverage_map: CoverageMap, absolute: str, root_path: str) -> FileEntry:
    """Build the entry for one file of the coverage map."""
    relative = os.path.relpath(absolute, root_path)
    return FileEntry(
        relative=relative,
        file_name=os.path.basename(relative),
        path=os.path.dirname(relative) or ".",
        coverage=coverage_map.file_coverage_for(absolute).to_summary(),
    )


def group_by_path(files: Sequence[FileEntry]) -> Mapping[str, Sequence[FileEntry]]:
    """Group files by directory, keeping first-seen order."""
    dirs: dict[str, list[FileEntry]] = {}
    for file in files:
        dirs.setdefault(file.path, []).append(file)
    return dirs


def directory_rows(dirs: Mapping[str, Sequence[FileEntry]]) -> Sequence[Row]:
    """Rows of the detail table: a bold row per directory followed by its files."""
    rows: list[Row] = []
    for directory, files in dirs.items():
        label = truncate_left(directory, MAX_DIRECTORY_LENGTH)
        rows.append([f"<b>{label}</b>", "", "", "", ""])
        rows.extend(
            [f"<code>{file.file_name}</code>", *summary_to_row(file.coverage)]
            for file in files
        )
    return rows


def get_coverage_table(results: TestRunResult, root_path: str) -> str | None:
    """Render the coverage comment body, or None when there is nothing to show.

    The summary table is always complete. The detail table is limited so that
    the whole body stays within ``CHAR_LIMIT`` characters.
    """
    if results.coverage_map is None:
        log.warning("No coverage map found")
        return None

    coverage_map = CoverageMap.from_data(results.coverage_map)
    if not coverage_map.files():
        log.warning("No entries found in coverage data")
        return None

    summary_table = to_html_table(
        SUMMARY_HEADERS, [summary_to_row(coverage_map.get_coverage_summary())]
    )

    files = [
        parse_file(coverage_map, absolute, root_path)
        for absolute in coverage_map.files()
    ]
    rows = directory_rows(group_by_path(files))

    before = [
        COVERAGE_HEADER,
        summary_table,
        "",
        "<details>",
        "<summary>Click to expand</summary>\n",
    ]
    after = ["</details>"]
    # One newline joins each part to the next, the detail table included.
    overhead = sum(len(line) + 1 for line in [*before, *after])
    full_table = to_html_table(FULL_HEADERS, rows, CHAR_LIMIT - overhead)

    log.info(
        "Rendered coverage table for %d file(s) in %d directories",
        len(files),
        len({file.path for file in files}),
    )
    return "\n".join([*before, full_table, *after])
