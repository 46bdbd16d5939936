"""Character-budgeted HTML tables for GitHub comments.

GitHub rejects comment and check bodies above roughly 65k characters, so
tables are rendered row by row against a budget. Rows that do not fit are
replaced by a single placeholder row.
"""

import math
from collections.abc import Callable, Sequence
from typing import TypeAlias

Row: TypeAlias = Sequence[str]
CellFormatter: TypeAlias = Callable[[str, int], str]

# Shared by the check output and the coverage comment.
CHAR_LIMIT = 60000

TRUNCATED_LABEL = "truncated..."

TABLE_OPENING_TAG = '<table width="100%">'
TABLE_CLOSING_TAG = "</table>"


def header_cell(cell: str, index: int) -> str:
    """Render a header cell."""
    return f"<th>{cell}</th>"


def body_cell(cell: str, index: int) -> str:
    """Render a body cell, right-aligning every column but the first."""
    attributes = ' nowrap="nowrap" align="right"' if index > 0 else ""
    return f"<td{attributes}>{cell}</td>"


def render_row(row: Row, format_cell: CellFormatter) -> str:
    """Render a single ``<tr>``."""
    return f"<tr>{''.join(format_cell(cell, i) for i, cell in enumerate(row))}</tr>"


def placeholder_row(rows: Sequence[Row]) -> Row:
    """Row standing in for everything that did not fit, as wide as the first row."""
    width = len(rows[0]) if rows else 0
    return [TRUNCATED_LABEL, *([""] * max(width - 1, 0))]


def to_html_table_row(
    rows: Sequence[Row],
    format_cell: CellFormatter,
    wrapper_element: str,
    char_limit: float = math.inf,
) -> str:
    """Render rows inside ``wrapper_element`` without exceeding ``char_limit``.

    Rows are taken in order while the running size, starting from the cost of
    the wrapper tags, stays within the limit. The first row that overflows is
    replaced by a placeholder row and nothing after it is rendered. The
    placeholder is not charged against the limit; callers that need a hard
    bound reserve room for it (see ``to_html_table``).
    """
    opening_tag = f"<{wrapper_element}>"
    closing_tag = f"</{wrapper_element}>"
    char_count = len(opening_tag) + len(closing_tag)

    rendered: list[str] = []
    for row in rows:
        row_html = render_row(row, format_cell)
        char_count += len(row_html)
        if char_count > char_limit:
            rendered.append(render_row(placeholder_row(rows), format_cell))
            break
        rendered.append(row_html)

    return f"{opening_tag}{''.join(rendered)}{closing_tag}"


def to_html_table(
    headers: Row, rows: Sequence[Row], char_limit: float = math.inf
) -> str:
    """Render a full table; the header is always kept, the body is budgeted.

    When the whole table does not fit, the body budget excludes the table
    tags, the header and the placeholder row, so the rendered table never
    exceeds ``char_limit`` as long as the limit covers that fixed overhead.
    """
    header_html = to_html_table_row([headers], header_cell, "thead")
    body_html = to_html_table_row(rows, body_cell, "tbody")

    fixed_chars = len(TABLE_OPENING_TAG) + len(TABLE_CLOSING_TAG) + len(header_html)
    if fixed_chars + len(body_html) > char_limit:
        placeholder_chars = len(render_row(placeholder_row(rows), body_cell))
        body_html = to_html_table_row(
            rows, body_cell, "tbody", char_limit - fixed_chars - placeholder_chars
        )

    return "".join([TABLE_OPENING_TAG, header_html, body_html, TABLE_CLOSING_TAG])
