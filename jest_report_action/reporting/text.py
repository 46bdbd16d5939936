"""Small text helpers shared by the report renderers."""

import re

ELLIPSIS = "..."

# CSI sequences (colours, cursor movement) and OSC sequences (hyperlinks).
ANSI_PATTERN = re.compile(
    r"\x1b\[[0-?]*[ -/]*[@-~]"
    r"|\x1b\][^\x07\x1b]*(?:\x07|\x1b\\)"
    r"|\x9b[0-?]*[ -/]*[@-~]"
)


def strip_ansi(text: str) -> str:
    """Remove terminal styling escape sequences."""
    return ANSI_PATTERN.sub("", text)


def truncate_left(text: str, length: int) -> str:
    """Keep the last ``length`` characters, prefixed with an ellipsis."""
    if len(text) <= length:
        return text
    return f"{ELLIPSIS}{text[len(text) - length :]}"


def truncate_right(text: str, length: int) -> str:
    """Keep the first ``length`` characters, followed by an ellipsis."""
    if len(text) <= length:
        return text
    return f"{text[:length]}{ELLIPSIS}"


def format_number(value: float) -> str:
    """Format a number the way JavaScript prints it: ``90`` rather than ``90.0``."""
    if float(value).is_integer():
        return str(int(value))
    return str(value)
