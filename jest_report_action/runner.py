"""Run the Jest command and load the results file it writes."""

import asyncio
import logging
import shlex
from pathlib import Path

from pydantic import ValidationError

from jest_report_action.models.results import ExecOutput, TestRunResult

log = logging.getLogger(__name__)

RESULTS_FILE_NAME = "jest.results.json"

# Package runners need "--" to forward options to the script they launch.
PACKAGE_RUNNERS = ("npm", "npx", "pnpm", "pnpx")


class ResultsFileNotFoundError(FileNotFoundError):
    """Raised when Jest did not produce a results file."""


class InvalidResultsError(ValueError):
    """Raised when the results file is not valid Jest JSON output."""


def get_jest_command(
    test_command: str,
    results_file: Path,
    *,
    coverage: bool = False,
    changed_since: str | None = None,
) -> str:
    """Append the options needed for machine-readable results to the command.

    Args:
        test_command: Command that runs Jest (e.g. "npx jest", "npm test")
        results_file: Where Jest should write its JSON results
        coverage: Whether to collect coverage
        changed_since: Only run tests related to changes since this ref

    Returns:
        The full command line

    """
    options = ["--testLocationInResults", "--json"]
    if coverage:
        options.append("--coverage")
    if changed_since:
        options.append(f"--changedSince={changed_since}")
    options.append(f"--outputFile={shlex.quote(str(results_file))}")

    separator = " -- " if test_command.startswith(PACKAGE_RUNNERS) else " "
    return f"{test_command}{separator}{' '.join(options)}"


async def exec_jest(cmd: str, cwd: Path) -> ExecOutput:
    """Run the test command and capture its output.

    Failing tests make Jest exit non-zero, so a non-zero exit code is logged
    rather than raised; the results file is the source of truth.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *shlex.split(cmd),
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        log.error("Could not start test command %r: %s", cmd, e)
        return ExecOutput(err=str(e), returncode=-1)

    stdout, stderr = await process.communicate()
    returncode = process.returncode if process.returncode is not None else -1

    if returncode != 0:
        log.error(
            "Jest execution failed (exit code %d). Tests have likely failed.",
            returncode,
        )
    else:
        log.info("Jest command executed")

    return ExecOutput(
        out=stdout.decode(errors="replace"),
        err=stderr.decode(errors="replace"),
        returncode=returncode,
    )


def parse_results(results_file: Path) -> TestRunResult:
    """Load and validate the Jest JSON results file.

    Raises:
        ResultsFileNotFoundError: If the file does not exist
        InvalidResultsError: If the file is not valid Jest results JSON

    """
    if not results_file.exists():
        raise ResultsFileNotFoundError(f"Results file not found: {results_file}")

    try:
        return TestRunResult.model_validate_json(results_file.read_bytes())
    except ValidationError as e:
        raise InvalidResultsError(f"Invalid results file {results_file}: {e}") from e
