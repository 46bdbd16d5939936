"""CLI entry point for the Jest report action."""

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from pydantic import ValidationError

from jest_report_action.config import ActionConfig, ContextError, load_request_context
from jest_report_action.github import GitHubClient, GitHubConfig
from jest_report_action.orchestrator import ReportOrchestrator, ReportOutcome


def log_outcome(log: logging.Logger, outcome: ReportOutcome) -> None:
    """Log the overall result of the action."""
    if outcome.success:
        log.info("All jest tests passed and reports were published")
        return
    for message in outcome.messages:
        log.error("%s", message)


def get_input(environ: Mapping[str, str], name: str, default: str = "") -> str:
    """Read an action input the way the runner exposes it (``INPUT_<NAME>``)."""
    return environ.get(f"INPUT_{name.upper()}", default).strip() or default


async def run(config: ActionConfig, environ: Mapping[str, str]) -> int:
    """Run the action and return exit code."""
    log = logging.getLogger("jest_report_action")

    if config.token is None:
        log.error("GITHUB_TOKEN not set.")
        return 1

    try:
        context = load_request_context(environ)
    except ContextError as e:
        log.error("%s", e)
        return 1

    log.info(
        "Reporting for %s/%s at %s (pull request: %s)",
        context.owner,
        context.repo,
        context.head_sha,
        context.pull_number or "none",
    )

    github_config = GitHubConfig(token=config.token, api_base_url=config.api_base_url)
    async with GitHubClient.from_config(github_config) as client:
        orchestrator = ReportOrchestrator(
            config=config,
            context=context,
            client=client,
            root_path=Path(environ.get("GITHUB_WORKSPACE") or Path.cwd()),
        )
        outcome = await orchestrator.run()

    log_outcome(log, outcome)
    return 0 if outcome.success else 1


def main() -> None:
    """CLI entry point."""
    environ = os.environ
    parser = argparse.ArgumentParser(
        description="Run Jest and report results as a GitHub check and comment"
    )
    parser.add_argument(
        "--working-directory",
        type=Path,
        default=Path(get_input(environ, "working-directory", ".")),
        help="Directory to run the tests in",
    )
    parser.add_argument(
        "--test-command",
        default=get_input(environ, "test-command", "npx jest"),
        help="Command that runs Jest",
    )
    parser.add_argument(
        "--coverage-comment",
        default=get_input(environ, "coverage-comment", "true"),
        help="Comment coverage on the pull request (true/false)",
    )
    parser.add_argument(
        "--changes-only",
        default=get_input(environ, "changes-only", "false"),
        help="Only run tests related to changes since the base branch (true/false)",
    )
    parser.add_argument(
        "--api-base-url",
        default=environ.get("GITHUB_API_URL", "https://api.github.com"),
        help="GitHub API base URL",
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        config = ActionConfig(
            working_directory=args.working_directory,
            test_command=args.test_command,
            coverage_comment=args.coverage_comment,
            changes_only=args.changes_only,
            token=environ.get("GITHUB_TOKEN") or None,
            api_base_url=args.api_base_url,
        )
    except ValidationError as e:
        logging.getLogger("jest_report_action").error("Invalid inputs: %s", e)
        sys.exit(1)

    sys.exit(asyncio.run(run(config, environ)))


if __name__ == "__main__":  # pragma: no cover
    main()
