"""CLI entry point — ``cargo-context-lint`` (also ``cargo context-lint``)."""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

from pydantic import ValidationError

from context_lint import __version__
from context_lint.analysis.engine import analyze_workspace
from context_lint.config import RunConfig, Settings
from context_lint.constants import (
    EXIT_DENY_FINDINGS,
    EXIT_OK,
    EXIT_TOOL_ERROR,
    LintLevel,
    OutputFormat,
)
from context_lint.errors import ToolError, classify_error
from context_lint.logging_config import setup_logging
from context_lint.report import render_report
from context_lint.workspace.discovery import discover_workspace

logger = logging.getLogger(__name__)

# cargo runs `cargo-context-lint context-lint ...` for `cargo context-lint`
_CARGO_SUBCOMMAND = "context-lint"


def main(argv: Sequence[str] | None = None) -> None:
    """Main CLI entry point."""
    sys.exit(run(argv))


def run(argv: Sequence[str] | None = None) -> int:
    """Parse *argv*, analyse the workspace, print the report.

    Returns the process exit code.
    """
    args_list = list(sys.argv[1:] if argv is None else argv)
    if args_list and args_list[0] == _CARGO_SUBCOMMAND:
        args_list = args_list[1:]

    parser = _build_parser()
    args = parser.parse_args(args_list)

    if args.version:
        print(f"cargo-context-lint {__version__}")
        return EXIT_OK

    try:
        settings = Settings()
    except ValidationError as exc:
        print(f"error: invalid configuration: {exc}", file=sys.stderr)
        return EXIT_TOOL_ERROR

    setup_logging(_log_level(args, settings))

    config = RunConfig.from_settings(
        settings,
        unattributed_policy=(
            LintLevel(args.unattributed) if args.unattributed else None
        ),
        output_format=OutputFormat(args.format) if args.format else None,
        verbose=True if args.verbose else None,
        manifest_path=(
            Path(args.manifest_path) if args.manifest_path else None
        ),
    )

    try:
        layout = discover_workspace(config.manifest_path, settings)
        report = analyze_workspace(
            layout, config, max_concurrency=settings.max_concurrency
        )
    except ToolError as exc:
        logger.debug("Run aborted (%s)", classify_error(exc).value)
        print(f"error: {exc}", file=sys.stderr)
        return EXIT_TOOL_ERROR
    except Exception as exc:
        # Exit code 1 is reserved for deny findings.
        logger.debug("Run aborted unexpectedly", exc_info=True)
        print(
            f"error: internal failure: {type(exc).__name__}: {exc}",
            file=sys.stderr,
        )
        return EXIT_TOOL_ERROR

    output = render_report(report, config.output_format, layout.root)
    if output:
        print(output, end="" if output.endswith("\n") else "\n")

    return EXIT_DENY_FINDINGS if report.has_deny_findings else EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="cargo context-lint",
        description=(
            "Detect double error context from fn_error_context + anyhow, "
            "and functions returning anyhow::Result without #[context]."
        ),
    )
    parser.add_argument(
        "--version",
        action="store_true",
        help="Print version and exit",
    )
    parser.add_argument(
        "--manifest-path",
        default=None,
        metavar="PATH",
        help="Path to Cargo.toml (default: ./Cargo.toml)",
    )
    parser.add_argument(
        "--format",
        choices=[f.value for f in OutputFormat],
        default=None,
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="List every annotated function and log progress",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging on stderr",
    )
    parser.add_argument(
        "--unattributed",
        choices=[level.value for level in LintLevel],
        default=None,
        help=(
            "Level for functions returning anyhow::Result "
            "without #[context] (default: deny)"
        ),
    )
    return parser


def _log_level(args: argparse.Namespace, settings: Settings) -> str:
    if args.debug:
        return "DEBUG"
    if args.verbose:
        return "INFO"
    return settings.log_level


if __name__ == "__main__":
    main()
