"""Command line interface for i18nkit."""

from __future__ import annotations

import argparse
import asyncio
import pathlib
import sys
from typing import Any, Dict, Iterable, Optional

from .configuration import load_config
from .errors import (
    AbortRequested,
    ConfigurationError,
    I18nKitError,
    LocaleConflictError,
    LocaleFileError,
)
from .policy import ErrorPolicy
from .reporting import Reporter
from .workflows import MODES, WorkflowRunner, WorkflowSummary


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="i18nkit",
        description=(
            "Extract hard-coded Chinese text from React and Vue sources, replace it with "
            "translation calls and manage the locale files."
        ),
    )
    parser.add_argument(
        "target",
        nargs="?",
        help="File or directory to process (default: the configured source directory).",
    )
    parser.add_argument(
        "-m",
        "--mode",
        choices=MODES,
        default="automatic",
        help="Workflow to run (default: automatic).",
    )
    parser.add_argument(
        "--config",
        help="Path to a YAML configuration file.",
    )
    parser.add_argument(
        "-c",
        "--custom",
        action="store_true",
        help="Work on the custom locale directory instead of the primary one.",
    )
    parser.add_argument(
        "-f",
        "--framework",
        choices=("react", "vue"),
        help="Override the configured framework.",
    )
    parser.add_argument(
        "-p",
        "--provider",
        help="Language model provider (openai, azure_openai, dify, echo).",
    )
    parser.add_argument(
        "--model",
        help="Provider-specific model or deployment identifier.",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output directory for restore and export.",
    )
    parser.add_argument(
        "--skip-llm",
        action="store_true",
        help="Generate identifiers locally without calling the provider.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Report what would change without writing any file.",
    )
    parser.add_argument(
        "--non-interactive",
        action="store_true",
        help="Disable prompts and keep going after repeated errors (suitable for CI).",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only print warnings and errors.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show debug information.",
    )
    parser.add_argument(
        "--debug-provider",
        action="store_true",
        help="Log complete provider requests and responses for troubleshooting.",
    )
    return parser


def execute_workflow(
    *,
    mode: str,
    target: str | None,
    output: str | None,
    config_path: str | None,
    custom: bool,
    overrides: Dict[str, Any],
    skip_llm: bool,
    dry_run: bool,
    non_interactive: bool,
    reporter: Reporter,
    provider_debug: bool,
) -> tuple[int, WorkflowSummary | None, str | None]:
    """Execute one workflow and return the exit code, summary, and message."""

    try:
        config = load_config(pathlib.Path.cwd(), config_path=config_path, overrides=overrides)
    except ConfigurationError as exc:
        return 2, None, str(exc)

    target_path = str(pathlib.Path(target).expanduser().resolve()) if target else None
    output_path = str(pathlib.Path(output).expanduser().resolve()) if output else None

    policy = ErrorPolicy(interactive=not non_interactive, reporter=reporter)
    try:
        runner = WorkflowRunner(
            config,
            custom=custom,
            reporter=reporter,
            policy=policy,
            skip_llm=skip_llm,
            dry_run=dry_run,
            provider_debug=provider_debug,
        )
        summary = asyncio.run(runner.run(mode, target=target_path, output=output_path))
    except ConfigurationError as exc:
        return 2, None, str(exc)
    except AbortRequested:
        return 2, None, "Run aborted at your request."
    except (LocaleFileError, LocaleConflictError) as exc:
        return 1, None, str(exc)
    except I18nKitError as exc:
        return 1, None, str(exc)
    except KeyboardInterrupt:
        return 2, None, "Run interrupted by user."
    except Exception as exc:  # pragma: no cover - defensive catch
        error_message = (
            f"{exc}\n"
            "An unexpected error occurred. Please rerun with --verbose for more details."
        )
        return 1, None, error_message

    return 0, summary, None


def print_summary(summary: WorkflowSummary) -> None:
    """Output a friendly report once processing completes."""

    print(f"\n{summary.mode.capitalize()} complete.")
    if summary.files_scanned:
        print(f"  Files:           {summary.files_changed} changed / {summary.files_scanned} scanned")
    if summary.strings_found:
        print(f"  Strings:         {summary.strings_found} found, {summary.identifiers} identifiers")
    if summary.entries_added:
        print(f"  Entries added:   {summary.entries_added}")
    if summary.entries_translated or summary.entries_pending:
        print(
            "  Translations:    "
            f"{summary.entries_translated} done, {summary.entries_pending} pending"
        )
    if summary.failed_batches:
        print(f"  Failed batches:  {summary.failed_batches}")
    print(f"  Elapsed time:    {summary.elapsed_seconds:.2f} seconds")
    if summary.error_messages:
        print("  Notes:")
        for message in summary.error_messages:
            print(f"    - {message}")


def main(argv: Optional[Iterable[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    if args.quiet and args.verbose:
        parser.error("--quiet and --verbose cannot be combined")
    level = "quiet" if args.quiet else "debug" if args.verbose else "info"
    reporter = Reporter(level=level)

    overrides: Dict[str, Any] = {
        "framework": args.framework,
        "provider": args.provider,
        "model": args.model,
    }

    exit_code, summary, message = execute_workflow(
        mode=args.mode,
        target=args.target,
        output=args.output,
        config_path=args.config,
        custom=args.custom,
        overrides=overrides,
        skip_llm=args.skip_llm,
        dry_run=args.dry_run,
        non_interactive=args.non_interactive,
        reporter=reporter,
        provider_debug=bool(args.debug_provider),
    )

    if message:
        print(message)
    if summary:
        print_summary(summary)
    return exit_code


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
