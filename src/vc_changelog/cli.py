"""
Command line interface for the vc_changelog tool.

This module defines the ``main`` function which is used as the entry
point when executing the ``vcchangelog`` command. It locates the
repository, loads the configuration, runs the changelog pipeline over
the Git history and writes the resulting document. Status output goes to
stderr so that ``--stdout`` and ``--next-version`` print clean results.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import click

from vc_changelog import __version__
from vc_changelog.config.loader import ConfigError, load_config
from vc_changelog.pipeline import (
    STAGE_LISTING,
    STAGE_RENDERING,
    STAGE_WRITING,
    ChangelogPipeline,
    EchoSink,
    FileSink,
    PipelineError,
)
from vc_changelog.vcs.git_client import GitClient

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests).
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_INVALID_USAGE = 2
EXIT_NO_REPO = 3
EXIT_NO_COMMITS = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_RENDER_FAILURE = 7
EXIT_WRITE_FAILURE = 8

STAGE_EXIT_CODES = {
    STAGE_LISTING: EXIT_VCS_FAILURE,
    STAGE_RENDERING: EXIT_RENDER_FAILURE,
    STAGE_WRITING: EXIT_WRITE_FAILURE,
}


# ---------------------------------------------------------------------------
# Status display utilities
# ---------------------------------------------------------------------------

def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'='*60}", err=True)
    click.echo(f"Step {step_num}/{total_steps}: {message}", err=True)
    click.echo(f"{'='*60}", err=True)


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}", err=True)


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}", err=True)


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}", err=True)


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_summary_box(title: str, items: List[str]):
    """Print a formatted summary box."""
    max_width = max(len(title), max(len(item) for item in items) if items else 0)
    box_width = min(max_width + 4, 60)

    click.echo(f"\n┌{'─' * box_width}┐", err=True)
    click.echo(f"│ {title.ljust(box_width - 2)}│", err=True)
    click.echo(f"├{'─' * box_width}┤", err=True)
    for item in items:
        click.echo(f"│ {item.ljust(box_width - 2)}│", err=True)
    click.echo(f"└{'─' * box_width}┘", err=True)


def _enable_package_logging() -> None:
    """Let vc_changelog module loggers reach the handlers set up by the CLI."""
    for name, item in logging.root.manager.loggerDict.items():
        if name.startswith("vc_changelog") and isinstance(item, logging.Logger):
            item.propagate = True


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'s' if count != 1 else ''}"


# ---------------------------------------------------------------------------
# Core functionality
# ---------------------------------------------------------------------------

def detect_repo(start_dir: Path) -> Path:
    """Return the Git repository root containing ``start_dir``.

    Raises
    ------
    click.exceptions.Exit
        With code EXIT_NO_REPO if no repository is found.
    """
    repo_root = GitClient.find_repo_root(start_dir)
    if repo_root is None:
        print_error("No Git repository found in current directory or parent directories.")
        raise click.exceptions.Exit(EXIT_NO_REPO)
    print_success(f"Found Git repository at: {repo_root}")
    return repo_root


@click.command()
@click.option("--repo", "repo", type=click.Path(file_okay=False, path_type=Path), help="Repository to read (default: current directory).")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), help="Path to a changelog configuration file.")
@click.option("--output", "output", type=click.Path(dir_okay=False, path_type=Path), help="Output file (default from configuration, CHANGELOG.md).")
@click.option("--stdout", "to_stdout", is_flag=True, help="Print the changelog instead of writing a file.")
@click.option("--rev", "rev", help="Revision or range to read (default: HEAD).")
@click.option("--next-version", "next_version", is_flag=True, help="Print the suggested next version and exit.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="vcchangelog")
def main(
    repo: Optional[Path],
    config_path: Optional[Path],
    output: Optional[Path],
    to_stdout: bool,
    rev: Optional[str],
    next_version: bool,
    verbose: bool,
) -> None:
    """Generate a changelog from Conventional Commit history."""
    # Use force=True to ensure handlers are reconfigured on subsequent
    # invocations (important for tests).
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    if verbose:
        _enable_package_logging()

    ctx = click.get_current_context(silent=True)
    total_steps = 3

    try:
        print_step(1, total_steps, "Detecting Repository")
        repo_root = detect_repo(repo or Path.cwd())

        print_step(2, total_steps, "Loading Configuration")
        try:
            config = load_config(repo_root, config_path)
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)
        if config.source_path is not None:
            print_success(f"Configuration loaded from {config.source_path}")
        else:
            print_info("No configuration file found, using defaults")

        print_step(3, total_steps, "Generating Changelog")
        target = output or (repo_root / config.output)
        source = GitClient(repo_root, rev=rev, tag_pattern=config.tag_pattern)
        sink = EchoSink() if to_stdout else FileSink(target)
        pipeline = ChangelogPipeline(config, source, sink)

        try:
            groups, report = pipeline.collect()
            if report.total == 0:
                print_warning("No commits found; nothing to write.")
                raise click.exceptions.Exit(EXIT_NO_COMMITS)

            print_success(f"Read {_plural(report.total, 'commit')} into {_plural(report.releases, 'release')}")
            if report.skipped:
                print_warning(f"Skipped {_plural(report.skipped, 'non-conventional commit')}", indent=1)
                if verbose:
                    print_info(", ".join(report.skipped_hashes), indent=2)

            if next_version:
                click.echo(report.next_version or "none")
                raise click.exceptions.Exit(EXIT_SUCCESS)

            pipeline.publish(groups, report)
        except PipelineError as exc:
            print_error(f"Changelog {exc}")
            raise click.exceptions.Exit(STAGE_EXIT_CODES.get(exc.stage, EXIT_GENERIC_ERROR))

        items = [
            f"✓ Commits: {report.parsed} included, {report.skipped} skipped",
            f"✓ Releases: {report.releases}",
            f"✓ Pending bump: {report.bump.label}",
        ]
        if report.next_version:
            items.append(f"✓ Suggested version: {report.next_version}")
        items.append(f"✓ Output: {'stdout' if to_stdout else target}")
        print_summary_box("Summary", items)

        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        # Click uses its own Exit exception; re-raise to let Click handle it
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
