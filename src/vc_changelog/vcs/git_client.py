"""
Git client implementation for vc_changelog.

This module reads the commit history of a Git repository and reports it
as :class:`~vc_changelog.parsing.commit_model.RawCommit` records,
newest first, with the release tag attached to each tagged commit. It
only reads; it never creates tags or touches the working tree. All
subprocess calls go through :meth:`GitClient._run` so that unit tests
can mock them easily.
"""

from __future__ import annotations

import logging
import subprocess
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List, Optional, Pattern

from vc_changelog.parsing.commit_model import RawCommit


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
# hash, parents, committer timestamp, author, ref names, raw body
LOG_FORMAT = FIELD_SEP.join(["%H", "%P", "%ct", "%an", "%D", "%B"]) + RECORD_SEP
TAG_PREFIX = "tag: "


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


class GitClient:
    """Read-only commit source backed by a Git repository."""

    def __init__(
        self,
        repo_root: Path,
        rev: Optional[str] = None,
        tag_pattern: Optional[Pattern[str]] = None,
    ) -> None:
        self.repo_root = repo_root
        self.rev = rev
        self.tag_pattern = tag_pattern

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is inside a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` directory is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if GitClient.is_repo(current):
                return current
            if current.parent == current:
                # reached filesystem root
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command cannot be started, or exits with a non-zero
            status when ``check`` is True.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",  # Replace invalid characters instead of failing
            )
        except OSError as e:
            logger.error("Unable to run git: %s", e)
            raise GitError(f"Unable to run git: {e}") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------
    def _select_tag(self, ref_names: str) -> Optional[str]:
        """Pick the release tag from a ``%D`` ref-name list.

        Tags not matching :attr:`tag_pattern` are ignored. When several
        tags remain, the first one Git reports wins.
        """
        tags = [
            ref[len(TAG_PREFIX):]
            for ref in (part.strip() for part in ref_names.split(","))
            if ref.startswith(TAG_PREFIX)
        ]
        if self.tag_pattern is not None:
            tags = [tag for tag in tags if self.tag_pattern.search(tag)]
        if len(tags) > 1:
            logger.debug("Several release tags on one commit (%s); using %s", ", ".join(tags), tags[0])
        return tags[0] if tags else None

    def _parse_record(self, record: str) -> RawCommit:
        fields = record.split(FIELD_SEP, 5)
        if len(fields) != 6:
            raise GitError(f"Unexpected git log record: {record[:80]!r}")
        commit_hash, parents, timestamp, author, ref_names, message = fields
        try:
            moment = datetime.fromtimestamp(int(timestamp), tz=timezone.utc)
        except ValueError as exc:
            raise GitError(f"Invalid timestamp {timestamp!r} for commit {commit_hash}") from exc
        return RawCommit(
            hash=commit_hash,
            parents=tuple(parents.split()),
            timestamp=moment,
            message=message.strip(),
            tag=self._select_tag(ref_names),
            author=author or None,
        )

    def has_head(self) -> bool:
        """Return True if ``HEAD`` points at a commit.

        A freshly initialised repository has an unborn ``HEAD`` and no history.
        """
        result = self._run(["rev-parse", "--verify", "--quiet", "HEAD"], check=False)
        return result.returncode == 0

    def iter_commits(self) -> Iterator[RawCommit]:
        """Yield the commits of :attr:`rev` (default ``HEAD``), newest first.

        Nothing is yielded when no revision is given and ``HEAD`` is unborn.

        Raises
        ------
        GitError
            If ``git log`` fails or its output cannot be parsed.
        """
        args = ["log", f"--format={LOG_FORMAT}"]
        if self.rev:
            args.append(self.rev)
        elif not self.has_head():
            logger.info("Repository has no commits yet")
            return
        result = self._run(args, check=True)

        for record in result.stdout.split(RECORD_SEP):
            record = record.lstrip("\n")
            if not record.strip():
                continue
            yield self._parse_record(record)
