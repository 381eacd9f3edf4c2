"""
Pipeline coordinating one changelog run.

The pipeline reads every commit from a :class:`CommitSource`, parses and
classifies them, groups them into releases, resolves version impacts,
renders the document and hands it to a :class:`ChangelogSink`. It holds
no state between runs and contains no business logic of its own.

A run is all-or-nothing: the sink's ``write`` is called once with the
complete document, or not at all. Failures are raised as
:class:`PipelineError` naming the stage that failed (``listing``,
``parsing``, ``grouping``, ``rendering`` or ``writing``).
"""

from __future__ import annotations

import logging
import os
import stat
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Protocol, Sequence, Tuple

import click

from vc_changelog.config.loader import ChangelogConfig
from vc_changelog.grouping.group_model import AnnotatedCommit, ReleaseGroup, SemverImpact
from vc_changelog.grouping.impact_resolver import resolve_groups
from vc_changelog.grouping.release_grouper import group
from vc_changelog.parsing.commit_model import ParsedCommit, RawCommit, Skip
from vc_changelog.parsing.commit_parser import parse_commits
from vc_changelog.render.renderer import ChangelogRenderer


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


STAGE_LISTING = "listing"
STAGE_PARSING = "parsing"
STAGE_GROUPING = "grouping"
STAGE_RENDERING = "rendering"
STAGE_WRITING = "writing"


class PipelineError(Exception):
    """Raised when a pipeline stage fails.

    Attributes
    ----------
    stage : str
        Name of the failing stage.
    cause : BaseException
        The original exception.
    """

    def __init__(self, stage: str, cause: BaseException) -> None:
        super().__init__(f"{stage} failed: {cause}")
        self.stage = stage
        self.cause = cause


@dataclass(frozen=True)
class RunReport:
    """Diagnostics of a changelog run."""

    total: int = 0
    parsed: int = 0
    skipped: int = 0
    skipped_hashes: Tuple[str, ...] = ()
    releases: int = 0
    bump: SemverImpact = SemverImpact.NONE
    next_version: Optional[str] = None


class CommitSource(Protocol):
    """Supplies raw commits newest-first; exhaustion ends the stream."""

    def iter_commits(self) -> Iterable[RawCommit]:
        ...


class ChangelogSink(Protocol):
    """Receives the complete document of a successful run."""

    def write(self, document: str, report: RunReport) -> None:
        ...

    def abort(self, error: PipelineError) -> None:
        ...


class FileSink:
    """Write the changelog to a file atomically.

    The document is written to a temporary file in the target directory
    and moved into place with :func:`os.replace`, so readers never see a
    partially written changelog.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def _target_mode(self) -> int:
        """Mode of the existing file, or the umask default for a new one."""
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            umask = os.umask(0)
            os.umask(umask)
            return 0o666 & ~umask

    def write(self, document: str, report: RunReport) -> None:
        directory = self.path.parent
        mode = self._target_mode()
        fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=directory)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as handle:
                handle.write(document)
            # mkstemp creates 0600 files.
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Wrote %d characters to %s", len(document), self.path)

    def abort(self, error: PipelineError) -> None:
        logger.warning("Not writing %s: %s", self.path, error)


class EchoSink:
    """Print the changelog to standard output."""

    def write(self, document: str, report: RunReport) -> None:
        click.echo(document, nl=False)

    def abort(self, error: PipelineError) -> None:
        logger.debug("Nothing printed: %s", error)


class ChangelogPipeline:
    """Run source → parse → classify → group → resolve → render → sink."""

    def __init__(self, config: ChangelogConfig, source: CommitSource, sink: ChangelogSink) -> None:
        self.config = config
        self.source = source
        self.sink = sink

    @contextmanager
    def _stage(self, name: str) -> Iterator[None]:
        logger.debug("Stage '%s' started", name)
        try:
            yield
        except PipelineError:
            raise
        except Exception as exc:
            logger.error("Stage '%s' failed: %s", name, exc)
            raise PipelineError(name, exc) from exc

    def build(self, raws: Sequence[RawCommit]) -> Tuple[List[ReleaseGroup], RunReport]:
        """Parse, classify, group and resolve ``raws`` (newest-first)."""
        with self._stage(STAGE_PARSING):
            classifier = self.config.classifier()
            results = parse_commits(raws, workers=self.config.parse_workers)
            entries: List[AnnotatedCommit] = []
            skipped: List[Skip] = []
            for raw, result in zip(raws, results):
                classified = None
                if isinstance(result, ParsedCommit):
                    classified = classifier.classify_commit(result)
                else:
                    skipped.append(result)
                entries.append(
                    AnnotatedCommit(
                        hash=raw.hash,
                        timestamp=raw.timestamp,
                        tag=raw.tag,
                        classified=classified,
                    )
                )
            if skipped:
                logger.info("Skipped %d non-conventional commit(s)", len(skipped))

        with self._stage(STAGE_GROUPING):
            groups = resolve_groups(group(entries, self.config.categories))

        head = groups[0] if groups and groups[0].is_unreleased else None
        report = RunReport(
            total=len(raws),
            parsed=len(raws) - len(skipped),
            skipped=len(skipped),
            skipped_hashes=tuple(skip.short_hash for skip in skipped),
            releases=len(groups),
            bump=head.bump if head else SemverImpact.NONE,
            next_version=head.next_version if head else None,
        )
        return groups, report

    def collect(self) -> Tuple[List[ReleaseGroup], RunReport]:
        """Read the whole source and build the resolved release groups."""
        with self._stage(STAGE_LISTING):
            raws = list(self.source.iter_commits())
        logger.debug("Read %d commit(s) from source", len(raws))
        return self.build(raws)

    def render(self, groups: Sequence[ReleaseGroup]) -> str:
        with self._stage(STAGE_RENDERING):
            renderer = ChangelogRenderer(
                self.config.template,
                self.config.categories,
                self.config.unreleased_title,
            )
            return renderer.render(groups)

    def publish(self, groups: Sequence[ReleaseGroup], report: RunReport) -> str:
        """Render ``groups`` and hand the complete document to the sink.

        Raises
        ------
        PipelineError
            If rendering or writing fails; the sink then receives
            ``abort`` only.
        """
        try:
            document = self.render(groups)
            with self._stage(STAGE_WRITING):
                self.sink.write(document, report)
        except PipelineError as error:
            self.sink.abort(error)
            raise
        return document

    def run(self) -> RunReport:
        """Execute one full run.

        Returns
        -------
        RunReport
            Diagnostics for the run.

        Raises
        ------
        PipelineError
            If any stage fails; the sink then receives ``abort`` only.
        """
        try:
            groups, report = self.collect()
        except PipelineError as error:
            self.sink.abort(error)
            raise
        self.publish(groups, report)
        return report
