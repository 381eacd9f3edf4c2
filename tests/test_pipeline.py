import os
import stat
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

from vc_changelog.config.loader import build_config
from vc_changelog.grouping.group_model import SemverImpact
from vc_changelog.parsing.commit_model import RawCommit
from vc_changelog.pipeline import (
    STAGE_LISTING,
    STAGE_RENDERING,
    STAGE_WRITING,
    ChangelogPipeline,
    EchoSink,
    FileSink,
    PipelineError,
)
from vc_changelog.vcs.git_client import GitError

BASE_TIME = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


def history(*messages):
    """Build newest-first raw commits; a ``(message, tag)`` pair sets a tag."""
    commits = []
    for index, item in enumerate(messages):
        message, tag = item if isinstance(item, tuple) else (item, None)
        commits.append(
            RawCommit(
                hash=f"{index:x}" * 40,
                parents=(),
                timestamp=BASE_TIME - timedelta(days=index),
                message=message,
                tag=tag,
            )
        )
    return commits


class FakeSource:
    def __init__(self, commits=None, error=None) -> None:
        self.commits = commits or []
        self.error = error

    def iter_commits(self):
        for commit in self.commits:
            yield commit
        if self.error is not None:
            raise self.error


class RecordingSink:
    def __init__(self, error=None) -> None:
        self.documents = []
        self.aborted = []
        self.error = error

    def write(self, document, report) -> None:
        if self.error is not None:
            raise self.error
        self.documents.append((document, report))

    def abort(self, error) -> None:
        self.aborted.append(error)


SCENARIO = ["feat(ui): add login", "fix: null crash", "typo fix without colon", ("chore: release", "v0.1.0")]


class TestChangelogPipeline(unittest.TestCase):
    def test_run_reports_counts_and_writes_once(self) -> None:
        sink = RecordingSink()
        report = ChangelogPipeline(build_config({}), FakeSource(history(*SCENARIO)), sink).run()

        self.assertEqual(report.total, 4)
        self.assertEqual(report.parsed, 3)
        self.assertEqual(report.skipped, 1)
        self.assertEqual(report.skipped_hashes, ("2222222",))
        self.assertEqual(report.releases, 2)
        self.assertIs(report.bump, SemverImpact.MINOR)
        self.assertEqual(report.next_version, "v0.2.0")
        self.assertEqual(len(sink.documents), 1)
        self.assertEqual(sink.aborted, [])

        document = sink.documents[0][0]
        self.assertIn("## Unreleased", document)
        self.assertIn("## v0.1.0 (2024-03-02)", document)
        self.assertNotIn("typo fix", document)

    def test_listing_failure_aborts_without_writing(self) -> None:
        sink = RecordingSink()
        source = FakeSource(history("feat: a"), error=GitError("git log failed"))
        with self.assertRaises(PipelineError) as ctx:
            ChangelogPipeline(build_config({}), source, sink).run()
        self.assertEqual(ctx.exception.stage, STAGE_LISTING)
        self.assertIsInstance(ctx.exception.cause, GitError)
        self.assertEqual(sink.documents, [])
        self.assertEqual(len(sink.aborted), 1)

    def test_render_failure_aborts_without_writing(self) -> None:
        config = build_config(
            {
                "template": "{% for release in releases %}{% for section in release.sections %}"
                "{% for commit in section.commits %}{{ commit.scope.upper() }}{% endfor %}"
                "{% endfor %}{% endfor %}"
            }
        )
        sink = RecordingSink()
        with self.assertRaises(PipelineError) as ctx:
            ChangelogPipeline(config, FakeSource(history("feat: a")), sink).run()
        self.assertEqual(ctx.exception.stage, STAGE_RENDERING)
        self.assertEqual(sink.documents, [])
        self.assertEqual(sink.aborted, [ctx.exception])

    def test_sink_failure_is_writing_stage(self) -> None:
        sink = RecordingSink(error=OSError("disk full"))
        with self.assertRaises(PipelineError) as ctx:
            ChangelogPipeline(build_config({}), FakeSource(history("fix: a")), sink).run()
        self.assertEqual(ctx.exception.stage, STAGE_WRITING)
        self.assertEqual(len(sink.aborted), 1)

    def test_parallel_parsing_gives_identical_output(self) -> None:
        commits = history(*(f"feat(m{i % 3}): change {i}" for i in range(40)))
        serial, parallel = RecordingSink(), RecordingSink()
        ChangelogPipeline(build_config({}), FakeSource(commits), serial).run()
        ChangelogPipeline(build_config({"parse_workers": 4}), FakeSource(commits), parallel).run()
        self.assertEqual(serial.documents[0][0], parallel.documents[0][0])

    def test_collect_does_not_touch_sink(self) -> None:
        sink = RecordingSink()
        groups, report = ChangelogPipeline(build_config({}), FakeSource(history("fix: a")), sink).collect()
        self.assertEqual(len(groups), 1)
        self.assertEqual(report.next_version, "0.0.1")
        self.assertEqual(sink.documents, [])

    def test_empty_history(self) -> None:
        sink = RecordingSink()
        report = ChangelogPipeline(build_config({}), FakeSource([]), sink).run()
        self.assertEqual(report.total, 0)
        self.assertEqual(report.releases, 0)
        self.assertIsNone(report.next_version)
        self.assertEqual(sink.documents[0][0], "# Changelog\n")


class TestSinks(unittest.TestCase):
    def test_file_sink_replaces_atomically(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "CHANGELOG.md"
            path.write_text("old", encoding="utf-8")
            FileSink(path).write("new\n", None)
            self.assertEqual(path.read_text(encoding="utf-8"), "new\n")
            self.assertEqual(os.listdir(tmp), ["CHANGELOG.md"])

    def test_file_sink_cleans_up_on_failure(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "CHANGELOG.md"
            with patch("vc_changelog.pipeline.os.replace", side_effect=OSError("read-only")):
                with self.assertRaises(OSError):
                    FileSink(path).write("new\n", None)
            self.assertEqual(os.listdir(tmp), [])

    @unittest.skipIf(os.name == "nt", "POSIX file modes")
    def test_file_sink_keeps_existing_mode(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "CHANGELOG.md"
            path.write_text("old", encoding="utf-8")
            os.chmod(path, 0o640)
            FileSink(path).write("new\n", None)
            self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o640)

    @unittest.skipIf(os.name == "nt", "POSIX file modes")
    def test_file_sink_new_file_follows_umask(self) -> None:
        previous = os.umask(0o022)
        try:
            with tempfile.TemporaryDirectory() as tmp:
                path = Path(tmp) / "CHANGELOG.md"
                FileSink(path).write("new\n", None)
                self.assertEqual(stat.S_IMODE(os.stat(path).st_mode), 0o644)
        finally:
            os.umask(previous)

    def test_file_sink_cleans_up_on_encoding_error(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "CHANGELOG.md"
            with self.assertRaises(UnicodeEncodeError):
                FileSink(path).write("lone \ud800 surrogate\n", None)
            self.assertEqual(os.listdir(tmp), [])

    def test_echo_sink(self) -> None:
        with patch("vc_changelog.pipeline.click.echo") as echo:
            EchoSink().write("doc\n", None)
        echo.assert_called_once_with("doc\n", nl=False)


if __name__ == "__main__":
    unittest.main()
