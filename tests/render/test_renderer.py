import unittest
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from vc_changelog.config.defaults import DEFAULT_TEMPLATE
from vc_changelog.grouping.change_classifier import CommitClassifier
from vc_changelog.grouping.group_model import AnnotatedCommit, Category, CategoryTable, ReleaseGroup
from vc_changelog.grouping.impact_resolver import resolve_groups
from vc_changelog.grouping.release_grouper import group
from vc_changelog.parsing.commit_model import ParsedCommit, RawCommit
from vc_changelog.parsing.commit_parser import parse
from vc_changelog.render.renderer import ChangelogRenderer, RenderError, release_context, render
from vc_changelog.render.template import (
    COMMIT_FIELDS,
    RELEASE_FIELDS,
    SECTION_FIELDS,
    ChangelogTemplate,
    sample_releases,
)

BASE_TIME = datetime(2024, 3, 5, 12, 0, tzinfo=timezone.utc)


def build_groups(history: List[Tuple[str, str, Optional[str]]]) -> List[ReleaseGroup]:
    classifier = CommitClassifier()
    entries = []
    for index, (commit_hash, message, tag) in enumerate(history):
        raw = RawCommit(
            hash=commit_hash,
            parents=(),
            timestamp=BASE_TIME - timedelta(days=index),
            message=message,
            tag=tag,
        )
        result = parse(raw)
        classified = classifier.classify_commit(result) if isinstance(result, ParsedCommit) else None
        entries.append(AnnotatedCommit(hash=commit_hash, timestamp=raw.timestamp, tag=tag, classified=classified))
    return resolve_groups(group(entries))


SCENARIO = [
    ("1111111aaaaaaaaa", "feat(ui): add login", None),
    ("2222222bbbbbbbbb", "fix: null crash", None),
    ("3333333ccccccccc", "chore: bump deps", None),
]


class TestDefaultTemplate(unittest.TestCase):
    def setUp(self) -> None:
        self.template = ChangelogTemplate(DEFAULT_TEMPLATE)

    def test_renders_expected_document(self) -> None:
        document = render(build_groups(SCENARIO), self.template)
        expected = (
            "# Changelog\n"
            "\n"
            "## Unreleased\n"
            "\n"
            "Suggested version: 0.1.0 (minor)\n"
            "\n"
            "### Features\n"
            "\n"
            "- **ui:** add login (1111111)\n"
            "\n"
            "### Bug Fixes\n"
            "\n"
            "- null crash (2222222)\n"
            "\n"
            "### Chore\n"
            "\n"
            "- bump deps (3333333)\n"
        )
        self.assertEqual(document, expected)

    def test_rendering_is_idempotent(self) -> None:
        groups = build_groups(SCENARIO)
        self.assertEqual(render(groups, self.template), render(groups, self.template))

    def test_empty_categories_have_no_heading(self) -> None:
        document = render(build_groups(SCENARIO), self.template)
        for label in ["Breaking Changes", "Performance", "Documentation", "Other"]:
            self.assertNotIn(f"### {label}", document)

    def test_release_without_commits_has_no_sections(self) -> None:
        groups = build_groups([
            ("4444444ddddddddd", "Release 1.1.0", "v1.1.0"),
            ("5555555eeeeeeeee", "feat: base", "v1.0.0"),
        ])
        document = render(groups, self.template)
        head, _, tail = document.partition("## v1.0.0")
        self.assertIn("## v1.1.0 (2024-03-05)", head)
        self.assertNotIn("###", head)
        self.assertIn("## v1.0.0 (2024-03-04)", document)
        self.assertIn("### Features", tail)

    def test_breaking_description_is_listed(self) -> None:
        groups = build_groups([
            ("6666666fffffffff", "feat(api)!: new endpoints\n\nBREAKING CHANGE: v1 routes removed", None),
        ])
        document = render(groups, self.template)
        self.assertIn("### Breaking Changes", document)
        self.assertIn("- **api:** new endpoints (6666666)\n  - v1 routes removed\n", document)
        self.assertEqual(document.count("new endpoints"), 1)
        self.assertIn("Suggested version: 1.0.0 (major)", document)

    def test_custom_labels_and_unreleased_title(self) -> None:
        table = CategoryTable.build(labels={Category.FEATURES: "New"})
        document = render(build_groups(SCENARIO), self.template, table, unreleased_title="Next")
        self.assertIn("## Next\n", document)
        self.assertIn("### New\n", document)


SCOPE_UPPER = (
    "{% for release in releases %}{% for section in release.sections %}"
    "{% for commit in section.commits %}{{ commit.scope.upper() }}{% endfor %}"
    "{% endfor %}{% endfor %}"
)


class TestCustomTemplates(unittest.TestCase):
    def test_scope_clusters(self) -> None:
        groups = build_groups([
            ("a1", "feat(ui): a", None),
            ("a2", "feat(api): b", None),
            ("a3", "feat(ui): c", None),
            ("a4", "feat: d", None),
        ])
        template = ChangelogTemplate(
            "{% for release in releases %}{% for section in release.sections %}"
            "{% for s in section.scopes %}[{{ s.scope or 'general' }}:{{ s.commits|length }}]{% endfor %}"
            "{% endfor %}{% endfor %}"
        )
        self.assertEqual(render(groups, template), "[ui:2][api:1][general:1]")

    def test_release_context_fields(self) -> None:
        groups = build_groups([("b1", "fix: one", "v1.0.1"), ("b2", "feat: two", "v1.0.0")])
        context = release_context(groups[0], CategoryTable())
        self.assertEqual(context["name"], "v1.0.1")
        self.assertEqual(context["title"], "v1.0.1")
        self.assertEqual(context["date"], "2024-03-05")
        self.assertEqual(context["bump"], "patch")
        self.assertFalse(context["is_unreleased"])
        self.assertEqual([s["key"] for s in context["sections"]], ["bug_fixes"])
        self.assertEqual(context["sections"][0]["commits"][0]["short_hash"], "b1")

    def test_validation_sample_matches_context(self) -> None:
        groups = build_groups([("c1", "feat(api)!: new\n\nRefs #4", None)])
        context = release_context(groups[0], CategoryTable())
        sample = sample_releases()[0]
        self.assertEqual(set(context), RELEASE_FIELDS)
        self.assertEqual(set(sample), RELEASE_FIELDS)
        self.assertEqual(set(context["sections"][0]), SECTION_FIELDS)
        self.assertEqual(set(sample["sections"][0]), SECTION_FIELDS)
        self.assertEqual(set(context["sections"][0]["commits"][0]), COMMIT_FIELDS)
        self.assertEqual(set(sample["sections"][0]["commits"][0]), COMMIT_FIELDS)

    def test_runtime_failure_raises_render_error(self) -> None:
        # Valid on sample data; fails on a commit without a scope.
        template = ChangelogTemplate(SCOPE_UPPER)
        with self.assertRaises(RenderError):
            ChangelogRenderer(template).render(build_groups(SCENARIO))


if __name__ == "__main__":
    unittest.main()
