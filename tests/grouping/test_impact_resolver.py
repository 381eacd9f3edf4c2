import unittest
from datetime import datetime, timezone

from vc_changelog.grouping.group_model import (
    Category,
    ClassifiedCommit,
    ReleaseGroup,
    SemverImpact,
)
from vc_changelog.grouping.impact_resolver import (
    max_impact,
    resolve,
    resolve_groups,
    suggest_next_version,
)
from vc_changelog.parsing.commit_model import ParsedCommit


def classified(impact: SemverImpact, name: str = "x") -> ClassifiedCommit:
    return ClassifiedCommit(
        commit=ParsedCommit(hash=name * 40, type="t", subject=name),
        category=Category.OTHER,
        impact=impact,
    )


def release(name, *impacts) -> ReleaseGroup:
    commits = tuple(classified(impact, str(i)) for i, impact in enumerate(impacts))
    return ReleaseGroup(name=name, date=datetime(2024, 1, 1, tzinfo=timezone.utc), commits=commits)


class TestResolve(unittest.TestCase):
    def test_maximum_impact_wins(self) -> None:
        group = release(None, SemverImpact.PATCH, SemverImpact.MINOR, SemverImpact.NONE)
        self.assertIs(resolve(group), SemverImpact.MINOR)

    def test_breaking_commit_resolves_major(self) -> None:
        group = release(None, SemverImpact.PATCH, SemverImpact.MAJOR)
        self.assertIs(resolve(group), SemverImpact.MAJOR)

    def test_empty_group_resolves_none(self) -> None:
        self.assertIs(resolve(ReleaseGroup(name="v1.0.0")), SemverImpact.NONE)
        self.assertIs(max_impact([]), SemverImpact.NONE)

    def test_resolution_is_monotonic(self) -> None:
        impacts = [SemverImpact.NONE, SemverImpact.PATCH, SemverImpact.NONE, SemverImpact.MINOR]
        group = release("v1", *impacts)
        for commit in group.commits:
            self.assertGreaterEqual(resolve(group), commit.impact)


class TestSuggestNextVersion(unittest.TestCase):
    def test_bumps(self) -> None:
        cases = [
            ("v1.4.2", SemverImpact.MAJOR, "v2.0.0"),
            ("v1.4.2", SemverImpact.MINOR, "v1.5.0"),
            ("1.4.2", SemverImpact.PATCH, "1.4.3"),
            ("v0.2.0-test", SemverImpact.PATCH, "v0.2.1"),
            ("release-2.0.0-rc.1+build.5", SemverImpact.MINOR, "release-2.1.0"),
            ("v1.2", SemverImpact.PATCH, "v1.2.1"),
            (None, SemverImpact.MINOR, "0.1.0"),
            (None, SemverImpact.MAJOR, "1.0.0"),
        ]
        for tag, impact, expected in cases:
            with self.subTest(tag=tag, impact=impact):
                self.assertEqual(suggest_next_version(tag, impact), expected)

    def test_no_impact_suggests_nothing(self) -> None:
        self.assertIsNone(suggest_next_version("v1.0.0", SemverImpact.NONE))

    def test_non_version_tag(self) -> None:
        self.assertIsNone(suggest_next_version("nightly", SemverImpact.MINOR))


class TestResolveGroups(unittest.TestCase):
    def test_bumps_and_next_version_are_attached(self) -> None:
        groups = [
            release(None, SemverImpact.MINOR, SemverImpact.PATCH),
            release("v1.2.3", SemverImpact.PATCH),
            release("v1.2.2", SemverImpact.NONE),
        ]
        resolved = resolve_groups(groups)
        self.assertEqual([g.bump for g in resolved], [SemverImpact.MINOR, SemverImpact.PATCH, SemverImpact.NONE])
        self.assertEqual(resolved[0].next_version, "v1.3.0")
        self.assertIsNone(resolved[1].next_version)
        # Inputs are not mutated.
        self.assertIs(groups[0].bump, SemverImpact.NONE)

    def test_unreleased_without_previous_tag(self) -> None:
        resolved = resolve_groups([release(None, SemverImpact.PATCH)])
        self.assertEqual(resolved[0].next_version, "0.0.1")


if __name__ == "__main__":
    unittest.main()
