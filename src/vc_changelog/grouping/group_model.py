"""
Data models for classified commits and release groups.

The :class:`Category` enumeration is fixed; how categories are labelled
and ordered in the changelog is described by a :class:`CategoryTable`,
which is configurable but always total. A :class:`ReleaseGroup` holds the
commits between two release tags, partitioned into category buckets.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional, Tuple

from vc_changelog.parsing.commit_model import ParsedCommit


class Category(enum.Enum):
    """Changelog sections. Values are the keys used in configuration files."""

    BREAKING = "breaking"
    FEATURES = "features"
    BUG_FIXES = "bug_fixes"
    PERFORMANCE = "performance"
    REFACTOR = "refactor"
    DOCUMENTATION = "documentation"
    STYLING = "styling"
    TESTING = "testing"
    BUILD = "build"
    CI = "ci"
    CHORE = "chore"
    REVERTS = "reverts"
    OTHER = "other"

    @classmethod
    def from_key(cls, key: str) -> "Category":
        """Look up a category by its configuration key (case-insensitive).

        Raises
        ------
        ValueError
            If ``key`` names no category.
        """
        return cls(key.strip().lower())


class SemverImpact(enum.IntEnum):
    """Version-bump class implied by a commit, ordered NONE < PATCH < MINOR < MAJOR."""

    NONE = 0
    PATCH = 1
    MINOR = 2
    MAJOR = 3

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "SemverImpact":
        """Look up an impact by name (``"minor"``, ``"MAJOR"``...).

        Raises
        ------
        ValueError
            If ``name`` is not a known impact.
        """
        try:
            return cls[name.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown semver impact: {name!r}") from None


DEFAULT_CATEGORY_ORDER: Tuple[Category, ...] = tuple(Category)

DEFAULT_CATEGORY_LABELS: Dict[Category, str] = {
    Category.BREAKING: "Breaking Changes",
    Category.FEATURES: "Features",
    Category.BUG_FIXES: "Bug Fixes",
    Category.PERFORMANCE: "Performance",
    Category.REFACTOR: "Refactor",
    Category.DOCUMENTATION: "Documentation",
    Category.STYLING: "Styling",
    Category.TESTING: "Testing",
    Category.BUILD: "Build",
    Category.CI: "CI",
    Category.CHORE: "Chore",
    Category.REVERTS: "Reverts",
    Category.OTHER: "Other",
}


@dataclass(frozen=True)
class CategoryTable:
    """Display order and labels for every :class:`Category`.

    The table is total: every category has a rank and a label. A partial
    ``order`` is completed with the remaining categories in their default
    order.
    """

    order: Tuple[Category, ...] = DEFAULT_CATEGORY_ORDER
    labels: Mapping[Category, str] = field(default_factory=lambda: dict(DEFAULT_CATEGORY_LABELS))

    @classmethod
    def build(
        cls,
        order: Optional[Iterable[Category]] = None,
        labels: Optional[Mapping[Category, str]] = None,
    ) -> "CategoryTable":
        """Create a total table from a (possibly partial) order and label overrides.

        Raises
        ------
        ValueError
            If ``order`` lists a category more than once.
        """
        ranked = list(order or ())
        duplicates = sorted({c.value for c in ranked if ranked.count(c) > 1})
        if duplicates:
            raise ValueError(f"Categories listed more than once: {', '.join(duplicates)}")
        ranked.extend(c for c in DEFAULT_CATEGORY_ORDER if c not in ranked)

        merged = dict(DEFAULT_CATEGORY_LABELS)
        merged.update(labels or {})
        return cls(order=tuple(ranked), labels=merged)

    def rank(self, category: Category) -> int:
        return self.order.index(category)

    def label(self, category: Category) -> str:
        return self.labels[category]


@dataclass(frozen=True)
class ClassifiedCommit:
    """A parsed commit together with its category and version impact."""

    commit: ParsedCommit
    category: Category
    impact: SemverImpact

    @property
    def hash(self) -> str:
        return self.commit.hash


@dataclass(frozen=True)
class AnnotatedCommit:
    """One entry of the newest-first stream fed to the grouper.

    ``classified`` is ``None`` for a commit that was skipped at parse
    time; such an entry still carries its tag boundary.
    """

    hash: str
    timestamp: datetime
    tag: Optional[str] = None
    classified: Optional[ClassifiedCommit] = None


@dataclass(frozen=True)
class ReleaseGroup:
    """Commits belonging to one release (or to the unreleased head).

    Attributes
    ----------
    name : Optional[str]
        Tag name, or ``None`` for the unreleased group.
    date : Optional[datetime]
        Timestamp of the tagged commit; ``None`` when unreleased.
    commits : Tuple[ClassifiedCommit, ...]
        Commits newest-first.
    category_buckets : Tuple[Tuple[Category, Tuple[ClassifiedCommit, ...]], ...]
        Non-empty buckets in category rank order; commits keep their
        relative order within a bucket.
    bump : SemverImpact
        Resolved version bump for the group.
    next_version : Optional[str]
        Advisory version for the unreleased group.
    """

    name: Optional[str]
    date: Optional[datetime] = None
    commits: Tuple[ClassifiedCommit, ...] = ()
    category_buckets: Tuple[Tuple[Category, Tuple[ClassifiedCommit, ...]], ...] = ()
    bump: SemverImpact = SemverImpact.NONE
    next_version: Optional[str] = None

    @property
    def is_unreleased(self) -> bool:
        return self.name is None

    def bucket(self, category: Category) -> Tuple[ClassifiedCommit, ...]:
        """Return the commits filed under ``category`` (empty when none)."""
        for bucket_category, commits in self.category_buckets:
            if bucket_category is category:
                return commits
        return ()
