"""
Classification of parsed commits into changelog categories and semver impacts.

Two independent lookup tables drive the classifier: one maps a commit
type to the changelog :class:`Category` it is listed under, the other
maps a commit type to the :class:`SemverImpact` it implies. A type can
appear in one table and not in the other, so a type may be shown in the
changelog without affecting the version bump and vice versa.

Breaking changes dominate both tables: any breaking commit is filed under
``Category.BREAKING`` with ``SemverImpact.MAJOR`` whatever its type.
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Tuple

from vc_changelog.grouping.group_model import Category, ClassifiedCommit, SemverImpact
from vc_changelog.parsing.commit_model import ParsedCommit


DEFAULT_TYPE_CATEGORIES: Dict[str, Category] = {
    "feat": Category.FEATURES,
    "feature": Category.FEATURES,
    "fix": Category.BUG_FIXES,
    "bugfix": Category.BUG_FIXES,
    "hotfix": Category.BUG_FIXES,
    "perf": Category.PERFORMANCE,
    "refactor": Category.REFACTOR,
    "docs": Category.DOCUMENTATION,
    "doc": Category.DOCUMENTATION,
    "style": Category.STYLING,
    "test": Category.TESTING,
    "tests": Category.TESTING,
    "build": Category.BUILD,
    "ci": Category.CI,
    "chore": Category.CHORE,
    "revert": Category.REVERTS,
}

DEFAULT_TYPE_IMPACTS: Dict[str, SemverImpact] = {
    "feat": SemverImpact.MINOR,
    "fix": SemverImpact.PATCH,
}


class CommitClassifier:
    """Map parsed commits to a ``(Category, SemverImpact)`` pair.

    Parameters
    ----------
    type_categories : Mapping[str, Category], optional
        Commit type to category table. Defaults to
        :data:`DEFAULT_TYPE_CATEGORIES`.
    type_impacts : Mapping[str, SemverImpact], optional
        Commit type to impact table. Defaults to
        :data:`DEFAULT_TYPE_IMPACTS`.
    """

    def __init__(
        self,
        type_categories: Optional[Mapping[str, Category]] = None,
        type_impacts: Optional[Mapping[str, SemverImpact]] = None,
    ) -> None:
        if type_categories is None:
            type_categories = DEFAULT_TYPE_CATEGORIES
        if type_impacts is None:
            type_impacts = DEFAULT_TYPE_IMPACTS
        # Lookups are case-insensitive.
        self.type_categories = {key.lower(): value for key, value in type_categories.items()}
        self.type_impacts = {key.lower(): value for key, value in type_impacts.items()}

    def classify(self, commit: ParsedCommit) -> Tuple[Category, SemverImpact]:
        """Classify a parsed commit.

        Returns
        -------
        Tuple[Category, SemverImpact]
            ``(BREAKING, MAJOR)`` for breaking commits; otherwise the table
            entries for the commit type, with unknown types falling back to
            ``(OTHER, NONE)``.
        """
        if commit.breaking:
            return Category.BREAKING, SemverImpact.MAJOR
        commit_type = commit.type.lower()
        category = self.type_categories.get(commit_type, Category.OTHER)
        impact = self.type_impacts.get(commit_type, SemverImpact.NONE)
        return category, impact

    def classify_commit(self, commit: ParsedCommit) -> ClassifiedCommit:
        category, impact = self.classify(commit)
        return ClassifiedCommit(commit=commit, category=category, impact=impact)


_DEFAULT_CLASSIFIER = CommitClassifier()


def classify(commit: ParsedCommit) -> Tuple[Category, SemverImpact]:
    """Classify ``commit`` with the default tables."""
    return _DEFAULT_CLASSIFIER.classify(commit)
