"""
Classification and grouping of parsed commits.

This package classifies commits into changelog categories, groups them
by release and resolves the version impact of each release. See
:mod:`vc_changelog.grouping.change_classifier`,
:mod:`vc_changelog.grouping.release_grouper` and
:mod:`vc_changelog.grouping.impact_resolver` for details.
"""

from .change_classifier import CommitClassifier, classify  # noqa: F401
from .group_model import (  # noqa: F401
    AnnotatedCommit,
    Category,
    CategoryTable,
    ClassifiedCommit,
    ReleaseGroup,
    SemverImpact,
)
from .impact_resolver import resolve, resolve_groups, suggest_next_version  # noqa: F401
from .release_grouper import group  # noqa: F401
