"""
Semantic-version impact resolution for release groups.

The impact of a group is the maximum impact of its commits. For the
unreleased group the resolver also derives an advisory next version from
the most recent release tag, e.g. ``v1.4.2`` with a ``MINOR`` impact
suggests ``v1.5.0``. Nothing here creates tags; acting on the suggestion
is left to the caller.
"""

from __future__ import annotations

import dataclasses
import re
from typing import Iterable, List, Optional

from vc_changelog.grouping.group_model import ClassifiedCommit, ReleaseGroup, SemverImpact


INITIAL_VERSION = "0.0.0"

# Tags like v1.2.3, 1.2, release-2.0.0-rc.1+build.5
VERSION_TAG_PATTERN = re.compile(
    r"^(?P<prefix>\D*)(?P<major>\d+)\.(?P<minor>\d+)(?:\.(?P<patch>\d+))?(?P<suffix>[-+].*)?$"
)


def max_impact(commits: Iterable[ClassifiedCommit]) -> SemverImpact:
    """Return the highest impact among ``commits`` (``NONE`` when empty)."""
    return max((commit.impact for commit in commits), default=SemverImpact.NONE)


def resolve(group: ReleaseGroup) -> SemverImpact:
    """Resolve the recommended version bump of ``group``."""
    return max_impact(group.commits)


def suggest_next_version(previous_tag: Optional[str], impact: SemverImpact) -> Optional[str]:
    """Suggest the version following ``previous_tag`` for the given impact.

    Parameters
    ----------
    previous_tag : Optional[str]
        Most recent release tag, or ``None`` when the history has none.
    impact : SemverImpact
        Resolved impact of the unreleased commits.

    Returns
    -------
    Optional[str]
        The bumped version keeping the tag's prefix (such as ``v``), or
        ``None`` when no release is warranted or the tag is not a version.
    """
    if impact is SemverImpact.NONE:
        return None

    match = VERSION_TAG_PATTERN.match(previous_tag or INITIAL_VERSION)
    if not match:
        return None

    major = int(match.group("major"))
    minor = int(match.group("minor"))
    patch = int(match.group("patch") or 0)

    if impact is SemverImpact.MAJOR:
        major, minor, patch = major + 1, 0, 0
    elif impact is SemverImpact.MINOR:
        minor, patch = minor + 1, 0
    else:
        patch += 1
    return f"{match.group('prefix')}{major}.{minor}.{patch}"


def resolve_groups(groups: Iterable[ReleaseGroup]) -> List[ReleaseGroup]:
    """Attach the resolved bump to every group.

    The unreleased group additionally receives an advisory ``next_version``
    computed from the next older release tag.
    """
    ordered = list(groups)
    resolved: List[ReleaseGroup] = []
    for index, group in enumerate(ordered):
        bump = resolve(group)
        next_version = None
        if group.is_unreleased:
            previous = ordered[index + 1].name if index + 1 < len(ordered) else None
            next_version = suggest_next_version(previous, bump)
        resolved.append(dataclasses.replace(group, bump=bump, next_version=next_version))
    return resolved
