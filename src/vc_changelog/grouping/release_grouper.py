"""
Partitioning of a newest-first commit stream into release groups.

Walking the stream from the newest commit, every commit carrying a release
tag starts a new group named after that tag. Commits seen before the first
tag form the unreleased group, which is dropped when empty. Skipped
commits still mark their tag boundary but never enter a group.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from vc_changelog.grouping.group_model import (
    AnnotatedCommit,
    Category,
    CategoryTable,
    ClassifiedCommit,
    ReleaseGroup,
)


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


def bucket_by_category(
    commits: Sequence[ClassifiedCommit],
    categories: CategoryTable,
):
    """Stable partition of ``commits`` by category, in category rank order.

    Only non-empty buckets are returned.
    """
    buckets: Dict[Category, List[ClassifiedCommit]] = {}
    for commit in commits:
        buckets.setdefault(commit.category, []).append(commit)
    return tuple(
        (category, tuple(buckets[category]))
        for category in sorted(buckets, key=categories.rank)
    )


def _make_group(
    name: Optional[str],
    date: Optional[datetime],
    commits: List[ClassifiedCommit],
    categories: CategoryTable,
) -> ReleaseGroup:
    return ReleaseGroup(
        name=name,
        date=date,
        commits=tuple(commits),
        category_buckets=bucket_by_category(commits, categories),
    )


def group(
    entries: Iterable[AnnotatedCommit],
    categories: Optional[CategoryTable] = None,
) -> List[ReleaseGroup]:
    """Group a newest-first annotated commit stream into releases.

    Parameters
    ----------
    entries : Iterable[AnnotatedCommit]
        Commits newest-first; ``classified`` is ``None`` for skipped ones.
    categories : CategoryTable, optional
        Ordering used for the category buckets.

    Returns
    -------
    List[ReleaseGroup]
        Groups newest-first. The unreleased group, if present, is first and
        non-empty.
    """
    categories = categories or CategoryTable()
    groups: List[ReleaseGroup] = []
    seen = set()

    name: Optional[str] = None
    date: Optional[datetime] = None
    current: List[ClassifiedCommit] = []

    for entry in entries:
        if entry.hash in seen:
            logger.debug("Ignoring duplicate commit %s", entry.hash[:7])
            continue
        seen.add(entry.hash)

        if entry.tag is not None:
            if name is not None or current:
                groups.append(_make_group(name, date, current, categories))
            name, date, current = entry.tag, entry.timestamp, []
            logger.debug("Release boundary %s at %s", entry.tag, entry.hash[:7])

        if entry.classified is not None:
            current.append(entry.classified)

    if name is not None or current:
        groups.append(_make_group(name, date, current, categories))
    return groups
