"""
Rendering of release groups into the final changelog document.

The renderer converts :class:`~vc_changelog.grouping.group_model.ReleaseGroup`
objects into plain dictionaries and expands a
:class:`~vc_changelog.render.template.ChangelogTemplate` against them.
Only non-empty category buckets become sections, so an empty category
never produces a heading. Rendering is deterministic: the context is
built exclusively from ordered sequences.
"""

from __future__ import annotations

import logging
from datetime import timezone
from typing import Any, Dict, List, Optional, Sequence

import jinja2

from vc_changelog.grouping.group_model import CategoryTable, ClassifiedCommit, ReleaseGroup
from vc_changelog.render.template import ChangelogTemplate


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_UNRELEASED_TITLE = "Unreleased"
DATE_FORMAT = "%Y-%m-%d"


class RenderError(Exception):
    """Raised when a template fails while rendering."""

    pass


def commit_context(classified: ClassifiedCommit) -> Dict[str, Any]:
    commit = classified.commit
    return {
        "subject": commit.subject,
        "scope": commit.scope,
        "short_hash": commit.short_hash,
        "hash": commit.hash,
        "type": commit.type,
        "breaking": commit.breaking,
        "breaking_description": commit.breaking_description,
        "body": commit.body,
        "author": commit.author,
        "footers": [{"key": key, "value": value} for key, value in commit.footers],
    }


def _scope_clusters(commits: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Cluster commit contexts by scope in first-appearance order."""
    clusters: Dict[Optional[str], List[Dict[str, Any]]] = {}
    for commit in commits:
        clusters.setdefault(commit["scope"], []).append(commit)
    return [{"scope": scope, "commits": members} for scope, members in clusters.items()]


def release_context(
    release: ReleaseGroup,
    categories: CategoryTable,
    unreleased_title: str = DEFAULT_UNRELEASED_TITLE,
) -> Dict[str, Any]:
    """Build the template context for one release group."""
    date = None
    if release.date is not None:
        moment = release.date
        if moment.tzinfo is not None:
            moment = moment.astimezone(timezone.utc)
        date = moment.strftime(DATE_FORMAT)

    sections = []
    for category, bucket in release.category_buckets:
        if not bucket:
            continue
        commits = [commit_context(classified) for classified in bucket]
        sections.append(
            {
                "key": category.value,
                "label": categories.label(category),
                "commits": commits,
                "scopes": _scope_clusters(commits),
            }
        )

    return {
        "name": release.name,
        "title": release.name if release.name is not None else unreleased_title,
        "date": date,
        "bump": release.bump.label,
        "next_version": release.next_version,
        "is_unreleased": release.is_unreleased,
        "sections": sections,
    }


class ChangelogRenderer:
    """Render release groups with a fixed template and category table."""

    def __init__(
        self,
        template: ChangelogTemplate,
        categories: Optional[CategoryTable] = None,
        unreleased_title: str = DEFAULT_UNRELEASED_TITLE,
    ) -> None:
        self.template = template
        self.categories = categories or CategoryTable()
        self.unreleased_title = unreleased_title

    def render(self, groups: Sequence[ReleaseGroup]) -> str:
        """Render ``groups`` (newest-first) into the changelog text.

        Raises
        ------
        RenderError
            If the template fails while being expanded.
        """
        releases = [
            release_context(group, self.categories, self.unreleased_title) for group in groups
        ]
        logger.debug("Rendering %d release(s) with template %s", len(releases), self.template.name)
        try:
            return self.template.compiled.render(releases=releases)
        except jinja2.TemplateError as exc:
            logger.error("Template %s failed to render: %s", self.template.name, exc)
            raise RenderError(f"Template {self.template.name} failed to render: {exc}") from exc


def render(
    groups: Sequence[ReleaseGroup],
    template: ChangelogTemplate,
    categories: Optional[CategoryTable] = None,
    unreleased_title: str = DEFAULT_UNRELEASED_TITLE,
) -> str:
    """Render ``groups`` with ``template``; see :meth:`ChangelogRenderer.render`."""
    return ChangelogRenderer(template, categories, unreleased_title).render(groups)
