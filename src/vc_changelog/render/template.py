"""
Changelog templates.

Templates are Jinja2 documents rendered against a list of ``releases``.
Each release has ``sections`` (one per non-empty category) and each
section has ``commits``; these are the three repeated blocks of a
changelog template::

    {% for release in releases %}
    ## {{ release.title }}
    {% for section in release.sections %}
    ### {{ section.label }}
    {% for commit in section.commits %}
    - {{ commit.subject }} ({{ commit.short_hash }})
    {% endfor %}
    {% endfor %}
    {% endfor %}

Templates are checked when they are loaded: syntax errors, unknown
variables and unknown attribute names raise :class:`TemplateError`
before any commit is processed.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Set

import jinja2
from jinja2 import meta, nodes


class TemplateError(Exception):
    """Raised when a changelog template is invalid."""

    pass


ROOT_VARIABLES: FrozenSet[str] = frozenset({"releases", "loop"})

RELEASE_FIELDS = {"name", "title", "date", "bump", "next_version", "is_unreleased", "sections"}
SECTION_FIELDS = {"key", "label", "commits", "scopes"}
SCOPE_FIELDS = {"scope", "commits"}
COMMIT_FIELDS = {
    "subject",
    "scope",
    "short_hash",
    "hash",
    "type",
    "breaking",
    "breaking_description",
    "body",
    "author",
    "footers",
}
FOOTER_FIELDS = {"key", "value"}
LOOP_FIELDS = {
    "index",
    "index0",
    "revindex",
    "revindex0",
    "first",
    "last",
    "length",
    "cycle",
    "depth",
    "depth0",
    "previtem",
    "nextitem",
    "changed",
}

KNOWN_ATTRIBUTES: FrozenSet[str] = frozenset(
    RELEASE_FIELDS
    | SECTION_FIELDS
    | SCOPE_FIELDS
    | COMMIT_FIELDS
    | FOOTER_FIELDS
    | LOOP_FIELDS
    # String methods such as ``commit.subject.upper()``.
    | {name for name in dir(str) if not name.startswith("_")}
)


def sample_releases() -> List[Dict[str, Any]]:
    """Return a context shaped like the renderer's with every field set.

    Keys must stay in step with :func:`vc_changelog.render.renderer.release_context`.
    """
    footer = {"key": "Refs", "value": "#1"}
    commit = {
        "subject": "add feature",
        "scope": "core",
        "short_hash": "0000000",
        "hash": "0" * 40,
        "type": "feat",
        "breaking": True,
        "breaking_description": "changes the API",
        "body": "Details.",
        "author": "Author",
        "footers": [footer],
    }
    section = {
        "key": "features",
        "label": "Features",
        "commits": [commit],
        "scopes": [{"scope": "core", "commits": [commit]}],
    }
    return [
        {
            "name": "v1.0.0",
            "title": "v1.0.0",
            "date": "2024-01-01",
            "bump": "minor",
            "next_version": "v1.1.0",
            "is_unreleased": True,
            "sections": [section],
        }
    ]


def create_environment() -> jinja2.Environment:
    """Create the Jinja2 environment used for every changelog template."""
    return jinja2.Environment(
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
        trim_blocks=True,
        lstrip_blocks=True,
        autoescape=False,
    )


def _referenced_attributes(ast: nodes.Template) -> Set[str]:
    names = {node.attr for node in ast.find_all(nodes.Getattr)}
    for node in ast.find_all(nodes.Getitem):
        if isinstance(node.arg, nodes.Const) and isinstance(node.arg.value, str):
            names.add(node.arg.value)
    return names


class ChangelogTemplate:
    """A validated, compiled changelog template.

    Parameters
    ----------
    source : str
        Jinja2 template text.
    name : str, optional
        Name used in error messages (usually the file name).

    Raises
    ------
    TemplateError
        If the template does not compile or references unknown
        variables or attributes.
    """

    def __init__(self, source: str, name: str = "<template>") -> None:
        self.source = source
        self.name = name
        self.environment = create_environment()

        try:
            ast = self.environment.parse(source, name=name)
        except jinja2.TemplateSyntaxError as exc:
            raise TemplateError(f"{name}:{exc.lineno}: {exc.message}") from exc

        allowed = ROOT_VARIABLES | set(self.environment.globals)
        try:
            # Runs the code generator, which also rejects unknown filters and tests.
            undeclared = meta.find_undeclared_variables(ast)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"{name}: {exc}") from exc
        unknown = sorted(undeclared - allowed)
        if unknown:
            raise TemplateError(f"{name}: unknown template placeholder(s): {', '.join(unknown)}")

        unknown_attrs = sorted(_referenced_attributes(ast) - KNOWN_ATTRIBUTES)
        if unknown_attrs:
            raise TemplateError(f"{name}: unknown template attribute(s): {', '.join(unknown_attrs)}")

        try:
            self.compiled = self.environment.from_string(source)
        except jinja2.TemplateError as exc:
            raise TemplateError(f"{name}: {exc}") from exc

        self._check_sample()

    def _check_sample(self) -> None:
        """Render once against :func:`sample_releases`.

        Catches fields used at the wrong level, such as ``release.subject``,
        which the name check alone lets through.
        """
        try:
            self.compiled.render(releases=sample_releases())
        except jinja2.UndefinedError as exc:
            raise TemplateError(f"{self.name}: unknown template placeholder: {exc.message}") from exc
        except Exception as exc:
            raise TemplateError(f"{self.name}: template fails on sample data: {exc}") from exc

    @classmethod
    def from_file(cls, path: Path) -> "ChangelogTemplate":
        """Load a template from ``path``.

        Raises
        ------
        TemplateError
            If the file cannot be read or the template is invalid.
        """
        try:
            source = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise TemplateError(f"Cannot read template {path}: {exc}") from exc
        return cls(source, name=path.name)
