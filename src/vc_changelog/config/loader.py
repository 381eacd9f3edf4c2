"""
Configuration loader for vc_changelog.

The tool reads an optional JSON configuration file named
``.changelog_config.json`` from the repository root, or an explicit file
passed on the command line. Every key is optional; missing keys fall
back to the built-in defaults. The configuration covers:

- ``types``: commit type to category key (``{"feat": "features"}``)
- ``bumps``: commit type to semver impact (``{"feat": "minor"}``)
- ``categories``: ``{"order": [...], "labels": {...}}``
- ``template`` or ``template_file``: the Jinja2 changelog template
- ``tag_pattern``: regex a tag must match to mark a release
- ``unreleased_title``, ``output``, ``parse_workers``

The whole configuration, template included, is validated once when it is
loaded. Any problem raises :class:`ConfigError` before a single commit
is read.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Pattern, Tuple

from vc_changelog.config.defaults import (
    CONFIG_FILE_NAME,
    DEFAULT_OUTPUT,
    DEFAULT_PARSE_WORKERS,
    DEFAULT_TEMPLATE,
)
from vc_changelog.grouping.change_classifier import (
    DEFAULT_TYPE_CATEGORIES,
    DEFAULT_TYPE_IMPACTS,
    CommitClassifier,
)
from vc_changelog.grouping.group_model import Category, CategoryTable, SemverImpact
from vc_changelog.render.renderer import DEFAULT_UNRELEASED_TITLE
from vc_changelog.render.template import ChangelogTemplate, TemplateError


logger = logging.getLogger(__name__)
# Attach a null handler to avoid "No handler" warnings. Propagation is
# disabled so closed root streams (e.g. in unit tests) cannot raise; the
# CLI configures logging explicitly.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


KNOWN_KEYS = {
    "types",
    "bumps",
    "categories",
    "template",
    "template_file",
    "tag_pattern",
    "unreleased_title",
    "output",
    "parse_workers",
}


class ConfigError(Exception):
    """Raised when the changelog configuration is missing or invalid."""

    pass


@dataclass(frozen=True)
class ChangelogConfig:
    """Validated changelog configuration."""

    template: ChangelogTemplate
    type_categories: Dict[str, Category] = field(default_factory=lambda: dict(DEFAULT_TYPE_CATEGORIES))
    type_impacts: Dict[str, SemverImpact] = field(default_factory=lambda: dict(DEFAULT_TYPE_IMPACTS))
    categories: CategoryTable = field(default_factory=CategoryTable)
    tag_pattern: Optional[Pattern[str]] = None
    unreleased_title: str = DEFAULT_UNRELEASED_TITLE
    output: str = DEFAULT_OUTPUT
    parse_workers: int = DEFAULT_PARSE_WORKERS
    source_path: Optional[Path] = None

    def classifier(self) -> CommitClassifier:
        return CommitClassifier(self.type_categories, self.type_impacts)


def _reject_duplicate_keys(pairs: List[Tuple[str, Any]]) -> Dict[str, Any]:
    """``object_pairs_hook`` that refuses duplicate keys in a JSON object."""
    result: Dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ConfigError(f"Duplicate key in configuration: {key!r}")
        result[key] = value
    return result


def _require_str(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"'{key}' must be a non-empty string")
    return value


def _type_table(data: Dict[str, Any], key: str, convert) -> Dict[str, Any]:
    """Validate a ``{commit_type: name}`` table, comparing types case-insensitively."""
    raw = data.get(key, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"'{key}' must be an object mapping commit types to names")

    table: Dict[str, Any] = {}
    for commit_type, name in raw.items():
        normalized = commit_type.strip().lower()
        if not normalized:
            raise ConfigError(f"'{key}' contains an empty commit type")
        if normalized in table:
            raise ConfigError(f"Ambiguous mapping in '{key}': type {commit_type!r} is listed more than once")
        if not isinstance(name, str):
            raise ConfigError(f"'{key}.{commit_type}' must be a string")
        try:
            table[normalized] = convert(name)
        except ValueError as exc:
            raise ConfigError(f"'{key}.{commit_type}': {exc}") from exc
    return table


def _category_table(data: Dict[str, Any]) -> CategoryTable:
    raw = data.get("categories", {})
    if not isinstance(raw, dict):
        raise ConfigError("'categories' must be an object")
    unknown = sorted(set(raw) - {"order", "labels"})
    if unknown:
        raise ConfigError(f"Unknown keys in 'categories': {', '.join(unknown)}")

    order_keys = raw.get("order", [])
    labels_raw = raw.get("labels", {})
    if not isinstance(order_keys, list) or not all(isinstance(k, str) for k in order_keys):
        raise ConfigError("'categories.order' must be a list of category names")
    if not isinstance(labels_raw, dict):
        raise ConfigError("'categories.labels' must be an object")

    try:
        order = [Category.from_key(key) for key in order_keys]
        labels = {}
        for key, label in labels_raw.items():
            if not isinstance(label, str) or not label.strip():
                raise ConfigError(f"'categories.labels.{key}' must be a non-empty string")
            labels[Category.from_key(key)] = label
        return CategoryTable.build(order, labels)
    except ValueError as exc:
        raise ConfigError(f"Invalid 'categories': {exc}") from exc


def _template(data: Dict[str, Any], base_dir: Optional[Path]) -> ChangelogTemplate:
    inline = data.get("template")
    template_file = _require_str(data, "template_file")
    if inline is not None and template_file is not None:
        raise ConfigError("Use either 'template' or 'template_file', not both")
    if inline is not None and not isinstance(inline, str):
        raise ConfigError("'template' must be a string")

    try:
        if template_file is not None:
            path = Path(template_file)
            if not path.is_absolute() and base_dir is not None:
                path = base_dir / path
            return ChangelogTemplate.from_file(path)
        if inline is not None:
            return ChangelogTemplate(inline, name="template")
        return ChangelogTemplate(DEFAULT_TEMPLATE, name="default template")
    except TemplateError as exc:
        logger.error("Invalid changelog template: %s", exc)
        raise ConfigError(f"Invalid changelog template: {exc}") from exc


def build_config(data: Dict[str, Any], base_dir: Optional[Path] = None, source_path: Optional[Path] = None) -> ChangelogConfig:
    """Validate raw configuration data and build a :class:`ChangelogConfig`.

    Parameters
    ----------
    data : Dict[str, Any]
        Decoded JSON object; an empty dict yields the defaults.
    base_dir : Path, optional
        Directory that relative ``template_file`` paths are resolved against.
    source_path : Path, optional
        File the data was read from, kept for diagnostics.

    Raises
    ------
    ConfigError
        If any key is unknown or has an invalid value.
    """
    unknown = sorted(set(data) - KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    type_categories = dict(DEFAULT_TYPE_CATEGORIES)
    type_categories.update(_type_table(data, "types", Category.from_key))
    type_impacts = dict(DEFAULT_TYPE_IMPACTS)
    type_impacts.update(_type_table(data, "bumps", SemverImpact.from_name))

    tag_pattern = None
    pattern_text = _require_str(data, "tag_pattern")
    if pattern_text is not None:
        try:
            tag_pattern = re.compile(pattern_text)
        except re.error as exc:
            raise ConfigError(f"'tag_pattern' is not a valid regular expression: {exc}") from exc

    workers = data.get("parse_workers", DEFAULT_PARSE_WORKERS)
    if isinstance(workers, bool) or not isinstance(workers, int) or workers < 1:
        raise ConfigError("'parse_workers' must be a positive integer")

    return ChangelogConfig(
        template=_template(data, base_dir),
        type_categories=type_categories,
        type_impacts=type_impacts,
        categories=_category_table(data),
        tag_pattern=tag_pattern,
        unreleased_title=_require_str(data, "unreleased_title") or DEFAULT_UNRELEASED_TITLE,
        output=_require_str(data, "output") or DEFAULT_OUTPUT,
        parse_workers=workers,
        source_path=source_path,
    )


def load_config(repo_root: Optional[Path] = None, config_path: Optional[Path] = None) -> ChangelogConfig:
    """Load and validate the changelog configuration.

    Args:
        repo_root: Repository root searched for ``.changelog_config.json``.
            When the file is absent the built-in defaults are used.
        config_path: Explicit configuration file. It must exist.

    Returns:
        The validated :class:`ChangelogConfig`.

    Raises:
        ConfigError: If the configuration file is missing (explicit path
            only), malformed, or invalid.
    """
    if config_path is None:
        if repo_root is None or not (repo_root / CONFIG_FILE_NAME).exists():
            logger.debug("No %s found; using default configuration", CONFIG_FILE_NAME)
            return build_config({})
        config_path = repo_root / CONFIG_FILE_NAME
    elif not config_path.exists():
        logger.error("Configuration file '%s' does not exist", config_path)
        raise ConfigError(f"Missing changelog configuration file: {config_path}")

    try:
        content = config_path.read_text(encoding="utf-8")
        data = json.loads(content, object_pairs_hook=_reject_duplicate_keys)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Failed to read or parse configuration file: %s", exc)
        raise ConfigError(f"Invalid JSON in {config_path.name}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"{config_path.name} must contain a JSON object")

    config = build_config(data, base_dir=config_path.parent, source_path=config_path)
    logger.debug("Loaded changelog configuration from: %s", config_path)
    return config
