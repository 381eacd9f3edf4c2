"""
Configuration loading for vc_changelog.

Provides a loader for the optional ``.changelog_config.json`` file in the
repository root. See :mod:`vc_changelog.config.loader` for
implementation details.
"""

from .loader import ChangelogConfig, ConfigError, build_config, load_config  # noqa: F401
