"""
Changelog rendering.

See :mod:`vc_changelog.render.template` for template loading and
validation, and :mod:`vc_changelog.render.renderer` for expansion.
"""

from .renderer import ChangelogRenderer, RenderError, render  # noqa: F401
from .template import ChangelogTemplate, TemplateError  # noqa: F401
