"""
Commit message parsing.

This package turns raw commit records into structured Conventional
Commits. See :mod:`vc_changelog.parsing.commit_parser` and
:mod:`vc_changelog.parsing.commit_model` for details.
"""

from .commit_model import ParsedCommit, RawCommit, Skip  # noqa: F401
from .commit_parser import CommitParser, parse, parse_commits  # noqa: F401
