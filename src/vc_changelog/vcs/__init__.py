"""
Version control system (VCS) integration.

This package contains the Git commit source used by the changelog
pipeline. The client detects repository roots and lists commits with
their release tags.
"""

from .git_client import GitClient, GitError  # noqa: F401
