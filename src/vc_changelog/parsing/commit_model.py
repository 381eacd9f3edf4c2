"""
Data models for commits flowing through the changelog engine.

A :class:`RawCommit` is what a commit source (such as
:class:`vc_changelog.vcs.git_client.GitClient`) reports for each commit.
Parsing turns it into either a :class:`ParsedCommit` or a :class:`Skip`.
All models are frozen; they are created once per run and never mutated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Tuple


SHORT_HASH_LENGTH = 7


@dataclass(frozen=True)
class RawCommit:
    """A commit record as supplied by a commit source.

    Attributes
    ----------
    hash : str
        Full commit hash.
    parents : Tuple[str, ...]
        Hashes of the parent commits.
    timestamp : datetime
        Commit time (timezone aware, UTC).
    message : str
        Full commit message text.
    tag : Optional[str]
        Name of the release tag attached to this exact commit, if any.
    author : Optional[str]
        Author name, when the source provides it.
    """

    hash: str
    parents: Tuple[str, ...]
    timestamp: datetime
    message: str
    tag: Optional[str] = None
    author: Optional[str] = None

    @property
    def short_hash(self) -> str:
        return self.hash[:SHORT_HASH_LENGTH]


@dataclass(frozen=True)
class ParsedCommit:
    """Structured form of a Conventional Commit message.

    Attributes
    ----------
    hash : str
        Hash of the commit the message belongs to.
    type : str
        Commit type as written in the header (``feat``, ``fix``, ...).
    subject : str
        Display subject with leading emoji and symbols removed.
    scope : Optional[str]
        Scope from ``type(scope):`` or ``None``.
    breaking : bool
        True when the header has ``!`` or a ``BREAKING CHANGE`` footer exists.
    body : Optional[str]
        Free text between the header and the footer block.
    footers : Tuple[Tuple[str, str], ...]
        Footer ``(key, value)`` pairs in message order.
    raw_subject : str
        Subject exactly as written, before symbol stripping.
    breaking_description : Optional[str]
        Text of the ``BREAKING CHANGE`` footer, or the subject when only
        ``!`` marked the commit as breaking.
    author : Optional[str]
        Author name carried over from the raw commit.
    """

    hash: str
    type: str
    subject: str
    scope: Optional[str] = None
    breaking: bool = False
    body: Optional[str] = None
    footers: Tuple[Tuple[str, str], ...] = ()
    raw_subject: str = ""
    breaking_description: Optional[str] = None
    author: Optional[str] = None

    @property
    def short_hash(self) -> str:
        return self.hash[:SHORT_HASH_LENGTH]

    def footer_values(self, key: str) -> Tuple[str, ...]:
        """Return the values of every footer named ``key`` (case-insensitive)."""
        wanted = key.lower()
        return tuple(value for name, value in self.footers if name.lower() == wanted)


@dataclass(frozen=True)
class Skip:
    """Outcome for a commit whose message does not follow the grammar."""

    hash: str
    reason: str

    @property
    def short_hash(self) -> str:
        return self.hash[:SHORT_HASH_LENGTH]
