"""
Parser for Conventional Commit messages.

Only the first line of a message is matched against the header grammar::

    type(scope)!: subject

Everything after the header is the body. The trailing paragraph of the
body is treated as a footer block when it starts with a ``Token: value``,
``Token #value`` or ``BREAKING CHANGE: text`` line; footers are removed
from the body and returned as ordered ``(key, value)`` pairs.

Parsing is a total function: a message that does not follow the grammar
produces a :class:`~vc_changelog.parsing.commit_model.Skip` instead of an
exception, so one malformed commit never aborts a changelog run.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple, Union

from vc_changelog.parsing.commit_model import ParsedCommit, RawCommit, Skip


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


BREAKING_CHANGE = "BREAKING CHANGE"

ParseResult = Union[ParsedCommit, Skip]

HEADER_PATTERN = re.compile(
    r"^(?P<type>[A-Za-z0-9][A-Za-z0-9_-]*)"
    r"(?:\((?P<scope>[^)\r\n]*)\))?"
    r"(?P<breaking>!)?"
    r":[ \t]+(?P<subject>.*)$"
)
FOOTER_PATTERN = re.compile(
    r"^(?P<key>BREAKING[ -]CHANGE|[A-Za-z][A-Za-z0-9-]*)(?P<sep>: | #)(?P<value>.*)$"
)
PARAGRAPH_BREAK = re.compile(r"\n[ \t]*\n")
SHORTCODE_PATTERN = re.compile(r"^:[a-z0-9_+-]+:\s*")

# Non-ASCII symbol categories plus the combining marks and format
# characters (variation selectors, zero-width joiners) that glue emoji
# sequences together.
_SYMBOL_CATEGORIES = {"So", "Sk", "Sm", "Sc"}
_JOINER_CATEGORIES = {"Mn", "Me", "Cf"}


def _is_decoration(char: str) -> bool:
    category = unicodedata.category(char)
    if category in _JOINER_CATEGORIES:
        return True
    return category in _SYMBOL_CATEGORIES and ord(char) > 0x7F


def strip_leading_symbols(subject: str) -> str:
    """Remove leading emoji, symbols and gitmoji shortcodes from ``subject``.

    When nothing but decoration is present the original text is returned,
    so a subject never becomes empty.
    """
    text = subject.strip()
    while text:
        match = SHORTCODE_PATTERN.match(text)
        if match:
            text = text[match.end():]
            continue
        if _is_decoration(text[0]):
            text = text[1:].lstrip()
            continue
        break
    return text or subject.strip()


class CommitParser:
    """Parse raw commits into :class:`ParsedCommit` or :class:`Skip` results."""

    def parse(self, raw: RawCommit) -> ParseResult:
        """Parse a single raw commit.

        Parameters
        ----------
        raw : RawCommit
            The commit to parse.

        Returns
        -------
        ParsedCommit or Skip
            ``Skip`` when the header does not follow the grammar.
        """
        message = (raw.message or "").replace("\r\n", "\n").strip()
        if not message:
            return self._skip(raw, "empty message")

        header, _, rest = message.partition("\n")
        match = HEADER_PATTERN.match(header.rstrip())
        if not match:
            return self._skip(raw, "header does not match 'type(scope): subject'")

        raw_subject = match.group("subject").strip()
        if not raw_subject:
            return self._skip(raw, "empty subject")

        scope = match.group("scope")
        scope = scope.strip() if scope is not None else None
        body, footers = self._split_body(rest)

        breaking_notes = [value for key, value in footers if key == BREAKING_CHANGE]
        bang = match.group("breaking") is not None
        breaking = bang or bool(breaking_notes)
        breaking_description: Optional[str] = None
        if breaking_notes:
            breaking_description = breaking_notes[0]
        elif bang:
            breaking_description = strip_leading_symbols(raw_subject)

        return ParsedCommit(
            hash=raw.hash,
            type=match.group("type"),
            subject=strip_leading_symbols(raw_subject),
            scope=scope or None,
            breaking=breaking,
            body=body,
            footers=footers,
            raw_subject=raw_subject,
            breaking_description=breaking_description,
            author=raw.author,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    @staticmethod
    def _skip(raw: RawCommit, reason: str) -> Skip:
        logger.debug("Skipping commit %s: %s", raw.short_hash, reason)
        return Skip(hash=raw.hash, reason=reason)

    def _split_body(self, rest: str) -> Tuple[Optional[str], Tuple[Tuple[str, str], ...]]:
        """Split the text after the header into body and footers."""
        text = rest.strip("\n").strip()
        if not text:
            return None, ()

        breaks = list(PARAGRAPH_BREAK.finditer(text))
        if breaks:
            body_text = text[: breaks[-1].start()]
            trailing = text[breaks[-1].end():]
        else:
            body_text = ""
            trailing = text

        footers = self._parse_footers(trailing)
        if not footers:
            body_text = text
        body_text = body_text.strip()
        return (body_text or None), footers

    @staticmethod
    def _parse_footers(block: str) -> Tuple[Tuple[str, str], ...]:
        lines = block.split("\n")
        if not FOOTER_PATTERN.match(lines[0]):
            return ()

        entries: List[List[str]] = []
        for line in lines:
            match = FOOTER_PATTERN.match(line)
            if match:
                key = match.group("key")
                if key.upper().replace("-", " ") == BREAKING_CHANGE:
                    key = BREAKING_CHANGE
                value = match.group("value")
                if match.group("sep") == " #":
                    value = "#" + value
                entries.append([key, value])
            else:
                entries[-1][1] += "\n" + line
        return tuple((key, value.strip()) for key, value in entries)


_DEFAULT_PARSER = CommitParser()


def parse(raw: RawCommit) -> ParseResult:
    """Parse ``raw`` with the default :class:`CommitParser`."""
    return _DEFAULT_PARSER.parse(raw)


def parse_commits(
    raws: Sequence[RawCommit],
    parser: Optional[CommitParser] = None,
    workers: int = 1,
) -> List[ParseResult]:
    """Parse a sequence of commits, preserving input order.

    With ``workers > 1`` parsing is spread over a thread pool.
    ``Executor.map`` yields results in submission order, so the output is
    always index-aligned with ``raws``.
    """
    parser = parser or _DEFAULT_PARSER
    if workers <= 1 or len(raws) < 2:
        return [parser.parse(raw) for raw in raws]
    with ThreadPoolExecutor(max_workers=workers) as executor:
        return list(executor.map(parser.parse, raws))
