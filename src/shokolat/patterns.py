"""Load the cache list: an ordered set of case-insensitive URL patterns.

The cache list is a line-oriented text file.  Surrounding whitespace is
trimmed from every line; blank lines and lines starting with ``#`` are
ignored; every other line is a regular expression that is searched
(unanchored) against the full request URL, ignoring case.

A pattern set with a bad line is never returned.  An unreadable file or a
line that fails to compile raises :class:`~shokolat.exceptions.PatternError`
so the caller can refuse to start: an empty or partial pattern set would
silently pass every request through to the origin.

Example::

    patterns = load_patterns("cachelist.txt")
    hit = patterns.first_match("http://example.com/img/a.png")
    if hit is not None:
        print(f"matched line {hit.line_number}: {hit.source}")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, Optional

from shokolat.exceptions import PatternError


@dataclass(frozen=True)
class CachePattern:
    """One compiled cache-list entry.

    Attributes:
        source: The trimmed line as written in the cache list.
        regex: *source* compiled with :data:`re.IGNORECASE`.
        line_number: 1-based line number in the originating file.
    """

    source: str
    regex: re.Pattern[str]
    line_number: int = 0

    def matches(self, url: str) -> bool:
        return self.regex.search(url) is not None


class PatternSet:
    """Immutable, ordered collection of :class:`CachePattern` objects.

    Lookups are first-match-wins: patterns are tried in file order and the
    first one that matches decides.  The set is never modified after
    construction, so it can be shared by concurrent requests without
    locking.
    """

    __slots__ = ("_patterns",)

    def __init__(self, patterns: Iterable[CachePattern] = ()) -> None:
        self._patterns: tuple[CachePattern, ...] = tuple(patterns)

    def first_match(self, url: str) -> Optional[CachePattern]:
        """Return the first pattern that matches *url*, or ``None``."""
        for pattern in self._patterns:
            if pattern.matches(url):
                return pattern
        return None

    def __iter__(self) -> Iterator[CachePattern]:
        return iter(self._patterns)

    def __len__(self) -> int:
        return len(self._patterns)

    def __repr__(self) -> str:
        return f"PatternSet({[p.source for p in self._patterns]!r})"


def parse_patterns(lines: Iterable[str], origin: str = "<cache list>") -> PatternSet:
    """Compile cache-list *lines* into a :class:`PatternSet`.

    Args:
        lines: Raw lines, with or without trailing newlines.
        origin: Name used in error messages (usually the file path).

    Returns:
        The compiled pattern set, in input order.

    Raises:
        PatternError: If any non-comment line is not a valid regular
            expression.  No partial set is returned.
    """
    compiled: list[CachePattern] = []
    for number, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        try:
            regex = re.compile(line, re.IGNORECASE)
        except re.error as exc:
            raise PatternError(
                f"Invalid pattern at {origin}:{number}: {line!r} ({exc})"
            ) from exc
        compiled.append(CachePattern(source=line, regex=regex, line_number=number))
    return PatternSet(compiled)


def load_patterns(path: str | Path) -> PatternSet:
    """Read and compile the cache list at *path*.

    Args:
        path: Location of the cache-list file.

    Returns:
        The compiled :class:`PatternSet`.

    Raises:
        PatternError: If the file cannot be read or decoded, or if any
            pattern fails to compile.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise PatternError(f"Cannot read cache list {path}: {exc}") from exc
    return parse_patterns(text.splitlines(), origin=str(path))
