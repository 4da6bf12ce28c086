"""Pattern matching for policy subjects, resources and actions.

A pattern is either a literal string, compared byte-for-byte, or a string
with one or more ``<...>`` segments. Text inside the delimiters is a regular
expression fragment; text outside is matched literally. The pattern always
has to match the whole candidate::

    >>> m = Matcher()
    >>> m.matches(["myrn:something:foo:<.+>"], "myrn:something:foo:bar")
    True
    >>> m.matches(["myrn:something:foo:<.+>"], "myrn:something:foo:")
    False
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Iterable

from .errors import PatternSyntaxError

logger = logging.getLogger(__name__)

DELIMITER_START = "<"
DELIMITER_END = ">"

_INVALID = object()


def is_literal(pattern: str) -> bool:
    """Return ``True`` if ``pattern`` has no embedded expression."""
    return DELIMITER_START not in pattern


def _delimiter_spans(pattern: str) -> list[tuple[int, int]]:
    level = 0
    start = 0
    spans: list[tuple[int, int]] = []
    for i, ch in enumerate(pattern):
        if ch == DELIMITER_START:
            level += 1
            if level == 1:
                start = i
        elif ch == DELIMITER_END:
            level -= 1
            if level == 0:
                spans.append((start, i + 1))
            elif level < 0:
                raise PatternSyntaxError(f"unbalanced delimiters in pattern {pattern!r}")
    if level != 0:
        raise PatternSyntaxError(f"unbalanced delimiters in pattern {pattern!r}")
    return spans


def compile_pattern(pattern: str) -> re.Pattern[str] | None:
    """Compile a pattern into an expression for ``fullmatch``.

    Args:
        pattern: The raw pattern text.

    Returns:
        The compiled expression, or ``None`` if the pattern is a literal
        and needs no compilation.

    Raises:
        PatternSyntaxError: If the delimiters are unbalanced or an embedded
            fragment is not a valid regular expression.
    """
    if is_literal(pattern):
        return None

    parts: list[str] = []
    end = 0
    for start, stop in _delimiter_spans(pattern):
        parts.append(re.escape(pattern[end:start]))
        parts.append("(?:" + pattern[start + 1 : stop - 1] + ")")
        end = stop
    parts.append(re.escape(pattern[end:]))

    try:
        return re.compile("".join(parts))
    except re.error as exc:
        raise PatternSyntaxError(f"invalid expression in pattern {pattern!r}: {exc}") from exc


def validate_pattern(pattern: str) -> None:
    """Raise ``PatternSyntaxError`` if ``pattern`` cannot be compiled."""
    compile_pattern(pattern)


class PatternCache:
    """Maps raw pattern text to its compiled expression.

    Entries are added lazily and never evicted. Lookups do not take the
    lock; only inserts do. Two threads missing on the same pattern both
    compile it and the last insert wins, since both results behave the
    same.

    Patterns that fail to compile are remembered as failures so they are
    only reported once.
    """

    def __init__(self) -> None:
        self._entries: dict[str, object] = {}
        self._lock = threading.Lock()

    def get(self, pattern: str) -> re.Pattern[str] | None:
        """Return the compiled expression for ``pattern``.

        Returns ``None`` if the pattern does not compile. Literal patterns
        are compared directly by ``Matcher`` and are never cached.

        Raises:
            ValueError: If ``pattern`` is a literal.
        """
        if is_literal(pattern):
            raise ValueError(f"literal pattern {pattern!r} has nothing to compile")
        entry = self._entries.get(pattern)
        if entry is None:
            try:
                entry = compile_pattern(pattern)
            except PatternSyntaxError as exc:
                logger.warning("Pattern will never match: %s", exc)
                entry = _INVALID
            with self._lock:
                self._entries[pattern] = entry
        if entry is _INVALID:
            return None
        return entry  # type: ignore[return-value]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class Matcher:
    """Tests candidate strings against sequences of patterns.

    Attributes:
        cache: The ``PatternCache`` holding compiled expressions. Each
            matcher owns its cache unless one is passed in, so several
            engines may share compiled patterns.
    """

    def __init__(self, cache: PatternCache | None = None) -> None:
        self.cache = cache if cache is not None else PatternCache()

    def matches(self, patterns: Iterable[str], candidate: str) -> bool:
        """Return ``True`` if any pattern matches the whole ``candidate``.

        An empty sequence never matches. A pattern that does not compile
        counts as not matching; the remaining patterns are still tried.
        """
        for pattern in patterns:
            if is_literal(pattern):
                if pattern == candidate:
                    return True
                continue
            expr = self.cache.get(pattern)
            if expr is not None and expr.fullmatch(candidate):
                return True
        return False
