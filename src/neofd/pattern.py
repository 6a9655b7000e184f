"""Search pattern matching: glob, fixed-string and regex (glob semantics)."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from neofd.glob import glob_match


class PatternKind(enum.Enum):
    """How a search pattern is interpreted.

    ``REGEX`` is accepted for fd compatibility but matched with glob
    semantics; there is no regular-expression engine.
    """

    GLOB = "glob"
    FIXED = "fixed"
    REGEX = "regex"


def has_uppercase(text: str) -> bool:
    """Return whether *text* contains an uppercase ASCII letter (smart case)."""
    return any("A" <= c <= "Z" for c in text)


@dataclass(frozen=True, slots=True)
class Pattern:
    """A compiled search pattern.

    Attributes:
        text: Pattern as given by the user.
        kind: Matching strategy.
        case_sensitive: Whether matching is case-sensitive.
        full_path: Whether callers should match against the relative path
            instead of the basename.
    """

    text: str
    kind: PatternKind = PatternKind.GLOB
    case_sensitive: bool = True
    full_path: bool = False

    @classmethod
    def compile(
        cls,
        text: str,
        kind: PatternKind = PatternKind.GLOB,
        case_sensitive: bool | None = None,
        full_path: bool = False,
    ) -> Pattern:
        """Build a pattern, resolving ``case_sensitive=None`` with smart case."""
        if case_sensitive is None:
            case_sensitive = has_uppercase(text)
        return cls(text=text, kind=kind, case_sensitive=case_sensitive, full_path=full_path)

    def matches(self, text: str) -> bool:
        """Return whether *text* satisfies the pattern."""
        pattern = self.text
        if not self.case_sensitive:
            pattern = pattern.lower()
            text = text.lower()

        if self.kind is PatternKind.FIXED:
            return pattern in text
        return glob_match(pattern, text)

    def matches_entry(self, path: str, name: str) -> bool:
        """Match the relative path or the basename, depending on ``full_path``."""
        return self.matches(path if self.full_path else name)
