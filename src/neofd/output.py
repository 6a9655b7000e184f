"""Result rendering: plain, NUL-separated, absolute and ``{}`` templates."""

from __future__ import annotations

import os
import posixpath
from dataclasses import dataclass

from neofd.walker import Entry

_PLACEHOLDERS: dict[str, str] = {
    "": "path",
    "/": "basename",
    "//": "parent",
    ".": "no_extension",
    "/.": "basename_no_extension",
}


def _strip_extension(path: str) -> str:
    root, ext = posixpath.splitext(path)
    return root if ext else path


@dataclass(frozen=True, slots=True)
class FormatTemplate:
    """Parsed output template.

    Placeholders: ``{}`` path, ``{/}`` basename, ``{//}`` parent directory,
    ``{.}`` path without extension, ``{/.}`` basename without extension.
    ``{{`` and ``}}`` produce literal braces.

    Attributes:
        tokens: ``("literal", text)`` or ``("placeholder", kind)`` pairs.
    """

    tokens: tuple[tuple[str, str], ...]

    @classmethod
    def parse(cls, template: str) -> FormatTemplate:
        """Parse *template*.

        Raises:
            ValueError: On an unmatched brace or an unknown placeholder.
        """
        tokens: list[tuple[str, str]] = []
        literal: list[str] = []
        i = 0
        while i < len(template):
            char = template[i]
            if char == "{" and template.startswith("{{", i):
                literal.append("{")
                i += 2
            elif char == "{":
                close = template.find("}", i + 1)
                if close == -1:
                    raise ValueError(f"unmatched '{{' in template '{template}'")
                kind = _PLACEHOLDERS.get(template[i + 1 : close])
                if kind is None:
                    raise ValueError(f"unknown placeholder '{template[i : close + 1]}'")
                if literal:
                    tokens.append(("literal", "".join(literal)))
                    literal = []
                tokens.append(("placeholder", kind))
                i = close + 1
            elif char == "}":
                if not template.startswith("}}", i):
                    raise ValueError(f"unmatched '}}' in template '{template}'")
                literal.append("}")
                i += 2
            else:
                literal.append(char)
                i += 1
        if literal:
            tokens.append(("literal", "".join(literal)))
        return cls(tokens=tuple(tokens))

    def apply(self, path: str) -> str:
        """Render the template for *path*."""
        parts: list[str] = []
        for token, value in self.tokens:
            if token == "literal":
                parts.append(value)
            elif value == "path":
                parts.append(path)
            elif value == "basename":
                parts.append(posixpath.basename(path))
            elif value == "parent":
                parts.append(posixpath.dirname(path))
            elif value == "no_extension":
                parts.append(_strip_extension(path))
            else:
                parts.append(_strip_extension(posixpath.basename(path)))
        return "".join(parts)


@dataclass(frozen=True, slots=True)
class OutputFormat:
    """How each result is printed.

    Attributes:
        null_separator: Terminate records with ``\\0`` instead of ``\\n``.
        absolute_path: Print absolute paths.
        template: Optional template applied to the printed path.
    """

    null_separator: bool = False
    absolute_path: bool = False
    template: FormatTemplate | None = None

    def display_path(self, entry: Entry, prefix: str | None = None) -> str:
        """Return the path to print for *entry*.

        Args:
            entry: Result entry.
            prefix: Search root to prepend to relative paths, or ``None``.
        """
        if self.absolute_path:
            return os.path.abspath(entry.full_path)
        if prefix:
            return posixpath.join(prefix, entry.path)
        return entry.path

    def format(self, entry: Entry, prefix: str | None = None) -> str:
        """Render one terminated output record."""
        path = self.display_path(entry, prefix)
        text = self.template.apply(path) if self.template else path
        return text + ("\0" if self.null_separator else "\n")
