"""Ignore-file handling: ``.gitignore``, ``.ignore``, ``.fdignore`` and a global file.

Implements the gitignore syntax subset used by fd:

- ``#`` comments and blank lines are skipped
- ``!`` negates a pattern (re-includes a path)
- a trailing ``/`` restricts a pattern to directories
- a leading ``/`` or an embedded ``/`` anchors a pattern to the directory
  holding the ignore file
- within one file the last matching pattern wins

``IgnoreStack`` keeps one ``IgnoreLevel`` per directory from the search root
down to the directory being read, plus one global ignore file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from neofd.glob import glob_match

logger = logging.getLogger(__name__)

GITIGNORE = ".gitignore"
DOT_IGNORE = ".ignore"
FD_IGNORE = ".fdignore"


@dataclass(frozen=True, slots=True)
class IgnorePattern:
    """One parsed ignore rule.

    Attributes:
        text: Glob text with the ``!`` prefix and the anchoring and
            trailing slashes removed.
        is_negation: Whether the rule re-includes matching paths.
        is_dir_only: Whether the rule only applies to directories.
        anchored: Whether the rule matches the path relative to the
            ignore file's directory instead of the basename.
    """

    text: str
    is_negation: bool = False
    is_dir_only: bool = False
    anchored: bool = False

    @classmethod
    def parse(cls, line: str) -> IgnorePattern | None:
        """Parse one ignore-file line.

        Returns:
            The pattern, or ``None`` for blank lines, comments and lines that
            are empty once the markers are removed.
        """
        pat = line.strip()
        if not pat or pat.startswith("#"):
            return None

        is_negation = pat.startswith("!")
        if is_negation:
            pat = pat[1:]
            if not pat:
                return None

        is_dir_only = pat.endswith("/")
        if is_dir_only:
            pat = pat[:-1]
            if not pat:
                return None

        anchored = "/" in pat
        if pat.startswith("/"):
            pat = pat[1:]
            if not pat:
                return None

        return cls(
            text=pat,
            is_negation=is_negation,
            is_dir_only=is_dir_only,
            anchored=anchored,
        )

    def matches(self, name: str, rel_path: str, is_dir: bool) -> bool:
        """Return whether this rule applies to an entry.

        Args:
            name: Basename of the entry.
            rel_path: Path relative to the directory owning this rule.
            is_dir: Whether the entry is a directory.
        """
        if self.is_dir_only and not is_dir:
            return False
        return glob_match(self.text, rel_path if self.anchored else name)


@dataclass(frozen=True, slots=True)
class IgnoreFile:
    """Ordered rules loaded from one ignore file.

    Attributes:
        patterns: Rules in file order.
        content: Raw file text the rules were parsed from.
    """

    patterns: tuple[IgnorePattern, ...]
    content: str

    @classmethod
    def parse(cls, content: str) -> IgnoreFile | None:
        """Parse ignore-file text.

        Returns:
            The parsed file, or ``None`` when no line yields a usable rule.
        """
        patterns = tuple(
            pattern
            for pattern in map(IgnorePattern.parse, content.splitlines())
            if pattern is not None
        )
        if not patterns:
            return None
        return cls(patterns=patterns, content=content)

    @classmethod
    def load(cls, path: Path) -> IgnoreFile | None:
        """Load and parse the ignore file at *path*.

        A missing or unreadable file is not an error.

        Returns:
            The parsed file, or ``None`` when the file is absent, unreadable
            or contains no rules.
        """
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return None
        except OSError:
            logger.debug("Cannot read ignore file: %s", path)
            return None
        return cls.parse(content)

    def check(self, name: str, rel_path: str, is_dir: bool) -> bool | None:
        """Return this file's verdict for an entry.

        Returns:
            ``True`` if ignored, ``False`` if re-included by a negation, or
            ``None`` when no rule matches. The last matching rule wins.
        """
        verdict: bool | None = None
        for pattern in self.patterns:
            if pattern.matches(name, rel_path, is_dir):
                verdict = not pattern.is_negation
        return verdict

    def has_matching_negation(self, name: str, rel_path: str, is_dir: bool) -> bool:
        """Return whether any negation rule in this file matches an entry."""
        return any(
            pattern.is_negation and pattern.matches(name, rel_path, is_dir)
            for pattern in self.patterns
        )


@dataclass(frozen=True, slots=True)
class IgnoreOptions:
    """Which ignore sources are honored.

    Attributes:
        read_vcs_ignore: Read ``.gitignore`` files.
        require_git: Only read ``.gitignore`` inside a git working tree.
        read_dot_ignore: Read ``.ignore`` files.
        read_fd_ignore: Read ``.fdignore`` files.
        read_global_ignore: Read the global ignore file.
        global_ignore_file: Global ignore file location. ``None`` selects
            ``default_global_ignore_path()``.
    """

    read_vcs_ignore: bool = True
    require_git: bool = True
    read_dot_ignore: bool = True
    read_fd_ignore: bool = True
    read_global_ignore: bool = True
    global_ignore_file: Path | None = None


def default_global_ignore_path() -> Path:
    """Return ``$XDG_CONFIG_HOME/fd/ignore``, defaulting to ``~/.config/fd/ignore``."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    return base / "fd" / "ignore"


@dataclass(slots=True)
class IgnoreLevel:
    """Ignore state of one directory on the walk stack.

    Attributes:
        gitignore: Parsed ``.gitignore``, if read.
        ignore: Parsed ``.ignore``, if read.
        fdignore: Parsed ``.fdignore``, if read.
        path_len: Length of the directory's path relative to the search
            root (0 for the root itself).
        has_git: Whether the directory directly contains a ``.git`` entry.
    """

    gitignore: IgnoreFile | None
    ignore: IgnoreFile | None
    fdignore: IgnoreFile | None
    path_len: int
    has_git: bool

    def sources(self) -> Iterator[IgnoreFile]:
        """Yield the loaded files in override order: gitignore, ignore, fdignore."""
        for source in (self.gitignore, self.ignore, self.fdignore):
            if source is not None:
                yield source

    def relative(self, name: str, rel_path: str) -> str:
        """Return *rel_path* relative to this level's directory."""
        if self.path_len == 0:
            return rel_path
        if self.path_len < len(rel_path):
            return rel_path[self.path_len + 1 :]
        return name


class IgnoreStack:
    """Stack of per-directory ignore levels plus the global ignore file.

    Levels are pushed when the walker enters a directory and popped when it
    leaves, so the stack always runs from the search root to the directory
    currently being read.
    """

    def __init__(self, options: IgnoreOptions | None = None) -> None:
        """Initialize the stack and load the global ignore file.

        Args:
            options: Ignore sources to honor. Defaults to ``IgnoreOptions()``.
        """
        self.options = options or IgnoreOptions()
        self._levels: list[IgnoreLevel] = []
        self._root_in_git = False
        self.global_ignore: IgnoreFile | None = None
        if self.options.read_global_ignore:
            path = self.options.global_ignore_file or default_global_ignore_path()
            self.global_ignore = IgnoreFile.load(path)
            if self.global_ignore is not None:
                logger.debug("Loaded global ignore file: %s", path)

    def __len__(self) -> int:
        return len(self._levels)

    @property
    def levels(self) -> tuple[IgnoreLevel, ...]:
        return tuple(self._levels)

    @property
    def in_git_repo(self) -> bool:
        """Whether the current directory lies inside a git working tree."""
        return self._root_in_git or any(level.has_git for level in self._levels)

    def push_level(self, directory: str | os.PathLike[str], path_len: int) -> IgnoreLevel:
        """Enter *directory* and load its ignore files.

        Args:
            directory: Filesystem path of the directory being entered.
            path_len: Length of its path relative to the search root.

        Returns:
            IgnoreLevel: The pushed level.
        """
        directory = Path(directory)
        has_git = os.path.lexists(directory / ".git")
        if not self._levels:
            self._root_in_git = _inside_git_worktree(directory)

        opts = self.options
        gitignore = None
        if opts.read_vcs_ignore and (not opts.require_git or has_git or self.in_git_repo):
            gitignore = IgnoreFile.load(directory / GITIGNORE)

        level = IgnoreLevel(
            gitignore=gitignore,
            ignore=IgnoreFile.load(directory / DOT_IGNORE) if opts.read_dot_ignore else None,
            fdignore=IgnoreFile.load(directory / FD_IGNORE) if opts.read_fd_ignore else None,
            path_len=path_len,
            has_git=has_git,
        )
        self._levels.append(level)
        return level

    def pop_level(self) -> None:
        """Leave the innermost directory, releasing its ignore files."""
        if self._levels:
            self._levels.pop()

    def is_ignored(self, name: str, rel_path: str, is_dir: bool) -> bool:
        """Resolve the final ignore verdict for an entry.

        Levels are checked from root to leaf and, within a level, gitignore
        then ``.ignore`` then ``.fdignore``; every opinion overrides the
        previous one. The global ignore file is checked last against the
        root-relative path and its opinion, if any, is final.

        Args:
            name: Basename of the entry.
            rel_path: Path relative to the search root.
            is_dir: Whether the entry is a directory.

        Returns:
            bool: ``True`` if the entry should be skipped.
        """
        verdict: bool | None = None
        for level in self._levels:
            level_rel = level.relative(name, rel_path)
            for source in level.sources():
                opinion = source.check(name, level_rel, is_dir)
                if opinion is not None:
                    verdict = opinion

        if self.global_ignore is not None:
            opinion = self.global_ignore.check(name, rel_path, is_dir)
            if opinion is not None:
                verdict = opinion

        return bool(verdict)

    def is_explicitly_included(self, name: str, rel_path: str, is_dir: bool) -> bool:
        """Return whether any negation rule on the stack matches an entry.

        Used to let ``!`` rules re-include hidden entries, independent of the
        precedence applied by ``is_ignored``.
        """
        for level in self._levels:
            level_rel = level.relative(name, rel_path)
            for source in level.sources():
                if source.has_matching_negation(name, level_rel, is_dir):
                    return True
        return False


def _inside_git_worktree(directory: Path) -> bool:
    """Return whether any parent of *directory* contains a ``.git`` entry."""
    try:
        resolved = directory.resolve()
    except OSError:
        return False
    return any(os.path.lexists(parent / ".git") for parent in resolved.parents)
