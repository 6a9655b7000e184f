"""Finder: wires the walker, the search pattern and the entry filter together."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Iterator

from neofd.filter import FileType, Filter, SizeFilter, TimeFilter
from neofd.ignore import IgnoreOptions
from neofd.pattern import Pattern, PatternKind
from neofd.walker import AlreadyStartedError, Entry, WalkOptions, Walker


@dataclass(frozen=True, slots=True)
class FinderOptions:
    """Everything a single search needs.

    Attributes:
        pattern: Search pattern, or ``None`` to accept every entry.
        pattern_kind: How the pattern is interpreted.
        case_sensitive: Case sensitivity; ``None`` means smart case.
        full_path: Match the pattern against the relative path.
        file_types: Accepted entry types.
        extensions: Accepted extensions.
        size_filters: Size constraints.
        time_filters: Modification-time constraints.
        min_depth: Minimum depth of returned entries.
        max_depth: Maximum depth of returned entries and of descent.
        ignore_hidden: Skip dotfiles.
        ignore: Ignore sources to honor.
        follow_symlinks: Follow symbolic links.
        one_file_system: Stay on the root's filesystem.
        exclude_patterns: Globs of entries to skip.
        max_results: Stop after this many results.
    """

    pattern: str | None = None
    pattern_kind: PatternKind = PatternKind.GLOB
    case_sensitive: bool | None = None
    full_path: bool = False
    file_types: FileType | None = None
    extensions: tuple[str, ...] = ()
    size_filters: tuple[SizeFilter, ...] = ()
    time_filters: tuple[TimeFilter, ...] = ()
    min_depth: int | None = None
    max_depth: int | None = None
    ignore_hidden: bool = True
    ignore: IgnoreOptions = field(default_factory=IgnoreOptions)
    follow_symlinks: bool = False
    one_file_system: bool = False
    exclude_patterns: tuple[str, ...] = ()
    max_results: int | None = None

    def walk_options(self) -> WalkOptions:
        return WalkOptions(
            ignore_hidden=self.ignore_hidden,
            ignore=self.ignore,
            follow_symlinks=self.follow_symlinks,
            one_file_system=self.one_file_system,
            max_depth=self.max_depth,
            min_depth=self.min_depth,
            exclude_patterns=self.exclude_patterns,
        )

    def entry_filter(self) -> Filter:
        return Filter(
            file_types=self.file_types,
            extensions=self.extensions,
            size_filters=self.size_filters,
            time_filters=self.time_filters,
            min_depth=self.min_depth,
            max_depth=self.max_depth,
        )


class Finder:
    """A one-shot search over one root directory.

    Create a new ``Finder`` for every root; ``start_at`` may only be called
    once.
    """

    def __init__(self, options: FinderOptions | None = None) -> None:
        self.options = options or FinderOptions()
        self.pattern: Pattern | None = None
        if self.options.pattern is not None:
            self.pattern = Pattern.compile(
                self.options.pattern,
                kind=self.options.pattern_kind,
                case_sensitive=self.options.case_sensitive,
                full_path=self.options.full_path,
            )
        self.entry_filter = self.options.entry_filter()
        self.walker = Walker(self.options.walk_options())
        self.result_count = 0
        self._started = False

    def __enter__(self) -> Finder:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Iterator[Entry]:
        while True:
            entry = self.next_entry()
            if entry is None:
                return
            yield entry

    def start_at(self, root: str | os.PathLike[str]) -> None:
        """Start searching *root*.

        Raises:
            AlreadyStartedError: If this finder was already started.
            OSError: If *root* cannot be opened.
        """
        if self._started:
            raise AlreadyStartedError("finder already started; use a new Finder per root")
        self._started = True
        self.walker.start_at(root)

    def next_entry(self) -> Entry | None:
        """Return the next matching entry, or ``None`` when done."""
        max_results = self.options.max_results
        if max_results is not None and self.result_count >= max_results:
            return None

        for entry in self.walker:
            if self.pattern is not None and not self.pattern.matches_entry(entry.path, entry.name):
                continue
            if not self.entry_filter.matches(entry):
                continue
            self.result_count += 1
            return entry
        return None

    def collect(self) -> list[Entry]:
        """Return every remaining matching entry."""
        return list(self)

    def close(self) -> None:
        self.walker.close()


def find(
    root: str | os.PathLike[str], options: FinderOptions | None = None
) -> Iterator[Entry]:
    """Yield matching entries under *root*, releasing directories when done.

    Args:
        root: Directory to search.
        options: Search options. Defaults to ``FinderOptions()``.

    Yields:
        Entry: Matching entries in walk order.
    """
    with Finder(options) as finder:
        finder.start_at(root)
        yield from finder
