"""Directory walker using os.scandir with an explicit stack (pull-based DFS)."""

from __future__ import annotations

import enum
import logging
import os
import stat
from dataclasses import dataclass, field
from typing import Any, Iterator

from neofd.glob import glob_match
from neofd.ignore import IgnoreOptions, IgnoreStack

logger = logging.getLogger(__name__)


class AlreadyStartedError(RuntimeError):
    """Raised when a walker or finder is started a second time."""


class MetadataUnavailableError(OSError):
    """Raised when an entry's metadata cannot be read."""


class FileKind(enum.Enum):
    """Type of a filesystem entry."""

    FILE = "file"
    DIRECTORY = "directory"
    SYMLINK = "symlink"
    SOCKET = "socket"
    PIPE = "pipe"
    BLOCK_DEVICE = "block_device"
    CHAR_DEVICE = "char_device"
    OTHER = "other"

    @classmethod
    def from_mode(cls, mode: int) -> FileKind:
        """Classify an ``st_mode`` value."""
        if stat.S_ISREG(mode):
            return cls.FILE
        if stat.S_ISDIR(mode):
            return cls.DIRECTORY
        if stat.S_ISLNK(mode):
            return cls.SYMLINK
        if stat.S_ISSOCK(mode):
            return cls.SOCKET
        if stat.S_ISFIFO(mode):
            return cls.PIPE
        if stat.S_ISBLK(mode):
            return cls.BLOCK_DEVICE
        if stat.S_ISCHR(mode):
            return cls.CHAR_DEVICE
        return cls.OTHER


@dataclass(slots=True)
class Entry:
    """A single filesystem entry produced by the walker.

    Attributes:
        path: ``/``-separated path relative to the search root.
        name: Basename of the entry.
        depth: Depth below the search root (root children are 0).
        kind: Entry type. With symlink following enabled, links are
            classified by their target.
        dir_path: Filesystem path of the directory holding the entry.
    """

    path: str
    name: str
    depth: int
    kind: FileKind
    dir_path: str
    follow_symlinks: bool = False
    _stat: os.stat_result | None = field(default=None, repr=False, compare=False)

    @property
    def full_path(self) -> str:
        """Filesystem path of the entry (joined onto the search root as given)."""
        return os.path.join(self.dir_path, self.name)

    @property
    def is_dir(self) -> bool:
        return self.kind is FileKind.DIRECTORY

    def stat(self) -> os.stat_result:
        """Return the entry's metadata, fetched on first call and cached.

        Raises:
            MetadataUnavailableError: If the entry vanished or cannot be read.
        """
        if self._stat is None:
            try:
                self._stat = os.stat(self.full_path, follow_symlinks=self.follow_symlinks)
            except OSError as exc:
                raise MetadataUnavailableError(
                    exc.errno, f"cannot stat {self.path}: {exc.strerror}"
                ) from exc
        return self._stat

    def is_empty(self) -> bool:
        """Return whether a directory entry has no children.

        Non-directories are never empty in this sense.

        Raises:
            MetadataUnavailableError: If the directory cannot be opened.
        """
        if self.kind is not FileKind.DIRECTORY:
            return False
        try:
            with os.scandir(self.full_path) as it:
                return next(it, None) is None
        except OSError as exc:
            raise MetadataUnavailableError(
                exc.errno, f"cannot read {self.path}: {exc.strerror}"
            ) from exc


@dataclass(frozen=True, slots=True)
class WalkOptions:
    """Options controlling walker behavior.

    Attributes:
        ignore_hidden: Skip entries whose name starts with ``.`` unless a
            negation rule re-includes them.
        ignore: Ignore sources to honor.
        follow_symlinks: Classify symlinks by their target and descend into
            linked directories (cycles are not descended).
        one_file_system: Do not descend into directories on another device.
        max_depth: Deepest level whose directories are opened. A directory
            at depth ``d`` is descended into only if ``d < max_depth``.
            ``None`` means unlimited.
        min_depth: Entries shallower than this are not returned (they are
            still descended into).
        exclude_patterns: Globs matched against the basename and the
            relative path; matching entries are skipped entirely.
    """

    ignore_hidden: bool = True
    ignore: IgnoreOptions = field(default_factory=IgnoreOptions)
    follow_symlinks: bool = False
    one_file_system: bool = False
    max_depth: int | None = None
    min_depth: int | None = None
    exclude_patterns: tuple[str, ...] = ()


@dataclass(slots=True)
class _WalkFrame:
    """One open directory on the walk stack. Owns ``iterator``."""

    iterator: Any
    dir_path: str
    rel_dir: str
    depth: int
    has_git: bool
    key: tuple[int, int] | None = None

    @property
    def path_len(self) -> int:
        return len(self.rel_dir)


_NOT_DESCENDABLE = (PermissionError, FileNotFoundError, NotADirectoryError)


class Walker:
    """Pull-based depth-first walker.

    Each call to ``next_entry()`` reads directory entries until one survives
    hidden-file, exclude and ignore filtering. Directories are kept open on
    an explicit stack in lock-step with an ``IgnoreStack``; ``close()``
    releases whatever is still open, so iteration may be abandoned at any
    point.

    Example::

        with Walker(WalkOptions(max_depth=2)) as walker:
            walker.start_at("src")
            for entry in walker:
                print(entry.path)
    """

    def __init__(self, options: WalkOptions | None = None) -> None:
        self.options = options or WalkOptions()
        self.ignore_stack = IgnoreStack(self.options.ignore)
        self._stack: list[_WalkFrame] = []
        self._started = False
        self._root_dev: int | None = None

    def __enter__(self) -> Walker:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def __iter__(self) -> Walker:
        return self

    def __next__(self) -> Entry:
        entry = self.next_entry()
        if entry is None:
            raise StopIteration
        return entry

    @property
    def open_directories(self) -> int:
        """Number of directory handles currently held."""
        return len(self._stack)

    def start_at(self, root: str | os.PathLike[str]) -> None:
        """Open *root* and prepare to walk it.

        Raises:
            AlreadyStartedError: If this walker was already started.
            OSError: If *root* cannot be opened as a directory.
        """
        if self._started:
            raise AlreadyStartedError("walker already started; use a new Walker per root")
        self._started = True

        root_path = os.fspath(root)
        key = None
        if self.options.one_file_system or self.options.follow_symlinks:
            root_stat = os.stat(root_path)
            self._root_dev = root_stat.st_dev
            key = (root_stat.st_dev, root_stat.st_ino)

        self._push_frame(root_path, "", 0, key)

    def next_entry(self) -> Entry | None:
        """Return the next surviving entry, or ``None`` once the walk is exhausted."""
        opts = self.options
        while self._stack:
            frame = self._stack[-1]
            try:
                dir_entry = next(frame.iterator)
            except StopIteration:
                self._pop_frame()
                continue
            except PermissionError:
                logger.debug("Permission denied reading: %s", frame.dir_path)
                continue

            name = dir_entry.name
            rel_path = f"{frame.rel_dir}/{name}" if frame.rel_dir else name

            try:
                kind = self._classify(dir_entry)
            except (FileNotFoundError, PermissionError):
                logger.debug("Cannot stat: %s", dir_entry.path)
                continue
            is_dir = kind is FileKind.DIRECTORY

            if (
                opts.ignore_hidden
                and name.startswith(".")
                and not self.ignore_stack.is_explicitly_included(name, rel_path, is_dir)
            ):
                continue

            if self._is_excluded(name, rel_path):
                continue

            if self.ignore_stack.is_ignored(name, rel_path, is_dir):
                continue

            depth = frame.depth
            if is_dir and (opts.max_depth is None or depth < opts.max_depth):
                self._descend(dir_entry, rel_path, depth)

            if opts.min_depth is not None and depth < opts.min_depth:
                continue

            return Entry(
                path=rel_path,
                name=name,
                depth=depth,
                kind=kind,
                dir_path=frame.dir_path,
                follow_symlinks=opts.follow_symlinks,
            )

        return None

    def close(self) -> None:
        """Close every directory still open. Safe to call more than once."""
        while self._stack:
            self._pop_frame()

    def _push_frame(
        self, dir_path: str, rel_dir: str, depth: int, key: tuple[int, int] | None
    ) -> None:
        iterator = os.scandir(dir_path)
        try:
            level = self.ignore_stack.push_level(dir_path, len(rel_dir))
        except Exception:
            iterator.close()
            raise
        self._stack.append(
            _WalkFrame(
                iterator=iterator,
                dir_path=dir_path,
                rel_dir=rel_dir,
                depth=depth,
                has_git=level.has_git,
                key=key,
            )
        )

    def _pop_frame(self) -> None:
        frame = self._stack.pop()
        frame.iterator.close()
        self.ignore_stack.pop_level()

    def _classify(self, dir_entry: os.DirEntry[str]) -> FileKind:
        if dir_entry.is_symlink():
            if not self.options.follow_symlinks:
                return FileKind.SYMLINK
            try:
                return FileKind.from_mode(dir_entry.stat().st_mode)
            except OSError:
                logger.debug("Broken symlink: %s", dir_entry.path)
                return FileKind.SYMLINK
        if dir_entry.is_dir(follow_symlinks=False):
            return FileKind.DIRECTORY
        if dir_entry.is_file(follow_symlinks=False):
            return FileKind.FILE
        return FileKind.from_mode(dir_entry.stat(follow_symlinks=False).st_mode)

    def _descend(self, dir_entry: os.DirEntry[str], rel_path: str, depth: int) -> None:
        """Open a subdirectory and push it; failures leave the entry unexpanded."""
        opts = self.options
        key = None
        if opts.one_file_system or opts.follow_symlinks:
            try:
                st = dir_entry.stat(follow_symlinks=opts.follow_symlinks)
            except OSError:
                logger.debug("Cannot stat: %s", dir_entry.path)
                return
            if opts.one_file_system and st.st_dev != self._root_dev:
                logger.debug("Not crossing filesystem boundary: %s", dir_entry.path)
                return
            key = (st.st_dev, st.st_ino)
            if opts.follow_symlinks and any(frame.key == key for frame in self._stack):
                logger.debug("Symlink cycle, not descending: %s", dir_entry.path)
                return

        try:
            self._push_frame(dir_entry.path, rel_path, depth + 1, key)
        except _NOT_DESCENDABLE:
            logger.debug("Cannot open directory: %s", dir_entry.path)

    def _is_excluded(self, name: str, rel_path: str) -> bool:
        return any(
            glob_match(pattern, name) or glob_match(pattern, rel_path)
            for pattern in self.options.exclude_patterns
        )


def walk(
    root: str | os.PathLike[str], options: WalkOptions | None = None
) -> Iterator[Entry]:
    """Yield entries under *root*, closing every directory when the generator ends.

    Args:
        root: Directory to walk.
        options: Walker options. Defaults to ``WalkOptions()``.

    Yields:
        Entry: Surviving entries in depth-first directory order.
    """
    with Walker(options) as walker:
        walker.start_at(root)
        yield from walker
