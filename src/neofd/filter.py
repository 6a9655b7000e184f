"""Entry filtering: file type, extension, size, modification time and depth."""

from __future__ import annotations

import logging
import os
import re
import time
from dataclasses import dataclass, fields
from datetime import datetime
from typing import ClassVar, Literal

from neofd.walker import Entry, FileKind, MetadataUnavailableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class FileType:
    """Set of accepted entry types; an entry matches if any flag accepts it."""

    file: bool = False
    directory: bool = False
    symlink: bool = False
    executable: bool = False
    empty: bool = False
    socket: bool = False
    pipe: bool = False
    block_device: bool = False
    char_device: bool = False

    _NAMES: ClassVar[dict[str, str]] = {
        "f": "file",
        "file": "file",
        "d": "directory",
        "dir": "directory",
        "directory": "directory",
        "l": "symlink",
        "symlink": "symlink",
        "x": "executable",
        "executable": "executable",
        "e": "empty",
        "empty": "empty",
        "s": "socket",
        "socket": "socket",
        "p": "pipe",
        "pipe": "pipe",
        "b": "block_device",
        "block-device": "block_device",
        "c": "char_device",
        "char-device": "char_device",
    }

    @classmethod
    def parse(cls, value: str) -> FileType:
        """Parse an fd type name such as ``f``, ``d`` or ``symlink``.

        Raises:
            ValueError: If *value* names no known type.
        """
        flag = cls._NAMES.get(value.lower())
        if flag is None:
            raise ValueError(f"invalid file type '{value}'")
        return cls(**{flag: True})

    def merge(self, other: FileType) -> FileType:
        """Return the union of two type sets."""
        return FileType(
            **{f.name: getattr(self, f.name) or getattr(other, f.name) for f in fields(self)}
        )

    def any(self) -> bool:
        return any(getattr(self, f.name) for f in fields(self))


_SIZE_RE = re.compile(r"^([+-]?)(\d+)([a-z]*)$", re.IGNORECASE)

_SIZE_UNITS: dict[str, int] = {
    "": 1,
    "b": 1,
    "k": 1000,
    "kb": 1000,
    "ki": 1024,
    "kib": 1024,
    "m": 1000**2,
    "mb": 1000**2,
    "mi": 1024**2,
    "mib": 1024**2,
    "g": 1000**3,
    "gb": 1000**3,
    "gi": 1024**3,
    "gib": 1024**3,
    "t": 1000**4,
    "tb": 1000**4,
    "ti": 1024**4,
    "tib": 1024**4,
}


@dataclass(frozen=True, slots=True)
class SizeFilter:
    """Size constraint in bytes: at least, at most, or exactly."""

    bytes: int
    mode: Literal["min", "max", "exact"] = "exact"

    @classmethod
    def parse(cls, spec: str) -> SizeFilter:
        """Parse ``+1k``, ``-10mi`` or ``100b`` style specs.

        A ``+`` prefix means "at least", ``-`` means "at most" and no prefix
        means "exactly". Units are case-insensitive; ``k``/``m``/``g``/``t``
        are powers of 1000, ``ki``/``mi``/``gi``/``ti`` powers of 1024.

        Raises:
            ValueError: If the spec or its unit is invalid.
        """
        match = _SIZE_RE.match(spec.strip())
        if match is None:
            raise ValueError(f"invalid size '{spec}'")
        sign, number, unit = match.groups()
        multiplier = _SIZE_UNITS.get(unit.lower())
        if multiplier is None:
            raise ValueError(f"invalid size unit '{unit}' in '{spec}'")
        size = int(number) * multiplier
        if sign == "+":
            return cls(bytes=size, mode="min")
        if sign == "-":
            return cls(bytes=size, mode="max")
        return cls(bytes=size)

    def matches(self, size: int) -> bool:
        if self.mode == "min":
            return size >= self.bytes
        if self.mode == "max":
            return size <= self.bytes
        return size == self.bytes


_DURATION_RE = re.compile(r"^(\d+)\s*([a-zA-Z]*)$")

_MINUTE = 60
_HOUR = 60 * _MINUTE
_DAY = 24 * _HOUR

_DURATION_UNITS: dict[str, int] = {
    "": 1,
    "s": 1,
    "sec": 1,
    "second": 1,
    "seconds": 1,
    "m": _MINUTE,
    "min": _MINUTE,
    "minute": _MINUTE,
    "minutes": _MINUTE,
    "h": _HOUR,
    "hour": _HOUR,
    "hours": _HOUR,
    "d": _DAY,
    "day": _DAY,
    "days": _DAY,
    "w": 7 * _DAY,
    "week": 7 * _DAY,
    "weeks": 7 * _DAY,
    "month": 30 * _DAY,
    "months": 30 * _DAY,
    "y": 365 * _DAY,
    "year": 365 * _DAY,
    "years": 365 * _DAY,
}


def parse_duration(spec: str) -> int:
    """Parse ``30min``, ``2h``, ``1week`` style durations into seconds.

    ``M`` (uppercase) means months; ``m`` means minutes.

    Raises:
        ValueError: If the duration or its unit is invalid.
    """
    match = _DURATION_RE.match(spec.strip())
    if match is None:
        raise ValueError(f"invalid duration '{spec}'")
    number, unit = match.groups()
    if unit == "M":
        multiplier = 30 * _DAY
    else:
        multiplier = _DURATION_UNITS.get(unit.lower(), 0)
    if not multiplier:
        raise ValueError(f"invalid duration unit '{unit}' in '{spec}'")
    return int(number) * multiplier


@dataclass(frozen=True, slots=True)
class TimeFilter:
    """Modification-time constraint against a Unix timestamp.

    ``newer`` accepts ``mtime >= timestamp``; ``older`` accepts
    ``mtime < timestamp``.
    """

    timestamp: float
    mode: Literal["newer", "older"]

    @classmethod
    def from_duration(
        cls, spec: str, mode: Literal["newer", "older"], now: float | None = None
    ) -> TimeFilter:
        """Build a filter relative to *now* (default: current time)."""
        reference = time.time() if now is None else now
        return cls(timestamp=reference - parse_duration(spec), mode=mode)

    @classmethod
    def parse(
        cls, spec: str, mode: Literal["newer", "older"], now: float | None = None
    ) -> TimeFilter:
        """Parse a duration (``2d``) or an ISO date / date-time (``2024-01-31``).

        Raises:
            ValueError: If *spec* is neither.
        """
        try:
            return cls.from_duration(spec, mode, now)
        except ValueError:
            pass
        try:
            moment = datetime.fromisoformat(spec.strip())
        except ValueError:
            raise ValueError(f"invalid time '{spec}'") from None
        return cls(timestamp=moment.timestamp(), mode=mode)

    def matches(self, mtime: float) -> bool:
        if self.mode == "newer":
            return mtime >= self.timestamp
        return mtime < self.timestamp


@dataclass(frozen=True, slots=True)
class Filter:
    """All entry constraints; an entry must satisfy every configured one.

    Attributes:
        file_types: Accepted types, or ``None`` for any.
        extensions: Accepted extensions without the dot (case-insensitive).
        size_filters: Size constraints; only regular files can match them.
        time_filters: Modification-time constraints.
        min_depth: Minimum entry depth.
        max_depth: Maximum entry depth.
    """

    file_types: FileType | None = None
    extensions: tuple[str, ...] = ()
    size_filters: tuple[SizeFilter, ...] = ()
    time_filters: tuple[TimeFilter, ...] = ()
    min_depth: int | None = None
    max_depth: int | None = None

    def matches(self, entry: Entry) -> bool:
        """Return whether *entry* satisfies every constraint.

        Metadata that cannot be read makes the entry not match.
        """
        if self.min_depth is not None and entry.depth < self.min_depth:
            return False
        if self.max_depth is not None and entry.depth > self.max_depth:
            return False

        if self.file_types is not None and not _matches_file_type(self.file_types, entry):
            return False

        if self.extensions and not _matches_extension(self.extensions, entry.name):
            return False

        if not (self.size_filters or self.time_filters):
            return True

        if self.size_filters and entry.kind is not FileKind.FILE:
            return False

        try:
            st = entry.stat()
        except MetadataUnavailableError:
            logger.debug("Metadata unavailable: %s", entry.path)
            return False

        if not all(sf.matches(st.st_size) for sf in self.size_filters):
            return False
        return all(tf.matches(st.st_mtime) for tf in self.time_filters)


def _matches_file_type(file_types: FileType, entry: Entry) -> bool:
    kind = entry.kind
    if file_types.file and kind is FileKind.FILE:
        return True
    if file_types.directory and kind is FileKind.DIRECTORY:
        return True
    if file_types.symlink and kind is FileKind.SYMLINK:
        return True
    if file_types.socket and kind is FileKind.SOCKET:
        return True
    if file_types.pipe and kind is FileKind.PIPE:
        return True
    if file_types.block_device and kind is FileKind.BLOCK_DEVICE:
        return True
    if file_types.char_device and kind is FileKind.CHAR_DEVICE:
        return True

    try:
        if file_types.executable and kind is FileKind.FILE:
            if os.name == "nt":
                if os.path.splitext(entry.name)[1].lower() in (".exe", ".bat", ".cmd", ".com"):
                    return True
            elif entry.stat().st_mode & 0o111:
                return True

        if file_types.empty:
            if kind is FileKind.DIRECTORY:
                return entry.is_empty()
            if kind is FileKind.FILE:
                return entry.stat().st_size == 0
    except MetadataUnavailableError:
        logger.debug("Metadata unavailable: %s", entry.path)

    return False


def _matches_extension(extensions: tuple[str, ...], name: str) -> bool:
    ext = os.path.splitext(name)[1]
    if not ext:
        return False
    ext = ext[1:].lower()
    return any(ext == allowed.lower().lstrip(".") for allowed in extensions)
