"""CLI entry point for nfd. Handles argument parsing and I/O only."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from neofd import NfdError, __version__
from neofd.filter import FileType, SizeFilter, TimeFilter
from neofd.finder import Finder, FinderOptions
from neofd.ignore import IgnoreOptions
from neofd.output import FormatTemplate, OutputFormat
from neofd.pattern import PatternKind


def build_parser() -> argparse.ArgumentParser:
    """Build and return the CLI argument parser.

    Returns:
        argparse.ArgumentParser: Configured parser for the ``nfd`` command.
    """
    parser = argparse.ArgumentParser(
        prog="nfd",
        description="fd-compatible file finder honoring .gitignore, .ignore and .fdignore",
    )
    parser.add_argument(
        "pattern",
        nargs="?",
        default=None,
        help="Search pattern (glob semantics, smart case)",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        default=[],
        help="Root directories to search (default: current directory)",
    )

    # pattern options
    kind = parser.add_mutually_exclusive_group()
    kind.add_argument(
        "-g",
        "--glob",
        action="store_const",
        const=PatternKind.GLOB,
        dest="pattern_kind",
        help="Glob-based search",
    )
    kind.add_argument(
        "-F",
        "--fixed-strings",
        action="store_const",
        const=PatternKind.FIXED,
        dest="pattern_kind",
        help="Literal substring search",
    )
    case = parser.add_mutually_exclusive_group()
    case.add_argument(
        "-s",
        "--case-sensitive",
        action="store_const",
        const=True,
        dest="case_sensitive",
        help="Case-sensitive search (default: smart case)",
    )
    case.add_argument(
        "-i",
        "--ignore-case",
        action="store_const",
        const=False,
        dest="case_sensitive",
        help="Case-insensitive search (default: smart case)",
    )
    parser.add_argument(
        "-p",
        "--full-path",
        action="store_true",
        dest="full_path",
        help="Match the pattern against the relative path, not just the name",
    )

    # filtering options
    parser.add_argument(
        "-t",
        "--type",
        action="append",
        default=[],
        dest="types",
        help="Filter by type: f, d, l, x, e, s, p, b, c (can be specified multiple times)",
    )
    parser.add_argument(
        "-e",
        "--extension",
        action="append",
        default=[],
        dest="extensions",
        help="Filter by file extension (can be specified multiple times)",
    )
    parser.add_argument(
        "-S",
        "--size",
        action="append",
        default=[],
        dest="sizes",
        help="Filter by size: +1k, -10m, 100b (can be specified multiple times)",
    )
    parser.add_argument(
        "--changed-within",
        default=None,
        help="Only entries modified within this duration or since this date",
    )
    parser.add_argument(
        "--changed-before",
        default=None,
        help="Only entries modified before this duration ago or this date",
    )
    parser.add_argument(
        "-d",
        "--max-depth",
        type=int,
        default=None,
        dest="max_depth",
        help="Maximum search depth (1 = direct children only)",
    )
    parser.add_argument(
        "--min-depth",
        type=int,
        default=None,
        dest="min_depth",
        help="Minimum depth of reported entries",
    )
    parser.add_argument(
        "--exact-depth",
        type=int,
        default=None,
        dest="exact_depth",
        help="Only report entries at exactly this depth",
    )
    parser.add_argument(
        "-E",
        "--exclude",
        action="append",
        default=[],
        dest="excludes",
        help="Exclude entries matching glob (can be specified multiple times)",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        dest="max_results",
        help="Stop after this many results",
    )
    parser.add_argument(
        "-1",
        action="store_const",
        const=1,
        dest="max_results",
        help="Stop after the first result",
    )

    # traversal options
    parser.add_argument(
        "-H",
        "--hidden",
        action="store_true",
        help="Include hidden files and directories",
    )
    parser.add_argument(
        "-I",
        "--no-ignore",
        action="store_true",
        dest="no_ignore",
        help="Do not respect .gitignore, .ignore, .fdignore or the global ignore file",
    )
    parser.add_argument(
        "--no-ignore-vcs",
        action="store_true",
        dest="no_ignore_vcs",
        help="Do not respect .gitignore files",
    )
    parser.add_argument(
        "--no-require-git",
        action="store_true",
        dest="no_require_git",
        help="Respect .gitignore files outside of git repositories",
    )
    parser.add_argument(
        "--no-global-ignore-file",
        action="store_true",
        dest="no_global_ignore_file",
        help="Do not respect the global ignore file",
    )
    parser.add_argument(
        "-L",
        "--follow",
        action="store_true",
        help="Follow symbolic links",
    )
    parser.add_argument(
        "--one-file-system",
        action="store_true",
        dest="one_file_system",
        help="Do not descend into directories on other filesystems",
    )

    # output options
    parser.add_argument(
        "-a",
        "--absolute-path",
        action="store_true",
        dest="absolute_path",
        help="Print absolute paths",
    )
    parser.add_argument(
        "-0",
        "--print0",
        action="store_true",
        help="Separate results with a NUL character",
    )
    parser.add_argument(
        "--format",
        default=None,
        dest="template",
        help="Output template: {}, {/}, {//}, {.}, {/.}",
    )
    parser.add_argument(
        "-o",
        "--output",
        type=str,
        default=None,
        dest="output_file",
        help="Write output to a file instead of stdout",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log skipped entries and other diagnostics to stderr",
    )
    parser.add_argument(
        "-V",
        "--version",
        action="version",
        version=f"nfd {__version__}",
    )
    return parser


def run_nfd(argv: list[str] | None = None) -> str:
    """Run nfd with provided CLI args and return formatted output.

    This function is intentionally side-effect free and is the primary
    test target for CLI behavior.

    Args:
        argv: Command-line argument list without program name. If ``None``,
            uses process arguments via ``argparse`` defaults.

    Returns:
        str: Concatenated output records.

    Raises:
        NfdError: On any user-facing validation or I/O error.
    """
    parser = build_parser()
    args = parser.parse_args(_join_dash_values(sys.argv[1:] if argv is None else argv))
    return _run_with_args(args)


_DASH_VALUE_OPTIONS = ("-S", "--size")


def _join_dash_values(argv: list[str]) -> list[str]:
    """Attach values that start with ``-`` to their option.

    ``-S -10m`` would otherwise be read as the ``-1`` flag; it is rewritten
    to ``--size=-10m``. Arguments after ``--`` are left alone.

    Args:
        argv: Command-line argument list without program name.

    Returns:
        list[str]: Argument list safe to hand to ``parse_args``.
    """
    result: list[str] = []
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--":
            result.extend(argv[i:])
            break
        if arg in _DASH_VALUE_OPTIONS and i + 1 < len(argv) and argv[i + 1].startswith("-"):
            result.append(f"--size={argv[i + 1]}")
            i += 2
            continue
        result.append(arg)
        i += 1
    return result


def _resolve_roots(paths: list[str]) -> list[str]:
    """Validate search roots.

    Args:
        paths: Root arguments from the CLI.

    Returns:
        list[str]: Roots as given, or ``["."]`` when none were given.

    Raises:
        NfdError: If a root does not exist or is not a directory.
    """
    roots = paths or ["."]
    for root in roots:
        if not Path(root).is_dir():
            raise NfdError(f"'{root}' is not a directory")
    return roots


def _translate_depth(value: int | None, option: str) -> int | None:
    """Translate fd's 1-based depth to walker depth.

    A depth of 0 maps to -1, which admits no entries: the root itself is
    never reported.

    Args:
        value: CLI depth value.
        option: Option name for error messages.

    Returns:
        int | None: 0-based depth, or ``None`` when not set.

    Raises:
        NfdError: If the value is negative.
    """
    if value is None:
        return None
    if value < 0:
        raise NfdError(f"{option} must not be negative")
    return value - 1


def _build_file_types(values: list[str]) -> FileType | None:
    file_types: FileType | None = None
    for value in values:
        try:
            parsed = FileType.parse(value)
        except ValueError as exc:
            raise NfdError(str(exc)) from exc
        file_types = parsed if file_types is None else file_types.merge(parsed)
    return file_types


def _build_size_filters(values: list[str]) -> tuple[SizeFilter, ...]:
    try:
        return tuple(SizeFilter.parse(value) for value in values)
    except ValueError as exc:
        raise NfdError(str(exc)) from exc


def _build_time_filters(args: argparse.Namespace) -> tuple[TimeFilter, ...]:
    filters: list[TimeFilter] = []
    try:
        if args.changed_within is not None:
            filters.append(TimeFilter.parse(args.changed_within, "newer"))
        if args.changed_before is not None:
            filters.append(TimeFilter.parse(args.changed_before, "older"))
    except ValueError as exc:
        raise NfdError(str(exc)) from exc
    return tuple(filters)


def _build_ignore_options(args: argparse.Namespace) -> IgnoreOptions:
    return IgnoreOptions(
        read_vcs_ignore=not (args.no_ignore or args.no_ignore_vcs),
        require_git=not args.no_require_git,
        read_dot_ignore=not args.no_ignore,
        read_fd_ignore=not args.no_ignore,
        read_global_ignore=not (args.no_ignore or args.no_global_ignore_file),
    )


def _build_finder_options(args: argparse.Namespace) -> FinderOptions:
    """Translate parsed CLI arguments into finder options.

    Args:
        args: Parsed CLI namespace.

    Returns:
        FinderOptions: Options shared by every search root.

    Raises:
        NfdError: If any option value is invalid.
    """
    max_depth = _translate_depth(args.max_depth, "--max-depth")
    min_depth = _translate_depth(args.min_depth, "--min-depth")
    if args.exact_depth is not None:
        max_depth = min_depth = _translate_depth(args.exact_depth, "--exact-depth")
    if args.max_results is not None and args.max_results < 1:
        raise NfdError("--max-results must be a positive integer")

    return FinderOptions(
        pattern=args.pattern,
        pattern_kind=args.pattern_kind or PatternKind.REGEX,
        case_sensitive=args.case_sensitive,
        full_path=args.full_path,
        file_types=_build_file_types(args.types),
        extensions=tuple(args.extensions),
        size_filters=_build_size_filters(args.sizes),
        time_filters=_build_time_filters(args),
        min_depth=min_depth,
        max_depth=max_depth,
        ignore_hidden=not args.hidden,
        ignore=_build_ignore_options(args),
        follow_symlinks=args.follow,
        one_file_system=args.one_file_system,
        exclude_patterns=tuple(args.excludes),
        max_results=args.max_results,
    )


def _build_output_format(args: argparse.Namespace) -> OutputFormat:
    template = None
    if args.template is not None:
        try:
            template = FormatTemplate.parse(args.template)
        except ValueError as exc:
            raise NfdError(str(exc)) from exc
    return OutputFormat(
        null_separator=args.print0,
        absolute_path=args.absolute_path,
        template=template,
    )


def _run_with_args(args: argparse.Namespace) -> str:
    """Run the search/format pipeline for parsed arguments.

    Each root gets its own ``Finder``. Results from a root other than ``.``
    are prefixed with that root.

    Args:
        args: Parsed CLI namespace.

    Returns:
        str: Concatenated output records.

    Raises:
        NfdError: On any user-facing validation or I/O error.
    """
    roots = _resolve_roots(args.paths)
    finder_opts = _build_finder_options(args)
    output_fmt = _build_output_format(args)

    records: list[str] = []
    remaining = finder_opts.max_results
    for root in roots:
        with Finder(finder_opts) as finder:
            prefix = None if root == "." else root
            try:
                finder.start_at(root)
                for entry in finder:
                    records.append(output_fmt.format(entry, prefix))
                    if remaining is not None:
                        remaining -= 1
                        if remaining == 0:
                            return "".join(records)
            except OSError as exc:
                raise NfdError(f"error searching '{root}': {exc}") from exc
    return "".join(records)


def main() -> None:
    """Run the CLI entry point with process arguments.

    Parses args exactly once and writes output to stdout or ``-o`` file.
    Exits with code 1 on user-facing errors.
    """
    parser = build_parser()
    args = parser.parse_args(_join_dash_values(sys.argv[1:]))  # single parse

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="nfd: %(levelname)s: %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        output = _run_with_args(args)
    except NfdError as exc:
        sys.stderr.write(f"nfd: {exc}\n")
        sys.exit(1)

    if args.output_file:
        try:
            Path(args.output_file).write_text(output, encoding="utf-8", newline="")
        except OSError as exc:
            sys.stderr.write(f"nfd: cannot write to '{args.output_file}': {exc}\n")
            sys.exit(1)
    else:
        sys.stdout.write(output)
