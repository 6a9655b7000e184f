"""Tests for neofd.output."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from neofd.output import FormatTemplate, OutputFormat
from neofd.walker import Entry, FileKind


def _entry(path: str, root: str = "root") -> Entry:
    parent, _, name = path.rpartition("/")
    return Entry(
        path=path,
        name=name,
        depth=path.count("/"),
        kind=FileKind.FILE,
        dir_path=os.path.join(root, *parent.split("/")) if parent else root,
    )


class TestFormatTemplate:
    @pytest.mark.parametrize(
        ("template", "expected"),
        [
            ("{}", "src/lib/main.tar.gz"),
            ("{/}", "main.tar.gz"),
            ("{//}", "src/lib"),
            ("{.}", "src/lib/main.tar"),
            ("{/.}", "main.tar"),
            ("mv {} {.}.bak", "mv src/lib/main.tar.gz src/lib/main.tar.bak"),
            ("{{}}", "{}"),
            ("{{{/}}}", "{main.tar.gz}"),
            ("plain", "plain"),
        ],
    )
    def test_apply(self, template: str, expected: str) -> None:
        assert FormatTemplate.parse(template).apply("src/lib/main.tar.gz") == expected

    def test_no_extension(self) -> None:
        tpl = FormatTemplate.parse("{.}|{/.}|{//}")
        assert tpl.apply("Makefile") == "Makefile|Makefile|"

    @pytest.mark.parametrize("template", ["{", "{}}x}", "}", "{foo}", "{/x}"])
    def test_invalid(self, template: str) -> None:
        with pytest.raises(ValueError):
            FormatTemplate.parse(template)


class TestOutputFormat:
    def test_default(self) -> None:
        assert OutputFormat().format(_entry("src/main.py")) == "src/main.py\n"

    def test_null_separator(self) -> None:
        fmt = OutputFormat(null_separator=True)
        assert fmt.format(_entry("a.txt")) == "a.txt\0"

    def test_prefix(self) -> None:
        assert OutputFormat().format(_entry("a.txt"), "docs") == "docs/a.txt\n"

    def test_absolute(self, tmp_path: Path) -> None:
        entry = _entry("sub/a.txt", root=str(tmp_path))
        fmt = OutputFormat(absolute_path=True)
        assert fmt.display_path(entry) == str(tmp_path / "sub" / "a.txt")

    def test_template_applied_to_prefixed_path(self) -> None:
        fmt = OutputFormat(template=FormatTemplate.parse("{//}"))
        assert fmt.format(_entry("sub/a.txt"), "docs") == "docs/sub\n"
