"""Tests for Packages parsing, dependency extraction and root resolution."""

from pathlib import Path

import pytest

from analyzer_errors import IndexReadError, PackageNotFoundError
from package_index import (
    PackageRecord,
    build_package_index,
    extract_dependency_names,
    find_package,
    known_versions,
    parse_packages_stream,
)

FIXTURES = Path(__file__).parent / "fixtures"


class TestExtractDependencyNames:
    def test_first_alternative_and_version_stripped(self):
        assert extract_dependency_names("foo (>= 1.0) | bar, baz") == ["foo", "baz"]

    def test_empty_value(self):
        assert extract_dependency_names("") == []

    def test_arch_qualifiers_and_lists_dropped(self):
        value = "perl:any, libc6 (>= 2.34) [amd64 arm64], zlib1g:arm64"
        assert extract_dependency_names(value) == ["perl", "libc6", "zlib1g"]

    def test_substvar_placeholder_skipped(self):
        assert extract_dependency_names("${misc:Depends}, foo, ${shlibs:Depends}") == ["foo"]

    def test_substvar_inside_version_keeps_name(self):
        assert extract_dependency_names("foo (= ${binary:Version})") == ["foo"]

    def test_groups_without_token_skipped(self):
        assert extract_dependency_names("foo, , (>= 1), | bar") == ["foo"]

    def test_no_deduplication(self):
        assert extract_dependency_names("a, b, a") == ["a", "b", "a"]

    def test_name_characters(self):
        assert extract_dependency_names("libstdc++6, python3.12-minimal, lib-a.b+c") == [
            "libstdc++6", "python3.12-minimal", "lib-a.b+c"
        ]

    def test_alternatives_never_leak(self):
        names = extract_dependency_names("a | b | c, d | e")
        assert "b" not in names
        assert "c" not in names
        assert "e" not in names


class TestParsePackagesStream:
    def test_basic_stanzas(self):
        lines = [
            "Package: a\n",
            "Version: 1.0\n",
            "Depends: b, c\n",
            "\n",
            "Package: b\n",
            "Version: 2.0\n",
        ]
        records = parse_packages_stream(lines)
        assert records == [
            PackageRecord("a", "1.0", ["b", "c"]),
            PackageRecord("b", "2.0", []),
        ]

    def test_last_stanza_without_trailing_blank_line(self):
        records = parse_packages_stream(["Package: only", "Version: 1"])
        assert [r.name for r in records] == ["only"]

    def test_continuation_lines_ignored(self):
        lines = [
            "Package: a",
            "Depends: b,",
            " c, d",
            "\tDepends: e",
            "",
        ]
        records = parse_packages_stream(lines)
        assert records[0].dependency_names == ["b"]

    def test_malformed_and_unknown_lines_skipped(self):
        lines = [
            "Package: a",
            "this line has no colon",
            "Provides: virtual-a",
            "Architecture: amd64",
            "Version: 1.0",
            "",
        ]
        records = parse_packages_stream(lines)
        assert records == [PackageRecord("a", "1.0", [])]

    def test_empty_package_name_discarded(self):
        lines = [
            "Package:   ",
            "Version: 1.0",
            "",
            "Version: 2.0",
            "Depends: x",
            "",
            "Package: real",
            "",
        ]
        records = parse_packages_stream(lines)
        assert records == [PackageRecord("real", "", [])]

    def test_crlf_line_endings(self):
        records = parse_packages_stream(["Package: a\r\n", "Version: 1\r\n", "\r\n", "Package: b\r\n"])
        assert [(r.name, r.version) for r in records] == [("a", "1"), ("b", "")]

    def test_value_split_on_first_colon_only(self):
        records = parse_packages_stream(["Package: a", "Version: 1:2.3-4", ""])
        assert records[0].version == "1:2.3-4"

    def test_stream_failure_raises(self):
        def broken_lines():
            yield "Package: a"
            raise OSError("connection reset")

        with pytest.raises(IndexReadError):
            parse_packages_stream(broken_lines())

    def test_fixture_file(self):
        with open(FIXTURES / "Packages", encoding="utf-8") as f:
            records = parse_packages_stream(f)
        assert [(r.name, r.version) for r in records] == [
            ("A", "1.0"), ("B", "2.0"), ("C", "3.0"), ("A", "0.9"), ("D", "1.0"), ("E", "1.0"),
        ]
        d = next(r for r in records if r.name == "D")
        assert d.dependency_names == ["E"]


class TestPackageIndex:
    def test_groups_by_name_in_document_order(self):
        records = [
            PackageRecord("a", "2.0", []),
            PackageRecord("b", "1.0", []),
            PackageRecord("a", "1.0", []),
        ]
        index = build_package_index(records)
        assert list(index) == ["a", "b"]
        assert [r.version for r in index["a"]] == ["2.0", "1.0"]

    def test_skips_nameless_records(self):
        index = build_package_index([PackageRecord("", "1.0", [])])
        assert index == {}


@pytest.fixture
def index():
    return build_package_index([
        PackageRecord("a", "1.0", ["x"]),
        PackageRecord("a", "3.0", ["y"]),
        PackageRecord("a", "2.0", ["z"]),
    ])


class TestFindPackage:
    def test_no_version_returns_first(self, index):
        assert find_package(index, "a").version == "1.0"
        assert find_package(index, "a", "").version == "1.0"

    def test_exact_version(self, index):
        assert find_package(index, "a", "2.0").dependency_names == ["z"]

    def test_fallback_to_first_with_warning(self, index, capsys):
        pkg = find_package(index, "a", "9.9")
        assert pkg.version == "1.0"
        out = capsys.readouterr().out
        assert "Warning" in out
        assert "9.9" in out
        assert "using version 1.0" in out

    def test_not_found(self, index):
        with pytest.raises(PackageNotFoundError) as excinfo:
            find_package(index, "missing", "1.0")
        assert excinfo.value.name == "missing"
        assert excinfo.value.version == "1.0"
        assert "missing" in str(excinfo.value)


class TestKnownVersions:
    def test_newest_first(self, index):
        assert known_versions(index, "a") == ["3.0", "2.0", "1.0"]

    def test_debian_ordering(self):
        index = build_package_index([
            PackageRecord("p", "1.0~rc1", []),
            PackageRecord("p", "1:0.5", []),
            PackageRecord("p", "1.0", []),
        ])
        assert known_versions(index, "p") == ["1:0.5", "1.0", "1.0~rc1"]

    def test_unknown_name(self, index):
        assert known_versions(index, "nope") == []
