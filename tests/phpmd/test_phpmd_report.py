"""Tests for phpmd/report.py - PHPMD XML report parsing."""

import pytest

from php_sanitizer.exceptions import ExternalToolError, ReportParseError
from php_sanitizer.phpmd.report import parse_report, relative_report_path


class TestRelativeReportPath:
    """Only a whole-directory prefix is stripped."""

    def test_strips_root(self):
        assert relative_report_path("/w/proj/src/a.php", "/w/proj") == "src/a.php"

    def test_trailing_slash_on_root(self):
        assert relative_report_path("/w/proj/a.php", "/w/proj/") == "a.php"

    def test_sibling_with_same_prefix_untouched(self):
        assert relative_report_path("/w/project2/a.php", "/w/proj") == "/w/project2/a.php"

    def test_outside_root_untouched(self):
        assert relative_report_path("/elsewhere/a.php", "/w/proj") == "/elsewhere/a.php"

    def test_backslashes_normalized(self):
        assert relative_report_path("C:\\w\\proj\\a.php", "C:\\w\\proj") == "a.php"


class TestParseReport:
    """Violations grouped by relative file path."""

    def test_groups_violations_by_file(self, tmp_path, phpmd_xml):
        source_dir = tmp_path / "proj"
        report = tmp_path / "report.xml"
        report.write_text(
            phpmd_xml(
                source_dir,
                {
                    "a.php": [
                        {"rule": "UnusedLocalVariable", "begin": 3, "end": 3},
                        {
                            "rule": "CyclomaticComplexity",
                            "ruleset": "Code Size Rules",
                            "priority": 2,
                            "begin": 10,
                            "end": 40,
                            "message": "The method run() has a Cyclomatic Complexity of 12.",
                            "url": "https://phpmd.org/rules/codesize.html#cyclomaticcomplexity",
                        },
                    ],
                    "b.php": [{"rule": "ShortVariable", "ruleset": "Naming Rules", "priority": 3}],
                },
            )
        )

        result = parse_report(report, source_dir)

        assert sorted(result.violations) == ["a.php", "b.php"]
        assert len(result.violations["a.php"]) == 2
        assert len(result.violations["b.php"]) == 1
        assert result.violation_count == 3
        assert not result.is_empty()

        complexity = result.violations["a.php"][1]
        assert complexity.file == "a.php"
        assert complexity.rule == "CyclomaticComplexity"
        assert complexity.ruleset == "Code Size Rules"
        assert complexity.priority == 2
        assert (complexity.begin_line, complexity.end_line) == (10, 40)
        assert complexity.message == "The method run() has a Cyclomatic Complexity of 12."
        assert complexity.url.startswith("https://phpmd.org/")

    def test_missing_url_is_none(self, tmp_path, phpmd_xml):
        report = tmp_path / "report.xml"
        report.write_text(phpmd_xml(tmp_path, {"a.php": [{}]}))
        result = parse_report(report, tmp_path)
        assert result.violations["a.php"][0].url is None

    def test_no_file_elements(self, tmp_path):
        report = tmp_path / "report.xml"
        report.write_text('<?xml version="1.0"?><pmd version="2.15.0"></pmd>')
        result = parse_report(report, tmp_path)
        assert result.violations == {}
        assert result.is_empty()
        assert result.empty is True
        assert result.to_dict()["empty"] is True

    def test_file_without_violations(self, tmp_path):
        report = tmp_path / "report.xml"
        report.write_text(
            '<?xml version="1.0"?><pmd version="2.15.0"><file name="/x/a.php"></file></pmd>'
        )
        result = parse_report(report, "/x")
        assert result.empty is True

    def test_violations_mark_result_non_empty(self, tmp_path, phpmd_xml):
        report = tmp_path / "report.xml"
        report.write_text(phpmd_xml("/x", {"a.php": [{"priority": 2}]}))
        assert parse_report(report, "/x").empty is False

    def test_malformed_xml(self, tmp_path):
        report = tmp_path / "report.xml"
        report.write_text("<pmd><file name='x'>")
        with pytest.raises(ReportParseError) as exc_info:
            parse_report(report, tmp_path)
        assert isinstance(exc_info.value, ExternalToolError)
        assert exc_info.value.tool == "PHPMD"

    def test_missing_report(self, tmp_path):
        with pytest.raises(ReportParseError):
            parse_report(tmp_path / "nope.xml", tmp_path)

    def test_non_numeric_line(self, tmp_path):
        report = tmp_path / "report.xml"
        report.write_text(
            '<pmd><file name="/x/a.php">'
            '<violation beginline="one" endline="2" rule="R" ruleset="S" priority="1">m</violation>'
            "</file></pmd>"
        )
        with pytest.raises(ReportParseError, match="beginline"):
            parse_report(report, "/x")

    def test_entity_expansion_rejected(self, tmp_path):
        report = tmp_path / "report.xml"
        report.write_text(
            '<?xml version="1.0"?>\n'
            '<!DOCTYPE pmd [<!ENTITY boom "boom">]>\n'
            "<pmd>&boom;</pmd>"
        )
        with pytest.raises(ReportParseError):
            parse_report(report, tmp_path)
