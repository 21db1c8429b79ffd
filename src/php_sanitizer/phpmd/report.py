"""Parse PHPMD XML reports into ScanResult.

Report layout::

    <pmd version="..." timestamp="...">
      <file name="/abs/path/src/Foo.php">
        <violation beginline="12" endline="40" rule="CyclomaticComplexity"
                   ruleset="Code Size Rules" externalInfoUrl="https://..."
                   priority="3">
          The method bar() has a Cyclomatic Complexity of 12.
        </violation>
      </file>
    </pmd>
"""

from __future__ import annotations

from pathlib import Path
from xml.etree.ElementTree import ParseError

from defusedxml import ElementTree
from defusedxml.common import DefusedXmlException

from ..exceptions import ReportParseError
from ..models import ScanResult, Violation

TOOL_NAME = "PHPMD"


def relative_report_path(file_name: str, source_dir: str | Path) -> str:
    """Strip the scanned root from a reported file path.

    Only a whole-directory prefix is removed: with a root of ``/w/proj``,
    ``/w/proj/a.php`` becomes ``a.php`` but ``/w/project2/a.php`` is left
    untouched.
    """
    normalized = file_name.replace("\\", "/")
    root = str(source_dir).replace("\\", "/").rstrip("/")

    if root and normalized.startswith(root + "/"):
        return normalized[len(root) + 1 :]
    if root and normalized == root:
        return ""
    return normalized


def _int_attribute(element, name: str, report_path: Path) -> int:
    raw = element.get(name)
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        raise ReportParseError(
            TOOL_NAME, report_path, f"attribute {name!r} is not an integer: {raw!r}"
        )


def parse_report(report_path: str | Path, source_dir: str | Path) -> ScanResult:
    """Parse a PHPMD XML report.

    Args:
        report_path: Report file written by PHPMD
        source_dir: Directory PHPMD scanned; stripped from reported paths

    Returns:
        Violations grouped by project-relative file path

    Raises:
        ReportParseError: On malformed XML or non-numeric line/priority values
    """
    report_path = Path(report_path)
    try:
        tree = ElementTree.parse(str(report_path))
    except (ParseError, DefusedXmlException, OSError) as e:
        raise ReportParseError(TOOL_NAME, report_path, str(e))

    result = ScanResult()
    for file_element in tree.getroot().iter("file"):
        file_name = relative_report_path(file_element.get("name", ""), source_dir)
        for violation in file_element.iter("violation"):
            url = (violation.get("externalInfoUrl") or "").strip()
            result.add(
                Violation(
                    file=file_name,
                    begin_line=_int_attribute(violation, "beginline", report_path),
                    end_line=_int_attribute(violation, "endline", report_path),
                    rule=str(violation.get("rule", "")).strip(),
                    ruleset=str(violation.get("ruleset", "")).strip(),
                    priority=_int_attribute(violation, "priority", report_path),
                    message=(violation.text or "").strip(),
                    url=url or None,
                )
            )

    result.empty = result.violation_count == 0
    return result
