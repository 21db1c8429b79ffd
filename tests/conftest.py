"""Shared test fixtures for PHP Sanitizer tests."""

import zipfile
from pathlib import Path

import pytest

from php_sanitizer.phpmd.spawner import ProcessResult, ProcessSpawner


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


# ── PHP source trees ──────────────────────────────────────────────


def write_tree(root: Path, files: dict) -> Path:
    """Write ``{relative_path: content}`` under ``root``."""
    for rel_path, content in files.items():
        path = root / rel_path
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


def php_class(namespace: str, name: str, uses=()) -> str:
    lines = ["<?php", "", f"namespace {namespace};", ""]
    lines.extend(f"use {usage};" for usage in uses)
    lines.extend(["", f"class {name}", "{", "}", ""])
    return "\n".join(lines)


@pytest.fixture
def chain_project(tmp_path):
    """A uses X (from B), B uses Y (from C). No cycles."""
    return write_tree(
        tmp_path / "chain",
        {
            "src/A/Service.php": php_class("App\\A", "Service", uses=["App\\B\\X"]),
            "src/B/X.php": php_class("App\\B", "X", uses=["App\\C\\Y"]),
            "src/C/Y.php": php_class("App\\C", "Y"),
        },
    )


@pytest.fixture
def cycle_project(tmp_path):
    """A -> B -> C -> A."""
    return write_tree(
        tmp_path / "cycle",
        {
            "src/A/Z.php": php_class("App\\A", "Z", uses=["App\\B\\X"]),
            "src/B/X.php": php_class("App\\B", "X", uses=["App\\C\\Y"]),
            "src/C/Y.php": php_class("App\\C", "Y", uses=["\\App\\A\\Z"]),
        },
    )


@pytest.fixture
def make_zip(tmp_path):
    """Zip a source tree, with paths relative to the tree root."""

    def _make_zip(source_root: Path, name: str = "project.zip") -> Path:
        archive = tmp_path / name
        with zipfile.ZipFile(archive, "w") as zf:
            for path in sorted(source_root.rglob("*")):
                if path.is_file():
                    zf.write(path, path.relative_to(source_root).as_posix())
        return archive

    return _make_zip


# ── PHPMD boundary ────────────────────────────────────────────────


def phpmd_report(source_dir, files: dict) -> str:
    """Build a PHPMD XML report.

    ``files`` maps a relative path to a list of violation dicts with keys
    rule, ruleset, priority, begin, end, message and optional url.
    """
    parts = ['<?xml version="1.0" encoding="UTF-8" ?>', '<pmd version="2.15.0" timestamp="now">']
    for rel_path, violations in files.items():
        parts.append(f'  <file name="{source_dir}/{rel_path}">')
        for v in violations:
            url = f' externalInfoUrl="{v["url"]}"' if v.get("url") else ""
            parts.append(
                f'    <violation beginline="{v.get("begin", 1)}" endline="{v.get("end", 1)}" '
                f'rule="{v.get("rule", "UnusedLocalVariable")}" '
                f'ruleset="{v.get("ruleset", "Unused Code Rules")}"{url} '
                f'priority="{v.get("priority", 3)}">'
            )
            parts.append(f"      {v.get('message', 'Avoid unused local variables.')}")
            parts.append("    </violation>")
        parts.append("  </file>")
    parts.append("</pmd>")
    return "\n".join(parts) + "\n"


class FakeSpawner(ProcessSpawner):
    """Stands in for PHPMD: optionally writes a report, returns a fixed status."""

    def __init__(self, returncode=0, report=None, raises=None, stderr=""):
        self.returncode = returncode
        self.report = report
        self.raises = raises
        self.stderr = stderr
        self.calls = []

    def run(self, argv, timeout):
        argv = list(argv)
        self.calls.append((argv, timeout))
        if self.raises is not None:
            raise self.raises
        report_file = Path(argv[argv.index("--reportfile") + 1])
        if self.report is not None:
            source_dir = argv[-5]
            content = self.report(source_dir) if callable(self.report) else self.report
            report_file.write_text(content)
        return ProcessResult(returncode=self.returncode, stderr=self.stderr)


@pytest.fixture
def fake_spawner():
    return FakeSpawner


@pytest.fixture
def php_tree(tmp_path):
    """Factory: ``php_tree(name, {rel_path: content})`` -> root path."""

    def _php_tree(name: str, files: dict) -> Path:
        return write_tree(tmp_path / name, files)

    return _php_tree


@pytest.fixture
def php_source():
    return php_class


@pytest.fixture
def phpmd_xml():
    return phpmd_report
