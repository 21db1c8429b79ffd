"""Tests for dependency/analyzer.py - end-to-end dependency analysis."""

import pytest

from php_sanitizer.dependency.analyzer import DependencyAnalyzer

MODULES = r"/^src\/[^\/]+$/"


class TestDependencyAnalyzer:
    """Discovery, scanning, graph, components, score."""

    def test_acyclic_project_scores_one(self, chain_project):
        result = DependencyAnalyzer().analyze(chain_project, MODULES)

        assert sorted(result.modules) == ["A", "B", "C"]
        assert result.graph == {"A": {"B"}, "B": {"C"}, "C": set()}
        assert len(result.components) == 3
        assert result.score == 1.0
        assert not result.is_empty()

    def test_cyclic_project_scores_a_third(self, cycle_project):
        result = DependencyAnalyzer().analyze(cycle_project, MODULES)

        assert result.components == [{"A", "B", "C"}]
        assert result.score == pytest.approx(1 / 3)
        assert result.edge_count == 3

    def test_no_modules_gives_empty_result(self, chain_project):
        result = DependencyAnalyzer().analyze(chain_project, "/^vendor\\/[^\\/]+$/")

        assert result.is_empty()
        assert result.score == 0.0
        assert result.graph == {}
        assert result.components == []

    def test_score_bounds(self, php_tree, php_source):
        files = {
            f"src/M{i}/C{i}.php": php_source(f"M{i}", f"C{i}", uses=[f"M{(i + 1) % 4}\\C{(i + 1) % 4}"])
            for i in range(4)
        }
        files["src/Solo/S.php"] = php_source("Solo", "S")
        result = DependencyAnalyzer().analyze(php_tree("bounds", files), MODULES)

        assert result.score == pytest.approx(2 / 5)
        assert 0 < result.score <= 1

    def test_custom_extensions(self, php_tree, php_source):
        root = php_tree(
            "inc-only",
            {
                "src/A/a.inc": php_source("A", "Alpha", uses=["B\\Beta"]),
                "src/B/b.php": php_source("B", "Beta"),
            },
        )
        result = DependencyAnalyzer(extensions=[".inc"]).analyze(root, MODULES)
        # B's declarations live in a .php file, which is not scanned
        assert result.graph == {"A": set(), "B": set()}


class TestParallelScan:
    """Thread pool scanning matches sequential scanning."""

    @pytest.fixture
    def wide_project(self, php_tree, php_source):
        files = {}
        for i in range(12):
            uses = [f"N{i + 1}\\K{i + 1}"] if i < 11 else ["N0\\K0"]
            files[f"src/N{i}/K{i}.php"] = php_source(f"N{i}", f"K{i}", uses=uses)
        files["src/Extra/E.php"] = php_source("Extra", "E", uses=["N3\\K3"])
        return php_tree("wide", files)

    def test_parallel_equals_sequential(self, wide_project):
        sequential = DependencyAnalyzer(max_workers=1).analyze(wide_project, MODULES)
        parallel = DependencyAnalyzer(max_workers=4).analyze(wide_project, MODULES)

        assert parallel.to_dict() == sequential.to_dict()
        assert parallel.score == pytest.approx(2 / 13)

    def test_module_order_is_kept(self, wide_project):
        analyzer = DependencyAnalyzer(max_workers=4)
        result = analyzer.analyze(wide_project, MODULES)
        assert result.modules == sorted(result.modules)
