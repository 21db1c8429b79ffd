"""Tests for models.py - result dataclasses."""

from pathlib import Path

from php_sanitizer.models import AnalysisRecord, DependencyResult, Module, ScanResult, Violation


def _violation(file="a.php", priority=3):
    return Violation(
        file=file,
        begin_line=1,
        end_line=2,
        rule="ShortVariable",
        ruleset="Naming Rules",
        priority=priority,
        message="Avoid variables with short names like $i.",
    )


class TestModule:
    def test_defaults(self):
        module = Module(name="Billing", path=Path("/p/src/Billing"))
        assert module.declares == frozenset()
        assert module.uses == frozenset()


class TestDependencyResult:
    def test_empty(self):
        result = DependencyResult.empty()
        assert result.is_empty()
        assert result.score == 0.0
        assert result.edge_count == 0

    def test_edge_count(self):
        result = DependencyResult(
            modules=["A", "B", "C"], graph={"A": {"B", "C"}, "B": {"C"}, "C": set()}
        )
        assert result.edge_count == 3
        assert not result.is_empty()

    def test_to_dict_is_sorted(self):
        result = DependencyResult(
            modules=["B", "A"],
            graph={"B": {"A"}, "A": set()},
            components=[{"B", "A"}],
            score=0.5,
        )
        assert result.to_dict() == {
            "modules": ["A", "B"],
            "graph": {"A": [], "B": ["A"]},
            "components": [["A", "B"]],
            "score": 0.5,
        }

    def test_from_dict_restores_sets(self):
        result = DependencyResult.from_dict(
            {"modules": ["A"], "graph": {"A": []}, "components": [["A"]], "score": 1}
        )
        assert result.graph == {"A": set()}
        assert result.components == [{"A"}]
        assert result.score == 1.0


class TestScanResult:
    def test_empty_result_flag(self):
        result = ScanResult.empty_result()
        assert result.empty is True
        assert result.is_empty()

    def test_no_violations_is_empty(self):
        assert ScanResult().is_empty()

    def test_add_groups_by_file(self):
        result = ScanResult()
        result.add(_violation("a.php"))
        result.add(_violation("a.php", priority=1))
        result.add(_violation("b.php"))
        assert result.violation_count == 3
        assert [v.priority for v in result.violations["a.php"]] == [3, 1]
        assert not result.is_empty()

    def test_from_dict(self):
        data = {"empty": False, "violations": {"a.php": [_violation().to_dict()]}}
        result = ScanResult.from_dict(data)
        assert result.violations["a.php"] == [_violation()]


class TestAnalysisRecord:
    def test_generated_fields(self):
        first = AnalysisRecord("p", DependencyResult.empty(), ScanResult.empty_result())
        second = AnalysisRecord("p", DependencyResult.empty(), ScanResult.empty_result())
        assert first.id != second.id
        assert len(first.id) == 16
        assert first.created.tzinfo is not None

    def test_dict_round_trip(self):
        record = AnalysisRecord(
            "p", DependencyResult.empty(), ScanResult.empty_result(), user_id="u"
        )
        restored = AnalysisRecord.from_dict(record.to_dict())
        assert restored.id == record.id
        assert restored.user_id == "u"
        assert restored.created == record.created
        assert restored.phpmd.empty is True
