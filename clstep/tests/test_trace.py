"""Tests for traced runs."""

import pytest
from clstep import ReductionEngine, ReductionTrace, RewriteStep


class TestRun:
    """Tests for ReductionEngine.run()."""

    def test_run_returns_value(self):
        assert ReductionEngine("SKKa").run() == "a"

    def test_run_with_trace(self):
        value, trace = ReductionEngine("SKKa").run(trace=True)
        assert value == "a"
        assert isinstance(trace, ReductionTrace)
        assert trace.initial == "SKKa"
        assert trace.final == "a"
        assert trace.reached_normal_form

    def test_trace_records_productive_steps_only(self):
        """The final step that finds nothing to do is not recorded."""
        _, trace = ReductionEngine("SKKa").run(trace=True)
        assert len(trace) == 2
        assert trace.rules_applied() == ["S", "K"]

    def test_step_limit(self):
        engine = ReductionEngine("SII(SII)")
        value, trace = engine.run(max_steps=10, trace=True)
        assert len(trace) == 10
        assert not trace.reached_normal_form
        assert value == engine.current_value()

    def test_run_on_stuck_engine(self):
        engine = ReductionEngine("Ka")
        engine.step()
        value, trace = engine.run(trace=True)
        assert value == "Ka"
        assert not trace
        assert trace.reached_normal_form


class TestTraceFormatting:
    """Tests for trace format() method."""

    def setup_method(self):
        _, self.trace = ReductionEngine("(Ia)(Kb)c").run(trace=True)

    def test_format_verbose(self):
        verbose = self.trace.format("verbose")
        assert "Initial: (Ia)(Kb)c" in verbose
        assert "Final: a(Kb)c" in verbose
        assert "1. (...): (Ia)(Kb)c → a(Kb)c" in verbose

    def test_format_compact(self):
        compact = self.trace.format("compact")
        assert compact == "(Ia)(Kb)c --[(...)]--> a(Kb)c"

    def test_format_rules(self):
        _, trace = ReductionEngine("SKKa").run(trace=True)
        assert trace.format("rules") == "S -> K"

    def test_format_chain(self):
        _, trace = ReductionEngine("SKKa").run(trace=True)
        assert trace.format("chain") == "SKKa\n  --(S)-->\nKa(Ka)\n  --(K)-->\na"

    def test_format_empty_trace(self):
        _, trace = ReductionEngine("ab").run(trace=True)
        assert trace.format("rules") == "(no rules applied)"
        assert trace.format("chain") == "ab"
        assert trace.summary() == "No rewriting performed"

    def test_unknown_style(self):
        with pytest.raises(ValueError):
            self.trace.format("fancy")


class TestTraceContents:
    """Tests for trace inspection helpers."""

    def test_iteration(self):
        _, trace = ReductionEngine("SKKa").run(trace=True)
        for step in trace:
            assert isinstance(step, RewriteStep)
            assert step.progressed

    def test_rule_counts(self):
        _, trace = ReductionEngine("KKab").run(trace=True)
        assert trace.rule_counts() == {"K": 1}

    def test_summary(self):
        _, trace = ReductionEngine("SKKa").run(trace=True)
        assert trace.summary() == "2 steps (normal form). Most used: S (1x)"

    def test_to_dict(self):
        _, trace = ReductionEngine("Ia").run(trace=True)
        data = trace.to_dict()
        assert data["initial"] == "Ia"
        assert data["final"] == "a"
        assert data["step_count"] == 1
        assert data["normal_form"] is True
        assert data["steps"][0] == {
            "kind": "rule",
            "term": "I",
            "combinator": "I",
            "before": "Ia",
            "after": "a",
            "progressed": True,
        }
