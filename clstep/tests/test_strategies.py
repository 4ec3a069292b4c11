"""Tests for bracketed sub-expressions and irreducible heads."""

import pytest
from clstep import (
    ReductionEngine, CombinatorRegistry, StepLimitExceeded, NestingTooDeep, Term, TermKind,
    reduce_compound, reduce_irreducible,
)


class TestReduceCompound:
    """Tests for the bracketed sub-expression strategy."""

    def setup_method(self):
        self.registry = CombinatorRegistry.default()

    def test_reduces_to_fixed_point(self):
        term = Term("(SKKa)", TermKind.COMPOUND)
        assert reduce_compound(term, self.registry) == "a"

    def test_parentheses_are_dropped(self):
        term = Term("(ab)", TermKind.COMPOUND)
        assert reduce_compound(term, self.registry) == "ab"

    def test_stuck_interior_is_returned_unchanged(self):
        term = Term("(KI)", TermKind.COMPOUND)
        assert reduce_compound(term, self.registry) == "KI"

    def test_empty_brackets(self):
        assert reduce_compound(Term("()", TermKind.COMPOUND), self.registry) == ""

    def test_step_limit(self):
        """An expression without a normal form hits the limit."""
        term = Term("(SII(SII))", TermKind.COMPOUND)
        with pytest.raises(StepLimitExceeded) as exc_info:
            reduce_compound(term, self.registry, max_steps=50)
        assert exc_info.value.max_steps == 50
        assert exc_info.value.expression == "SII(SII)"

    def test_irreducible_is_empty(self):
        assert reduce_irreducible(Term("x1", TermKind.VARIABLE)) == ""
        assert reduce_irreducible(Term("+", TermKind.OPAQUE)) == ""


class TestBracketHeads:
    """Tests for engines whose head is a bracketed term."""

    def test_bracket_flattens(self):
        engine = ReductionEngine("(Ia)b")
        engine.step()
        assert engine.current_value() == "ab"
        assert engine.can_step()

    def test_nested_brackets(self):
        engine = ReductionEngine("((Ia))b")
        engine.step()
        assert engine.current_value() == "ab"

    def test_flattened_result_is_retokenized(self):
        """The reduced interior becomes head and arguments of the outer buffer."""
        engine = ReductionEngine("(KI)ab")
        engine.step()
        assert engine.current_value() == "KIab"
        engine.step()
        assert engine.current_value() == "Ib"
        engine.step()
        assert engine.current_value() == "b"

    def test_irreducible_interior_still_progresses(self):
        engine = ReductionEngine("(ab)c")
        outcome = engine.step()
        assert engine.current_value() == "abc"
        assert outcome.kind == "compound"
        assert outcome.progressed

    def test_empty_brackets_do_not_progress(self):
        engine = ReductionEngine("()a")
        engine.step()
        assert engine.current_value() == "()a"
        assert not engine.can_step()

    def test_child_uses_parent_registry(self):
        engine = ReductionEngine("(Ma)", definitions=("M", "1", "00"))
        engine.step()
        assert engine.current_value() == "aa"

    def test_nested_step_limit_leaves_buffer(self):
        engine = ReductionEngine("(SII(SII))x", max_nested_steps=20)
        with pytest.raises(StepLimitExceeded):
            engine.step()
        assert engine.current_value() == "(SII(SII))x"

    def test_deep_nesting_raises_and_leaves_buffer(self):
        """Nesting past the stack limit fails cleanly instead of crashing."""
        expression = "(" * 5000 + "Ia" + ")" * 5000 + "b"
        engine = ReductionEngine(expression)
        with pytest.raises(NestingTooDeep):
            engine.step()
        assert engine.current_value() == expression
        assert engine.can_step()

    def test_moderate_nesting_reduces(self):
        engine = ReductionEngine("(" * 50 + "Ia" + ")" * 50 + "b")
        engine.step()
        assert engine.current_value() == "ab"

    def test_arguments_are_not_reduced_first(self):
        """Only the head is rewritten; bracketed arguments wait."""
        engine = ReductionEngine("K(Ia)b")
        engine.step()
        assert engine.current_value() == "(Ia)"
        engine.step()
        assert engine.current_value() == "a"


class TestRunToNormalForm:
    """Driving an engine until it stops."""

    @pytest.mark.parametrize("expression,expected", [
        ("SKKa", "a"),
        ("SKIa", "a"),
        ("S(KS)Kfgx", "f(gx)"),
        ("C(KI)ab", "a"),
        ("B(Kf)Ix", "f"),
        ("(Ia)(Kb)c", "a(Kb)c"),
    ])
    def test_normal_forms(self, expression, expected):
        engine = ReductionEngine(expression, max_nested_steps=100)
        assert engine.run(max_steps=100) == expected
        assert not engine.can_step()

    def test_no_normal_form_is_bounded_by_caller(self):
        engine = ReductionEngine("SII(SII)")
        engine.run(max_steps=25)
        assert engine.can_step()
