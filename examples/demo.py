#!/usr/bin/env python3
"""
CLSTEP Feature Demonstration

Walks through stepping, stuck heads, bracketed heads, custom
definitions and traces.
"""

from pathlib import Path
from clstep import ReductionEngine, CombinatorRegistry


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_single_steps():
    """One rewrite per call to step()."""
    section("Single Steps")

    engine = ReductionEngine("S(KS)Kfgx")
    print(f"  {engine.current_value()}")
    while engine.can_step():
        outcome = engine.step()
        if outcome.progressed:
            print(f"  --({outcome.label})--> {engine.current_value()}")


def demo_stuck():
    """A head without enough arguments is restored untouched."""
    section("Stuck Heads")

    engine = ReductionEngine("Ka")
    engine.step()
    print(f"  Ka after one step: {engine.current_value()} (can_step={engine.can_step()})")
    engine.append("b")
    engine.step()
    print(f"  after appending b: {engine.current_value()}")


def demo_brackets():
    """Bracketed heads are reduced and flattened."""
    section("Bracketed Heads")

    for expr_str in ["(Ia)b", "(KI)ab", "((SKK)a)b"]:
        engine = ReductionEngine(expr_str)
        engine.step()
        print(f"  {expr_str} => {engine.current_value()}")


def demo_definitions():
    """Church numerals from a definition file."""
    section("Custom Definitions")

    path = Path(__file__).parent / "numerals.combinators"
    registry = CombinatorRegistry.from_file(path)
    print(f"  Loaded {len(registry)} combinators from {path.name}")

    for expr_str in ["<succ><1>fx", "<add><1><2>fx", "<not><true>ab"]:
        engine = ReductionEngine(expr_str, registry=registry, max_nested_steps=100)
        print(f"  {expr_str} => {engine.run(max_steps=100)}")


def demo_tracing():
    """Traces of a full run."""
    section("Tracing")

    value, trace = ReductionEngine("SKKa").run(trace=True)
    print(trace.format("chain"))
    print(f"  {trace.summary()}")

    value, trace = ReductionEngine("SII(SII)").run(max_steps=8, trace=True)
    print(f"  {trace.format('rules')}")
    print(f"  {trace.summary()}")


def main():
    """Run all demonstrations."""
    print("CLSTEP - combinatory logic, one step at a time")
    print("Feature Demonstration")

    demo_single_steps()
    demo_stuck()
    demo_brackets()
    demo_definitions()
    demo_tracing()

    print("\n" + "="*60)
    print(" Demo complete!")
    print("="*60)


if __name__ == "__main__":
    main()
