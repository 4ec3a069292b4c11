"""
CLSTEP - step-by-step rewriting of combinatory-logic expressions

Expressions are flat strings of juxtaposed terms. Each step rewrites the
head of the buffer once, using named combinators with a fixed arity and a
substitution template.

Quick Start:
    from clstep import ReductionEngine

    engine = ReductionEngine("Sabc")
    engine.step()
    engine.current_value()  # => "ac(bc)"

    ReductionEngine("SKKx").run()  # => "x"

Built-in combinators:
    S, 3, 02(12)      Sxyz = xz(yz)
    K, 2, 0           Kxy  = x
    I, 1, 0           Ix   = x
    B, 3, 0(12)       Bxyz = x(yz)
    C, 3, 021         Cxyz = xzy

Definition files (one per line, "#" comments, whitespace ignored):
    # <zero> = KI
    <zero>, (KI)
    <succ>, 3, 1(012)

Terms:
    (...)             compound, reduced inside-out and re-flattened
    x, y1, z_2        variable, [a-z][_0-9]*
    S, <zero>         registered combinator name
    anything else     a single opaque character
"""

__version__ = "0.1.0"

from .terms import (
    Term,
    TermKind,
    VARIABLE_PATTERN,
    extract_term,
    take_term,
    split_terms,
    count_terms,
    paren_depth,
    is_balanced,
)

from .registry import (
    CombinatorDefinition,
    CombinatorRegistry,
    DefinitionError,
    INITIAL_COMBINATORS,
    normalize_record,
    parse_definition_line,
    load_definitions_from_text,
    load_definitions_from_file,
)

from .engine import (
    ReductionEngine,
    RewriteStep,
    ReductionTrace,
    TemplateError,
    StepLimitExceeded,
    NestingTooDeep,
    substitute,
    reduce_compound,
    reduce_irreducible,
)

__all__ = [
    "__version__",
    # Terms
    "Term",
    "TermKind",
    "VARIABLE_PATTERN",
    "extract_term",
    "take_term",
    "split_terms",
    "count_terms",
    "paren_depth",
    "is_balanced",
    # Registry
    "CombinatorDefinition",
    "CombinatorRegistry",
    "DefinitionError",
    "INITIAL_COMBINATORS",
    "normalize_record",
    "parse_definition_line",
    "load_definitions_from_text",
    "load_definitions_from_file",
    # Engine
    "ReductionEngine",
    "RewriteStep",
    "ReductionTrace",
    "TemplateError",
    "StepLimitExceeded",
    "NestingTooDeep",
    "substitute",
    "reduce_compound",
    "reduce_irreducible",
]
