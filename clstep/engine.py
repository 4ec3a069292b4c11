"""
Reduction Engine for combinatory-logic buffers.

Each call to ``ReductionEngine.step()`` performs exactly one rewrite at the
head of the buffer:

    Sabc      --(S)-->   ac(bc)
    Kab       --(K)-->   a
    (Ia)b     --(...)--> ab        bracketed head reduced to a fixed point,
                                   parentheses dropped
    Ka        stuck                K needs two arguments; buffer restored
    ab        irreducible          variable head; nothing to do

A step that makes no progress leaves the buffer exactly as it was and
clears the progress flag (``can_step()``). Bracketed heads are reduced by
a child engine that shares the registry but owns its own buffer.

Tracing:
    value, trace = ReductionEngine("SKKa").run(trace=True)
    print(trace.format("chain"))
"""

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .registry import CombinatorDefinition, CombinatorRegistry, RecordType
from .terms import Term, count_terms, is_balanced, take_term

logger = logging.getLogger(__name__)

DefinitionsType = Union[CombinatorDefinition, RecordType, Iterable[Union[CombinatorDefinition, RecordType]]]

# Step kinds
RULE = "rule"
COMPOUND = "compound"
STUCK = "stuck"
IRREDUCIBLE = "irreducible"
EMPTY = "empty"


class TemplateError(ValueError):
    """A template placeholder refers to an argument that was not collected."""


class StepLimitExceeded(RuntimeError):
    """A bracketed sub-expression did not reach a fixed point in time."""

    def __init__(self, expression: str, max_steps: int):
        super().__init__(
            f"Sub-expression {expression!r} did not settle within {max_steps} steps"
        )
        self.expression = expression
        self.max_steps = max_steps


class NestingTooDeep(RuntimeError):
    """Brackets are nested deeper than the interpreter stack allows."""

    def __init__(self):
        super().__init__("Brackets are nested too deeply to reduce")


def substitute(template: str, args: Sequence[str]) -> str:
    """
    Fill a combinator template with collected arguments.

    Every digit 0-9 is replaced by ``args[digit]``; every other character
    is copied as is.

    Examples:
        substitute("02(12)", ["a", "b", "c"]) -> "ac(bc)"
        substitute("021", ["f", "x", "y"])    -> "fyx"

    Raises:
        TemplateError: if a digit is not a valid index into ``args``
    """
    parts = []
    for c in template:
        if '0' <= c <= '9':
            index = int(c)
            if index >= len(args):
                raise TemplateError(
                    f"Template {template!r} refers to argument {index} "
                    f"but only {len(args)} were collected"
                )
            parts.append(args[index])
        else:
            parts.append(c)
    return ''.join(parts)


# ============================================================
# Term strategies
# ============================================================

def reduce_compound(term: Term, registry: CombinatorRegistry,
                    max_steps: Optional[int] = None) -> str:
    """
    Reduce the inside of a bracketed term to its local fixed point.

    The result is returned without the enclosing parentheses, so the
    caller re-reads it as a flat sequence of juxtaposed terms.

    Args:
        term: A compound term, parentheses included
        registry: Registry shared with the parent engine
        max_steps: Bound on the child's steps (None = unbounded)

    Raises:
        StepLimitExceeded: if ``max_steps`` is reached first
    """
    child = ReductionEngine(term.interior, registry=registry, max_nested_steps=max_steps)
    steps = 0
    while child.can_step():
        if max_steps is not None and steps >= max_steps:
            raise StepLimitExceeded(term.interior, max_steps)
        child.step()
        steps += 1
    return child.current_value()


def reduce_irreducible(term: Term) -> str:
    """Variables and unrecognised characters never rewrite."""
    return ""


# ============================================================
# Trace
# ============================================================

class RewriteStep:
    """The outcome of one call to ReductionEngine.step()."""

    def __init__(self, kind: str, term: Optional[Term], before: str, after: str,
                 progressed: bool, combinator: Optional[CombinatorDefinition] = None):
        self.kind = kind
        self.term = term
        self.before = before
        self.after = after
        self.progressed = progressed
        self.combinator = combinator

    @property
    def label(self) -> str:
        """Combinator name for rule steps, the step kind otherwise."""
        if self.combinator is not None:
            return self.combinator.name
        if self.kind == COMPOUND:
            return "(...)"
        return self.kind

    def __repr__(self) -> str:
        return f"{self.label}: {self.before} → {self.after}"

    def to_dict(self) -> Dict:
        return {
            "kind": self.kind,
            "term": self.term.text if self.term is not None else None,
            "combinator": self.combinator.name if self.combinator is not None else None,
            "before": self.before,
            "after": self.after,
            "progressed": self.progressed,
        }


class ReductionTrace:
    """
    The productive steps of a run.

    Formats:
        - format("verbose"): numbered steps between Initial and Final
        - format("compact"): one line, ``Sabc --[S]--> ac(bc)``
        - format("rules"):   labels joined by " -> "
        - format("chain"):   every intermediate buffer on its own line
    """

    def __init__(self, initial: str = ""):
        self.steps: List[RewriteStep] = []
        self.initial = initial
        self.final = initial
        self.reached_normal_form = False

    def add_step(self, step: RewriteStep):
        self.steps.append(step)
        self.final = step.after

    def format(self, style: str = "verbose") -> str:
        if style == "compact":
            return f"{self.initial} --[{', '.join(self.rules_applied())}]--> {self.final}"

        elif style == "rules":
            labels = self.rules_applied()
            return " -> ".join(labels) if labels else "(no rules applied)"

        elif style == "chain":
            parts = [self.initial]
            for step in self.steps:
                parts.append(f"  --({step.label})-->")
                parts.append(step.after)
            return "\n".join(parts)

        elif style == "verbose":
            return repr(self)

        raise ValueError(f"Unknown trace style: {style}. "
                         f"Valid options: verbose, compact, rules, chain")

    def __repr__(self) -> str:
        lines = [f"Initial: {self.initial}"]
        for i, step in enumerate(self.steps, 1):
            lines.append(f"  {i}. {step}")
        lines.append(f"Final: {self.final}")
        return "\n".join(lines)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    def __bool__(self) -> bool:
        """True if any rewriting was done."""
        return len(self.steps) > 0

    def rules_applied(self) -> List[str]:
        return [step.label for step in self.steps]

    def rule_counts(self) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for label in self.rules_applied():
            counts[label] = counts.get(label, 0) + 1
        return counts

    def summary(self) -> str:
        if not self.steps:
            return "No rewriting performed"
        counts = self.rule_counts()
        most_used = max(counts.items(), key=lambda x: x[1])
        status = "normal form" if self.reached_normal_form else "step limit reached"
        return (f"{len(self.steps)} steps ({status}). "
                f"Most used: {most_used[0]} ({most_used[1]}x)")

    def to_dict(self) -> Dict:
        return {
            "initial": self.initial,
            "final": self.final,
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
            "normal_form": self.reached_normal_form,
        }


# ============================================================
# Engine
# ============================================================

def _is_single_record(definitions) -> bool:
    if isinstance(definitions, CombinatorDefinition):
        return True
    if isinstance(definitions, (list, tuple)) and definitions:
        return all(isinstance(field, (str, int)) for field in definitions)
    return False


class ReductionEngine:
    """
    Steps a combinatory-logic expression one rewrite at a time.

    Example:
        engine = ReductionEngine("Sabc")
        engine.step()
        engine.current_value()   # => "ac(bc)"
        engine.step()
        engine.can_step()        # => False, "a" is a variable

    Args:
        expression: Initial buffer
        definitions: Extra definitions appended after the built-ins, either
            one raw record such as ("<zero>", "(KI)") or a batch of them
        registry: An existing registry to share. When given, it is used as
            is and ``definitions`` must be omitted.
        max_nested_steps: Bound on the steps each bracketed sub-expression
            may take (None = unbounded)
    """

    def __init__(self, expression: str = "",
                 definitions: Optional[DefinitionsType] = None,
                 registry: Optional[CombinatorRegistry] = None,
                 max_nested_steps: Optional[int] = None):
        if registry is None:
            registry = CombinatorRegistry.default()
            if definitions is not None:
                if _is_single_record(definitions):
                    registry.append(definitions)
                else:
                    registry.extend(definitions)
        elif definitions is not None:
            raise ValueError("Pass either definitions or a registry, not both")

        self._registry = registry
        self._buffer = expression
        self._progress = True
        self._max_nested_steps = max_nested_steps

    @property
    def registry(self) -> CombinatorRegistry:
        return self._registry

    def can_step(self) -> bool:
        """False once a step has found nothing to rewrite."""
        return self._progress

    def current_value(self) -> str:
        return self._buffer

    def is_well_formed(self) -> bool:
        """Bracket-balance check of the current buffer."""
        return is_balanced(self._buffer)

    def term_count(self) -> int:
        """Number of terms in the current buffer."""
        return count_terms(self._buffer, self._registry)

    def append(self, text: str) -> 'ReductionEngine':
        """Append input to the buffer; a stuck head may now find its arguments."""
        self._buffer += text
        self._progress = True
        return self

    def step(self) -> RewriteStep:
        """
        Perform one rewrite at the head of the buffer.

        The new buffer is computed first and committed at the end, so an
        exception leaves the engine unchanged.

        Raises:
            NestingTooDeep: if bracketed heads recurse past the stack limit
        """
        before = self._buffer
        try:
            outcome = self._rewrite(before)
        except RecursionError:
            raise NestingTooDeep() from None
        self._buffer = outcome.after
        self._progress = outcome.progressed
        logger.debug("%s", outcome)
        return outcome

    def _rewrite(self, buffer: str) -> RewriteStep:
        term, rest = take_term(buffer, self._registry)
        if term is None:
            return RewriteStep(EMPTY, None, buffer, buffer, progressed=False)

        definition = self._registry.lookup(term.text)
        if definition is not None:
            return self._apply(definition, term, buffer, rest)

        if term.is_compound:
            kind = COMPOUND
            result = reduce_compound(term, self._registry, self._max_nested_steps)
        else:
            kind = IRREDUCIBLE
            result = reduce_irreducible(term)

        if result:
            return RewriteStep(kind, term, buffer, result + rest, progressed=True)
        # Nothing to rewrite: the head goes back where it was.
        return RewriteStep(kind, term, buffer, term.text + result + rest, progressed=False)

    def _apply(self, definition: CombinatorDefinition, term: Term,
               buffer: str, rest: str) -> RewriteStep:
        if definition.is_constant:
            return RewriteStep(RULE, term, buffer, definition.template + rest,
                               progressed=True, combinator=definition)

        args, rest = self._collect_arguments(definition.arity, rest)
        if len(args) < definition.arity:
            restored = term.text + ''.join(args) + rest
            logger.debug("%s stuck with %d of %d arguments", definition.name,
                         len(args), definition.arity)
            return RewriteStep(STUCK, term, buffer, restored,
                               progressed=False, combinator=definition)

        result = substitute(definition.template, args)
        return RewriteStep(RULE, term, buffer, result + rest,
                           progressed=True, combinator=definition)

    def _collect_arguments(self, arity: int, buffer: str) -> Tuple[List[str], str]:
        args: List[str] = []
        while len(args) < arity:
            term, buffer = take_term(buffer, self._registry)
            if term is None:
                break
            args.append(term.text)
        return args, buffer

    def run(self, max_steps: int = 1000, trace: bool = False):
        """
        Step until no progress is made or ``max_steps`` steps were taken.

        Args:
            max_steps: Maximum number of steps (default: 1000)
            trace: If True, return (value, trace) tuple

        Returns:
            The final buffer, or (buffer, ReductionTrace) if trace=True
        """
        trace_obj = ReductionTrace(self._buffer)
        for _ in range(max_steps):
            if not self._progress:
                break
            outcome = self.step()
            if outcome.progressed:
                trace_obj.add_step(outcome)
        trace_obj.final = self._buffer
        trace_obj.reached_normal_form = not self._progress

        if trace:
            return self._buffer, trace_obj
        return self._buffer

    def __repr__(self) -> str:
        return f"ReductionEngine({self._buffer!r}, can_step={self._progress})"
