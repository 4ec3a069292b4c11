"""
Term extraction for combinatory-logic buffers.

A buffer is a flat string of juxtaposed terms such as ``S(Ka)bc``. The head
of the buffer is always exactly one of:

    (...)        compound   - up to the matching ")" at depth 0
    x, x1, y_2   variable   - [a-z][_0-9]*
    S, <zero>    macro      - a registered combinator name
    anything     opaque     - the first character alone

Terms are plain views; nothing here mutates a caller's buffer.
"""

import re
from enum import Enum
from typing import List, Optional, Tuple


VARIABLE_PATTERN = re.compile(r'^[a-z][_0-9]*')


class TermKind(Enum):
    """The four kinds of term a buffer head can be."""

    COMPOUND = "compound"
    VARIABLE = "variable"
    MACRO = "macro"
    OPAQUE = "opaque"


class Term:
    """A single term cut from the front of a buffer."""

    __slots__ = ('text', 'kind')

    def __init__(self, text: str, kind: TermKind):
        self.text = text
        self.kind = kind

    @property
    def is_compound(self) -> bool:
        return self.kind is TermKind.COMPOUND

    @property
    def is_variable(self) -> bool:
        return self.kind is TermKind.VARIABLE

    @property
    def interior(self) -> str:
        """
        Text inside the outermost bracket pair of a compound term.

        A compound cut from a malformed buffer may lack its closing ")",
        in which case only the opening one is dropped.
        """
        if not self.is_compound:
            raise ValueError(f"Not a compound term: {self.text!r}")
        if self.text.endswith(')') and paren_depth(self.text) == 0:
            return self.text[1:-1]
        return self.text[1:]

    def __len__(self) -> int:
        return len(self.text)

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"Term({self.text!r}, {self.kind.value})"

    def __eq__(self, other):
        if isinstance(other, Term):
            return self.text == other.text and self.kind is other.kind
        return False

    def __hash__(self):
        return hash((self.text, self.kind))


# ============================================================
# Extraction
# ============================================================

def _compound_length(buffer: str) -> int:
    # Runs to the end of the buffer when the brackets never close.
    depth = 0
    for i, c in enumerate(buffer):
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
        if depth == 0:
            return i + 1
    return len(buffer)


def extract_term(buffer: str, registry=None) -> Term:
    """
    Return the term at the head of ``buffer`` without consuming it.

    Priority order: compound, variable, registered combinator name,
    single opaque character.

    Args:
        buffer: Non-empty expression text
        registry: CombinatorRegistry used to recognise macro names.
            None means no names are registered.

    Raises:
        ValueError: if the buffer is empty
    """
    if not buffer:
        raise ValueError("Cannot extract a term from an empty buffer")

    top = buffer[0]
    if top == '(':
        return Term(buffer[:_compound_length(buffer)], TermKind.COMPOUND)

    match_obj = VARIABLE_PATTERN.match(buffer)
    if match_obj:
        return Term(match_obj.group(), TermKind.VARIABLE)

    if registry is not None:
        definition = registry.find_prefix(buffer)
        if definition is not None:
            return Term(definition.name, TermKind.MACRO)

    return Term(top, TermKind.OPAQUE)


def take_term(buffer: str, registry=None) -> Tuple[Optional[Term], str]:
    """
    Cut the head term off ``buffer``.

    Returns:
        (term, remaining). An empty buffer gives (None, "").
    """
    if not buffer:
        return None, ""
    term = extract_term(buffer, registry)
    return term, buffer[len(term.text):]


def split_terms(buffer: str, registry=None) -> List[Term]:
    """Decompose a whole buffer into its sequence of terms."""
    terms = []
    rest = buffer
    while rest:
        term, rest = take_term(rest, registry)
        terms.append(term)
    return terms


def count_terms(buffer: str, registry=None) -> int:
    """Number of terms ``buffer`` yields under repeated take_term."""
    return len(split_terms(buffer, registry))


# ============================================================
# Bracket balance
# ============================================================

def paren_depth(text: str) -> int:
    """
    Net bracket depth of ``text``.

    Positive when "(" remain open at the end. Returns the (negative)
    depth at the first ")" that has no partner.
    """
    depth = 0
    for c in text:
        if c == '(':
            depth += 1
        elif c == ')':
            depth -= 1
            if depth < 0:
                return depth
    return depth


def is_balanced(text: str) -> bool:
    """True if every "(" in ``text`` is closed and no ")" comes first."""
    return paren_depth(text) == 0
