"""
Combinator definitions and the registry that dispatches on their names.

Definition file format (one definition per line):

    # Sabc = ac(bc)
    S, 3, 02(12)

    # <zero> = (KI), arity omitted means 0
    <zero>, 0, (KI)
    <0>, (KI)

Lines starting with "#" are comments and blank lines are skipped. Spaces,
full-width spaces and tabs are removed before a line is split on ",", so a
template can never contain whitespace. A two-field line is a constant
(arity 0). The template digits 0-9 refer to collected arguments in order.

Registries are ordered and append-only: the first definition whose name
prefixes the buffer wins, so the seeded S K I B C keep precedence over any
later definition that reuses one of their names.
"""

import logging
import re
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence, Tuple, Union

logger = logging.getLogger(__name__)

RecordType = Sequence[str]  # (name, template) or (name, arity, template)

INITIAL_COMBINATORS: Tuple[Tuple[str, str, str], ...] = (
    ("S", "3", "02(12)"),
    ("K", "2", "0"),
    ("I", "1", "0"),
    ("B", "3", "0(12)"),
    ("C", "3", "021"),
)

_WHITESPACE = re.compile(r'[ \u3000\t]')


class DefinitionError(ValueError):
    """A combinator definition record or line could not be parsed."""

    def __init__(self, message: str, line_number: Optional[int] = None):
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class CombinatorDefinition:
    """
    A named rewrite rule: collect ``arity`` terms, emit ``template``.

    Placeholders in the template are not checked against the arity here;
    a template that refers past the collected arguments fails when it is
    substituted.
    """

    __slots__ = ('name', 'arity', 'template')

    def __init__(self, name: str, arity: int, template: str):
        if not name:
            raise DefinitionError("combinator name must not be empty")
        if arity < 0:
            raise DefinitionError(f"arity of {name!r} must not be negative: {arity}")
        self.name = name
        self.arity = arity
        self.template = template

    @classmethod
    def from_record(cls, record: RecordType) -> 'CombinatorDefinition':
        """Build from a raw 2- or 3-field record of strings."""
        name, arity, template = normalize_record(record)
        try:
            arity_value = int(arity)
        except (TypeError, ValueError):
            raise DefinitionError(f"arity of {name!r} is not a number: {arity!r}") from None
        return cls(name, arity_value, template)

    @property
    def is_constant(self) -> bool:
        return self.arity == 0

    def placeholders(self) -> List[int]:
        """Argument indices referenced by the template, in template order."""
        return [int(c) for c in self.template if '0' <= c <= '9']

    @property
    def is_usable(self) -> bool:
        """True if every placeholder names an argument that will be collected."""
        if self.is_constant:
            return True
        return all(index < self.arity for index in self.placeholders())

    def to_record(self) -> Tuple[str, str, str]:
        return (self.name, str(self.arity), self.template)

    def to_line(self) -> str:
        """Format as a line of the definition file format."""
        return f"{self.name}, {self.arity}, {self.template}"

    def __repr__(self) -> str:
        return f"CombinatorDefinition({self.name!r}, {self.arity}, {self.template!r})"

    def __eq__(self, other):
        if isinstance(other, CombinatorDefinition):
            return self.to_record() == other.to_record()
        return False

    def __hash__(self):
        return hash(self.to_record())


# ============================================================
# Parsing
# ============================================================

def normalize_record(record: RecordType) -> Tuple[str, str, str]:
    """
    Normalize a raw record to (name, arity, template).

    Examples:
        ("<zero>", "(KI)")       -> ("<zero>", "0", "(KI)")
        ("S", "3", "02(12)")     -> ("S", "3", "02(12)")
    """
    if isinstance(record, str):
        raise DefinitionError(f"expected a sequence of fields, got a string: {record!r}")
    fields = tuple(record)
    if len(fields) == 2:
        return (fields[0], "0", fields[1])
    if len(fields) == 3:
        return (fields[0], str(fields[1]), fields[2])
    raise DefinitionError(f"expected 2 or 3 fields, got {len(fields)}: {fields!r}")


def strip_whitespace(line: str) -> str:
    """Remove spaces, full-width spaces and tabs."""
    return _WHITESPACE.sub('', line)


def parse_definition_line(line: str) -> Optional[Tuple[str, str, str]]:
    """
    Parse one line of a definition file.

    Returns:
        A normalized (name, arity, template) record, or None for blank
        and comment lines.

    Raises:
        DefinitionError: on a wrong field count
    """
    line = strip_whitespace(line.rstrip('\r\n'))
    if not line or line.startswith('#'):
        return None
    return normalize_record(line.split(','))


def load_definitions_from_text(text: str) -> List[CombinatorDefinition]:
    """
    Parse every definition in ``text``.

    Fails on the first malformed line; nothing is returned in that case.
    """
    definitions = []
    for line_number, line in enumerate(text.splitlines(), 1):
        try:
            record = parse_definition_line(line)
            if record is None:
                continue
            definitions.append(CombinatorDefinition.from_record(record))
        except DefinitionError as e:
            raise DefinitionError(str(e), line_number) from None
    return definitions


def load_definitions_from_file(path: Union[str, Path]) -> List[CombinatorDefinition]:
    """
    Read and parse a definition file (UTF-8).

    OSError from reading is left to the caller.
    """
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    definitions = load_definitions_from_text(text)
    logger.debug("Read %d definitions from %s", len(definitions), path)
    return definitions


def _as_definition(item: Union[CombinatorDefinition, RecordType]) -> CombinatorDefinition:
    if isinstance(item, CombinatorDefinition):
        return item
    return CombinatorDefinition.from_record(item)


# ============================================================
# Registry
# ============================================================

class CombinatorRegistry:
    """
    Ordered collection of combinator definitions.

    Example:
        registry = CombinatorRegistry.default()
        registry.append(("<zero>", "(KI)"))
        registry.load_file("numerals.combinators")

        registry.find_prefix("Sabc")   # => CombinatorDefinition('S', 3, '02(12)')
        "K" in registry                # => True

    ``CombinatorRegistry()`` is empty; ``default()`` is seeded with
    INITIAL_COMBINATORS. Only ``set`` discards existing definitions.
    """

    def __init__(self, definitions: Optional[Iterable[Union[CombinatorDefinition, RecordType]]] = None):
        self._definitions: List[CombinatorDefinition] = []
        if definitions is not None:
            self.extend(definitions)

    @classmethod
    def default(cls) -> 'CombinatorRegistry':
        """Registry holding only the built-in S K I B C."""
        return cls(INITIAL_COMBINATORS)

    @classmethod
    def from_records(cls, records: Iterable[RecordType], builtins: bool = True) -> 'CombinatorRegistry':
        """Built-ins (unless ``builtins`` is False) followed by ``records``."""
        registry = cls.default() if builtins else cls()
        return registry.extend(records)

    @classmethod
    def from_text(cls, text: str, builtins: bool = True) -> 'CombinatorRegistry':
        registry = cls.default() if builtins else cls()
        return registry.load_text(text)

    @classmethod
    def from_file(cls, path: Union[str, Path], builtins: bool = True) -> 'CombinatorRegistry':
        """Create a registry from a definition file; raises if it cannot be read."""
        registry = cls.default() if builtins else cls()
        return registry.load_file(path)

    def append(self, record: Union[CombinatorDefinition, RecordType]) -> 'CombinatorRegistry':
        """Append one definition given as a raw 2- or 3-field record."""
        definition = _as_definition(record)
        if not definition.is_usable:
            logger.debug("Definition %r refers to arguments it never collects", definition)
        self._definitions.append(definition)
        return self

    def extend(self, records: Iterable[Union[CombinatorDefinition, RecordType]]) -> 'CombinatorRegistry':
        """
        Append a batch of definitions.

        The whole batch is parsed before anything is appended, so a bad
        record leaves the registry as it was.
        """
        definitions = [_as_definition(record) for record in records]
        for definition in definitions:
            self.append(definition)
        return self

    def load_text(self, text: str) -> 'CombinatorRegistry':
        """Append definitions parsed from definition-file text."""
        return self.extend(load_definitions_from_text(text))

    def load_file(self, path: Union[str, Path]) -> 'CombinatorRegistry':
        """Append definitions read from a definition file."""
        definitions = load_definitions_from_file(path)
        self.extend(definitions)
        logger.info("Loaded %d combinators from %s", len(definitions), path)
        return self

    def set(self, records: Iterable[Union[CombinatorDefinition, RecordType]]) -> 'CombinatorRegistry':
        """Replace every definition, built-ins included."""
        definitions = [_as_definition(record) for record in records]
        self._definitions = definitions
        return self

    def find_prefix(self, buffer: str) -> Optional[CombinatorDefinition]:
        """First registered definition whose name is a prefix of ``buffer``."""
        for definition in self._definitions:
            if buffer.startswith(definition.name):
                return definition
        return None

    def lookup(self, name: str) -> Optional[CombinatorDefinition]:
        """First registered definition called exactly ``name``."""
        for definition in self._definitions:
            if definition.name == name:
                return definition
        return None

    def names(self) -> List[str]:
        return [d.name for d in self._definitions]

    def to_records(self) -> List[Tuple[str, str, str]]:
        return [d.to_record() for d in self._definitions]

    def to_text(self, title: Optional[str] = None) -> str:
        """Export in the definition file format."""
        lines = []
        if title:
            lines.append(f"# {title}")
        lines.extend(d.to_line() for d in self._definitions)
        return "\n".join(lines)

    def copy(self) -> 'CombinatorRegistry':
        new_registry = CombinatorRegistry()
        new_registry._definitions = self._definitions.copy()
        return new_registry

    def __len__(self) -> int:
        return len(self._definitions)

    def __iter__(self) -> Iterator[CombinatorDefinition]:
        return iter(self._definitions)

    def __contains__(self, name: str) -> bool:
        """Check if a combinator is registered: 'S' in registry."""
        return self.lookup(name) is not None

    def __getitem__(self, name: str) -> CombinatorDefinition:
        definition = self.lookup(name)
        if definition is None:
            raise KeyError(f"No combinator named '{name}'")
        return definition

    def __repr__(self) -> str:
        return f"CombinatorRegistry({len(self._definitions)} combinators)"
