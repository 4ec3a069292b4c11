#!/usr/bin/env python3
"""
CLSTEP Command-Line Interface

Steps combinatory-logic expressions and prints every intermediate buffer.

Usage:
    clstep                              # Start REPL
    clstep -e "Sabc"                    # Step an expression
    clstep -d numerals.combinators      # REPL with definitions appended
    clstep -d defs.txt -e "<succ><0>fx" # One-shot with definitions
    echo "SKKx" | clstep -q             # Filter mode, final buffers only

REPL Commands:
    :help              Show help
    :load FILE         Append definitions from a file
    :defs              List registered combinators
    :define RECORD     Append one definition, e.g. :define <0>, (KI)
    :reset             Back to the built-in combinators
    :trace on|off      Toggle printing of every step
    :max N             Set the step limit
    :quit              Exit
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

from . import __version__
from .engine import NestingTooDeep, ReductionEngine, StepLimitExceeded
from .registry import CombinatorRegistry, DefinitionError, parse_definition_line
from .terms import paren_depth

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1000


class ClstepCompleter:
    """Tab completer for the REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":load", ":defs", ":define", ":reset",
        ":trace", ":max",
    ]

    TRACE_OPTIONS = ["on", "off"]

    def __init__(self, repl: 'ClstepREPL'):
        self.repl = repl
        self.matches = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        line = line.lstrip()

        if line.startswith(":trace "):
            return [t for t in self.TRACE_OPTIONS if t.startswith(text)]

        if line.startswith(":load "):
            return self._complete_path(text)

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # In expression context, complete combinator names
        return [name for name in self.repl.registry.names()
                if len(name) > 1 and name.startswith(text) and text]

    def _complete_path(self, text: str) -> list:
        import glob

        pattern = (text or "./") + "*"
        matches = []
        for path in glob.glob(pattern):
            if Path(path).is_dir():
                matches.append(path + "/")
            else:
                matches.append(path)
        return matches


class ClstepREPL:
    """Interactive REPL for clstep."""

    def __init__(self, registry: Optional[CombinatorRegistry] = None):
        self.registry = registry if registry is not None else CombinatorRegistry.default()
        self.trace = True
        self.max_steps = DEFAULT_MAX_STEPS
        self.running = True
        self.multi_line_buffer = ""

        if HAS_READLINE:
            self.history_file = Path.home() / ".clstep_history"
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = ClstepCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.debug("Could not save history: %s", e)

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1] if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "load":
            if not arg:
                return "Usage: :load FILENAME"
            before = len(self.registry)
            try:
                self.registry.load_file(Path(arg))
            except (OSError, DefinitionError) as e:
                return f"Error loading {arg}: {e}"
            return f"Loaded {len(self.registry) - before} combinators from {arg}"

        elif cmd == "defs":
            if not len(self.registry):
                return "No combinators defined"
            return self.registry.to_text()

        elif cmd == "define":
            try:
                record = parse_definition_line(arg)
                if record is None:
                    return "Usage: :define NAME, [ARITY,] TEMPLATE"
                self.registry.append(record)
            except DefinitionError as e:
                return f"Error: {e}"
            return f"Defined {record[0]}"

        elif cmd == "reset":
            self.registry = CombinatorRegistry.default()
            return "Reset to built-in combinators"

        elif cmd == "trace":
            if arg.lower() == "on":
                self.trace = True
            elif arg.lower() == "off":
                self.trace = False
            else:
                self.trace = not self.trace
            return f"Tracing {'enabled' if self.trace else 'disabled'}"

        elif cmd == "max":
            try:
                value = int(arg)
            except ValueError:
                return f"Usage: :max N (currently {self.max_steps})"
            if value <= 0:
                return "Error: step limit must be positive"
            self.max_steps = value
            return f"Step limit set to {value}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        return """CLSTEP REPL Commands:
  :help              Show this help
  :load FILE         Append definitions from a file
  :defs              List registered combinators
  :define RECORD     Append a definition (NAME, [ARITY,] TEMPLATE)
  :reset             Back to the built-in combinators
  :trace on|off      Toggle printing of every step
  :max N             Set the step limit
  :quit              Exit

Syntax:
  Sabc               Step an expression until it stops
  (Ia)b              Bracketed heads are reduced and flattened
  x, y1, z_2         Variables never rewrite
"""

    def reduce(self, expression: str) -> str:
        """
        Step ``expression`` to a normal form or the step limit and format the result.

        Raises:
            ValueError: on unbalanced parentheses or a bad template
            StepLimitExceeded: if a bracketed head does not settle
            NestingTooDeep: if brackets nest past the stack limit
        """
        engine = ReductionEngine(expression, registry=self.registry,
                                 max_nested_steps=self.max_steps)
        if not engine.is_well_formed():
            raise ValueError(f"unbalanced parentheses in {expression!r}")

        value, trace = engine.run(max_steps=self.max_steps, trace=True)
        if self.trace:
            output = trace.format("chain")
        else:
            output = value
        if not trace.reached_normal_form:
            output += f"\n(stopped after {len(trace)} steps)"
        return output

    def evaluate(self, line: str) -> Tuple[bool, Optional[str]]:
        """
        Process a single line of input.

        Returns:
            (ok, text) where ok is False if an expression could not be
            reduced and text is the message to print, or None.
        """
        line = line.strip()

        if not line or line.startswith("#"):
            return True, None

        if line.startswith(":"):
            return True, self.handle_command(line)

        # Whitespace has no meaning in an expression
        expression = "".join(line.split())
        try:
            return True, self.reduce(expression)
        except (ValueError, StepLimitExceeded, NestingTooDeep) as e:
            return False, f"Error: {e}"

    def process_line(self, line: str) -> Optional[str]:
        """Process a single line of input and return the text to print, or None."""
        return self.evaluate(line)[1]

    def run(self):
        """Run the REPL loop."""
        print(f"CLSTEP {__version__} - combinatory logic, one step at a time")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                prompt = "...... " if self.multi_line_buffer else "clstep> "
                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += line
                else:
                    self.multi_line_buffer = line

                depth = paren_depth(self.multi_line_buffer)
                if depth > 0 and not self.multi_line_buffer.lstrip().startswith(":"):
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class ExpressionRunner:
    """Runs expressions given on the command line or stdin."""

    def __init__(self, registry: Optional[CombinatorRegistry] = None):
        self.repl = ClstepREPL(registry)

    def run_expression(self, expr_str: str) -> int:
        """
        Reduce a single expression.

        Returns:
            Exit code (0 for success)
        """
        ok, result = self.repl.evaluate(expr_str)
        if not ok:
            print(result, file=sys.stderr)
            return 1
        if result:
            print(result)
        return 0

    def run_stdin(self) -> int:
        """Reduce every expression read from stdin, one per line."""
        for line in sys.stdin:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            code = self.run_expression(line)
            if code:
                return code

        return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="clstep",
        description="CLSTEP - step-by-step combinatory logic reduction",
        epilog="Examples:\n"
               "  clstep                          Start REPL\n"
               "  clstep -e 'Sabc'                Step an expression\n"
               "  clstep -d defs.txt -e '<0>ab'   Use extra definitions\n"
               "  echo 'SKKx' | clstep -q         Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "-e", "--expr",
        help="Reduce a single expression"
    )

    parser.add_argument(
        "-d", "--definitions",
        action="append",
        default=[],
        help="Append combinator definitions from a file (can be specified multiple times)"
    )

    parser.add_argument(
        "--no-builtins",
        action="store_true",
        help="Start without the built-in S K I B C combinators"
    )

    parser.add_argument(
        "-m", "--max-steps",
        type=int,
        default=DEFAULT_MAX_STEPS,
        help=f"Step limit per expression (default: {DEFAULT_MAX_STEPS})"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Print only the final buffer"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log every step to stderr"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    if args.max_steps <= 0:
        parser.error("--max-steps must be positive")

    registry = CombinatorRegistry() if args.no_builtins else CombinatorRegistry.default()
    for definitions_file in args.definitions:
        try:
            registry.load_file(Path(definitions_file))
        except (OSError, DefinitionError) as e:
            print(f"Error loading {definitions_file}: {e}", file=sys.stderr)
            sys.exit(1)

    runner = ExpressionRunner(registry)
    runner.repl.trace = not args.quiet
    runner.repl.max_steps = args.max_steps

    if args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        sys.exit(runner.run_stdin())

    else:
        runner.repl.run()


if __name__ == "__main__":
    main()
