"""
Recursive-descent parser for the byteasm interpreter.

Parses program text into the AST defined in ast_nodes. Grammar
(mnemonics are case-insensitive, whitespace includes newlines):

    numeral    := "0x" hex_digits | dec_digits       value 0-255
    reference  := "#" hex_digits | "@" hex_digits     direct / indirect
    terminal   := numeral | reference
    operator   := ws* mnemonic ws+ reference ws+ terminal ws*
    mnemonic   := ADD | SUB | MUL | DIV | MOV
    statement  := operator                            -> Line
    block      := statement+                          -> Block

Mnemonic alternatives are tried in the order ADD, SUB, MUL, DIV, MOV,
restarting from the beginning of the instruction each time. A block stops
at the first instruction that does not parse and hands back the rest of
the input; parse_program() additionally insists that nothing is left.

The module-level entry points return (remainder, value) like the
primitive parsers they are built from, or raise ParseError.
"""

from __future__ import annotations
import logging
from typing import Callable, List, Optional, Tuple, TypeVar

from .ast_nodes import (
    Block, DirectRef, Immediate, IndirectRef, IMPLEMENTED_OPCODES,
    Line, Opcode, Operator, Reference, Statement, Terminal,
)
from .lexer import (
    DEC_DIGITS, ParseError, hex_byte, keyword, numeral, whitespace0, whitespace1,
)

__all__ = [
    'Parser', 'ParseError', 'reference', 'terminal', 'operator',
    'statement', 'block', 'parse_program',
]

log = logging.getLogger(__name__)

T = TypeVar("T")

REFERENCE_PREFIXES = {"#": DirectRef, "@": IndirectRef}


class Parser:
    """Recursive descent parser over a single program text."""

    def __init__(self, text: str):
        self.text = text
        self.pos = 0
        self.stopped_at: Optional[ParseError] = None

    # ── Helpers ─────────────────────────────

    def _attempt(self, rule: Callable[[], T]) -> T:
        """Run rule, rewinding to the starting position if it fails."""
        start = self.pos
        try:
            return rule()
        except ParseError:
            self.pos = start
            raise

    @property
    def at_end(self) -> bool:
        return self.pos >= len(self.text)

    # ── Terms ─────────────────────────────────

    def parse_reference(self) -> Reference:
        """#XX or @XX."""
        ref_type = REFERENCE_PREFIXES.get(self.text[self.pos:self.pos + 1])
        if ref_type is None:
            raise ParseError("Expected reference ('#' or '@')", self.text, self.pos)
        address, self.pos = hex_byte(self.text, self.pos + 1)
        return ref_type(address)

    def parse_terminal(self) -> Terminal:
        """Immediate numeral or reference."""
        head = self.text[self.pos:self.pos + 1]
        if head in REFERENCE_PREFIXES:
            return self.parse_reference()
        if head and head in DEC_DIGITS:
            value, self.pos = numeral(self.text, self.pos)
            return Immediate(value)
        raise ParseError("Expected immediate or reference", self.text, self.pos)

    # ── Operators ─────────────────────────────

    def _parse_opcode(self, opcode: Opcode) -> Operator:
        text = self.text
        pos = whitespace0(text, self.pos)
        pos = keyword(text, pos, opcode.value)
        self.pos = whitespace1(text, pos)
        dest = self.parse_reference()
        self.pos = whitespace1(text, self.pos)
        source = self.parse_terminal()
        self.pos = whitespace0(text, self.pos)
        return Operator(opcode, dest, source)

    def parse_operator(self) -> Operator:
        """One instruction, trying each mnemonic in turn.

        When every alternative fails, the error that got furthest into the
        input wins; failing on the mnemonic itself reports the mnemonic.
        """
        start = self.pos
        mnemonic_pos = whitespace0(self.text, start)
        furthest: Optional[ParseError] = None

        for opcode in IMPLEMENTED_OPCODES:
            try:
                return self._attempt(lambda: self._parse_opcode(opcode))
            except ParseError as e:
                if furthest is None or e.pos > furthest.pos:
                    furthest = e

        if furthest.pos <= mnemonic_pos:
            names = ", ".join(op.value for op in IMPLEMENTED_OPCODES)
            raise ParseError(f"Expected mnemonic ({names})", self.text, mnemonic_pos)
        raise furthest

    # ── Statements ────────────────────────────

    def parse_statement(self) -> Line:
        return Line(self.parse_operator())

    def parse_block(self) -> Block:
        """One or more statements; stops before the first that fails."""
        statements: List[Statement] = [self.parse_statement()]
        self.stopped_at = None
        while not self.at_end:
            try:
                statements.append(self._attempt(self.parse_statement))
            except ParseError as e:
                self.stopped_at = e
                break
        return Block(statements)

    def parse_program(self) -> Block:
        """A block that must consume the whole text."""
        program = self.parse_block()
        if not self.at_end:
            raise self.stopped_at or ParseError(
                "Unexpected trailing input", self.text, self.pos)
        log.debug("Parsed %d instruction(s)", len(program))
        return program


# ──────────────────────────────────────────────
# Entry points
# ──────────────────────────────────────────────

def _run(rule: Callable[[Parser], T], text: str) -> Tuple[str, T]:
    p = Parser(text)
    value = rule(p)
    return text[p.pos:], value


def reference(text: str) -> Tuple[str, Reference]:
    return _run(Parser.parse_reference, text)


def terminal(text: str) -> Tuple[str, Terminal]:
    return _run(Parser.parse_terminal, text)


def operator(text: str) -> Tuple[str, Operator]:
    return _run(Parser.parse_operator, text)


def statement(text: str) -> Tuple[str, Line]:
    """Parse one instruction into a Line."""
    return _run(Parser.parse_statement, text)


def block(text: str) -> Tuple[str, Block]:
    """Parse one or more instructions into a Block."""
    return _run(Parser.parse_block, text)


def parse_program(text: str) -> Block:
    """Parse a whole program; any unparsed input is an error."""
    return Parser(text).parse_program()
