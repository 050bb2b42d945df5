"""
byteasm: a toy assembly interpreter over 256 bytes of memory
============================================================
Parses ADD / SUB / MUL / DIV / MOV instructions with direct (#XX),
indirect (@XX) and immediate operands, and runs them against a flat
256-byte memory.

Architecture:
    ┌──────────┐    ┌──────────┐    ┌───────────┐    ┌──────────┐
    │ Program  │───>│  Parser  │───>│ Statement │───>│  Memory  │
    │ (text)   │    │          │    │  (AST)    │    │ (mutated)│
    └──────────┘    └──────────┘    └───────────┘    └──────────┘

    - lexer.py:     whitespace, keywords, byte numerals
    - parser.py:    references, terminals, operators, lines, blocks
    - ast_nodes.py: frozen dataclass tree; each node evaluates itself
    - memory.py:    the 256-byte buffer everything reads and writes

Parsing always completes before evaluation starts, so a program that
fails to parse never touches memory.
"""

__version__ = "0.1.0"

from typing import Optional

from .memory import Memory, MEMORY_SIZE
from .ast_nodes import (
    Block, DirectRef, DivisionByZeroFault, EvaluationError, Immediate,
    IndirectRef, Line, Opcode, Operator, UnsupportedOperatorError,
)
from .lexer import ParseError
from .parser import Parser, block, operator, parse_program, reference, statement, terminal


def run_source(source: str, memory: Optional[Memory] = None) -> Memory:
    """Parse a whole program, then evaluate it.

    Args:
        source: Program text.
        memory: Memory to run against (default: a fresh zeroed one).

    Returns:
        The memory after evaluation (the same object when one was given).

    Raises:
        ParseError: before any cell is touched.
        EvaluationError: mid-run; earlier instructions stay applied.
    """
    program = parse_program(source)
    if memory is None:
        memory = Memory()
    program.eval(memory)
    return memory
