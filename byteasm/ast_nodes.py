"""
AST Node definitions for the byteasm interpreter.

Defines the instruction tree produced by the parser and walked by the
evaluator. Every node is a frozen dataclass: once parsed, a program never
changes, and evaluation only mutates the Memory passed in.

    Reference  := DirectRef(addr)   -> memory[addr]
                | IndirectRef(addr) -> memory[memory[addr]]
    Terminal   := Reference | Immediate(value)
    Operator   := (Opcode, dest Reference, source Terminal)
    Statement  := Line(Operator) | Block(Statement, ...)

Each node renders back to canonical source with str().
"""

from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterator, Optional, Tuple, Union

from .memory import Memory

log = logging.getLogger(__name__)


# ──────────────────────────────────────────────
# Evaluation errors
# ──────────────────────────────────────────────

class EvaluationError(Exception):
    """Raised when an instruction cannot be evaluated."""
    def __init__(self, message: str, operator: Optional[Operator] = None):
        self.operator = operator
        super().__init__(f"{message} in '{operator}'" if operator else message)


class DivisionByZeroFault(EvaluationError):
    """DIV whose source evaluated to zero. The destination is left untouched."""


class UnsupportedOperatorError(EvaluationError):
    """A reserved opcode reached the evaluator. The parser never emits these."""


def _check_byte(value: int, what: str) -> None:
    if not isinstance(value, int) or not 0 <= value <= 0xFF:
        raise ValueError(f"{what} must be a byte (0-255), got {value!r}")


# ──────────────────────────────────────────────
# References
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class DirectRef:
    """#XX: the cell at address XX."""
    address: int

    def __post_init__(self):
        _check_byte(self.address, "Address")

    def target(self, memory: Memory) -> int:
        return self.address

    def eval(self, memory: Memory) -> int:
        return memory[self.address]

    def write(self, memory: Memory, value: int) -> None:
        memory[self.address] = value

    def __str__(self) -> str:
        return f"#{self.address:02X}"


@dataclass(frozen=True)
class IndirectRef:
    """@XX: the cell whose address is stored at XX.

    The pointer cell is read on every eval()/write(), never cached, so a
    write that changes memory[XX] redirects later accesses.
    """
    address: int

    def __post_init__(self):
        _check_byte(self.address, "Address")

    def target(self, memory: Memory) -> int:
        return memory[self.address]

    def eval(self, memory: Memory) -> int:
        return memory[memory[self.address]]

    def write(self, memory: Memory, value: int) -> None:
        memory[memory[self.address]] = value

    def __str__(self) -> str:
        return f"@{self.address:02X}"


Reference = Union[DirectRef, IndirectRef]


# ──────────────────────────────────────────────
# Terminals
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Immediate:
    """Literal byte embedded in the instruction."""
    value: int

    def __post_init__(self):
        _check_byte(self.value, "Immediate")

    def eval(self, memory: Memory) -> int:
        return self.value

    def __str__(self) -> str:
        return str(self.value)


Terminal = Union[DirectRef, IndirectRef, Immediate]


# ──────────────────────────────────────────────
# Operators
# ──────────────────────────────────────────────

class Opcode(enum.Enum):
    ADD = "ADD"
    SUB = "SUB"
    MUL = "MUL"
    DIV = "DIV"
    MOV = "MOV"

    # Reserved: declared, no evaluation rule yet
    OR = "OR"
    AND = "AND"
    XOR = "XOR"
    NOT = "NOT"
    NIL = "NIL"     # clear cell to 0
    IN = "IN"       # copy top of input to cell
    OUT = "OUT"     # copy cell to bottom of output

    @property
    def implemented(self) -> bool:
        return self in IMPLEMENTED_OPCODES


# Parser alternative order
IMPLEMENTED_OPCODES: Tuple[Opcode, ...] = (
    Opcode.ADD, Opcode.SUB, Opcode.MUL, Opcode.DIV, Opcode.MOV,
)

# (dest, source) -> result, before the final byte write
_ARITHMETIC: Dict[Opcode, Callable[[int, int], int]] = {
    Opcode.ADD: lambda d, s: (d + s) & 0xFF,
    Opcode.SUB: lambda d, s: (d - s) & 0xFF,
    Opcode.MUL: lambda d, s: (d * s) & 0xFF,
    Opcode.DIV: lambda d, s: d // s,
    Opcode.MOV: lambda d, s: s,
}


@dataclass(frozen=True)
class Operator:
    """One instruction: opcode, destination reference, source terminal."""
    opcode: Opcode
    dest: Reference
    source: Optional[Terminal] = None

    def __post_init__(self):
        if self.opcode.implemented and self.source is None:
            raise ValueError(f"{self.opcode.value} requires a source operand")

    def eval(self, memory: Memory) -> None:
        """Read dest, read source, compute, write back to dest.

        The destination is resolved again for the write, so an indirect
        destination follows the pointer cell as it is at write time.
        """
        if not self.opcode.implemented:
            raise UnsupportedOperatorError(
                f"eval is not implemented for {self.opcode.value}", self)

        d = self.dest.eval(memory)
        s = self.source.eval(memory)
        if self.opcode is Opcode.DIV and s == 0:
            raise DivisionByZeroFault("Division by zero", self)

        result = _ARITHMETIC[self.opcode](d, s)
        target = self.dest.target(memory)
        self.dest.write(memory, result)
        log.debug("%s -> $%02X = $%02X", self, target, result)

    def __str__(self) -> str:
        if self.source is None:
            return f"{self.opcode.value} {self.dest}"
        return f"{self.opcode.value} {self.dest} {self.source}"


# ──────────────────────────────────────────────
# Statements
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class Line:
    """A single instruction."""
    operator: Operator

    def eval(self, memory: Memory) -> None:
        self.operator.eval(memory)

    def __iter__(self) -> Iterator[Operator]:
        yield self.operator

    def __str__(self) -> str:
        return str(self.operator)


@dataclass(frozen=True)
class Block:
    """Ordered group of statements, evaluated first to last.

    Iterating a block yields its operators in evaluation order, flattening
    nested blocks with an explicit stack. eval() and str() both walk that
    iterator, so deep nesting does not hit the recursion limit.
    """
    statements: Tuple[Statement, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "statements", tuple(self.statements))

    def eval(self, memory: Memory) -> None:
        log.debug("Block: %d statement(s)", len(self.statements))
        for op in self:
            op.eval(memory)

    def __iter__(self) -> Iterator[Operator]:
        stack = [iter(self.statements)]
        while stack:
            node = next(stack[-1], None)
            if node is None:
                stack.pop()
            elif isinstance(node, Block):
                stack.append(iter(node.statements))
            else:
                yield node.operator

    def __len__(self) -> int:
        return len(self.statements)

    def __str__(self) -> str:
        return "\n".join(str(op) for op in self)


Statement = Union[Line, Block]
