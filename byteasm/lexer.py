"""
Lexical parsers for the byteasm interpreter.

Primitive scanners the term, operator and statement parsers are built
from: whitespace skipping, case-insensitive keywords and byte numerals.

Every scanner has the same shape:

    scanner(text, pos) -> (value, new_pos)

and raises ParseError at the offending position on failure. Scanners never
mutate anything, so a caller backtracks simply by retrying from the
position it started at.

Numerals:
    0x1F   hexadecimal (lower-case prefix, any digit case)
    31     decimal
Digit runs are consumed greedily and the value must fit in a byte, so
"0x100" and "350" are errors rather than a short match.
"""

from __future__ import annotations
from typing import Tuple

WHITESPACE = " \t\r\n"
HEX_DIGITS = "0123456789abcdefABCDEF"
DEC_DIGITS = "0123456789"


class ParseError(Exception):
    """Raised when input does not match the grammar.

    pos is an offset into the text handed to the parser entry point;
    line and col are 1-based and derived from it.
    """
    def __init__(self, message: str, text: str, pos: int):
        self.message = message
        self.pos = pos
        self.line = text.count("\n", 0, pos) + 1
        self.col = pos - (text.rfind("\n", 0, pos) + 1) + 1
        found = text[pos:pos + 10].split("\n", 1)[0]
        super().__init__(
            f"Parse error at L{self.line}:{self.col}: {message}"
            + (f" (got {found!r})" if found else " (got end of input)"))


# ──────────────────────────────────────────────
# Whitespace and keywords
# ──────────────────────────────────────────────

def whitespace0(text: str, pos: int) -> int:
    """Skip any run of whitespace, newlines included."""
    while pos < len(text) and text[pos] in WHITESPACE:
        pos += 1
    return pos


def whitespace1(text: str, pos: int) -> int:
    """Skip a run of at least one whitespace character."""
    end = whitespace0(text, pos)
    if end == pos:
        raise ParseError("Expected whitespace", text, pos)
    return end


def keyword(text: str, pos: int, word: str) -> int:
    """Match word case-insensitively, returning the position after it."""
    end = pos + len(word)
    if text[pos:end].upper() != word.upper():
        raise ParseError(f"Expected {word!r}", text, pos)
    return end


# ──────────────────────────────────────────────
# Numerals
# ──────────────────────────────────────────────

def _digits(text: str, pos: int, alphabet: str, what: str) -> Tuple[str, int]:
    end = pos
    while end < len(text) and text[end] in alphabet:
        end += 1
    if end == pos:
        raise ParseError(f"Expected {what} digits", text, pos)
    return text[pos:end], end


def _to_byte(digits: str, base: int, text: str, pos: int) -> int:
    value = int(digits, base)
    if value > 0xFF:
        raise ParseError(f"Value {digits!r} does not fit in a byte", text, pos)
    return value


def hex_byte(text: str, pos: int) -> Tuple[int, int]:
    """One or more hex digits with a value of $00–$FF."""
    digits, end = _digits(text, pos, HEX_DIGITS, "hexadecimal")
    return _to_byte(digits, 16, text, pos), end


def decimal_byte(text: str, pos: int) -> Tuple[int, int]:
    """One or more decimal digits with a value of 0–255."""
    digits, end = _digits(text, pos, DEC_DIGITS, "decimal")
    return _to_byte(digits, 10, text, pos), end


def numeral(text: str, pos: int) -> Tuple[int, int]:
    """0x-prefixed hex or plain decimal byte.

    Once the 0x prefix has matched the numeral is committed to hex:
    "0x" followed by no digits is an error, not a decimal 0.
    """
    if text.startswith("0x", pos):
        return hex_byte(text, pos + 2)
    return decimal_byte(text, pos)
