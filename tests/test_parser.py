"""
Parser Tests for the byteasm interpreter.

Tests the lexical scanners, the term / operator / statement parsers and
the whole-program entry point against hand-written expected trees.
"""
import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from byteasm.ast_nodes import (
    Block, DirectRef, Immediate, IndirectRef, IMPLEMENTED_OPCODES, Line, Opcode, Operator,
)
from byteasm.lexer import ParseError, decimal_byte, hex_byte, numeral, whitespace0, whitespace1
from byteasm.parser import block, operator, parse_program, reference, statement, terminal


class TestNumerals:
    """Byte-sized numerals: greedy digit runs, value must fit in a byte."""

    def test_hex_byte(self):
        assert hex_byte("0", 0) == (0, 1)
        assert hex_byte("FF", 0) == (255, 2)
        assert hex_byte("ff", 0) == (255, 2)
        assert hex_byte("10", 0) == (16, 2)
        assert hex_byte("45 rest", 0) == (69, 2)

    def test_decimal_byte(self):
        assert decimal_byte("0", 0) == (0, 1)
        assert decimal_byte("10", 0) == (10, 2)
        assert decimal_byte("255", 0) == (255, 3)

    @pytest.mark.parametrize("text", ["-1", "350", "256", "", "x"])
    def test_decimal_rejects(self, text):
        with pytest.raises(ParseError):
            decimal_byte(text, 0)

    def test_hex_rejects_over_byte(self):
        with pytest.raises(ParseError):
            hex_byte("100", 0)

    def test_numeral(self):
        assert numeral("0x0F", 0) == (15, 4)
        assert numeral("0xff", 0) == (255, 4)
        assert numeral("25", 0) == (25, 2)
        assert numeral("0", 0) == (0, 1)

    @pytest.mark.parametrize("text", ["0x", "0x100", "0xG1", "999"])
    def test_numeral_rejects(self, text):
        with pytest.raises(ParseError):
            numeral(text, 0)

    def test_whitespace(self):
        assert whitespace0("  \n\tX", 0) == 4
        assert whitespace0("X", 0) == 0
        assert whitespace1(" X", 0) == 1
        with pytest.raises(ParseError):
            whitespace1("X", 0)


class TestTerms:
    def test_direct_reference(self):
        assert reference("#0F") == ("", DirectRef(15))

    def test_indirect_reference(self):
        assert reference("@0F") == ("", IndirectRef(15))

    def test_short_and_long_references(self):
        assert reference("#5")[1] == DirectRef(5)
        assert reference("@5")[1] == IndirectRef(5)
        assert reference("#ff tail") == (" tail", DirectRef(255))

    @pytest.mark.parametrize("text", ["$05", "#", "@G0", "#1FF", "15"])
    def test_bad_references(self, text):
        with pytest.raises(ParseError):
            reference(text)

    def test_terminal(self):
        assert terminal("25")[1] == Immediate(25)
        assert terminal("0x32")[1] == Immediate(50)
        assert terminal("#5")[1] == DirectRef(5)
        assert terminal("@5")[1] == IndirectRef(5)

    def test_terminal_rejects(self):
        with pytest.raises(ParseError, match="immediate or reference"):
            terminal("x5")
        with pytest.raises(ParseError):
            terminal("0x")


class TestOperators:
    @pytest.mark.parametrize("opcode", IMPLEMENTED_OPCODES)
    def test_every_mnemonic_both_cases(self, opcode):
        rest, op = operator(f" {opcode.value.upper()} #32 0xFF \n")
        assert rest == ""
        assert op == Operator(opcode, DirectRef(50), Immediate(255))

        rest, op = operator(f" {opcode.value.lower()} @32 0xFF \n")
        assert rest == ""
        assert op == Operator(opcode, IndirectRef(50), Immediate(255))

    def test_operand_kinds(self):
        assert operator("ADD #FF 69")[1] == Operator(Opcode.ADD, DirectRef(255), Immediate(69))
        assert operator("Sub @0F #00")[1] == Operator(Opcode.SUB, IndirectRef(15), DirectRef(0))
        assert operator("diV #FF 69")[1] == Operator(Opcode.DIV, DirectRef(255), Immediate(69))
        assert operator("Mov #FF @FF")[1] == Operator(Opcode.MOV, DirectRef(255), IndirectRef(255))

    def test_surrounding_whitespace_discarded(self):
        rest, op = operator("  Mul  #FF 69  \n   ")
        assert rest == ""
        assert op == Operator(Opcode.MUL, DirectRef(255), Immediate(69))

    def test_operands_may_span_lines(self):
        assert operator("ADD\n#01\n2")[1] == Operator(Opcode.ADD, DirectRef(1), Immediate(2))

    def test_stops_after_one_instruction(self):
        rest, op = operator("MOV #00 1 ADD #00 2")
        assert rest == "ADD #00 2"
        assert op.opcode is Opcode.MOV

    def test_unknown_mnemonic(self):
        with pytest.raises(ParseError, match="mnemonic") as exc:
            operator("  JMP #00 1")
        assert exc.value.pos == 2

    def test_missing_operand(self):
        with pytest.raises(ParseError) as exc:
            operator("ADD #00")
        assert exc.value.pos == 7

    def test_destination_must_be_reference(self):
        with pytest.raises(ParseError, match="reference") as exc:
            operator("MOV 00 1")
        assert exc.value.pos == 4

    def test_mnemonic_needs_separator(self):
        with pytest.raises(ParseError):
            operator("ADDX #00 1")
        with pytest.raises(ParseError):
            operator("ADD#00 1")

    def test_value_out_of_range(self):
        with pytest.raises(ParseError, match="byte"):
            operator("ADD #00 350")


class TestStatements:
    def test_statement_is_line(self):
        rest, s = statement("MOV #01 2\n")
        assert rest == ""
        assert s == Line(Operator(Opcode.MOV, DirectRef(1), Immediate(2)))

    def test_block(self):
        rest, result = block("""
        ADD #00 1
        SUB #01 3
        MUL #00 5
        Div #01 5
        MOV @00 #00
        """)
        assert rest == ""
        assert isinstance(result, Block)
        assert result.statements == (
            Line(Operator(Opcode.ADD, DirectRef(0), Immediate(1))),
            Line(Operator(Opcode.SUB, DirectRef(1), Immediate(3))),
            Line(Operator(Opcode.MUL, DirectRef(0), Immediate(5))),
            Line(Operator(Opcode.DIV, DirectRef(1), Immediate(5))),
            Line(Operator(Opcode.MOV, IndirectRef(0), DirectRef(0))),
        )

    def test_block_single_line_of_instructions(self):
        _, result = block("MOV #01 2 ADD #01 3 mul #01 4")
        assert [op.opcode for op in result] == [Opcode.MOV, Opcode.ADD, Opcode.MUL]

    def test_block_returns_unparsed_rest(self):
        rest, result = block("ADD #00 1\nNOP\nMOV #00 2")
        assert rest == "NOP\nMOV #00 2"
        assert len(result) == 1

    def test_block_needs_one_statement(self):
        with pytest.raises(ParseError):
            block("")
        with pytest.raises(ParseError):
            block("  \n  ")


class TestProgram:
    def test_case_insensitive(self):
        expected = parse_program("ADD #00 1")
        assert parse_program("add #00 1") == expected
        assert parse_program("Add #00 1") == expected

    def test_whitespace_tolerant(self):
        expected = parse_program("ADD #00 1 MOV #01 #00")
        assert parse_program("\n\t ADD   #00\n1 \r\n  MOV #01\t#00\n\n") == expected

    def test_trailing_garbage_rejected(self):
        with pytest.raises(ParseError) as exc:
            parse_program("ADD #00 1\nSUB #01 0x1FF")
        assert exc.value.line == 2
        assert exc.value.col == 11

    def test_error_message(self):
        with pytest.raises(ParseError) as exc:
            parse_program("JMP #00 1")
        assert str(exc.value).startswith("Parse error at L1:1: Expected mnemonic")

    def test_canonical_rendering_round_trips(self):
        prog = parse_program("add @0f 0x0A\n   mov #1 #2\nDIV @FF 255")
        text = str(prog)
        assert text == "ADD @0F 10\nMOV #01 #02\nDIV @FF 255"
        assert parse_program(text) == prog

    def test_parsing_is_reentrant(self):
        src = "MOV #01 2 ADD #01 3"
        assert parse_program(src) == parse_program(src)
