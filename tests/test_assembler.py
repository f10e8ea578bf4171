"""Tests for the mini-assembler."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from vn_cpu.assembler import (
    CapacityError,
    assemble,
    quick_template,
    strip_source,
    variable_slots,
)


class TestStripSource:
    """Test comment and blank-line removal."""

    def test_comments_removed(self):
        source = """
        // header
        LOAD X   // load
        HLT//done
        """
        assert strip_source(source) == ["LOAD X", "HLT"]

    def test_empty(self):
        assert strip_source("") == []
        assert strip_source("\n  \n// only a comment\n") == []


class TestAssemble:
    """Test operand resolution and layout."""

    def test_variable_slots_follow_program(self):
        """X, Y, Z live right after the program."""
        memory = assemble("LOAD X\nADD Y\nSTORE Z\nOUT\nHLT", {"X": 2, "Y": 3})
        assert memory[5:8] == [2, 3, 0]
        assert variable_slots(5) == {"X": 5, "Y": 6, "Z": 7}

    def test_immediate_ops_get_values(self):
        memory = assemble("LOAD X\nADD Y\nSUB Z", {"X": 2, "Y": 3, "Z": 4})
        assert memory[:3] == ["LOAD 2", "ADD 3", "SUB 4"]

    def test_address_ops_get_slots(self):
        memory = assemble("LOADI X\nADDM Y\nSTORE Z\nJNZ 0", {"X": 1, "Y": 2})
        assert memory[:4] == ["LOADI 4", "ADDM 5", "STORE 6", "JNZ 0"]

    def test_bare_mnemonics(self):
        memory = assemble("out\nhlt")
        assert memory[:2] == ["OUT", "HLT"]

    def test_mnemonic_uppercased_and_whitespace(self):
        memory = assemble("   load\t\t  7   ")
        assert memory[0] == "LOAD 7"

    def test_lowercase_variables(self):
        memory = assemble("load x\nstore y", {"x": 9})
        assert memory[:2] == ["LOAD 9", "STORE 3"]
        assert memory[2] == 9

    def test_numeric_address_clamped(self):
        memory = assemble("STORE 40\nJMP -2", mem_size=8)
        assert memory[:2] == ["STORE 7", "JMP 0"]

    def test_unknown_operand_is_zero(self):
        memory = assemble("LOAD W\nSTORE W")
        assert memory[:2] == ["LOAD 0", "STORE 0"]

    def test_bad_variable_value_is_zero(self):
        memory = assemble("LOAD X", {"X": "abc", "Y": None})
        assert memory[0] == "LOAD 0"
        assert memory[1:4] == [0, 0, 0]

    def test_image_size(self):
        memory = assemble("HLT", mem_size=10)
        assert len(memory) == 10
        assert memory[4:] == [""] * 6

    def test_unknown_mnemonic_kept(self):
        """Unknown mnemonics are written as-is; the CPU halts on them."""
        assert assemble("JUMP 3")[0] == "JUMP 3"


class TestCapacity:
    """Program plus three slots must fit."""

    def test_exact_fit(self):
        memory = assemble("\n".join(["NOP"] * 13), mem_size=16)
        assert memory[13:] == [0, 0, 0]

    def test_overflow(self):
        with pytest.raises(CapacityError) as excinfo:
            assemble("\n".join(["NOP"] * 14), mem_size=16)
        assert excinfo.value.required == 17
        assert excinfo.value.mem_size == 16

    def test_capacity_error_is_value_error(self):
        with pytest.raises(ValueError):
            assemble("", mem_size=2)

    def test_comments_do_not_count(self):
        source = "\n".join(["NOP // filler"] * 13 + ["// trailing", ""])
        assert len(assemble(source)) == 16


class TestQuickTemplate:
    """Test the X op Y = Z template."""

    @pytest.mark.parametrize("op,symbol", [("ADD", "+"), ("SUB", "-"), ("MUL", "*"), ("DIV", "/")])
    def test_template(self, op, symbol):
        source = quick_template(op.lower())
        assert source.splitlines()[0] == f"// X {symbol} Y = Z"
        assert strip_source(source) == ["LOAD X", f"{op} Y", "STORE Z", "OUT", "HLT"]
