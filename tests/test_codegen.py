# =============================================================================
# test_codegen.py - Code Generator Unit Tests
# =============================================================================
# Tests for the MIPS code generator, driven directly without the parser.
#
# Test coverage includes:
#   - J/I/R encodings and big-endian layout
#   - Constant modifiers and field range checks
#   - Labels, forward references and PC-relative offsets
#   - ORG/ALIGN/SKIP layout, output base and zero-filled gaps
#   - Symbol table output
# =============================================================================

import pytest

from mips_asm.assembler.codegen import CodeGenerator
from mips_asm.assembler.operands import ConstKind, Constant, Modified, Modifier
from mips_asm.errors import (
    AssemblerError,
    DirectiveError,
    DuplicateSymbolError,
    InternalError,
    RangeError,
    UndefinedSymbolError,
)


# =============================================================================
# Helper Functions
# =============================================================================

def num(value):
    return Constant(ConstKind.NUM, value)


def label(name):
    return Constant(ConstKind.LABEL, name)


def immediate(codegen, value, opcode=0x09, rs="R0", rt="T0"):
    codegen.add_instruction_i("t.asm", 1, opcode, rs, rt, value)


# =============================================================================
# Encoding Tests
# =============================================================================

class TestEncoding:
    """Test instruction field packing."""

    def test_r_type(self):
        codegen = CodeGenerator()
        codegen.add_instruction_r("t.asm", 1, 0, "A0", "A1", "V0", 0, 0x21)
        assert codegen.dump() == bytes.fromhex("00851021")

    def test_i_type(self):
        codegen = CodeGenerator()
        immediate(codegen, Modified(Modifier.SIGNED, num(5)), rs="T1")
        assert codegen.dump() == bytes.fromhex("25280005")

    def test_j_type(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ORG", 0x80000000)
        codegen.add_instruction_j("t.asm", 2, 2, Modified(Modifier.INDEX, num(0x80000010)))
        assert codegen.dump() == bytes.fromhex("08000004")

    def test_fpu_and_system_registers(self):
        codegen = CodeGenerator()
        codegen.add_instruction_r("t.asm", 1, 0x10, 4, "T0", "STATUS", 0, 0)
        codegen.add_instruction_r("t.asm", 2, 0x11, 0x10, "F4", "F2", "F0", 0)
        assert codegen.dump() == bytes.fromhex("40886000" "46041000")

    def test_field_out_of_range(self):
        codegen = CodeGenerator()
        codegen.add_instruction_r("t.asm", 7, 0, 0, "T0", "T0", num(32), 0)
        with pytest.raises(RangeError) as exc_info:
            codegen.dump()
        assert exc_info.value.location.line == 7

    def test_negative_plain_immediate_rejected(self):
        codegen = CodeGenerator()
        immediate(codegen, num(-1), opcode=0x0D)
        with pytest.raises(RangeError):
            codegen.dump()

    def test_unknown_operand(self):
        codegen = CodeGenerator()
        immediate(codegen, 1.5)
        with pytest.raises(InternalError):
            codegen.dump()


# =============================================================================
# Modifier Tests
# =============================================================================

class TestModifiers:
    """Test how constants are folded into 16- and 26-bit fields."""

    @pytest.mark.parametrize("modifier,value,field", [
        (Modifier.SIGNED, -1, 0xFFFF),
        (Modifier.SIGNED, -0x8000, 0x8000),
        (Modifier.SIGNED, 0xFFFF, 0xFFFF),
        (Modifier.NEGATE, 4, 0xFFFC),
        (Modifier.UPPER, 0x12348000, 0x1235),
        (Modifier.UPPER, 0x12347FFF, 0x1234),
        (Modifier.UPPER, 0x80001234, 0x8000),
        (Modifier.LOWER, 0x12348000, 0x8000),
        (Modifier.LOWER, 0x12345678, 0x5678),
    ])
    def test_16_bit_modifiers(self, modifier, value, field):
        codegen = CodeGenerator()
        immediate(codegen, Modified(modifier, num(value)))
        assert int.from_bytes(codegen.dump()[2:4], "big") == field

    @pytest.mark.parametrize("modifier,value", [
        (Modifier.SIGNED, 0x10000),
        (Modifier.SIGNED, -0x8001),
        (Modifier.NEGATE, -0x10000),
    ])
    def test_16_bit_range(self, modifier, value):
        codegen = CodeGenerator()
        immediate(codegen, Modified(modifier, num(value)))
        with pytest.raises(RangeError):
            codegen.dump()

    def test_index_requires_alignment(self):
        codegen = CodeGenerator()
        codegen.add_instruction_j("t.asm", 1, 2, Modified(Modifier.INDEX, num(0x1002)))
        with pytest.raises(RangeError, match="not word aligned"):
            codegen.dump()


# =============================================================================
# Label Tests
# =============================================================================

class TestLabels:
    """Test label binding and resolution."""

    def test_forward_reference(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ORG", 0x80000000)
        codegen.add_directive("t.asm", 2, "WORD", label("end"))
        codegen.add_label("end")
        assert codegen.dump() == bytes.fromhex("80000004")

    def test_relative_offset_from_delay_slot(self):
        codegen = CodeGenerator()
        codegen.add_label("top")
        codegen.add_instruction_i(
            "t.asm", 1, 4, 0, 0,
            Modified(Modifier.SIGNED, Constant(ConstKind.LABEL_REL, "top")),
        )
        assert codegen.dump() == bytes.fromhex("1000FFFF")

    def test_relative_offset_is_signed(self):
        codegen = CodeGenerator()
        codegen.add_instruction_i(
            "t.asm", 1, 4, 0, 0,
            Modified(Modifier.SIGNED, Constant(ConstKind.LABEL_REL, "far")),
        )
        codegen.add_directive("t.asm", 2, "ORG", 4 + 0x8000 * 4)
        codegen.add_label("far")
        with pytest.raises(RangeError):
            codegen.dump()

    def test_undefined_label(self):
        codegen = CodeGenerator()
        codegen.add_label("counter")
        codegen.add_directive("t.asm", 3, "WORD", label("countr"))
        with pytest.raises(UndefinedSymbolError) as exc_info:
            codegen.dump()
        assert "undefined label 'countr'" in str(exc_info.value)
        assert "counter" in str(exc_info.value)
        assert exc_info.value.location.line == 3

    def test_duplicate_label(self):
        codegen = CodeGenerator()
        codegen.add_label("start")
        with pytest.raises(DuplicateSymbolError, match="label 'start' already defined"):
            codegen.add_label("start")

    def test_get_symbols(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ORG", 0x400)
        codegen.add_label("a")
        codegen.add_directive("t.asm", 2, "WORD", num(0))
        codegen.add_label("b")
        assert codegen.get_symbols() == {"a": 0x400, "b": 0x404}

    def test_write_symbols(self, tmp_path):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ORG", 0x80000000)
        codegen.add_label("start")
        path = tmp_path / "out.sym"
        codegen.write_symbols(path)
        assert "start $80000000" in path.read_text()


# =============================================================================
# Layout Tests
# =============================================================================

class TestLayout:
    """Test data directives and output placement."""

    def test_data_sizes(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "BYTE", 0x12)
        codegen.add_directive("t.asm", 2, "HALFWORD", 0x3456)
        codegen.add_directive("t.asm", 3, "BYTE", 0x78)
        codegen.add_directive("t.asm", 4, "WORD", num(0x9ABCDEF0))
        assert codegen.dump() == bytes.fromhex("12345678" "9ABCDEF0")

    def test_negative_data(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "BYTE", -1)
        codegen.add_directive("t.asm", 1, "BYTE", -128)
        codegen.add_directive("t.asm", 1, "HALFWORD", -2)
        assert codegen.dump() == bytes.fromhex("FF80FFFE")

    @pytest.mark.parametrize("name,value", [("BYTE", 256), ("BYTE", -129), ("HALFWORD", 0x10000)])
    def test_data_range(self, name, value):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, name, value)
        with pytest.raises(RangeError):
            codegen.dump()

    def test_align_default_is_word(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "BYTE", 1)
        codegen.add_directive("t.asm", 2, "ALIGN", 0)
        codegen.add_directive("t.asm", 3, "BYTE", 2)
        assert codegen.dump() == bytes.fromhex("0100000002")

    def test_align_with_fill(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "BYTE", 1)
        codegen.add_directive("t.asm", 2, "ALIGN", 8, 0xFF)
        assert codegen.dump() == bytes.fromhex("01FFFFFFFFFFFFFF")

    def test_align_when_aligned(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ALIGN", 16)
        assert codegen.pc == 0

    def test_align_power_of_two(self):
        codegen = CodeGenerator()
        with pytest.raises(DirectiveError, match="power of two"):
            codegen.add_directive("t.asm", 1, "ALIGN", 3)

    def test_skip(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "SKIP", 2)
        codegen.add_directive("t.asm", 2, "SKIP", 2, 0xAA)
        assert codegen.dump() == bytes.fromhex("0000AAAA")

    def test_negative_skip(self):
        codegen = CodeGenerator()
        with pytest.raises(DirectiveError):
            codegen.add_directive("t.asm", 1, "SKIP", -1)

    def test_first_org_sets_base(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ORG", 0x80000400)
        codegen.add_directive("t.asm", 2, "BYTE", 1)
        assert codegen.dump() == b"\x01"
        assert codegen.base == 0x80000400

    def test_gap_zero_filled(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "ORG", 0x100)
        codegen.add_directive("t.asm", 2, "BYTE", 1)
        codegen.add_directive("t.asm", 3, "ORG", 0x104)
        codegen.add_directive("t.asm", 4, "BYTE", 2)
        assert codegen.dump() == bytes.fromhex("0100000002")

    def test_explicit_base(self):
        codegen = CodeGenerator(base=0x80000000)
        codegen.add_directive("t.asm", 1, "ORG", 0x80000004)
        codegen.add_directive("t.asm", 2, "BYTE", 7)
        assert codegen.dump() == bytes.fromhex("0000000007")

    def test_below_base(self):
        codegen = CodeGenerator(base=0x1000)
        codegen.add_directive("t.asm", 1, "ORG", 0x0800)
        codegen.add_directive("t.asm", 2, "BYTE", 1)
        with pytest.raises(RangeError, match="below the output base"):
            codegen.dump()

    def test_instruction_alignment(self):
        codegen = CodeGenerator()
        codegen.add_directive("t.asm", 1, "BYTE", 1)
        with pytest.raises(AssemblerError, match="not word aligned"):
            codegen.add_instruction_r("t.asm", 2, 0, 0, 0, 0, 0, 0)

    def test_empty_output(self):
        assert CodeGenerator().dump() == b""

    def test_get_code_before_dump(self):
        with pytest.raises(InternalError):
            CodeGenerator().get_code()
