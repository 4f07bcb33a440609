# =============================================================================
# test_overrides.py - Pseudo Instruction Override Tests
# =============================================================================
# Tests for the mnemonics parsed by overrides instead of the format engine.
# Each test assembles a short program and checks the emitted words.
#
# Test coverage includes:
#   - LI size selection (ADDIU, ORI, LUI, LUI+ORI)
#   - LA upper/lower split with carry
#   - PUSH/POP frame layout
#   - BLT/BGE/BGT/BLE compare-and-branch expansion
#   - JALR one- and two-operand forms
#   - Override lookup before the generic engine
# =============================================================================

import pytest

from mips_asm.assembler import Assembler
from mips_asm.assembler.overrides import OVERRIDES, Override
from mips_asm.cpu import INSTRUCTIONS
from mips_asm.errors import AssemblySyntaxError, RangeError, RegisterError


# =============================================================================
# Helper Functions
# =============================================================================

def words(source: str) -> list[int]:
    """Assemble source at address 0 and split the output into 32-bit words."""
    code = Assembler().assemble_string(".org 0\n" + source)
    return [int.from_bytes(code[i:i + 4], "big") for i in range(0, len(code), 4)]


# =============================================================================
# Registration Tests
# =============================================================================

class TestRegistration:
    """Test the override table."""

    def test_every_override_is_an_override(self):
        assert all(isinstance(o, Override) for o in OVERRIDES.values())

    def test_every_override_has_a_table_entry(self):
        assert set(OVERRIDES) <= set(INSTRUCTIONS)

    def test_override_wins_over_table_format(self):
        """JALR has a table format but the override accepts one operand."""
        assert INSTRUCTIONS["JALR"].input_format is not None
        assert words("jalr t9\n") == [0x0320F809]


# =============================================================================
# LI / LA Tests
# =============================================================================

class TestLoadImmediate:
    """Test LI expansion."""

    def test_small_positive(self):
        assert words("li t0, 5\n") == [0x24080005]          # addiu t0, r0, 5

    def test_small_negative(self):
        assert words("li t0, -1\n") == [0x2408FFFF]         # addiu t0, r0, -1

    def test_unsigned_16_bit(self):
        assert words("li t0, 0x8000\n") == [0x34088000]     # ori t0, r0, 0x8000

    def test_upper_only(self):
        assert words("li t0, 0x10000\n") == [0x3C080001]    # lui t0, 1

    def test_full_32_bit(self):
        assert words("li t0, 0x12345678\n") == [
            0x3C081234,                                     # lui t0, 0x1234
            0x35085678,                                     # ori t0, t0, 0x5678
        ]

    def test_large_negative(self):
        assert words("li t0, -0x10000\n") == [0x3C08FFFF]   # lui t0, 0xFFFF

    def test_define_value(self):
        assert words("[STACK]: 0x801FFFF0\nli sp, @STACK\n") == [
            0x3C1D801F,
            0x37BDFFF0,
        ]

    def test_label_rejected(self):
        with pytest.raises(AssemblySyntaxError, match="labels are not allowed here"):
            words("li t0, main\nmain:\n")

    def test_out_of_range(self):
        with pytest.raises(RangeError):
            words("li t0, 0x100000000\n")


class TestLoadAddress:
    """Test LA expansion."""

    def test_label_address(self):
        assert words("la a0, msg\nmsg:\n") == [
            0x3C040000,                                     # lui a0, 0
            0x24840008,                                     # addiu a0, a0, 8
        ]

    def test_upper_rounds_for_negative_lower(self):
        assert words("la a0, 0x12348000\n") == [
            0x3C041235,                                     # lui a0, 0x1235
            0x24848000,                                     # addiu a0, a0, -0x8000
        ]

    def test_always_two_instructions(self):
        assert len(words("la a0, 4\n")) == 2


# =============================================================================
# PUSH / POP Tests
# =============================================================================

class TestStack:
    """Test PUSH/POP frame layout."""

    def test_push(self):
        assert words("push ra, s0\n") == [
            0x27BDFFF8,                                     # addiu sp, sp, -8
            0xAFBF0000,                                     # sw ra, 0(sp)
            0xAFB00004,                                     # sw s0, 4(sp)
        ]

    def test_pop(self):
        assert words("pop ra s0\n") == [
            0x8FBF0000,                                     # lw ra, 0(sp)
            0x8FB00004,                                     # lw s0, 4(sp)
            0x27BD0008,                                     # addiu sp, sp, 8
        ]

    def test_push_requires_register(self):
        with pytest.raises(AssemblySyntaxError, match="expected register"):
            words("push\n")

    def test_push_rejects_scratch_register(self):
        with pytest.raises(RegisterError):
            words("push at\n")


# =============================================================================
# Compare-and-Branch Tests
# =============================================================================

class TestCompareBranch:
    """Test BLT/BGE/BGT/BLE expansion through the scratch register."""

    @pytest.mark.parametrize("mnemonic,slt,branch", [
        ("blt", 0x0109082A, 0x1420FFFE),    # slt at, t0, t1; bne at, r0, -
        ("bge", 0x0109082A, 0x1020FFFE),    # slt at, t0, t1; beq at, r0, -
        ("bgt", 0x0128082A, 0x1420FFFE),    # slt at, t1, t0; bne at, r0, -
        ("ble", 0x0128082A, 0x1020FFFE),    # slt at, t1, t0; beq at, r0, -
    ])
    def test_expansion(self, mnemonic, slt, branch):
        assert words(f"-:\n{mnemonic} t0, t1, -\n") == [slt, branch]

    def test_forward_target(self):
        assert words("blt t0, t1, done\nnop\ndone:\n")[1] == 0x14200001


# =============================================================================
# JALR Tests
# =============================================================================

class TestJumpAndLinkRegister:
    """Test JALR operand forms."""

    def test_one_operand_links_ra(self):
        assert words("jalr t9\n") == [0x0320F809]

    def test_two_operands(self):
        assert words("jalr s0, t9\n") == [0x03208009]

    def test_two_operands_without_comma(self):
        assert words("jalr s0 t9\n") == [0x03208009]
