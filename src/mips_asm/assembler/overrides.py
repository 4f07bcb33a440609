"""
Instruction Overrides
=====================

Handlers for mnemonics whose operands cannot be described by a pair of
format strings. The parser looks a mnemonic up here before falling back
to the generic format engine.

| Mnemonic           | Expansion                                          |
|--------------------|----------------------------------------------------|
| LI rt, imm         | ADDIU / ORI from R0, or LUI [+ ORI]                |
| LA rt, addr        | LUI rt, %hi(addr); ADDIU rt, rt, %lo(addr)         |
| PUSH r1 [, r2...]  | ADDIU sp, sp, -4n; SW r1, 0(sp); SW r2, 4(sp) ...  |
| POP r1 [, r2...]   | LW r1, 0(sp); LW r2, 4(sp) ...; ADDIU sp, sp, 4n   |
| BLT/BGE rs, rt, l  | SLT at, rs, rt; BNE/BEQ at, r0, l                  |
| BGT/BLE rs, rt, l  | SLT at, rt, rs; BNE/BEQ at, r0, l                  |
| JALR rs            | JALR ra, rs                                        |

Every override receives the live parser positioned after the mnemonic
and must leave it at the end of the line.
"""

from abc import ABC, abstractmethod

from mips_asm.errors import RangeError
from mips_asm.assembler.formats import emit_mnemonic
from mips_asm.assembler.operands import (
    ConstKind,
    Constant,
    Modified,
    Modifier,
    OperandBundle,
)
from mips_asm.cpu import SCRATCH_REGISTER

STACK_POINTER = "SP"
RETURN_ADDRESS = "RA"
ZERO_REGISTER = "R0"


def _num(value: int) -> Constant:
    return Constant(ConstKind.NUM, value)


class Override(ABC):
    """A parse-and-emit routine for one or more mnemonics."""

    @abstractmethod
    def parse(self, parser, mnemonic: str) -> None:
        """
        Parse the operands of ``mnemonic`` and emit its instructions.

        Args:
            parser: Parser positioned on the first operand
            mnemonic: Upper-case mnemonic being assembled
        """


# =============================================================================
# Constants and Addresses
# =============================================================================

class LoadImmediate(Override):
    """LI rt, imm: load a 32-bit constant in one or two instructions."""

    def parse(self, parser, mnemonic: str) -> None:
        rt = parser.register()
        parser.optional_comma()
        location = parser.location
        value = parser.const(no_label=True).value

        if not -0x80000000 <= value <= 0xFFFFFFFF:
            raise RangeError(f"value {value:#x} does not fit in 32 bits", location)

        if -0x8000 <= value <= 0x7FFF:
            emit_mnemonic(parser, "ADDIU", OperandBundle(
                rt=rt, rs=ZERO_REGISTER,
                immediate=Modified(Modifier.SIGNED, _num(value)),
            ))
        elif 0 <= value <= 0xFFFF:
            emit_mnemonic(parser, "ORI", OperandBundle(
                rt=rt, rs=ZERO_REGISTER, immediate=_num(value),
            ))
        else:
            value &= 0xFFFFFFFF
            emit_mnemonic(parser, "LUI", OperandBundle(rt=rt, immediate=_num(value >> 16)))
            if value & 0xFFFF:
                emit_mnemonic(parser, "ORI", OperandBundle(
                    rt=rt, rs=rt, immediate=_num(value & 0xFFFF),
                ))


class LoadAddress(Override):
    """LA rt, addr: always two instructions so the size never depends on a label."""

    def parse(self, parser, mnemonic: str) -> None:
        rt = parser.register()
        parser.optional_comma()
        address = parser.const()
        emit_mnemonic(parser, "LUI", OperandBundle(
            rt=rt, immediate=Modified(Modifier.UPPER, address),
        ))
        emit_mnemonic(parser, "ADDIU", OperandBundle(
            rt=rt, rs=rt, immediate=Modified(Modifier.LOWER, address),
        ))


# =============================================================================
# Stack
# =============================================================================

def _register_list(parser) -> list[str]:
    registers = [parser.register()]
    while not parser.is_eol():
        parser.optional_comma()
        registers.append(parser.register())
    return registers


def _adjust_stack(parser, amount: int) -> None:
    emit_mnemonic(parser, "ADDIU", OperandBundle(
        rt=STACK_POINTER, rs=STACK_POINTER,
        immediate=Modified(Modifier.SIGNED, _num(amount)),
    ))


class Push(Override):
    """PUSH r1 [, r2 ...]: reserve a frame and store each register."""

    def parse(self, parser, mnemonic: str) -> None:
        registers = _register_list(parser)
        _adjust_stack(parser, -4 * len(registers))
        for slot, register in enumerate(registers):
            emit_mnemonic(parser, "SW", OperandBundle(
                rt=register, offset=_num(4 * slot), base=STACK_POINTER,
            ))


class Pop(Override):
    """POP r1 [, r2 ...]: reload registers from the slots PUSH used."""

    def parse(self, parser, mnemonic: str) -> None:
        registers = _register_list(parser)
        for slot, register in enumerate(registers):
            emit_mnemonic(parser, "LW", OperandBundle(
                rt=register, offset=_num(4 * slot), base=STACK_POINTER,
            ))
        _adjust_stack(parser, 4 * len(registers))


# =============================================================================
# Branches and Jumps
# =============================================================================

class CompareBranch(Override):
    """
    Signed compare-and-branch through the scratch register.

    Args:
        swap: Compare rt < rs instead of rs < rt
        branch: BNE to branch when the comparison holds, BEQ when it fails
    """

    def __init__(self, swap: bool, branch: str):
        self.swap = swap
        self.branch = branch

    def parse(self, parser, mnemonic: str) -> None:
        rs = parser.register()
        parser.optional_comma()
        rt = parser.register()
        parser.optional_comma()
        target = Modified(Modifier.SIGNED, parser.const(relative=True))

        if self.swap:
            rs, rt = rt, rs
        emit_mnemonic(parser, "SLT", OperandBundle(rd=SCRATCH_REGISTER, rs=rs, rt=rt))
        emit_mnemonic(parser, self.branch, OperandBundle(
            rs=SCRATCH_REGISTER, rt=ZERO_REGISTER, offset=target,
        ))


class JumpAndLinkRegister(Override):
    """JALR [rd,] rs: the link register defaults to RA."""

    def parse(self, parser, mnemonic: str) -> None:
        first = parser.register()
        if parser.is_eol():
            rd, rs = RETURN_ADDRESS, first
        else:
            parser.optional_comma()
            rd, rs = first, parser.register()
        emit_mnemonic(parser, "JALR", OperandBundle(rd=rd, rs=rs))


OVERRIDES: dict[str, Override] = {
    "LI": LoadImmediate(),
    "LA": LoadAddress(),
    "PUSH": Push(),
    "POP": Pop(),
    "BLT": CompareBranch(swap=False, branch="BNE"),
    "BGE": CompareBranch(swap=False, branch="BEQ"),
    "BGT": CompareBranch(swap=True, branch="BNE"),
    "BLE": CompareBranch(swap=True, branch="BEQ"),
    "JALR": JumpAndLinkRegister(),
}
