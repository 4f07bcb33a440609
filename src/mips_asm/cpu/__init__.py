"""
MIPS Assembler CPU Package
==========================

This package contains the static architecture tables used by the
assembler: instruction descriptors, operand format characters and the
register name sets.

Modules:
    r4300: R4300 (MIPS III) instruction table, COP0/COP1 encodings,
           register names and lookup helpers.

Usage:
    from mips_asm.cpu import (
        InstructionInfo,
        INSTRUCTIONS,
        canonical_register,
    )
"""

from mips_asm.cpu.r4300 import (
    # Core types
    InputRole,
    OutputField,
    Shape,
    InstructionInfo,
    # Instruction database
    INSTRUCTIONS,
    MNEMONICS,
    ADDRESS_FORMATS,
    # Registers
    GPR_NAMES,
    COP0_NAMES,
    GENERAL_REGISTERS,
    FPU_REGISTERS,
    SYSTEM_REGISTERS,
    REGISTER_SETS,
    REGISTER_NUMBERS,
    SCRATCH_REGISTER,
    # Lookup functions
    canonical_register,
    get_instruction_info,
    is_register_in,
)

__all__ = [
    "InputRole",
    "OutputField",
    "Shape",
    "InstructionInfo",
    "INSTRUCTIONS",
    "MNEMONICS",
    "ADDRESS_FORMATS",
    "GPR_NAMES",
    "COP0_NAMES",
    "GENERAL_REGISTERS",
    "FPU_REGISTERS",
    "SYSTEM_REGISTERS",
    "REGISTER_SETS",
    "REGISTER_NUMBERS",
    "SCRATCH_REGISTER",
    "canonical_register",
    "get_instruction_info",
    "is_register_in",
]
