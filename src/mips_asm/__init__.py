"""
mips-asm - Assembler for the MIPS III (R4300) Instruction Set
=============================================================

This package provides a two-pass assembler that turns MIPS assembly
source into a raw big-endian binary, together with the static R4300
instruction and register tables it is driven by.

Main Components
---------------
- **assembler**: Lexer, define/anchor resolver, parser and code generator
- **cpu**: R4300 instruction descriptors and register name sets
- **cli**: The ``mipsasm`` command-line tool

Quick Start
-----------
    >>> from mips_asm import Assembler
    >>> asm = Assembler(defines={"DEBUG": 1})
    >>> code = asm.assemble_file("boot.asm")
    >>> asm.write_binary("boot.bin")

Or from the command line:
    $ mipsasm boot.asm -o boot.bin -s boot.sym
"""

__version__ = "1.0.0"

# =============================================================================
# Public API Exports
# =============================================================================

from mips_asm.assembler import Assembler, assemble, assemble_file
from mips_asm.errors import (
    MipsAsmError,
    AssemblerError,
    AssemblySyntaxError,
    DirectiveError,
    RegisterError,
    UndefinedDefineError,
    RelativeLabelError,
    UndefinedSymbolError,
    DuplicateSymbolError,
    RangeError,
    UnimplementedError,
    IncludeError,
    InternalError,
)

__all__ = [
    # Version info
    "__version__",
    # Assembler
    "Assembler",
    "assemble",
    "assemble_file",
    # Exception hierarchy
    "MipsAsmError",
    "AssemblerError",
    "AssemblySyntaxError",
    "DirectiveError",
    "RegisterError",
    "UndefinedDefineError",
    "RelativeLabelError",
    "UndefinedSymbolError",
    "DuplicateSymbolError",
    "RangeError",
    "UnimplementedError",
    "IncludeError",
    "InternalError",
]
