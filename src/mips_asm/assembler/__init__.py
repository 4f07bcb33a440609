"""
MIPS Assembler
==============

This package provides an assembler for the MIPS III (R4300) instruction
set. It converts assembly source into a raw big-endian binary image.

Main Components
---------------
- **Assembler**: Main assembler class that orchestrates the assembly process
- **Lexer**: Tokenizes assembly source, splicing in included files
- **TokenResolver**: Buffers the tokens and resolves defines and anchors
- **Parser**: Interprets directives and instructions
- **CodeGenerator**: Resolves labels and lays out machine code

Assembly Process
----------------
1. **Collection (Lexer + TokenResolver pass 1)**:
   - Tokenize the main file and every included file
   - Record define bindings and anchor positions

2. **Resolution (TokenResolver pass 2)**:
   - Replace @define references with their values
   - Turn anchors and anchor references into generated labels

3. **Parsing (Parser)**:
   - Directives go to the directive interpreter
   - Instructions go to an override, the load/store address form or the
     generic format engine

4. **Code Generation (CodeGenerator)**:
   - Resolve labels, apply constant modifiers, check field ranges

Example Usage
-------------
>>> from mips_asm.assembler import Assembler
>>> asm = Assembler()
>>> code = asm.assemble_string('''
...     .org 0x80000000
...     [COUNT]: 3
... -:
...     addiu t0, t0, @COUNT
...     bnez  t0, -
...     nop
... ''')

Supported Features
------------------
- R4300 integer, COP0 and COP1 instructions
- Pseudo instructions (NOP, MOVE, B, LI, LA, PUSH, POP, BLT ...)
- Labels, anchors (+: / -:) and defines ([NAME]: value, @NAME)
- Data directives (.byte, .halfword, .word, .ascii, .asciiz)
- Layout directives (.org, .align, .skip)
- Include files (.inc)
- Symbol table output
"""

from mips_asm.assembler.assembler import Assembler, assemble, assemble_file
from mips_asm.assembler.lexer import Lexer, Token, TokenType
from mips_asm.assembler.resolver import TokenResolver
from mips_asm.assembler.parser import Parser
from mips_asm.assembler.operands import (
    ConstKind,
    Constant,
    Modified,
    Modifier,
    OperandBundle,
)
from mips_asm.assembler.overrides import OVERRIDES, Override
from mips_asm.assembler.codegen import CodeGenerator
from mips_asm.cpu import InstructionInfo, INSTRUCTIONS, MNEMONICS

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    # Resolver
    "TokenResolver",
    # Parser
    "Parser",
    "ConstKind",
    "Constant",
    "Modified",
    "Modifier",
    "OperandBundle",
    # Overrides
    "Override",
    "OVERRIDES",
    # Code generator
    "CodeGenerator",
    # Instruction table
    "InstructionInfo",
    "INSTRUCTIONS",
    "MNEMONICS",
]
