"""
MIPS Assembler - Main Interface
===============================

This module provides the main Assembler class, the primary interface for
assembling MIPS source code. It coordinates the lexer, the token resolver,
the parser and the code generator to produce a raw big-endian binary.

Example Usage
-------------
>>> from mips_asm.assembler import Assembler
>>>
>>> asm = Assembler()
>>> code = asm.assemble_string('''
...     .org 0x80000400
... start:
...     li   t0, 0x12345678
...     j    start
...     nop
... ''')
>>> len(code)
16

Command-Line Usage
------------------
    $ mipsasm boot.asm -o boot.bin -s boot.sym -D DEBUG=1
"""

from pathlib import Path
from typing import Optional, Union
import logging

from mips_asm.assembler.lexer import Lexer
from mips_asm.assembler.resolver import TokenResolver
from mips_asm.assembler.parser import Parser
from mips_asm.assembler.codegen import CodeGenerator
from mips_asm.errors import InternalError

# Logger for this module
logger = logging.getLogger(__name__)


class Assembler:
    """
    Main MIPS assembler class.

    Each call to assemble_string() or assemble_file() is an independent
    run with its own define table, anchors and code generator; the
    configured include paths and predefined values carry over.

    Attributes:
        verbose: If True, log progress at INFO level
    """

    def __init__(self, verbose: bool = False,
                 include_paths: Optional[list[Union[str, Path]]] = None,
                 defines: Optional[dict[str, int]] = None,
                 base: Optional[int] = None):
        """
        Initialize the assembler.

        Args:
            verbose: Log progress messages
            include_paths: Directories to search for .inc files
            defines: Predefined define values; these win over source defines
            base: Address of the first output byte (default: first ORG)
        """
        self.verbose = verbose
        self._include_paths: list[Path] = []
        self._defines: dict[str, int] = {}
        self._base = base
        self._codegen: Optional[CodeGenerator] = None
        self._resolved_defines: dict[str, int] = {}

        if include_paths:
            for path in include_paths:
                self.add_include_path(path)

        if defines:
            for name, value in defines.items():
                self.define_symbol(name, value)

    def _log(self, message: str) -> None:
        if self.verbose:
            logger.info(message)
        else:
            logger.debug(message)

    def add_include_path(self, path: Union[str, Path]) -> None:
        """
        Add a directory to search for include files.

        Args:
            path: Directory path to add
        """
        path = Path(path)
        if path.is_dir():
            self._include_paths.append(path)
        else:
            logger.warning(f"include path '{path}' is not a directory")

    def define_symbol(self, name: str, value: int) -> None:
        """
        Predefine a define (like -D on the command line).

        Args:
            name: Define name, referenced as @name
            value: Define value
        """
        self._defines[name] = value

    # =========================================================================
    # Assembly Methods
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> bytes:
        """
        Assemble source code from a string.

        The assembly pipeline is:
        1. Tokenize, splicing in included files (lexer)
        2. Collect defines and anchors, then resolve them (token resolver)
        3. Parse directives and instructions (parser)
        4. Resolve labels and lay out the image (code generator)

        Args:
            source: Assembly source code
            filename: Virtual filename for error messages

        Returns:
            Generated machine code as bytes

        Raises:
            AssemblerError: If assembly fails
        """
        self._log(f"Assembling {filename}...")

        lexer = Lexer(source, filename, include_paths=self._include_paths)
        resolver = TokenResolver(filename, defines=self._defines)
        tokens = resolver.run(lexer.tokenize())
        self._resolved_defines = resolver.defines
        self._log(f"Read {len(tokens)} tokens, {len(self._resolved_defines)} defines")

        self._codegen = CodeGenerator(base=self._base)
        code = Parser(tokens, self._codegen, filename).parse()

        self._log(f"Generated {len(code)} bytes of code")
        return code

    def assemble_file(self, filepath: Union[str, Path]) -> bytes:
        """
        Assemble source code from a file.

        Args:
            filepath: Path to assembly source file

        Returns:
            Generated machine code as bytes

        Raises:
            AssemblerError: If assembly fails
            FileNotFoundError: If source file not found
        """
        filepath = Path(filepath)
        source = filepath.read_text()
        return self.assemble_string(source, str(filepath))

    # =========================================================================
    # Output Methods
    # =========================================================================

    def _require_codegen(self) -> CodeGenerator:
        if self._codegen is None:
            raise InternalError("no assembly has been run")
        return self._codegen

    def get_code(self) -> bytes:
        """
        Get the generated machine code.

        Returns:
            Machine code as bytes
        """
        return self._require_codegen().get_code()

    def get_base(self) -> int:
        """Address of the first byte of get_code()."""
        return self._require_codegen().base

    def get_symbols(self) -> dict[str, int]:
        """
        Get the label table.

        Returns:
            Dictionary mapping label names to addresses
        """
        return self._require_codegen().get_symbols()

    def get_defines(self) -> dict[str, int]:
        """Define values in effect for the last run."""
        return dict(self._resolved_defines)

    def write_symbols(self, filepath: Union[str, Path]) -> None:
        """
        Write symbol table file.

        Args:
            filepath: Output file path
        """
        self._require_codegen().write_symbols(filepath)
        self._log(f"Wrote symbols to {filepath}")

    def write_binary(self, filepath: Union[str, Path]) -> None:
        """
        Write raw binary output.

        Args:
            filepath: Output file path
        """
        code = self.get_code()
        Path(filepath).write_bytes(code)
        self._log(f"Wrote {len(code)} bytes to {filepath}")


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, filename: str = "<input>",
             defines: Optional[dict[str, int]] = None) -> bytes:
    """
    Convenience function to assemble source code.

    Args:
        source: Assembly source code
        filename: Virtual filename for errors
        defines: Predefined define values

    Returns:
        Generated machine code

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler(defines=defines)
    return asm.assemble_string(source, filename)


def assemble_file(filepath: Union[str, Path]) -> bytes:
    """
    Convenience function to assemble a file.

    Args:
        filepath: Path to source file

    Returns:
        Generated machine code

    Raises:
        AssemblerError: If assembly fails
    """
    asm = Assembler()
    return asm.assemble_file(filepath)
