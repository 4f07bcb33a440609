"""
MIPS Assembler Error Hierarchy
==============================

This module defines the exception hierarchy for the whole toolchain.
All exceptions inherit from MipsAsmError, allowing callers to catch all
assembler-related errors with a single except clause if desired.

Exception Hierarchy
-------------------
MipsAsmError (base)
├── AssemblerError (diagnostics about the input program)
│   ├── AssemblySyntaxError - malformed source or operand
│   ├── DirectiveError - bad directive arguments
│   ├── RegisterError - wrong register class for an operand
│   ├── UndefinedDefineError - reference to an unbound define
│   ├── RelativeLabelError - anchor reference with no matching anchor
│   ├── UndefinedSymbolError - reference to an undefined label
│   ├── DuplicateSymbolError - label or define bound twice
│   ├── RangeError - value does not fit its encoding field
│   ├── UnimplementedError - recognised but unsupported feature
│   └── IncludeError - error including a file
└── InternalError - defect in the assembler or its static tables

Design Philosophy
-----------------
User diagnostics carry the file and line of the token being processed
when the fault was detected. Assembly halts at the first one.

Error messages follow this format:
    filename:line: Error: description
    hint: suggestion for fixing (when available)

Internal errors never carry a source position. They are prefixed with
"Internal Error" and must be unreachable from well-formed input.
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class MipsAsmError(Exception):
    """
    Base exception for all assembler errors.

        try:
            assembler.assemble_file("boot.asm")
        except MipsAsmError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    Represents a location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
    """
    filename: str
    line: int

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(MipsAsmError):
    """
    Base exception for all diagnostics about the program being assembled.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """
        Format the error message with location and hint.

        Example output:
            boot.asm:15: Error: undefined define
            hint: did you mean 'STACK_TOP'?
        """
        if self.location:
            text = f"{self.location}: Error: {self.message}"
        else:
            text = f"Error: {self.message}"

        if self.hint:
            text += f"\nhint: {self.hint}"

        return text


class AssemblySyntaxError(AssemblerError):
    """
    Syntax error in assembly source code.

    Examples:
        - Invalid character in source
        - Unterminated string literal
        - Missing operand (expected register/constant/number)
        - Trailing tokens after a complete statement
    """
    pass


class DirectiveError(AssemblerError):
    """
    Error in an assembler directive.

    Examples:
        - Unknown directive name
        - ALIGN to a size that is not a power of two
        - SKIP with a negative count
    """
    pass


class RegisterError(AssemblerError):
    """
    A register of the wrong class was used for an operand.

    General, floating-point and system (COP0) registers are separate
    name sets; the scratch register AT is reserved for the assembler.
    """
    pass


class UndefinedDefineError(AssemblerError):
    """
    Reference to a define that was never bound.

    Raised while resolving the token buffer, regardless of how far the
    reference sits from the point where the name would have been defined.
    """

    def __init__(
        self,
        name: str,
        location: Optional[SourceLocation] = None,
        similar_names: Optional[list[str]] = None,
    ):
        self.name = name
        self.similar_names = similar_names or []

        hint = None
        if self.similar_names:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_names[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__("undefined define", location=location, hint=hint)


class RelativeLabelError(AssemblerError):
    """
    An anchor reference could not be matched.

    Raised when fewer anchors of the referenced direction exist past the
    reference than its count asks for.
    """

    def __init__(self, count: int, location: Optional[SourceLocation] = None):
        self.count = count
        direction = "forward" if count > 0 else "backward"
        super().__init__(
            "could not find appropriate relative label",
            location=location,
            hint=f"needs {abs(count)} {direction} anchor(s)",
        )


class UndefinedSymbolError(AssemblerError):
    """
    Reference to a label that was never defined.

    Raised when the emitter resolves label values after parsing.
    """

    def __init__(
        self,
        symbol: str,
        location: Optional[SourceLocation] = None,
        similar_symbols: Optional[list[str]] = None,
    ):
        self.symbol = symbol
        self.similar_symbols = similar_symbols or []

        hint = None
        if self.similar_symbols:
            suggestions = ", ".join(f"'{s}'" for s in self.similar_symbols[:3])
            hint = f"did you mean {suggestions}?"

        super().__init__(f"undefined label '{symbol}'", location=location, hint=hint)


class DuplicateSymbolError(AssemblerError):
    """Label or define bound more than once."""

    def __init__(
        self,
        symbol: str,
        kind: str = "label",
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
    ):
        self.symbol = symbol
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{symbol}' was first defined at {original_location}"

        super().__init__(
            f"{kind} '{symbol}' already defined",
            location=location,
            hint=hint,
        )


class RangeError(AssemblerError):
    """
    A value does not fit the field it is encoded into.

    Examples:
        - ADDIU immediate outside -32768..65535
        - Shift amount above 31
        - Branch target too far away
    """
    pass


class UnimplementedError(AssemblerError):
    """
    A recognised feature that this assembler does not support.

    INCBIN, FLOAT and floating-point literals all land here instead of
    being silently ignored.
    """

    def __init__(self, message: str = "unimplemented",
                 location: Optional[SourceLocation] = None):
        super().__init__(message, location=location)


class IncludeError(AssemblerError):
    """
    Error including a file.

    Raised when:
    - Include file not found
    - Circular include detected
    """

    def __init__(
        self,
        filename: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        search_paths: Optional[list[str]] = None,
    ):
        self.included_filename = filename
        self.reason = reason
        self.search_paths = search_paths or []

        hint = None
        if self.search_paths:
            hint = f"searched in: {', '.join(self.search_paths)}"

        super().__init__(
            f"cannot include '{filename}': {reason}",
            location=location,
            hint=hint,
        )


# =============================================================================
# Internal Errors
# =============================================================================

class InternalError(MipsAsmError):
    """
    A defect in the assembler itself, not in the input program.

    Raised for malformed static tables (bad format strings), dispatcher
    bugs and a token source that runs dry early. Never has a location.
    """

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"Internal Error: {message}")
