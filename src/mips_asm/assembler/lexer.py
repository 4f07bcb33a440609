"""
MIPS Assembly Language Lexer
============================

This module implements the token source for the assembler. It converts
source text into a flat stream of classified tokens, flattening included
files into the same stream.

Token Types
-----------
- NUM: Decimal, hex (0x), binary (0b), octal (0o), character ('A')
- STRING: Double-quoted string, as a tuple of byte codes
- REG: Register name (t0, $sp, f12, $status), canonical upper-case
- DEREF: Parenthesised register used as a base: (sp)
- SEP: Operand separator (,)
- EOL / EOF: End of line / end of one source file
- DEF / DEFSYM: Define binding [name]: and define reference @name
- DIR: Directive (.org, .word ...), name upper-cased without the dot
- LABEL / LABELSYM: Label definition name: and label reference (a bare
  COP0 name such as status is a LABELSYM)
- RELLABEL / RELLABELSYM: Anchor definition +: / -: and reference ++ / -
- INSTR: Instruction mnemonic, upper-cased

Comments
--------
- Semicolon or double slash: "; comment", "// comment" (to end of line)
- Block: "/* comment */" (may span lines)

Includes
--------
``.inc "file.asm"`` yields the DIR token, then every token of the included
file (ending with that file's own EOF token), then resumes the including
file. Each token remembers the file and line it came from.

Example
-------
>>> from mips_asm.assembler.lexer import Lexer
>>> for token in Lexer("loop: addiu t0, t0, -1", "example.asm").tokenize():
...     print(token)
Token(LABEL, 'loop', example.asm:1)
Token(INSTR, 'ADDIU', example.asm:1)
Token(REG, 'T0', example.asm:1)
Token(SEP, ',', example.asm:1)
Token(REG, 'T0', example.asm:1)
Token(SEP, ',', example.asm:1)
Token(NUM, -0x1, example.asm:1)
Token(EOF, example.asm:1)
"""

from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Iterator, Optional, Sequence
import string

from mips_asm.errors import (
    AssemblySyntaxError,
    IncludeError,
    SourceLocation,
    UnimplementedError,
)
from mips_asm.cpu import MNEMONICS, SYSTEM_REGISTERS, canonical_register


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """Token kinds produced by the lexer and consumed by the parser."""

    # Structural tokens
    EOL = auto()          # End of line
    EOF = auto()          # End of one source file
    SEP = auto()          # ,

    # Values
    NUM = auto()          # Numeric literal
    STRING = auto()       # String literal (tuple of byte codes)
    REG = auto()          # Register
    DEREF = auto()        # (register)

    # Defines
    DEF = auto()          # [name]:
    DEFSYM = auto()       # @name

    # Labels
    LABEL = auto()        # name:
    LABELSYM = auto()     # name
    RELLABEL = auto()     # +: or -:
    RELLABELSYM = auto()  # +, ++, -, --

    # Statements
    DIR = auto()          # .name
    INSTR = auto()        # mnemonic


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    Represents a single token from the source code.

    Attributes:
        type: The TokenType classification
        value: Payload whose type depends on the kind (see module docs)
        filename: Name of the source file the token came from
        line: Line number in that file (1-indexed)
    """
    type: TokenType
    value: object
    filename: str
    line: int

    def __repr__(self) -> str:
        if self.value is not None:
            if isinstance(self.value, int):
                sign = "-" if self.value < 0 else ""
                return f"Token({self.type.name}, {sign}0x{abs(self.value):X}, {self.filename}:{self.line})"
            return f"Token({self.type.name}, {self.value!r}, {self.filename}:{self.line})"
        return f"Token({self.type.name}, {self.filename}:{self.line})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes MIPS assembly source code.

    The lexer is a plain generator: the resolver pulls one token at a time
    and the generator keeps its own position (current file, offset and
    include stack) between pulls.

    Usage:
        lexer = Lexer(source_text, filename, include_paths=["inc"])
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
    """

    # Characters that can start an identifier
    IDENT_START = string.ascii_letters + "_"

    # Characters that can continue an identifier (dots allow ADD.S, C.EQ.D)
    IDENT_CHARS = string.ascii_letters + string.digits + "_."

    # Escape sequences in strings
    ESCAPE_SEQUENCES = {
        "n": "\n",
        "r": "\r",
        "t": "\t",
        "\\": "\\",
        '"': '"',
        "'": "'",
        "0": "\0",
    }

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        include_paths: Sequence[str | Path] = (),
        line_number: int = 1,
        _include_stack: tuple[str, ...] = (),
    ):
        """
        Initialize the lexer with source code.

        Args:
            source: The assembly source code to tokenize
            filename: Name of the source file (for error messages)
            include_paths: Directories searched by .inc
            line_number: Starting line number (default 1)
        """
        self.source = source
        self.filename = filename
        self.include_paths = [Path(p) for p in include_paths]
        self._include_stack = _include_stack

        self._pos = 0
        self._line = line_number

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects, ending with this file's EOF token

        Raises:
            AssemblySyntaxError: If invalid syntax is encountered
            IncludeError: If an included file cannot be read
        """
        while not self._at_end():
            if self._skip_whitespace():
                continue

            if self._skip_comment():
                continue

            token = self._scan_token()
            yield token

            if token.type == TokenType.DIR and token.value == "INC":
                yield from self._include(token)

        yield self._make_token(TokenType.EOF, None)

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """Look at a character without advancing ('' past the end)."""
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _advance(self) -> str:
        """Consume and return the current character."""
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1
        if char == "\n":
            self._line += 1
        return char

    def _match(self, expected: str) -> bool:
        """Consume the next character if it matches expected."""
        if self._peek() == expected:
            self._advance()
            return True
        return False

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: object,
        start_line: Optional[int] = None,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            filename=self.filename,
            line=start_line or self._line,
        )

    def _error(self, message: str) -> AssemblySyntaxError:
        """Create a syntax error at the current line."""
        return AssemblySyntaxError(message, SourceLocation(self.filename, self._line))

    # =========================================================================
    # Whitespace and Comment Handling
    # =========================================================================

    def _skip_whitespace(self) -> bool:
        """Skip spaces, tabs and carriage returns (not newlines)."""
        skipped = False
        # '' in " \t\r" is True, so check for a character first
        while self._peek() and self._peek() in " \t\r":
            self._advance()
            skipped = True
        return skipped

    def _skip_comment(self) -> bool:
        """Skip a line or block comment. Returns True if one was skipped."""
        char = self._peek()

        if char == ";" or (char == "/" and self._peek(1) == "/"):
            while not self._at_end() and self._peek() != "\n":
                self._advance()
            return True

        if char == "/" and self._peek(1) == "*":
            self._advance()
            self._advance()
            while not (self._peek() == "*" and self._peek(1) == "/"):
                if self._at_end():
                    raise self._error("unterminated block comment")
                self._advance()
            self._advance()
            self._advance()
            return True

        return False

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        """Scan the next token from source."""
        start_line = self._line
        char = self._peek()

        if char == "\n":
            self._advance()
            return self._make_token(TokenType.EOL, None, start_line)

        if char == ",":
            self._advance()
            return self._make_token(TokenType.SEP, ",", start_line)

        if char in self.IDENT_START:
            return self._scan_identifier(start_line)

        if char.isdigit():
            return self._scan_number(start_line)

        if char in "+-":
            if self._peek(1).isdigit():
                return self._scan_number(start_line)
            return self._scan_anchor(start_line)

        if char == '"':
            return self._scan_string(start_line)

        if char == "'":
            return self._scan_char(start_line)

        if char == ".":
            return self._scan_directive(start_line)

        if char == "[":
            return self._scan_define(start_line)

        if char == "@":
            self._advance()
            name = self._scan_name("define reference")
            return self._make_token(TokenType.DEFSYM, name, start_line)

        if char == "(":
            return self._scan_deref(start_line)

        if char == "$":
            return self._scan_register(TokenType.REG, start_line)

        self._advance()
        raise self._error(f"unexpected character '{char}'")

    def _scan_name(self, what: str) -> str:
        """Scan identifier characters, raising if there are none."""
        if not (self._peek() and self._peek() in self.IDENT_START):
            raise self._error(f"expected name for {what}")
        chars = []
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())
        return "".join(chars)

    def _scan_identifier(self, start_line: int) -> Token:
        """
        Scan a label definition, register, mnemonic or label reference.

        A trailing colon makes any identifier a label definition. Bare COP0
        names stay label references; the parser reads them as registers
        only where an operand must be a register.
        """
        name = self._scan_name("identifier")

        if self._match(":"):
            return self._make_token(TokenType.LABEL, name, start_line)

        register = canonical_register(name)
        if register is not None and register not in SYSTEM_REGISTERS:
            return self._make_token(TokenType.REG, register, start_line)

        if name.upper() in MNEMONICS:
            return self._make_token(TokenType.INSTR, name.upper(), start_line)

        return self._make_token(TokenType.LABELSYM, name, start_line)

    def _scan_register(self, token_type: TokenType, start_line: int) -> Token:
        """Scan a register name, optionally prefixed with '$'."""
        chars = []
        if self._peek() == "$":
            chars.append(self._advance())
        while self._peek() and self._peek() in self.IDENT_CHARS:
            chars.append(self._advance())

        text = "".join(chars)
        register = canonical_register(text)
        if register is None:
            raise self._error(f"unknown register '{text}'")
        return self._make_token(token_type, register, start_line)

    def _scan_deref(self, start_line: int) -> Token:
        """Scan a dereferenced base register: (sp)"""
        self._advance()  # consume (
        self._skip_whitespace()
        token = self._scan_register(TokenType.DEREF, start_line)
        self._skip_whitespace()
        if not self._match(")"):
            raise self._error("expected ')' after register")
        return token

    def _scan_directive(self, start_line: int) -> Token:
        """Scan a directive name after the dot."""
        self._advance()  # consume .
        name = self._scan_name("directive")
        return self._make_token(TokenType.DIR, name.upper(), start_line)

    def _scan_define(self, start_line: int) -> Token:
        """Scan a define binding: [name]:"""
        self._advance()  # consume [
        name = self._scan_name("define")
        if not self._match("]"):
            raise self._error("expected ']' after define name")
        if not self._match(":"):
            raise self._error("expected ':' after define")
        return self._make_token(TokenType.DEF, name, start_line)

    def _scan_anchor(self, start_line: int) -> Token:
        """
        Scan an anchor definition (+: or -:) or an anchor reference.

        A reference's count is the length of the run, signed by direction.
        """
        sign = self._peek()
        count = 0
        while self._peek() == sign:
            self._advance()
            count += 1

        if self._match(":"):
            return self._make_token(TokenType.RELLABEL, sign, start_line)

        return self._make_token(
            TokenType.RELLABELSYM,
            count if sign == "+" else -count,
            start_line,
        )

    def _scan_number(self, start_line: int) -> Token:
        """
        Scan an integer literal with optional sign and base prefix.

        Supports 0x (hex), 0b (binary) and 0o (octal) prefixes.
        """
        negative = False
        if self._peek() in "+-":
            negative = self._advance() == "-"

        base, digits = 10, string.digits
        if self._peek() == "0" and self._peek(1).lower() in ("x", "b", "o"):
            self._advance()
            base, digits = {
                "x": (16, string.hexdigits),
                "b": (2, "01"),
                "o": (8, "01234567"),
            }[self._advance().lower()]

        chars = []
        # '' in digits is True, so check for a character first
        while self._peek() and self._peek() in digits:
            chars.append(self._advance())

        if not chars:
            raise self._error("expected digits in number")

        if base == 10 and self._peek() == "." and self._peek(1).isdigit():
            raise UnimplementedError(
                "floating-point literals are unimplemented",
                SourceLocation(self.filename, self._line),
            )

        if self._peek() and self._peek() in self.IDENT_CHARS:
            raise self._error(f"invalid character '{self._peek()}' in number")

        value = int("".join(chars), base)
        return self._make_token(TokenType.NUM, -value if negative else value, start_line)

    def _scan_string(self, start_line: int) -> Token:
        """Scan a double-quoted string into a tuple of byte codes."""
        self._advance()  # consume opening "

        codes = []
        while not self._at_end():
            char = self._peek()

            if char == '"':
                self._advance()
                return self._make_token(TokenType.STRING, tuple(codes), start_line)

            if char == "\n":
                raise self._error("unterminated string literal")

            if char == "\\":
                self._advance()
                char = self._scan_escape_sequence()
            else:
                self._advance()

            if ord(char) > 0xFF:
                raise self._error(f"character '{char}' does not fit in a byte")
            codes.append(ord(char))

        raise self._error("unterminated string literal")

    def _scan_char(self, start_line: int) -> Token:
        """Scan a character literal as a NUM token."""
        self._advance()  # consume opening '

        if self._at_end() or self._peek() == "\n":
            raise self._error("unterminated character literal")

        if self._peek() == "\\":
            self._advance()
            char = self._scan_escape_sequence()
        else:
            char = self._advance()

        if not self._match("'"):
            raise self._error("expected closing quote for character literal")

        return self._make_token(TokenType.NUM, ord(char), start_line)

    def _scan_escape_sequence(self) -> str:
        """Scan an escape sequence after a backslash."""
        if self._at_end():
            raise self._error("unexpected end of input in escape sequence")

        char = self._advance()

        if char in self.ESCAPE_SEQUENCES:
            return self.ESCAPE_SEQUENCES[char]

        if char == "x":
            hex_chars = []
            for _ in range(2):
                if self._peek() and self._peek() in string.hexdigits:
                    hex_chars.append(self._advance())
                else:
                    break

            if not hex_chars:
                raise self._error("expected hexadecimal digits after \\x")

            return chr(int("".join(hex_chars), 16))

        # Unknown escape - treat as literal
        return char

    # =========================================================================
    # Includes
    # =========================================================================

    def _include(self, directive: Token) -> Iterator[Token]:
        """Tokenize the file named after a .inc directive."""
        self._skip_whitespace()
        start_line = self._line
        if self._peek() != '"':
            raise self._error("expected string")
        name = bytes(self._scan_string(start_line).value).decode("latin-1")

        path = self._resolve_include_path(name)
        if path is None:
            raise IncludeError(
                name,
                "file not found",
                directive.location,
                search_paths=[str(p) for p in self.include_paths],
            )

        key = str(path.resolve())
        if key in self._include_stack or key == self._own_key():
            raise IncludeError(name, "circular include detected", directive.location)

        try:
            source = path.read_text(encoding="utf-8")
        except OSError as e:
            raise IncludeError(name, e.strerror or str(e), directive.location) from e

        lexer = Lexer(
            source,
            str(path),
            self.include_paths,
            _include_stack=self._include_stack + (self._own_key(),),
        )
        yield from lexer.tokenize()

    def _own_key(self) -> str:
        if self.filename.startswith("<"):
            return self.filename
        return str(Path(self.filename).resolve())

    def _resolve_include_path(self, name: str) -> Optional[Path]:
        """Resolve an include name: including file's directory, then search paths."""
        if not self.filename.startswith("<"):
            candidate = Path(self.filename).parent / name
            if candidate.is_file():
                return candidate

        for include_path in self.include_paths:
            candidate = include_path / name
            if candidate.is_file():
                return candidate

        candidate = Path(name)
        if candidate.is_file():
            return candidate

        return None
