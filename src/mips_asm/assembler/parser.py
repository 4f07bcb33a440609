"""
MIPS Assembly Language Parser
=============================

This module walks the resolved token buffer and drives the code generator.
It owns the parse cursor, the directive interpreter and the top-level
dispatch loop; instruction operands are handled by the format engine
(``formats``) or by an override (``overrides``).

Statement Types
---------------
| First token | Handling                                          |
|-------------|---------------------------------------------------|
| EOF         | end of the main file stops, included EOFs skipped |
| EOL         | empty line                                        |
| DEF         | skipped, bound during token collection            |
| DIR         | directive interpreter                             |
| LABEL       | ``add_label`` on the code generator               |
| INSTR       | override, address form or generic format engine   |

Directives
----------
| Directive      | Arguments                  |
|----------------|----------------------------|
| ORG            | number                     |
| ALIGN          | [size [, fill]]            |
| SKIP           | size [, fill]              |
| BYTE, HALFWORD | number {[,] number}        |
| WORD           | constant {[,] constant}    |
| ASCII, ASCIIZ  | string                     |
| INC            | handled by the lexer       |
| INCBIN, FLOAT  | unimplemented              |
"""

from typing import Optional
import logging

from mips_asm.errors import (
    AssemblySyntaxError,
    DirectiveError,
    InternalError,
    RegisterError,
    SourceLocation,
    UnimplementedError,
)
from mips_asm.assembler.lexer import Token, TokenType
from mips_asm.assembler.operands import ConstKind, Constant
from mips_asm.assembler import formats
from mips_asm.assembler.overrides import OVERRIDES
from mips_asm.cpu import (
    SYSTEM_REGISTERS,
    canonical_register,
    get_instruction_info,
    is_register_in,
)

# Logger for this module
logger = logging.getLogger(__name__)


class Parser:
    """
    Parses a resolved token buffer and issues code generator requests.

    The cursor methods (advance, number, register, const ...) are public:
    overrides use them to consume operands their own way.

    Usage:
        tokens = TokenResolver("main.asm").run(Lexer(source, "main.asm").tokenize())
        parser = Parser(tokens, CodeGenerator(), "main.asm")
        code = parser.parse()
    """

    def __init__(self, tokens: list[Token], codegen, main_filename: str = "<input>"):
        """
        Initialize the parser.

        Args:
            tokens: Resolved token buffer, ending with the main EOF
            codegen: Code generator receiving labels, directives and instructions
            main_filename: Filename of the top-level source
        """
        if not tokens:
            raise InternalError("missing token")
        self._tokens = tokens
        self._pos = 0
        self.codegen = codegen
        self.main_filename = main_filename

    # =========================================================================
    # Cursor
    # =========================================================================

    @property
    def token(self) -> Token:
        """The current token."""
        return self._tokens[self._pos]

    @property
    def location(self) -> SourceLocation:
        return self.token.location

    @property
    def filename(self) -> str:
        return self.token.filename

    @property
    def line(self) -> int:
        return self.token.line

    def advance(self) -> Token:
        """Move to the next token and return it. Stays on the final EOF."""
        if self._pos + 1 < len(self._tokens):
            self._pos += 1
        return self.token

    def error(self, message: str, error_class=AssemblySyntaxError) -> AssemblySyntaxError:
        """Create a diagnostic at the current token."""
        return error_class(message, self.location)

    def is_eol(self) -> bool:
        return self.token.type in (TokenType.EOL, TokenType.EOF)

    def expect_eol(self) -> None:
        if not self.is_eol():
            raise self.error("expected end of line")
        self.advance()

    def optional_comma(self) -> bool:
        """Consume a separator if there is one."""
        if self.token.type == TokenType.SEP and self.token.value == ",":
            self.advance()
            return True
        return False

    def number(self) -> int:
        if self.token.type != TokenType.NUM:
            raise self.error("expected number")
        value = self.token.value
        self.advance()
        return value

    def string(self) -> tuple[int, ...]:
        if self.token.type != TokenType.STRING:
            raise self.error("expected string")
        value = self.token.value
        self.advance()
        return value

    def register(self, register_class: str = "general") -> str:
        """
        Parse a register of the given class ('general', 'fpu', 'system').

        A bare COP0 name arrives as a label reference and is read as a
        register here.

        Returns:
            Canonical register name
        """
        token = self.token
        name = None
        if token.type == TokenType.REG:
            name = token.value
        elif token.type == TokenType.LABELSYM:
            # Bare COP0 names arrive as label references
            name = canonical_register(token.value)
            if name not in SYSTEM_REGISTERS:
                name = None
        if name is None:
            raise self.error("expected register")
        if not is_register_in(name, register_class):
            raise self.error("wrong type of register", RegisterError)
        self.advance()
        return name

    def deref(self) -> str:
        """Parse a dereferenced base register: (reg)"""
        if self.token.type != TokenType.DEREF:
            raise self.error("expected register to dereference")
        name = self.token.value
        if not is_register_in(name, "general"):
            raise self.error("wrong type of register", RegisterError)
        self.advance()
        return name

    def const(self, relative: bool = False, no_label: bool = False) -> Constant:
        """
        Parse a number or label reference.

        Args:
            relative: Tag label references as PC-relative
            no_label: Reject label references
        """
        token = self.token
        if token.type not in (TokenType.NUM, TokenType.LABELSYM):
            raise self.error("expected constant")

        if token.type == TokenType.NUM:
            constant = Constant(ConstKind.NUM, token.value)
        elif no_label:
            raise self.error("labels are not allowed here")
        elif relative:
            constant = Constant(ConstKind.LABEL_REL, token.value)
        else:
            constant = Constant(ConstKind.LABEL, token.value)

        self.advance()
        return constant

    # =========================================================================
    # Dispatch Loop
    # =========================================================================

    def parse(self) -> bytes:
        """
        Process every statement, then finalise the code generator.

        Returns:
            The assembled bytes from the code generator's dump()

        Raises:
            AssemblerError: On the first diagnostic
        """
        while True:
            token = self.token

            if token.type == TokenType.EOF:
                if token.filename == self.main_filename:
                    break
                self.advance()

            elif token.type == TokenType.EOL:
                self.advance()

            elif token.type == TokenType.DEF:
                self.advance()
                self.advance()

            elif token.type == TokenType.DIR:
                self.directive()

            elif token.type == TokenType.LABEL:
                self.codegen.add_label(token.value, token.location)
                self.advance()

            elif token.type == TokenType.INSTR:
                self.instruction()

            else:
                raise self.error("unexpected token (unknown instruction?)")

        return self.codegen.dump()

    # =========================================================================
    # Instructions
    # =========================================================================

    def instruction(self) -> None:
        """Parse one instruction line starting at an INSTR token."""
        name = self.token.value
        info = get_instruction_info(name)
        location = self.location
        self.advance()

        if info is None:
            raise InternalError("undefined instruction")

        override = OVERRIDES.get(name)
        if override is not None:
            override.parse(self, name)
        elif info.address_form:
            formats.emit_address_form(self, info)
        elif info.input_format is not None:
            bundle = formats.parse_operands(self, info.input_roles)
            formats.emit(self, info, bundle)
        else:
            raise UnimplementedError("unimplemented instruction", location)

        self.expect_eol()

    # =========================================================================
    # Directives
    # =========================================================================

    def directive(self) -> None:
        """Interpret one directive line starting at a DIR token."""
        name = self.token.value
        location = self.location
        self.advance()

        def add(*args) -> None:
            self.codegen.add_directive(location.filename, location.line, *args)

        if name == "ORG":
            add(name, self.number())
            self.expect_eol()

        elif name in ("ALIGN", "SKIP"):
            if self.is_eol() and name == "ALIGN":
                add(name, 0)
            else:
                size = self.number()
                if self.is_eol():
                    add(name, size)
                else:
                    self.optional_comma()
                    add(name, size, self.number())
            self.expect_eol()

        elif name in ("BYTE", "HALFWORD"):
            add(name, self.number())
            while not self.is_eol():
                self.optional_comma()
                add(name, self.number())
            self.expect_eol()

        elif name == "WORD":
            # Labels are allowed in words
            add(name, self.const())
            while not self.is_eol():
                self.optional_comma()
                add(name, self.const())
            self.expect_eol()

        elif name == "INC":
            # The lexer has already spliced the file in
            pass

        elif name in ("ASCII", "ASCIIZ"):
            for code in self.string():
                add("BYTE", code)
            if name == "ASCIIZ":
                add("BYTE", 0)
            self.expect_eol()

        elif name in ("INCBIN", "FLOAT"):
            raise UnimplementedError("unimplemented", location)

        else:
            raise DirectiveError("unknown directive", location)
