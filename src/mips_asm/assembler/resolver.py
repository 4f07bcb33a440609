"""
Token Buffer and Two-Pass Resolver
==================================

Drains the lexer into an in-memory token buffer and rewrites define and
anchor references before any instruction is parsed.

Pass 1 (collect)
----------------
- Pull tokens one at a time until the EOF of the main source file
- Record every define binding ``[name]: value``
- Record anchor definitions: forward anchors (``+:``) are appended, so the
  forward list is in ascending buffer order; backward anchors (``-:``) are
  inserted at the front, so the newest one is always first

Pass 2 (resolve)
----------------
- ``@name`` becomes a NUM token carrying the bound value
- every anchor definition becomes a LABEL named after its buffer index
- every anchor reference becomes a LABELSYM naming the selected anchor

The two list orders and the two scan directions belong together: scanning
the forward list from the start and the backward list from the start both
visit anchors nearest to the reference first.

Instruction size may depend on a define's value but never on a label's
address, so this single linear scheme needs no iteration.

Example
-------
>>> from mips_asm.assembler.lexer import Lexer
>>> resolver = TokenResolver("main.asm")
>>> tokens = resolver.run(Lexer("[N]: 4\\n.word @N\\n", "main.asm").tokenize())
>>> resolver.defines
{'N': 4}
"""

from dataclasses import replace
from difflib import get_close_matches
from typing import Iterable, Optional
import logging

from mips_asm.errors import (
    AssemblySyntaxError,
    DuplicateSymbolError,
    InternalError,
    RelativeLabelError,
    UndefinedDefineError,
)
from mips_asm.assembler.lexer import Token, TokenType

# Logger for this module
logger = logging.getLogger(__name__)


def anchor_label_name(index: int) -> str:
    """
    Name of the label that replaces the anchor at a buffer index.

    User labels cannot start with a digit, so these never collide.
    """
    return str(index)


class TokenResolver:
    """
    Collects the token stream and resolves defines and anchors.

    The define table and the anchor lists belong to one assembly run and
    are only read after collect() has finished.

    Usage:
        resolver = TokenResolver("main.asm", defines={"DEBUG": 1})
        tokens = resolver.run(lexer.tokenize())
    """

    def __init__(self, main_filename: str, defines: Optional[dict[str, int]] = None):
        """
        Initialize the resolver.

        Args:
            main_filename: Filename whose EOF token ends collection
            defines: Predefined define values (e.g. from -D)
        """
        self._main_filename = main_filename
        self._defines: dict[str, int] = dict(defines or {})
        self._predefined = frozenset(self._defines)
        self._forward: list[int] = []   # ascending buffer order
        self._backward: list[int] = []  # newest first (descending)

    @property
    def defines(self) -> dict[str, int]:
        return dict(self._defines)

    @property
    def forward_anchors(self) -> list[int]:
        return list(self._forward)

    @property
    def backward_anchors(self) -> list[int]:
        return list(self._backward)

    def run(self, source: Iterable[Token]) -> list[Token]:
        """Collect then resolve the token stream."""
        return self.resolve(self.collect(source))

    # =========================================================================
    # Pass 1
    # =========================================================================

    def collect(self, source: Iterable[Token]) -> list[Token]:
        """
        Pull every token up to the main file's EOF into a buffer.

        Args:
            source: Token iterator (normally Lexer.tokenize())

        Returns:
            The buffered tokens, including the final EOF

        Raises:
            AssemblySyntaxError: If a define is not followed by a number
            DuplicateSymbolError: If a define is bound twice
            InternalError: If the source ends before the main EOF
        """
        tokens: list[Token] = []
        stream = iter(source)

        def pull() -> Token:
            try:
                token = next(stream)
            except StopIteration:
                raise InternalError("missing token") from None
            tokens.append(token)
            return token

        while True:
            token = pull()

            if token.type == TokenType.DEF:
                value = pull()
                if value.type != TokenType.NUM:
                    raise AssemblySyntaxError("expected number for define", value.location)
                if token.value in self._predefined:
                    # Predefined values take precedence over the source
                    logger.debug(f"Keeping predefined value for define '{token.value}'")
                elif token.value in self._defines:
                    raise DuplicateSymbolError(token.value, "define", token.location)
                else:
                    self._defines[token.value] = value.value

            elif token.type == TokenType.RELLABEL:
                if token.value == "+":
                    self._forward.append(len(tokens) - 1)
                elif token.value == "-":
                    self._backward.insert(0, len(tokens) - 1)
                else:
                    raise InternalError("unexpected token for relative label")

            elif token.type == TokenType.EOF:
                if token.filename == self._main_filename:
                    break

        logger.debug(
            f"Collected {len(tokens)} tokens, {len(self._defines)} defines, "
            f"{len(self._forward)}+/{len(self._backward)}- anchors"
        )
        return tokens

    # =========================================================================
    # Pass 2
    # =========================================================================

    def resolve(self, tokens: list[Token]) -> list[Token]:
        """
        Rewrite define and anchor tokens into plain tokens.

        Args:
            tokens: Buffer produced by collect()

        Returns:
            A new token list; the input list is not modified

        Raises:
            UndefinedDefineError: If a define reference is unbound
            RelativeLabelError: If an anchor reference cannot be matched
        """
        resolved: list[Token] = []

        for i, token in enumerate(tokens):
            if token.type == TokenType.DEFSYM:
                if token.value not in self._defines:
                    raise UndefinedDefineError(
                        token.value,
                        token.location,
                        similar_names=get_close_matches(token.value, self._defines),
                    )
                token = replace(token, type=TokenType.NUM, value=self._defines[token.value])

            elif token.type == TokenType.RELLABEL:
                token = replace(token, type=TokenType.LABEL, value=anchor_label_name(i))

            elif token.type == TokenType.RELLABELSYM:
                target = self._find_anchor(i, token.value)
                if target is None:
                    raise RelativeLabelError(token.value, token.location)
                token = replace(token, type=TokenType.LABELSYM, value=anchor_label_name(target))

            resolved.append(token)

        return resolved

    def _find_anchor(self, position: int, count: int) -> Optional[int]:
        """
        Find the buffer index of the anchor a reference points to.

        A positive count selects the count-th forward anchor after the
        reference, a negative count the |count|-th backward anchor before it.
        """
        if count > 0:
            candidates = (i for i in self._forward if i > position)
        elif count < 0:
            candidates = (i for i in self._backward if i < position)
        else:
            return None

        seen = 0
        for index in candidates:
            seen += 1
            if seen == abs(count):
                return index
        return None
