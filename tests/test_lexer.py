# =============================================================================
# test_lexer.py - Lexer Unit Tests
# =============================================================================
# Tests for the MIPS assembler lexer/tokenizer.
#
# Test coverage includes:
#   - Number formats: decimal, hexadecimal, binary, octal, character
#   - String literals with escape sequences
#   - Registers, dereferences, mnemonics, labels and directives
#   - Define bindings/references and anchors
#   - Comments and line tracking
#   - Include files
#   - Error conditions
# =============================================================================

import pytest

from mips_asm.assembler.lexer import Lexer, TokenType, Token
from mips_asm.errors import AssemblySyntaxError, IncludeError, UnimplementedError


# =============================================================================
# Helper Function
# =============================================================================

def tokenize(source: str, filename: str = "<test>") -> list:
    """
    Helper to tokenize and drop the final EOF token.

    Args:
        source: The assembly source to tokenize
        filename: Virtual filename for the source
    """
    tokens = list(Lexer(source, filename).tokenize())
    assert tokens[-1].type == TokenType.EOF
    return tokens[:-1]


def types(source: str) -> list:
    return [t.type for t in tokenize(source)]


# =============================================================================
# Basic Token Recognition Tests
# =============================================================================

class TestBasicTokens:
    """Test basic token recognition for simple inputs."""

    def test_empty_source(self):
        """Empty source produces only EOF."""
        tokens = list(Lexer("", "main.asm").tokenize())
        assert len(tokens) == 1
        assert tokens[0].type == TokenType.EOF
        assert tokens[0].filename == "main.asm"

    def test_newline_is_eol(self):
        assert types("\n\n") == [TokenType.EOL, TokenType.EOL]

    def test_comma_is_separator(self):
        tokens = tokenize(",")
        assert tokens[0].type == TokenType.SEP
        assert tokens[0].value == ","

    def test_mnemonic_upper_cased(self):
        tokens = tokenize("addiu")
        assert tokens[0].type == TokenType.INSTR
        assert tokens[0].value == "ADDIU"

    def test_dotted_mnemonic(self):
        """FPU mnemonics contain dots."""
        tokens = tokenize("c.eq.d")
        assert tokens[0].type == TokenType.INSTR
        assert tokens[0].value == "C.EQ.D"

    def test_label_definition(self):
        tokens = tokenize("main_loop:")
        assert tokens[0].type == TokenType.LABEL
        assert tokens[0].value == "main_loop"

    def test_label_reference_keeps_case(self):
        tokens = tokenize("MyTable")
        assert tokens[0].type == TokenType.LABELSYM
        assert tokens[0].value == "MyTable"

    def test_directive(self):
        tokens = tokenize(".asciiz")
        assert tokens[0].type == TokenType.DIR
        assert tokens[0].value == "ASCIIZ"

    def test_token_repr_shows_hex_numbers(self):
        token = Token(TokenType.NUM, -1, "f", 1)
        assert repr(token) == "Token(NUM, -0x1, f:1)"


# =============================================================================
# Number Tests
# =============================================================================

class TestNumbers:
    """Test integer literal formats."""

    @pytest.mark.parametrize("text,value", [
        ("42", 42),
        ("0x1F", 0x1F),
        ("0XFF", 0xFF),
        ("0b1010", 10),
        ("0o17", 15),
        ("-8", -8),
        ("+8", 8),
        ("-0x10", -16),
    ])
    def test_number_formats(self, text, value):
        tokens = tokenize(text)
        assert tokens[0].type == TokenType.NUM
        assert tokens[0].value == value

    def test_character_literal(self):
        tokens = tokenize("'A'")
        assert tokens[0].type == TokenType.NUM
        assert tokens[0].value == 65

    def test_character_escape(self):
        assert tokenize(r"'\n'")[0].value == 10

    def test_float_literal_unimplemented(self):
        with pytest.raises(UnimplementedError, match="floating-point"):
            tokenize("1.5")

    def test_invalid_digit(self):
        with pytest.raises(AssemblySyntaxError):
            tokenize("12ab")


# =============================================================================
# String Tests
# =============================================================================

class TestStrings:
    """Test string literals."""

    def test_string_byte_codes(self):
        tokens = tokenize('"AB"')
        assert tokens[0].type == TokenType.STRING
        assert tokens[0].value == (65, 66)

    def test_string_escapes(self):
        assert tokenize(r'"a\tb\x41\0"')[0].value == (97, 9, 98, 0x41, 0)

    def test_unterminated_string(self):
        with pytest.raises(AssemblySyntaxError, match="unterminated"):
            tokenize('"abc\n"')


# =============================================================================
# Register Tests
# =============================================================================

class TestRegisters:
    """Test register names and dereferences."""

    @pytest.mark.parametrize("text,name", [
        ("t0", "T0"),
        ("$sp", "SP"),
        ("ra", "RA"),
        ("zero", "R0"),
        ("$0", "R0"),
        ("r4", "A0"),
        ("$31", "RA"),
        ("s8", "FP"),
        ("f12", "F12"),
        ("$f0", "F0"),
        ("$Status", "STATUS"),
    ])
    def test_register_spellings(self, text, name):
        tokens = tokenize(text)
        assert tokens[0].type == TokenType.REG
        assert tokens[0].value == name

    @pytest.mark.parametrize("text", ["Status", "count", "index"])
    def test_bare_system_register_is_label_reference(self, text):
        tokens = tokenize(text)
        assert tokens[0].type == TokenType.LABELSYM
        assert tokens[0].value == text

    def test_dereference(self):
        tokens = tokenize("( sp )")
        assert tokens[0].type == TokenType.DEREF
        assert tokens[0].value == "SP"

    def test_offset_then_dereference(self):
        assert types("8($t1)") == [TokenType.NUM, TokenType.DEREF]

    def test_unknown_register_in_dereference(self):
        with pytest.raises(AssemblySyntaxError, match="unknown register"):
            tokenize("(bogus)")

    def test_unclosed_dereference(self):
        with pytest.raises(AssemblySyntaxError, match="expected '\\)'"):
            tokenize("(sp")


# =============================================================================
# Define and Anchor Tests
# =============================================================================

class TestDefinesAndAnchors:
    """Test [name]: bindings, @name references and anchors."""

    def test_define_binding(self):
        tokens = tokenize("[SIZE]: 16")
        assert tokens[0].type == TokenType.DEF
        assert tokens[0].value == "SIZE"
        assert tokens[1].type == TokenType.NUM

    def test_define_reference(self):
        tokens = tokenize("@SIZE")
        assert tokens[0].type == TokenType.DEFSYM
        assert tokens[0].value == "SIZE"

    def test_define_missing_colon(self):
        with pytest.raises(AssemblySyntaxError):
            tokenize("[SIZE] 16")

    @pytest.mark.parametrize("text,sign", [("+:", "+"), ("-:", "-"), ("++:", "+")])
    def test_anchor_definition(self, text, sign):
        tokens = tokenize(text)
        assert tokens[0].type == TokenType.RELLABEL
        assert tokens[0].value == sign

    @pytest.mark.parametrize("text,count", [("+", 1), ("+++", 3), ("-", -1), ("--", -2)])
    def test_anchor_reference(self, text, count):
        tokens = tokenize(text)
        assert tokens[0].type == TokenType.RELLABELSYM
        assert tokens[0].value == count


# =============================================================================
# Comment and Line Tests
# =============================================================================

class TestCommentsAndLines:
    """Test comments and line tracking."""

    def test_semicolon_comment(self):
        assert types("nop ; comment") == [TokenType.INSTR]

    def test_slash_comment(self):
        assert types("nop // comment") == [TokenType.INSTR]

    def test_block_comment_spans_lines(self):
        tokens = tokenize("/* one\ntwo */ nop")
        assert tokens[0].type == TokenType.INSTR
        assert tokens[0].line == 2

    def test_unterminated_block_comment(self):
        with pytest.raises(AssemblySyntaxError, match="unterminated block comment"):
            tokenize("/* never closed")

    def test_line_numbers(self):
        tokens = tokenize("nop\n\naddu v0, a0, a1")
        addu = [t for t in tokens if t.value == "ADDU"][0]
        assert addu.line == 3

    def test_eol_carries_its_line(self):
        tokens = tokenize("nop\n")
        assert tokens[1].type == TokenType.EOL
        assert tokens[1].line == 1

    def test_unexpected_character(self):
        with pytest.raises(AssemblySyntaxError, match="unexpected character"):
            tokenize("nop #")


# =============================================================================
# Include Tests
# =============================================================================

class TestIncludes:
    """Test .inc splicing."""

    def test_include_splices_tokens(self, tmp_path):
        (tmp_path / "defs.inc").write_text("[SIZE]: 16\n")
        main = tmp_path / "main.asm"
        main.write_text('.inc "defs.inc"\nnop\n')

        tokens = list(Lexer(main.read_text(), str(main)).tokenize())
        kinds = [t.type for t in tokens]
        assert kinds[:5] == [
            TokenType.DIR, TokenType.DEF, TokenType.NUM, TokenType.EOL, TokenType.EOF,
        ]
        # The included file ends in its own EOF
        assert tokens[4].filename.endswith("defs.inc")
        assert tokens[-1].filename == str(main)

    def test_include_path_search(self, tmp_path):
        inc_dir = tmp_path / "inc"
        inc_dir.mkdir()
        (inc_dir / "regs.inc").write_text("nop\n")

        tokens = list(Lexer('.inc "regs.inc"\n', "<test>", include_paths=[inc_dir]).tokenize())
        assert any(t.type == TokenType.INSTR for t in tokens)

    def test_include_not_found(self):
        with pytest.raises(IncludeError, match="file not found"):
            list(Lexer('.inc "missing.inc"\n', "<test>").tokenize())

    def test_circular_include(self, tmp_path):
        (tmp_path / "a.inc").write_text('.inc "b.inc"\n')
        (tmp_path / "b.inc").write_text('.inc "a.inc"\n')
        main = tmp_path / "main.asm"
        main.write_text('.inc "a.inc"\n')

        with pytest.raises(IncludeError, match="circular"):
            list(Lexer(main.read_text(), str(main)).tokenize())

    def test_include_requires_string(self):
        with pytest.raises(AssemblySyntaxError, match="expected string"):
            list(Lexer(".inc defs\n", "<test>").tokenize())
