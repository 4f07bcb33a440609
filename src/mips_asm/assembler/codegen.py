"""
MIPS Code Generator
===================

This module turns the parser's requests (labels, data directives and
instructions) into big-endian machine code.

Every request has a size that is known when it arrives, so addresses are
assigned immediately and the only deferred work is resolving label values.
That happens once, in dump().

Encoding Shapes
---------------
```
J-type:  opcode(6) target(26)
I-type:  opcode(6) rs(5) rt(5) immediate(16)
R-type:  opcode(6) rs(5) rt(5) rd(5) shamt(5) funct(6)
```

Constant Modifiers
------------------
| Modifier | Field value                                        |
|----------|----------------------------------------------------|
| SIGNED   | value in -0x8000..0xFFFF, low 16 bits              |
|          | (branch offsets in -0x8000..0x7FFF)                |
| NEGATE   | as SIGNED, for the negated value                   |
| INDEX    | word-aligned target, bits 27..2                    |
| UPPER    | upper half, rounded up when LOWER is negative      |
| LOWER    | low 16 bits                                        |

A LABEL_REL constant resolves to the word distance from the delay slot
(the instruction after the branch) to the label.

Output Layout
-------------
The output image starts at the base address: the one given to the
constructor, else the first ORG seen before any output, else zero. Gaps
between regions are filled with zero bytes.
"""

from dataclasses import dataclass
from difflib import get_close_matches
from pathlib import Path
from typing import Optional, Union
import logging

from mips_asm.errors import (
    AssemblerError,
    DirectiveError,
    DuplicateSymbolError,
    InternalError,
    RangeError,
    SourceLocation,
    UndefinedSymbolError,
)
from mips_asm.assembler.operands import ConstKind, Constant, Modified, Modifier
from mips_asm.cpu import REGISTER_NUMBERS

# Logger for this module
logger = logging.getLogger(__name__)

ADDRESS_MASK = 0xFFFFFFFF

# Field widths per encoding shape, opcode first
J_FIELDS = (6, 26)
I_FIELDS = (6, 5, 5, 16)
R_FIELDS = (6, 5, 5, 5, 5, 6)

DATA_SIZES = {"BYTE": 1, "HALFWORD": 2, "WORD": 4}


# =============================================================================
# Symbol Table Entry
# =============================================================================

@dataclass
class Symbol:
    """
    Symbol table entry.

    Attributes:
        name: Label name
        value: Address the label was bound to
        location: Where the label was defined
    """
    name: str
    value: int
    location: Optional[SourceLocation] = None


@dataclass
class Emission:
    """
    A run of output placed at a fixed address.

    Instructions carry one value per field; fill data carries raw bytes.
    """
    address: int
    location: SourceLocation
    widths: tuple[int, ...] = ()
    values: tuple = ()
    data: bytes = b""

    @property
    def size(self) -> int:
        if self.widths:
            return sum(self.widths) // 8
        return len(self.data)

    @property
    def is_data(self) -> bool:
        """True for a single BYTE, HALFWORD or WORD value."""
        return len(self.widths) == 1


# =============================================================================
# Code Generator
# =============================================================================

class CodeGenerator:
    """
    Collects labels, data and instructions, then produces the binary image.

    Usage:
        codegen = CodeGenerator()
        codegen.add_directive("a.asm", 1, "ORG", 0x80000400)
        codegen.add_label("start")
        codegen.add_instruction_j("a.asm", 2, 2, Modified(Modifier.INDEX, ...))
        code = codegen.dump()
    """

    def __init__(self, base: Optional[int] = None):
        """
        Initialize the code generator.

        Args:
            base: Address of the first output byte. Defaults to the first
                  ORG seen before any output.
        """
        self._base = base
        self._pc = 0
        self._symbols: dict[str, Symbol] = {}
        self._emissions: list[Emission] = []
        self._code: Optional[bytes] = None

    @property
    def pc(self) -> int:
        """Address of the next byte."""
        return self._pc

    @property
    def base(self) -> int:
        return self._base if self._base is not None else 0

    # =========================================================================
    # Labels
    # =========================================================================

    def add_label(self, name: str, location: Optional[SourceLocation] = None) -> None:
        """
        Bind a label to the current address.

        Raises:
            DuplicateSymbolError: If the label is already bound
        """
        if name in self._symbols:
            raise DuplicateSymbolError(
                name,
                location=location,
                original_location=self._symbols[name].location,
            )
        self._symbols[name] = Symbol(name, self._pc, location)

    # =========================================================================
    # Directives
    # =========================================================================

    def add_directive(self, filename: str, line: int, name: str, *args) -> None:
        """
        Apply a data or layout directive.

        Args:
            filename: Source file of the directive
            line: Source line of the directive
            name: ORG, ALIGN, SKIP, BYTE, HALFWORD or WORD
            *args: Directive arguments as parsed
        """
        location = SourceLocation(filename, line)

        if name == "ORG":
            self._org(args[0], location)
        elif name == "ALIGN":
            size = args[0] or 4
            if size < 0 or size & (size - 1):
                raise DirectiveError(f"alignment {size} is not a power of two", location)
            self._fill((-self._pc) % size, self._fill_byte(args, location), location)
        elif name == "SKIP":
            if args[0] < 0:
                raise DirectiveError("negative skip size", location)
            self._fill(args[0], self._fill_byte(args, location), location)
        elif name in DATA_SIZES:
            bits = DATA_SIZES[name] * 8
            self._emit(location, (bits,), (args[0],))
        else:
            raise InternalError(f"unknown directive '{name}' sent to code generator")

    def _org(self, address: int, location: SourceLocation) -> None:
        if not -0x80000000 <= address <= ADDRESS_MASK:
            raise DirectiveError(f"origin {address:#x} is not a 32-bit address", location)
        address &= ADDRESS_MASK
        if self._base is None and not self._emissions:
            self._base = address
            logger.debug(f"Output base set to ${address:08X}")
        self._pc = address

    @staticmethod
    def _fill_byte(args: tuple, location: SourceLocation) -> int:
        fill = args[1] if len(args) > 1 else 0
        if not -0x80 <= fill <= 0xFF:
            raise RangeError(f"fill value {fill:#x} does not fit in a byte", location)
        return fill & 0xFF

    def _fill(self, count: int, fill: int, location: SourceLocation) -> None:
        if count:
            self._emissions.append(Emission(self._pc, location, data=bytes([fill]) * count))
            self._pc += count

    # =========================================================================
    # Instructions
    # =========================================================================

    def add_instruction_j(self, filename: str, line: int, opcode: int, target) -> None:
        """Add a J-type instruction."""
        self._instruction(filename, line, J_FIELDS, (opcode, target))

    def add_instruction_i(self, filename: str, line: int, opcode: int,
                          rs, rt, immediate) -> None:
        """Add an I-type instruction."""
        self._instruction(filename, line, I_FIELDS, (opcode, rs, rt, immediate))

    def add_instruction_r(self, filename: str, line: int, opcode: int,
                          rs, rt, rd, shamt, funct) -> None:
        """Add an R-type instruction."""
        self._instruction(filename, line, R_FIELDS, (opcode, rs, rt, rd, shamt, funct))

    def _instruction(self, filename: str, line: int, widths: tuple[int, ...],
                     values: tuple) -> None:
        location = SourceLocation(filename, line)
        if self._pc % 4:
            raise AssemblerError(
                f"instruction at ${self._pc:08X} is not word aligned",
                location,
                hint="use .align before code that follows data",
            )
        self._emit(location, widths, values)

    def _emit(self, location: SourceLocation, widths: tuple[int, ...], values: tuple) -> None:
        emission = Emission(self._pc, location, widths, values)
        self._emissions.append(emission)
        self._pc += emission.size

    # =========================================================================
    # Output
    # =========================================================================

    def dump(self) -> bytes:
        """
        Resolve every value and lay out the binary image.

        Returns:
            The image from the base address to the last emitted byte

        Raises:
            UndefinedSymbolError: If a referenced label was never bound
            RangeError: If a value does not fit its field
        """
        base = self.base
        end = max((e.address + e.size for e in self._emissions), default=base)
        image = bytearray(max(end - base, 0))

        for emission in self._emissions:
            offset = emission.address - base
            if offset < 0:
                raise RangeError(
                    f"address ${emission.address:08X} is below the output base ${base:08X}",
                    emission.location,
                )
            image[offset:offset + emission.size] = self._encode(emission)

        self._code = bytes(image)
        logger.debug(
            f"Generated {len(self._code)} bytes at ${base:08X}, "
            f"{len(self._symbols)} labels"
        )
        return self._code

    def _encode(self, emission: Emission) -> bytes:
        if not emission.widths:
            return emission.data

        word = 0
        for width, value in zip(emission.widths, emission.values):
            field_value = self._field(value, width, emission)
            word = (word << width) | field_value
        return word.to_bytes(emission.size, "big")

    def _field(self, value, width: int, emission: Emission) -> int:
        """Resolve one operand value and check it fits ``width`` bits."""
        location = emission.location

        if isinstance(value, str):
            if value not in REGISTER_NUMBERS:
                raise InternalError(f"unknown register '{value}'")
            return REGISTER_NUMBERS[value]

        if isinstance(value, Modified):
            result = self._modify(value, emission)
        elif isinstance(value, Constant):
            result = self._constant(value, emission)
        elif isinstance(value, int):
            result = value
        else:
            raise InternalError(f"cannot encode operand {value!r}")

        # Data may be written signed
        if emission.is_data:
            if -(1 << (width - 1)) <= result < 0:
                result &= (1 << width) - 1

        if not 0 <= result < (1 << width):
            raise RangeError(f"value {result:#x} does not fit in {width} bits", location)
        return result

    def _constant(self, constant: Constant, emission: Emission) -> int:
        if constant.kind == ConstKind.NUM:
            return constant.value

        symbol = self._symbols.get(constant.value)
        if symbol is None:
            raise UndefinedSymbolError(
                constant.value,
                emission.location,
                similar_symbols=get_close_matches(constant.value, self._symbols),
            )
        if constant.kind == ConstKind.LABEL_REL:
            return (symbol.value - (emission.address + 4)) >> 2
        return symbol.value

    def _modify(self, value: Modified, emission: Emission) -> int:
        result = self._constant(value.constant, emission)
        modifier = value.modifier

        if modifier in (Modifier.SIGNED, Modifier.NEGATE):
            if modifier == Modifier.NEGATE:
                result = -result
            # Branch offsets are always signed
            high = 0x7FFF if value.constant.kind == ConstKind.LABEL_REL else 0xFFFF
            if not -0x8000 <= result <= high:
                raise RangeError(
                    f"value {result:#x} does not fit in 16 bits", emission.location
                )
            return result & 0xFFFF

        if modifier == Modifier.INDEX:
            if result % 4:
                raise RangeError(
                    f"jump target {result:#x} is not word aligned", emission.location
                )
            return (result >> 2) & 0x3FFFFFF

        if modifier == Modifier.UPPER:
            return ((result + 0x8000) >> 16) & 0xFFFF

        if modifier == Modifier.LOWER:
            return result & 0xFFFF

        raise InternalError(f"unknown modifier {modifier}")

    def get_code(self) -> bytes:
        """Return the image produced by the last dump()."""
        if self._code is None:
            raise InternalError("code requested before dump")
        return self._code

    def get_symbols(self) -> dict[str, int]:
        """Return a dictionary of label names to addresses (anchors excluded)."""
        return {
            name: sym.value for name, sym in self._symbols.items()
            if not name[0].isdigit()
        }

    def write_symbols(self, filepath: Union[str, Path]) -> None:
        """
        Write symbol table file.

        Format: name address (one per line)
        """
        with open(filepath, "w") as f:
            f.write("# Symbol table\n")
            f.write("# Generated by mipsasm\n")
            for name, value in sorted(self.get_symbols().items()):
                f.write(f"{name} ${value:08X}\n")
