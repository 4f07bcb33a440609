"""
Operand Values
==============

Values that flow from the parser to the code generator.

An encoding field receives one of:

- a canonical register name (``"T0"``), converted to its number at dump time
- a plain ``int`` (literal zero or a table constant)
- a ``Constant`` (number or label, resolved at dump time)
- a ``Modified`` constant, where the modifier says how the resolved value
  is folded into a 16-bit or 26-bit field
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Union


class ConstKind(Enum):
    """What a Constant refers to."""
    NUM = auto()        # Literal number
    LABEL = auto()      # Absolute label address
    LABEL_REL = auto()  # Label address relative to the delay slot, in words


class Modifier(Enum):
    """How a constant is folded into its field."""
    SIGNED = auto()     # 16-bit signed (or unsigned) value
    NEGATE = auto()     # 16-bit value of the negation
    INDEX = auto()      # 26-bit word index for J/JAL
    UPPER = auto()      # Upper half, rounded to pair with a signed LOWER
    LOWER = auto()      # Lower 16 bits


@dataclass(frozen=True)
class Constant:
    """A number or a label reference."""
    kind: ConstKind
    value: Union[int, str]

    @property
    def is_label(self) -> bool:
        return self.kind != ConstKind.NUM


@dataclass(frozen=True)
class Modified:
    """A constant tagged with the way it must be encoded."""
    modifier: Modifier
    constant: Constant


OperandValue = Union[str, int, Constant, Modified]


@dataclass
class OperandBundle:
    """
    Operands parsed for one instruction, keyed by role.

    Registers hold canonical names; constants hold Constant or Modified.
    """
    rd: Optional[str] = None
    rs: Optional[str] = None
    rt: Optional[str] = None
    fd: Optional[str] = None
    fs: Optional[str] = None
    ft: Optional[str] = None
    offset: Optional[OperandValue] = None
    immediate: Optional[OperandValue] = None
    index: Optional[OperandValue] = None
    base: Optional[str] = None
