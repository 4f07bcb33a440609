"""
R4300 Instruction and Register Tables
=====================================

Static description of the MIPS III (R4300) instruction set as seen by the
assembler front end. Every mnemonic maps to an InstructionInfo descriptor
holding two small format strings:

* the **input format** names, in order, the operand roles to parse from
  the source line (one character per role, see InputRole);
* the **output format** names, in order, the values handed to the encoder
  (one character per field, see OutputField). Its length selects the
  encoding shape: 1 = jump, 3 = immediate, 5 = register.

Field order per shape
---------------------
| Shape     | Fields after the first (opcode) field |
|-----------|---------------------------------------|
| jump      | target                                |
| immediate | rs, rt, immediate                     |
| register  | rs, rt, rd, shamt, funct              |

Descriptors are validated when they are constructed, so a malformed table
fails at import time rather than on the first line that uses it.

Example
-------
>>> INSTRUCTIONS["ADDIU"].shape
<Shape.IMMEDIATE: 3>
>>> canonical_register("$sp")
'SP'
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from mips_asm.errors import InternalError


# =============================================================================
# Format Characters
# =============================================================================

class InputRole(Enum):
    """
    Operand roles that may appear in an input format string.

    The value of each member is its format character.
    """
    RD = "d"            # General destination register
    RS = "s"            # General source register
    RT = "t"            # General second source / target register
    FD = "D"            # FPU destination register
    FS = "S"            # FPU source register
    FT = "T"            # FPU second source register
    SYS_RD = "X"        # System (COP0) register in the rd slot
    SYS_RS = "Y"        # System register in the rs slot
    SYS_RT = "Z"        # System register in the rt slot
    OFFSET = "o"        # Signed offset, labels allowed
    RELATIVE = "r"      # Signed offset, labels are PC-relative
    IMMEDIATE = "i"     # Immediate, no labels
    INDEX = "I"         # Jump index, labels allowed
    NEGATED = "k"       # Negated immediate, no labels
    SIGNED = "K"        # Sign-extended immediate, no labels
    BASE = "b"          # Dereferenced base register: (reg)

    @property
    def slot(self) -> str:
        """Name of the OperandBundle slot this role fills."""
        return _ROLE_SLOTS[self]

    @property
    def register_class(self) -> Optional[str]:
        """'general', 'fpu' or 'system' for register roles, else None."""
        return _ROLE_REGISTER_CLASS.get(self)


_ROLE_SLOTS = {
    InputRole.RD: "rd", InputRole.RS: "rs", InputRole.RT: "rt",
    InputRole.FD: "fd", InputRole.FS: "fs", InputRole.FT: "ft",
    InputRole.SYS_RD: "rd", InputRole.SYS_RS: "rs", InputRole.SYS_RT: "rt",
    InputRole.OFFSET: "offset", InputRole.RELATIVE: "offset",
    InputRole.IMMEDIATE: "immediate", InputRole.NEGATED: "immediate",
    InputRole.SIGNED: "immediate",
    InputRole.INDEX: "index",
    InputRole.BASE: "base",
}

_ROLE_REGISTER_CLASS = {
    InputRole.RD: "general", InputRole.RS: "general", InputRole.RT: "general",
    InputRole.FD: "fpu", InputRole.FS: "fpu", InputRole.FT: "fpu",
    InputRole.SYS_RD: "system", InputRole.SYS_RS: "system", InputRole.SYS_RT: "system",
}


class OutputField(Enum):
    """Values an output format string can place into an encoding field."""
    RD = "d"
    RS = "s"
    RT = "t"
    FD = "D"
    FS = "S"
    FT = "T"
    OFFSET = "o"
    IMMEDIATE = "i"
    INDEX = "I"
    BASE = "b"
    ZERO = "0"
    CONST = "C"
    FORMAT_CONST = "F"

    @property
    def slot(self) -> Optional[str]:
        """Bundle slot read by this field, or None for literal fields."""
        if self in (OutputField.ZERO, OutputField.CONST, OutputField.FORMAT_CONST):
            return None
        return {
            "d": "rd", "s": "rs", "t": "rt",
            "D": "fd", "S": "fs", "T": "ft",
            "o": "offset", "i": "immediate", "I": "index", "b": "base",
        }[self.value]


class Shape(Enum):
    """Encoding shapes, valued by their output format length."""
    JUMP = 1
    IMMEDIATE = 3
    REGISTER = 5


# The load/store-at-address pseudo form accepts exactly these inputs
ADDRESS_FORMATS = frozenset({"tob", "Tob"})


# =============================================================================
# Instruction Descriptor
# =============================================================================

@dataclass(frozen=True)
class InstructionInfo:
    """
    Declarative description of one mnemonic.

    Attributes:
        opcode: Value for the first (6-bit) field of the encoding
        input_format: Operand roles to parse, or None when the mnemonic is
                      handled by an override (or not implemented at all)
        output_format: Fields to hand to the encoder, in positional order
        const: Fixed value for 'C' output fields (funct, REGIMM selector)
        format_const: Fixed value for 'F' output fields (COP fmt/rs field)
        address_form: True for loads/stores that accept an absolute or
                      symbolic address and may expand to several instructions
    """
    opcode: Optional[int] = None
    input_format: Optional[str] = None
    output_format: Optional[str] = None
    const: Optional[int] = None
    format_const: Optional[int] = None
    address_form: bool = False

    input_roles: tuple[InputRole, ...] = field(init=False, default=())
    output_fields: tuple[OutputField, ...] = field(init=False, default=())

    def __post_init__(self) -> None:
        if (self.input_format is None) != (self.output_format is None):
            raise InternalError("instruction needs both input and output formats")
        if self.input_format is None:
            if self.address_form:
                raise InternalError("address form requires formats")
            return
        if self.opcode is None:
            raise InternalError(f"missing opcode for format '{self.input_format}'")

        roles = tuple(self._input_role(c) for c in self.input_format)
        slots = [role.slot for role in roles]
        if len(set(slots)) != len(slots):
            raise InternalError("invalid input formatting string")

        fields = tuple(self._output_field(c) for c in self.output_format)
        if len(fields) not in (1, 3, 5):
            raise InternalError("invalid output formatting string")

        if self.address_form and self.input_format not in ADDRESS_FORMATS:
            raise InternalError("invalid input formatting string")

        for out in fields:
            if out.slot is not None and out.slot not in slots:
                raise InternalError("invalid output formatting string")
            if out is OutputField.CONST and self.const is None:
                raise InternalError("output format uses 'C' without a constant")
            if out is OutputField.FORMAT_CONST and self.format_const is None:
                raise InternalError("output format uses 'F' without a format constant")

        object.__setattr__(self, "input_roles", roles)
        object.__setattr__(self, "output_fields", fields)

    @staticmethod
    def _input_role(char: str) -> InputRole:
        try:
            return InputRole(char)
        except ValueError:
            raise InternalError("invalid input formatting string") from None

    @staticmethod
    def _output_field(char: str) -> OutputField:
        try:
            return OutputField(char)
        except ValueError:
            raise InternalError("invalid output formatting string") from None

    @property
    def shape(self) -> Optional[Shape]:
        """Encoding shape selected by the output format length."""
        if not self.output_fields:
            return None
        return Shape(len(self.output_fields))


# =============================================================================
# Registers
# =============================================================================

# General purpose register names indexed by number
GPR_NAMES = (
    "R0", "AT", "V0", "V1", "A0", "A1", "A2", "A3",
    "T0", "T1", "T2", "T3", "T4", "T5", "T6", "T7",
    "S0", "S1", "S2", "S3", "S4", "S5", "S6", "S7",
    "T8", "T9", "K0", "K1", "GP", "SP", "FP", "RA",
)

# Register the assembler uses when synthesizing address loads
SCRATCH_REGISTER = "AT"

# Registers a program may name; AT belongs to the assembler
GENERAL_REGISTERS = frozenset(GPR_NAMES) - {SCRATCH_REGISTER}

FPU_REGISTERS = frozenset(f"F{n}" for n in range(32))

# COP0 register names indexed by number (None = reserved)
COP0_NAMES = (
    "INDEX", "RANDOM", "ENTRYLO0", "ENTRYLO1",
    "CONTEXT", "PAGEMASK", "WIRED", None,
    "BADVADDR", "COUNT", "ENTRYHI", "COMPARE",
    "STATUS", "CAUSE", "EPC", "PRID",
    "CONFIG", "LLADDR", "WATCHLO", "WATCHHI",
    "XCONTEXT", None, None, None,
    None, None, "PERR", "CACHEERR",
    "TAGLO", "TAGHI", "ERROREPC", None,
)

SYSTEM_REGISTERS = frozenset(name for name in COP0_NAMES if name)

REGISTER_SETS = {
    "general": GENERAL_REGISTERS,
    "fpu": FPU_REGISTERS,
    "system": SYSTEM_REGISTERS,
}

# Every canonical register name mapped to its field value
REGISTER_NUMBERS: dict[str, int] = {
    **{name: n for n, name in enumerate(GPR_NAMES)},
    **{f"F{n}": n for n in range(32)},
    **{name: n for n, name in enumerate(COP0_NAMES) if name},
}

_REGISTER_ALIASES = {
    "ZERO": "R0",
    "S8": "FP",
}


def canonical_register(text: str) -> Optional[str]:
    """
    Map a register spelling to its canonical upper-case name.

    Accepts an optional '$' prefix, ABI names (t0, sp), numeric names
    (r4, $4), FPU names (f12, $f12) and COP0 names (Status).

    Returns:
        The canonical name, or None if text is not a register
    """
    name = text.upper()
    if name.startswith("$"):
        name = name[1:]
        if name.isdigit():
            name = "R" + name
    name = _REGISTER_ALIASES.get(name, name)

    if name.startswith("R") and name[1:].isdigit():
        number = int(name[1:])
        return GPR_NAMES[number] if number < 32 else None

    if name in REGISTER_NUMBERS:
        return name
    return None


# =============================================================================
# Instruction Table
# =============================================================================

def _table() -> dict[str, InstructionInfo]:
    """Build the mnemonic table."""
    t: dict[str, InstructionInfo] = {}

    def add(name, opcode, informat, outformat, const=None, format_const=None):
        t[name] = InstructionInfo(opcode, informat, outformat, const, format_const)

    def address(name, opcode, informat="tob", outformat="bto"):
        t[name] = InstructionInfo(opcode, informat, outformat, address_form=True)

    # -------------------------------------------------------------------------
    # SPECIAL (opcode 0)
    # -------------------------------------------------------------------------
    for name, funct in (
        ("ADD", 0x20), ("ADDU", 0x21), ("SUB", 0x22), ("SUBU", 0x23),
        ("AND", 0x24), ("OR", 0x25), ("XOR", 0x26), ("NOR", 0x27),
        ("SLT", 0x2A), ("SLTU", 0x2B),
        ("DADD", 0x2C), ("DADDU", 0x2D), ("DSUB", 0x2E), ("DSUBU", 0x2F),
    ):
        add(name, 0, "dst", "std0C", funct)

    for name, funct in (
        ("SLLV", 0x04), ("SRLV", 0x06), ("SRAV", 0x07),
        ("DSLLV", 0x14), ("DSRLV", 0x16), ("DSRAV", 0x17),
    ):
        add(name, 0, "dts", "std0C", funct)

    for name, funct in (
        ("SLL", 0x00), ("SRL", 0x02), ("SRA", 0x03),
        ("DSLL", 0x38), ("DSRL", 0x3A), ("DSRA", 0x3B),
        ("DSLL32", 0x3C), ("DSRL32", 0x3E), ("DSRA32", 0x3F),
    ):
        add(name, 0, "dti", "0tdiC", funct)

    for name, funct in (
        ("MULT", 0x18), ("MULTU", 0x19), ("DIV", 0x1A), ("DIVU", 0x1B),
        ("DMULT", 0x1C), ("DMULTU", 0x1D), ("DDIV", 0x1E), ("DDIVU", 0x1F),
        ("TGE", 0x30), ("TGEU", 0x31), ("TLT", 0x32), ("TLTU", 0x33),
        ("TEQ", 0x34), ("TNE", 0x36),
    ):
        add(name, 0, "st", "st00C", funct)

    add("JR", 0, "s", "s000C", 0x08)
    add("JALR", 0, "ds", "s0d0C", 0x09)
    add("SYSCALL", 0, "", "0000C", 0x0C)
    add("BREAK", 0, "", "0000C", 0x0D)
    add("SYNC", 0, "", "0000C", 0x0F)
    add("MFHI", 0, "d", "00d0C", 0x10)
    add("MTHI", 0, "s", "s000C", 0x11)
    add("MFLO", 0, "d", "00d0C", 0x12)
    add("MTLO", 0, "s", "s000C", 0x13)

    # -------------------------------------------------------------------------
    # REGIMM (opcode 1): the rt field selects the operation
    # -------------------------------------------------------------------------
    for name, selector in (
        ("BLTZ", 0x00), ("BGEZ", 0x01), ("BLTZL", 0x02), ("BGEZL", 0x03),
        ("BLTZAL", 0x10), ("BGEZAL", 0x11), ("BLTZALL", 0x12), ("BGEZALL", 0x13),
    ):
        add(name, 1, "sr", "sCo", selector)

    for name, selector in (
        ("TGEI", 0x08), ("TGEIU", 0x09), ("TLTI", 0x0A), ("TLTIU", 0x0B),
        ("TEQI", 0x0C), ("TNEI", 0x0E),
    ):
        add(name, 1, "sK", "sCi", selector)

    # -------------------------------------------------------------------------
    # Jumps, branches and immediates
    # -------------------------------------------------------------------------
    add("J", 2, "I", "I")
    add("JAL", 3, "I", "I")

    for name, opcode in (("BEQ", 4), ("BNE", 5), ("BEQL", 0x14), ("BNEL", 0x15)):
        add(name, opcode, "str", "sto")
    for name, opcode in (("BLEZ", 6), ("BGTZ", 7), ("BLEZL", 0x16), ("BGTZL", 0x17)):
        add(name, opcode, "sr", "s0o")

    for name, opcode in (
        ("ADDI", 0x08), ("ADDIU", 0x09), ("SLTI", 0x0A), ("SLTIU", 0x0B),
        ("DADDI", 0x18), ("DADDIU", 0x19),
    ):
        add(name, opcode, "tsK", "sti")
    for name, opcode in (("ANDI", 0x0C), ("ORI", 0x0D), ("XORI", 0x0E)):
        add(name, opcode, "tsi", "sti")
    add("LUI", 0x0F, "ti", "0ti")

    # -------------------------------------------------------------------------
    # Loads and stores
    # -------------------------------------------------------------------------
    for name, opcode in (
        ("LDL", 0x1A), ("LDR", 0x1B),
        ("LB", 0x20), ("LH", 0x21), ("LWL", 0x22), ("LW", 0x23),
        ("LBU", 0x24), ("LHU", 0x25), ("LWR", 0x26), ("LWU", 0x27),
        ("SB", 0x28), ("SH", 0x29), ("SWL", 0x2A), ("SW", 0x2B),
        ("SDL", 0x2C), ("SDR", 0x2D), ("SWR", 0x2E),
        ("LL", 0x30), ("LLD", 0x34), ("LD", 0x37),
        ("SC", 0x38), ("SCD", 0x3C), ("SD", 0x3F),
    ):
        address(name, opcode)
    for name, opcode in (("LWC1", 0x31), ("LDC1", 0x35), ("SWC1", 0x39), ("SDC1", 0x3D)):
        address(name, opcode, "Tob", "bTo")

    # Cache operations take an operation code operand we do not parse
    t["CACHE"] = InstructionInfo(0x2F)

    # -------------------------------------------------------------------------
    # COP0 (opcode 0x10)
    # -------------------------------------------------------------------------
    for name, rs in (("MFC0", 0x00), ("DMFC0", 0x01), ("MTC0", 0x04), ("DMTC0", 0x05)):
        add(name, 0x10, "tX", "Ctd00", rs)
    for name, funct in (
        ("TLBR", 0x01), ("TLBWI", 0x02), ("TLBWR", 0x06), ("TLBP", 0x08), ("ERET", 0x18),
    ):
        add(name, 0x10, "", "F000C", funct, 0x10)

    # -------------------------------------------------------------------------
    # COP1 (opcode 0x11)
    # -------------------------------------------------------------------------
    for name, rs in (
        ("MFC1", 0x00), ("DMFC1", 0x01), ("CFC1", 0x02),
        ("MTC1", 0x04), ("DMTC1", 0x05), ("CTC1", 0x06),
    ):
        add(name, 0x11, "tS", "CtS00", rs)
    for name, cond in (("BC1F", 0), ("BC1T", 1), ("BC1FL", 2), ("BC1TL", 3)):
        add(name, 0x11, "r", "FCo", cond, 0x08)

    fmts = {"S": 0x10, "D": 0x11, "W": 0x14, "L": 0x15}
    for fmt in ("S", "D"):
        for op, funct in (("ADD", 0x00), ("SUB", 0x01), ("MUL", 0x02), ("DIV", 0x03)):
            add(f"{op}.{fmt}", 0x11, "DST", "FTSDC", funct, fmts[fmt])
        for op, funct in (
            ("SQRT", 0x04), ("ABS", 0x05), ("MOV", 0x06), ("NEG", 0x07),
            ("ROUND.L", 0x08), ("TRUNC.L", 0x09), ("CEIL.L", 0x0A), ("FLOOR.L", 0x0B),
            ("ROUND.W", 0x0C), ("TRUNC.W", 0x0D), ("CEIL.W", 0x0E), ("FLOOR.W", 0x0F),
            ("CVT.W", 0x24), ("CVT.L", 0x25),
        ):
            add(f"{op}.{fmt}", 0x11, "DS", "F0SDC", funct, fmts[fmt])
        for cond, name in enumerate((
            "F", "UN", "EQ", "UEQ", "OLT", "ULT", "OLE", "ULE",
            "SF", "NGLE", "SEQ", "NGL", "LT", "NGE", "LE", "NGT",
        )):
            add(f"C.{name}.{fmt}", 0x11, "ST", "FTS0C", 0x30 | cond, fmts[fmt])

    for src in ("D", "W", "L"):
        add(f"CVT.S.{src}", 0x11, "DS", "F0SDC", 0x20, fmts[src])
    for src in ("S", "W", "L"):
        add(f"CVT.D.{src}", 0x11, "DS", "F0SDC", 0x21, fmts[src])

    # -------------------------------------------------------------------------
    # Pseudo instructions expressible as one real instruction
    # -------------------------------------------------------------------------
    add("NOP", 0, "", "00000")
    add("MOVE", 0, "ds", "s0d0C", 0x25)
    add("CL", 0, "d", "00d0C", 0x25)
    add("NOT", 0, "ds", "s0d0C", 0x27)
    add("NEG", 0, "ds", "0sd0C", 0x22)
    add("NEGU", 0, "ds", "0sd0C", 0x23)
    add("B", 4, "r", "00o")
    add("BAL", 1, "r", "0Co", 0x11)
    add("BEQZ", 4, "sr", "s0o")
    add("BNEZ", 5, "sr", "s0o")
    add("BEQZL", 0x14, "sr", "s0o")
    add("BNEZL", 0x15, "sr", "s0o")
    add("SUBI", 0x08, "tsk", "sti")
    add("SUBIU", 0x09, "tsk", "sti")

    # -------------------------------------------------------------------------
    # Mnemonics parsed entirely by overrides
    # -------------------------------------------------------------------------
    for name in ("LI", "LA", "PUSH", "POP", "BLT", "BGE", "BGT", "BLE"):
        t[name] = InstructionInfo()

    return t


INSTRUCTIONS: dict[str, InstructionInfo] = _table()

MNEMONICS = frozenset(INSTRUCTIONS)


def get_instruction_info(mnemonic: str) -> Optional[InstructionInfo]:
    """Look up a mnemonic (case-insensitive)."""
    return INSTRUCTIONS.get(mnemonic.upper())


def is_register_in(name: str, register_class: str) -> bool:
    """Check whether a canonical register name belongs to a register class."""
    return name in REGISTER_SETS[register_class]
