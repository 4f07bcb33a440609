"""
Instruction Format Engine
=========================

Generic operand parsing and encoding driven by the format strings of an
InstructionInfo descriptor.

The engine never interprets operand meaning. ``parse_operands`` fills an
OperandBundle role by role, and ``emit`` copies bundle slots into the
positions the output format lists, handing them to the jump, immediate or
register encoder depending on how many positions there are.

Separators between operands are optional: after each role, a comma is
consumed if present, unless the next role is a dereferenced base (which
follows its offset directly, as in ``4(sp)``).

Load/Store at an Address
------------------------
Loads and stores also accept an absolute or symbolic address::

    lw    t0, (sp)          ; lw t0, 0(sp)
    lw    t0, 8(sp)         ; lw t0, 8(sp)
    lw    t0, -4(sp)        ; lw t0, -4(sp)
    lw    t0, table         ; lui at, %hi(table); lw t0, %lo(table)(at)
    lw    t0, table(t1)     ; lui at, %hi(table); addu at, at, t1; lw t0, %lo(table)(at)

The upper half is only synthesized for labels and for numbers outside the
signed 16-bit range; smaller numbers still need an explicit base register.
"""

from mips_asm.errors import InternalError
from mips_asm.assembler.lexer import TokenType
from mips_asm.assembler.operands import (
    ConstKind,
    Constant,
    Modified,
    Modifier,
    OperandBundle,
)
from mips_asm.cpu import (
    INSTRUCTIONS,
    InputRole,
    InstructionInfo,
    OutputField,
    SCRATCH_REGISTER,
    Shape,
)


# =============================================================================
# Input Side
# =============================================================================

def parse_operands(parser, roles: tuple[InputRole, ...]) -> OperandBundle:
    """
    Parse operands for a sequence of input roles.

    Args:
        parser: Parser positioned on the first operand
        roles: Roles from InstructionInfo.input_roles

    Returns:
        Bundle with one slot filled per role
    """
    bundle = OperandBundle()
    for i, role in enumerate(roles):
        setattr(bundle, role.slot, parse_role(parser, role))
        if i + 1 < len(roles) and roles[i + 1] is not InputRole.BASE:
            parser.optional_comma()
    return bundle


def parse_role(parser, role: InputRole):
    """Parse a single operand for a role."""
    if role.register_class is not None:
        return parser.register(role.register_class)

    if role is InputRole.OFFSET:
        return Modified(Modifier.SIGNED, parser.const())
    if role is InputRole.RELATIVE:
        return Modified(Modifier.SIGNED, parser.const(relative=True))
    if role is InputRole.IMMEDIATE:
        return parser.const(no_label=True)
    if role is InputRole.INDEX:
        return Modified(Modifier.INDEX, parser.const())
    if role is InputRole.NEGATED:
        return Modified(Modifier.NEGATE, parser.const(no_label=True))
    if role is InputRole.SIGNED:
        return Modified(Modifier.SIGNED, parser.const(no_label=True))
    if role is InputRole.BASE:
        return parser.deref()

    raise InternalError("invalid input formatting string")


# =============================================================================
# Output Side
# =============================================================================

def emit(parser, info: InstructionInfo, bundle: OperandBundle) -> None:
    """
    Send one instruction to the code generator.

    Args:
        parser: Parser supplying the code generator and source position
        info: Descriptor whose output format orders the fields
        bundle: Parsed operands
    """
    values = []
    for out in info.output_fields:
        if out is OutputField.ZERO:
            values.append(0)
        elif out is OutputField.CONST:
            values.append(info.const)
        elif out is OutputField.FORMAT_CONST:
            values.append(info.format_const)
        else:
            value = getattr(bundle, out.slot)
            if value is None:
                raise InternalError(f"missing operand for output field '{out.value}'")
            values.append(value)

    codegen = parser.codegen
    encoders = {
        Shape.JUMP: codegen.add_instruction_j,
        Shape.IMMEDIATE: codegen.add_instruction_i,
        Shape.REGISTER: codegen.add_instruction_r,
    }
    encoder = encoders.get(info.shape)
    if encoder is None:
        raise InternalError("invalid output formatting string")
    encoder(parser.filename, parser.line, info.opcode, *values)


def emit_mnemonic(parser, mnemonic: str, bundle: OperandBundle) -> None:
    """Emit a table instruction by name with a prepared bundle."""
    info = INSTRUCTIONS.get(mnemonic)
    if info is None or info.input_format is None:
        raise InternalError(f"no encoding for '{mnemonic}'")
    emit(parser, info, bundle)


# =============================================================================
# Load/Store at an Address
# =============================================================================

def needs_upper(address: Constant) -> bool:
    """True if an address does not fit the signed 16-bit offset field."""
    if address.is_label:
        return True
    return not -0x8000 <= address.value <= 0x7FFF


def emit_address_form(parser, info: InstructionInfo) -> None:
    """
    Parse and emit a load/store that may name an address directly.

    Emits one instruction for a dereference or a short address, and up to
    three (LUI, ADDU, the access) when the scratch register carries the
    upper half of the address.
    """
    transfer = info.input_roles[0]
    bundle = OperandBundle()
    setattr(bundle, transfer.slot, parser.register(transfer.register_class))
    parser.optional_comma()

    if parser.token.type == TokenType.DEREF:
        bundle.offset = Constant(ConstKind.NUM, 0)
        bundle.base = parser.deref()
    else:
        address = parser.const()
        bundle.offset = Modified(Modifier.LOWER, address)
        if needs_upper(address):
            emit_mnemonic(parser, "LUI", OperandBundle(
                rt=SCRATCH_REGISTER,
                immediate=Modified(Modifier.UPPER, address),
            ))
            if not parser.is_eol():
                parser.optional_comma()
                emit_mnemonic(parser, "ADDU", OperandBundle(
                    rd=SCRATCH_REGISTER,
                    rs=SCRATCH_REGISTER,
                    rt=parser.deref(),
                ))
            bundle.base = SCRATCH_REGISTER
        else:
            bundle.base = parser.deref()

    emit(parser, info, bundle)
