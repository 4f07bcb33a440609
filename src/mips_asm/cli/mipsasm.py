"""
mipsasm - MIPS Assembler Command-Line Interface
===============================================

This module implements the command-line interface for the MIPS assembler.

Usage Examples
--------------
Basic assembly:
    $ mipsasm boot.asm

With output file:
    $ mipsasm boot.asm -o boot.bin

With symbol table:
    $ mipsasm boot.asm -o boot.bin -s boot.sym

With include path and defines:
    $ mipsasm -I ./include -D DEBUG=1 -D STACK=0x801FFFF0 boot.asm

Output starting below the first .org:
    $ mipsasm --base 0x80000000 boot.asm

Verbose mode:
    $ mipsasm -v boot.asm
"""

from pathlib import Path
from typing import Optional
import logging

import click

from mips_asm import __version__
from mips_asm.assembler import Assembler
from mips_asm.cli.errors import handle_cli_exception

# Logger for this module
logger = logging.getLogger(__name__)


def parse_number(text: str) -> int:
    """
    Parse a command-line number: decimal, 0x/0b/0o prefixed or $hex.

    Raises:
        ValueError: If the text is not a number
    """
    text = text.strip()
    if text.startswith("$"):
        return int(text[1:], 16)
    return int(text, 0)


def parse_define(text: str) -> tuple[str, int]:
    """
    Parse a -D argument. A define without a value is set to 1.

    Raises:
        click.BadParameter: If the value is not a number
    """
    if "=" not in text:
        return text.strip(), 1
    name, value_str = text.split("=", 1)
    try:
        return name.strip(), parse_number(value_str)
    except ValueError:
        raise click.BadParameter(f"invalid value in -D {text}") from None


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output binary file (default: input.bin)",
)
@click.option(
    "-s", "--symbols",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Generate symbol file",
)
@click.option(
    "-I", "--include",
    multiple=True,
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Add include search path (can be repeated)",
)
@click.option(
    "-D", "--define",
    multiple=True,
    help="Define value for @NAME (format: NAME=VALUE). Wins over source defines.",
)
@click.option(
    "--base",
    help="Address of the first output byte (default: first .org)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="mipsasm")
def main(
    input_file: Path,
    output: Optional[Path],
    symbols: Optional[Path],
    include: tuple[Path, ...],
    define: tuple[str, ...],
    base: Optional[str],
    verbose: bool,
) -> None:
    """
    Assemble MIPS (R4300) source code into a raw big-endian binary.

    INPUT_FILE is the assembly source file (.asm) to assemble.

    \b
    Examples:
        mipsasm boot.asm              # Outputs boot.bin
        mipsasm boot.asm -o out.bin   # Specify output file
        mipsasm -I inc/ boot.asm      # Add include path
        mipsasm -D DEBUG=1 boot.asm   # Define value
    """
    setup_logging(verbose)
    output_file = output if output is not None else input_file.with_suffix(".bin")

    try:
        defines = dict(parse_define(defn) for defn in define)

        base_address = None
        if base is not None:
            try:
                base_address = parse_number(base)
            except ValueError:
                raise click.BadParameter(f"invalid --base value {base}") from None

        asm = Assembler(
            verbose=verbose,
            include_paths=list(include),
            defines=defines,
            base=base_address,
        )
        logger.debug(f"Defines: {defines}, include paths: {[str(p) for p in include]}")

        asm.assemble_file(input_file)
        asm.write_binary(output_file)

        if symbols:
            asm.write_symbols(symbols)

        if verbose:
            code = asm.get_code()
            click.echo(f"Assembly complete: {len(code)} bytes at ${asm.get_base():08X}")
            click.echo(f"Defined {len(asm.get_symbols())} labels")

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
