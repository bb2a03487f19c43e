"""
cpuasm - Assembler Front-End Command-Line Interface
===================================================

Scans and parses an assembly source file and prints a listing of the
functions and statements it contains. Errors are reported with file,
line and column.

Usage Examples
--------------
Check a file and print its listing:
    $ cpuasm program.asm

Write the listing to a file:
    $ cpuasm program.asm -l program.lst

Start parsing with a different active datatype:
    $ cpuasm --default-datatype long program.asm

Verbose mode (debug logging and a summary):
    $ cpuasm -v program.asm
"""

from dataclasses import replace
from pathlib import Path
from typing import Optional
import logging

import click

from cpuem_asm import __version__
from cpuem_asm.assembler import Assembler
from cpuem_asm.cli.errors import handle_cli_exception
from cpuem_asm.config import AssemblerConfig
from cpuem_asm.cpu import DATATYPE_NAMES, lookup_datatype


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s" if verbose else "%(message)s",
    )


def load_config(
    max_token_length: Optional[int],
    default_datatype: Optional[str],
) -> AssemblerConfig:
    """
    Build the configuration from the environment and command-line overrides.

    Raises:
        click.BadParameter: If an environment variable or option is invalid
    """
    try:
        config = AssemblerConfig.from_env()
        overrides = {}
        if max_token_length is not None:
            overrides["max_token_length"] = max_token_length
        if default_datatype is not None:
            overrides["default_datatype"] = lookup_datatype(default_datatype)
        if overrides:
            config = replace(config, **overrides)
    except ValueError as e:
        raise click.BadParameter(str(e)) from None
    return config


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-l", "--listing",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write the listing to FILE instead of standard output",
)
@click.option(
    "--max-token-length",
    type=click.IntRange(min=1),
    default=None,
    help="Longest word or literal accepted (default: 256, "
         "or CPUEM_ASM_MAX_TOKEN_LENGTH)",
)
@click.option(
    "--default-datatype",
    type=click.Choice(DATATYPE_NAMES),
    default=None,
    help="Active datatype at the start of the file (default: int, "
         "or CPUEM_ASM_DEFAULT_DATATYPE)",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output",
)
@click.version_option(version=__version__, prog_name="cpuasm")
def main(
    input_file: Path,
    listing: Optional[Path],
    max_token_length: Optional[int],
    default_datatype: Optional[str],
    verbose: bool,
) -> None:
    """
    Scan and parse assembly source for the cpuem instruction set.

    INPUT_FILE is the assembly source file to check.

    \b
    Examples:
        cpuasm program.asm                 # Print listing
        cpuasm program.asm -l out.lst      # Write listing to out.lst
        cpuasm -v program.asm              # Debug logging and summary
    """
    setup_logging(verbose)

    try:
        config = load_config(max_token_length, default_datatype)

        asm = Assembler(config=config, verbose=verbose)
        functions = asm.assemble_file(input_file)

        if listing:
            asm.write_listing(listing)
            if verbose:
                click.echo(f"Wrote listing to {listing}")
        else:
            text = asm.get_listing()
            if text:
                click.echo(text)

        if verbose:
            symbol_count = sum(len(f.body) for f in functions)
            external = asm.get_external_functions()
            click.echo(
                f"Parsed {len(functions)} functions, {symbol_count} symbols, "
                f"{len(external)} external references"
            )

    except Exception as e:
        handle_cli_exception(e, verbose=verbose, error_type="Assembly")


if __name__ == "__main__":
    main()
