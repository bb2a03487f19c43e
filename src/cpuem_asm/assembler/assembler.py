"""
Assembler Front End - Main Interface
====================================

This module provides the Assembler class, the primary interface for turning
assembly source into parsed functions. It runs the lexer and parser and
keeps the result for inspection and listing output.

Hashing, label resolution, opcode selection and binary emission are later
stages; they consume the Functions returned here.

Example Usage
-------------
>>> from cpuem_asm.assembler import Assembler
>>>
>>> asm = Assembler()
>>> functions = asm.assemble_string('''
... main {
...     int 5 push
...     brz.main
...     helper(1)
...     halt
... }
... ''')
>>> [f.identifier for f in functions]
['main']
>>> [f.identifier for f in asm.get_external_functions()]
['helper']
"""

from pathlib import Path
from typing import Optional
import logging

from cpuem_asm.config import AssemblerConfig
from cpuem_asm.assembler.lexer import scan
from cpuem_asm.assembler.parser import Parser
from cpuem_asm.assembler.symbols import Branch, Call, Function, Operation, Symbol


logger = logging.getLogger(__name__)


class Assembler:
    """
    Assembler front end: source text in, Functions out.

    Attributes:
        config: Scanner and parser settings
        verbose: If True, log progress at INFO level
    """

    def __init__(self, config: Optional[AssemblerConfig] = None, verbose: bool = False):
        """
        Initialize the assembler.

        Args:
            config: Assembler configuration (defaults if None)
            verbose: Log progress messages at INFO instead of DEBUG
        """
        self.config = config or AssemblerConfig()
        self.verbose = verbose
        self._functions: list[Function] = []
        self._external: list[Function] = []
        self._source_file: Optional[Path] = None

    # =========================================================================
    # Assembly
    # =========================================================================

    def assemble_string(self, source: str, filename: str = "<input>") -> list[Function]:
        """
        Assemble source text.

        Args:
            source: Assembly source text
            filename: Name used in error locations

        Returns:
            Declared functions in declaration order

        Raises:
            AssemblerError: On the first lex or parse error. The result of
                any previous assembly is discarded first.
        """
        self._functions = []
        self._external = []

        tokens = scan(source, filename, self.config.max_token_length)
        parser = Parser(tokens, filename, self.config.default_datatype, source)
        functions = parser.parse()

        self._functions = functions
        self._external = parser.external_functions

        self._log(
            f"{filename}: {len(functions)} functions, "
            f"{sum(len(f.body) for f in functions)} symbols, "
            f"{len(self._external)} external references"
        )
        return list(functions)

    def assemble_file(self, path: str | Path) -> list[Function]:
        """
        Assemble a source file.

        Args:
            path: Path to the assembly source (UTF-8)

        Returns:
            Declared functions in declaration order
        """
        path = Path(path)
        self._source_file = path
        self._log(f"Assembling {path}")
        source = path.read_text(encoding="utf-8")
        return self.assemble_string(source, str(path))

    def _log(self, message: str) -> None:
        logger.log(logging.INFO if self.verbose else logging.DEBUG, message)

    # =========================================================================
    # Results
    # =========================================================================

    def get_functions(self) -> list[Function]:
        """Functions from the last successful assembly."""
        return list(self._functions)

    def get_function(self, identifier: str) -> Optional[Function]:
        """Look up a declared function by name."""
        for func in self._functions:
            if func.identifier == identifier:
                return func
        return None

    def get_external_functions(self) -> list[Function]:
        """Functions that were called but not declared in the source."""
        return list(self._external)

    def get_source_file(self) -> Optional[Path]:
        return self._source_file

    # =========================================================================
    # Listing Output
    # =========================================================================

    def get_listing(self) -> str:
        """
        Render the parsed functions as a human-readable listing.

        Example output:
            main  hash=unresolved  3 symbols
              1:5    operation  int 5 push  [int 5]
              2:5    branch     brz.main
              3:5    call       halt  [intrinsic]
        """
        return format_listing(self._functions, self._external)

    def write_listing(self, path: str | Path) -> None:
        """Write the listing to a file."""
        Path(path).write_text(self.get_listing() + "\n", encoding="utf-8")


# =============================================================================
# Listing Formatting
# =============================================================================

_SYMBOL_KINDS = {
    Operation: "operation",
    Branch: "branch",
    Call: "call",
}


def _format_hash(func: Function) -> str:
    if func.hash.is_unresolved:
        return "unresolved"
    if func.hash.is_intrinsic:
        return "intrinsic"
    return str(func.hash)


def _format_symbol(symbol: Symbol) -> str:
    kind = _SYMBOL_KINDS.get(type(symbol), "symbol")
    position = f"{symbol.location.line}:{symbol.location.column}"
    line = f"  {position:<6} {kind:<10} {symbol.text}"

    if isinstance(symbol, Operation):
        if symbol.immediate is not None:
            line += f"  [{symbol.datatype} {symbol.immediate.payload!r}]"
        else:
            line += f"  [{symbol.datatype}]"
    elif isinstance(symbol, Call) and symbol.callee is not None:
        if symbol.callee.is_intrinsic:
            line += "  [intrinsic]"
        elif not symbol.callee.defined:
            line += "  [external]"
    return line


def format_listing(functions: list[Function], external: Optional[list[Function]] = None) -> str:
    """
    Format functions (and optionally external references) as a listing.

    Args:
        functions: Declared functions
        external: Called but undeclared functions

    Returns:
        Listing text without a trailing newline
    """
    lines = []
    for func in functions:
        count = len(func.body)
        noun = "symbol" if count == 1 else "symbols"
        lines.append(f"{func.identifier}  hash={_format_hash(func)}  {count} {noun}")
        lines.extend(_format_symbol(symbol) for symbol in func.body)
        lines.append("")

    if external:
        lines.append("External references:")
        lines.extend(f"  {func.identifier}" for func in external)
    elif lines:
        lines.pop()

    return "\n".join(lines)


# =============================================================================
# Convenience Functions
# =============================================================================

def assemble(source: str, config: Optional[AssemblerConfig] = None) -> list[Function]:
    """
    Assemble source text.

    Args:
        source: Assembly source text
        config: Assembler configuration (defaults if None)

    Returns:
        Declared functions in declaration order
    """
    return Assembler(config).assemble_string(source)


def assemble_file(path: str | Path, config: Optional[AssemblerConfig] = None) -> list[Function]:
    """
    Assemble a source file.

    Args:
        path: Path to the assembly source
        config: Assembler configuration (defaults if None)

    Returns:
        Declared functions in declaration order
    """
    return Assembler(config).assemble_file(path)
