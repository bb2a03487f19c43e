"""
cpuem-asm - Assembler Front End for the cpuem Instruction Set
=============================================================

This package scans and parses assembly source for a small custom
instruction set with 4-bit datatypes and content-addressed functions.
It produces Function objects whose bodies are sequences of symbolic
statements (operations, conditional branches, calls), ready for the
hashing, linking and code-generation stages that follow.

Main Components
---------------
- **assembler**: Lexer, parser, symbol model and the Assembler facade
- **cpu**: Datatype registry (4-bit encoding) and operation-table constants
- **config**: AssemblerConfig (token length limit, default datatype)
- **errors**: Exception hierarchy with source locations
- **cli**: The ``cpuasm`` command-line tool

Quick Start
-----------
    >>> from cpuem_asm import Assembler
    >>> asm = Assembler()
    >>> functions = asm.assemble_file("program.asm")
    >>> print(asm.get_listing())

Or from the command line:
    $ cpuasm program.asm -l program.lst
"""

__version__ = "0.1.0"

from cpuem_asm.assembler import Assembler, assemble, assemble_file, parse, scan
from cpuem_asm.config import AssemblerConfig
from cpuem_asm.cpu import Datatype
from cpuem_asm.errors import (
    CpuemError,
    SourceLocation,
    AssemblerError,
    LexError,
    TokenTooLongError,
    ParseError,
    UnexpectedEndError,
    UnexpectedTokenError,
    UnknownKeywordError,
    MalformedBranchError,
    MalformedCallError,
    DatatypeMismatchError,
    ImmediateRangeError,
    DuplicateFunctionError,
)

__all__ = [
    "__version__",
    # Front end
    "Assembler",
    "assemble",
    "assemble_file",
    "parse",
    "scan",
    "AssemblerConfig",
    "Datatype",
    # Exception hierarchy
    "CpuemError",
    "SourceLocation",
    "AssemblerError",
    "LexError",
    "TokenTooLongError",
    "ParseError",
    "UnexpectedEndError",
    "UnexpectedTokenError",
    "UnknownKeywordError",
    "MalformedBranchError",
    "MalformedCallError",
    "DatatypeMismatchError",
    "ImmediateRangeError",
    "DuplicateFunctionError",
]
