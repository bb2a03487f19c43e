"""
Assembler Front End
===================

This package turns assembly source for the custom instruction set into
parsed Functions, ready for the hashing, linking and code-generation
stages.

Main Components
---------------
- **Assembler**: Facade that runs the lexer and parser and renders listings
- **Lexer**: Tokenizes source into classified tokens
- **Parser**: Parses tokens into Functions holding Operation, Branch and
  Call symbols
- **symbols**: The object model (Function, Symbol variants, Value, Hash)

Processing Pipeline
-------------------
1. **Scanning (Lexer)**: source text -> list of Tokens
2. **Parsing (Parser)**: Tokens -> Functions, tracking the active datatype
3. **Hand-off**: Functions go to the (external) hashing, linking and
   code-generation passes

Example Usage
-------------
>>> from cpuem_asm.assembler import assemble
>>> functions = assemble("add { int 5 push }")
>>> op = functions[0].body[0]
>>> op.datatype, op.immediate.payload, op.mnemonic
(<Datatype.INT: 6>, 5, 'push')
"""

from cpuem_asm.assembler.assembler import (
    Assembler,
    assemble,
    assemble_file,
    format_listing,
)
from cpuem_asm.assembler.lexer import Lexer, Token, TokenType, KEYWORDS, scan
from cpuem_asm.assembler.parser import (
    Parser,
    ParserState,
    BranchCondition,
    FunctionTable,
    decode_branch_mnemonic,
    parse,
    parse_source,
)
from cpuem_asm.assembler.symbols import (
    Hash,
    HASH_SIZE,
    Function,
    Node,
    DataList,
    Value,
    IntegerValue,
    RealValue,
    ReferenceValue,
    Symbol,
    Operation,
    Branch,
    Call,
)

__all__ = [
    # Main class and functions
    "Assembler",
    "assemble",
    "assemble_file",
    "format_listing",
    # Lexer
    "Lexer",
    "Token",
    "TokenType",
    "KEYWORDS",
    "scan",
    # Parser
    "Parser",
    "ParserState",
    "BranchCondition",
    "FunctionTable",
    "decode_branch_mnemonic",
    "parse",
    "parse_source",
    # Symbol model
    "Hash",
    "HASH_SIZE",
    "Function",
    "Node",
    "DataList",
    "Value",
    "IntegerValue",
    "RealValue",
    "ReferenceValue",
    "Symbol",
    "Operation",
    "Branch",
    "Call",
]
