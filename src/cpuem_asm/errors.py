"""
cpuem-asm Error Hierarchy
=========================

This module defines the exception hierarchy for the assembler front end.
All exceptions inherit from CpuemError, allowing callers to catch every
assembler failure with a single except clause if desired.

Exception Hierarchy
-------------------
CpuemError (base)
└── AssemblerError (source-related)
    ├── LexError - unknown character or malformed literal
    │   └── TokenTooLongError - word or literal exceeds the length limit
    └── ParseError - grammar violations
        ├── UnexpectedEndError - token list exhausted mid-construct
        ├── UnexpectedTokenError - token of the wrong kind
        ├── UnknownKeywordError - keyword without a statement form
        ├── MalformedBranchError - bad branch mnemonic or target
        ├── MalformedCallError - bad call syntax
        ├── DatatypeMismatchError - literal does not fit the active datatype
        ├── ImmediateRangeError - literal value out of range
        └── DuplicateFunctionError - function declared twice

Every error is fatal for the parse that raised it. There is no recovery
and no partial result.

Error messages follow this format:
    filename:line:column: error: description
        source_line_text
        ^ (pointer to error location)
    hint: suggestion for fixing (when available)
"""

from dataclasses import dataclass
from typing import Optional


# =============================================================================
# Base Exception Class
# =============================================================================

class CpuemError(Exception):
    """
    Base exception for all cpuem-asm errors.

        try:
            functions = assemble_file("program.asm")
        except CpuemError as e:
            print(f"Error: {e}")
    """
    pass


# =============================================================================
# Source Location Tracking
# =============================================================================

@dataclass(frozen=True)
class SourceLocation:
    """
    A location in source code for error reporting.

    Attributes:
        filename: Name of the source file (or "<input>" for string input)
        line: Line number (1-indexed)
        column: Column number (1-indexed)
    """
    filename: str
    line: int
    column: int

    def __str__(self) -> str:
        """Format as 'filename:line:column' for error messages."""
        return f"{self.filename}:{self.line}:{self.column}"


# =============================================================================
# Assembler Exceptions
# =============================================================================

class AssemblerError(CpuemError):
    """
    Base exception for errors tied to a place in the source.

    Attributes:
        message: The error description
        location: Where in the source the error occurred (optional)
        hint: A suggestion for fixing the error (optional)
        source_line: The actual source text at the error location (optional)
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        hint: Optional[str] = None,
        source_line: Optional[str] = None,
    ):
        self.message = message
        self.location = location
        self.hint = hint
        self.source_line = source_line
        super().__init__(self._format_message())

    def attach_source_line(self, source_line: str) -> None:
        """
        Add the source text of the error line after the error was raised.

        Used by stages that only see tokens and look the line up later.
        An existing source line is kept.
        """
        if self.source_line is not None:
            return
        self.source_line = source_line
        self.args = (self._format_message(),)

    def _format_message(self) -> str:
        """
        Format the error message with location, source context, and hint.

        Example output:
            test.asm:3:5: error: malformed branch 'brfoo'
                brfoo.done
                ^
            hint: conditions are lt, gt, neq, eq and z
        """
        parts = []

        if self.location:
            parts.append(f"{self.location}: error: {self.message}")
        else:
            parts.append(f"error: {self.message}")

        if self.source_line is not None and self.location is not None:
            parts.append(f"    {self.source_line}")
            if self.location.column > 0:
                padding = " " * (4 + self.location.column - 1)
                parts.append(f"{padding}^")

        if self.hint:
            parts.append(f"hint: {self.hint}")

        return "\n".join(parts)


# =============================================================================
# Lexical Errors
# =============================================================================

class LexError(AssemblerError):
    """
    The scanner met text it cannot turn into a token.

    Examples:
        - Character outside the alphabet (e.g. '@', '+')
        - Second decimal point in a number
        - Hex prefix without digits
    """
    pass


class TokenTooLongError(LexError):
    """
    A word or literal is longer than the configured maximum.

    The limit bounds memory use; it is not a semantic restriction.
    """

    def __init__(
        self,
        kind: str,
        limit: int,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.kind = kind
        self.limit = limit
        super().__init__(
            f"{kind} is longer than the maximum of {limit} characters",
            location=location,
            source_line=source_line,
        )


# =============================================================================
# Parse Errors
# =============================================================================

class ParseError(AssemblerError):
    """Base class for grammar violations found by the parser."""
    pass


class UnexpectedEndError(ParseError):
    """
    The token list ran out while a construct was still open.

    Raised instead of reading past the end, e.g. for a function
    block missing its closing brace.
    """

    def __init__(
        self,
        expected: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.expected = expected
        super().__init__(
            f"unexpected end of input, expected {expected}",
            location=location,
            source_line=source_line,
        )


class UnexpectedTokenError(ParseError):
    """A token of the wrong kind appeared where a construct needs another."""
    pass


class UnknownKeywordError(ParseError):
    """A keyword token has no statement form."""
    pass


class MalformedBranchError(ParseError):
    """
    A branch mnemonic or branch target does not follow the grammar.

    Branch mnemonics have the form br[lt|gt][neq][eq][z] followed by
    '.' and a label word. Examples of malformed branches:
        brfoo.done      ; unknown condition text
        brltneq.done    ; neq already implies lt and gt
        brneqeq.done    ; eq with both lt and gt has no encoding
        brz.            ; missing label
    """

    def __init__(
        self,
        mnemonic: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.mnemonic = mnemonic
        self.reason = reason
        super().__init__(
            f"malformed branch '{mnemonic}': {reason}",
            location=location,
            hint="branches are written br[lt|gt][neq][eq][z].label",
            source_line=source_line,
        )


class MalformedCallError(ParseError):
    """
    A call does not have the form identifier(count).

    The count is an integer literal giving the number of arguments.
    """

    def __init__(
        self,
        callee: str,
        reason: str,
        location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.callee = callee
        self.reason = reason
        super().__init__(
            f"malformed call to '{callee}': {reason}",
            location=location,
            hint=f"calls are written {callee}(count)",
            source_line=source_line,
        )


class DatatypeMismatchError(ParseError):
    """
    A literal cannot be used with the active datatype.

    Example:
        int 3.5 push    ; real literal needs single or double
    """
    pass


class ImmediateRangeError(ParseError):
    """
    An immediate literal does not fit its datatype.

    Example:
        byte 300 push   ; byte holds 0 to 255
    """
    pass


class DuplicateFunctionError(ParseError):
    """
    A function identifier is declared more than once in one source unit.
    """

    def __init__(
        self,
        identifier: str,
        location: Optional[SourceLocation] = None,
        original_location: Optional[SourceLocation] = None,
        source_line: Optional[str] = None,
    ):
        self.identifier = identifier
        self.original_location = original_location

        hint = None
        if original_location:
            hint = f"'{identifier}' was first declared at {original_location}"

        super().__init__(
            f"duplicate function '{identifier}'",
            location=location,
            hint=hint,
            source_line=source_line,
        )
