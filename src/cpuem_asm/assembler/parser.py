"""
Assembly Language Parser
========================

This module implements the recursive-descent parser for the assembly
language. It turns the token list from the lexer into Function objects
whose bodies hold Operation, Branch and Call symbols.

Grammar
-------
::

    program    := function*
    function   := WORD '{' statement* '}'
    statement  := 'halt'
                | DATATYPE literal? WORD?            ; typed operation
                | WORD '.' WORD                      ; branch
                | WORD '(' INTEGER ')'               ; call
                | WORD                               ; untyped operation
    literal    := INTEGER_LITERAL | REAL_LITERAL

Statements are chosen by the leading token with one token of lookahead;
there is no backtracking and no error recovery. The first error aborts the
parse and no functions are returned.

Active Datatype
---------------
A statement that starts with a datatype name sets the *active datatype*.
It stays in force for every following statement, across function blocks,
until another datatype name replaces it. Each parse starts from the
default (int).

    main {
        double 2.5 push     ; double
        add                 ; still double
        byte 0xFF push      ; byte from here on
    }

Branch Mnemonics
----------------
Branch mnemonics are read left to right: ``br`` then an optional ``lt``
or ``gt``, an optional ``neq`` (less and greater together), an optional
``eq`` and an optional ``z``:

| Mnemonic | less | greater | equal | zero |
|----------|------|---------|-------|------|
| br       |      |         |       |      |
| brlt     |  x   |         |       |      |
| brgteq   |      |    x    |   x   |      |
| brneq    |  x   |    x    |       |      |
| brz      |      |         |       |  x   |
| brltez   |      |         |       |      | <- malformed (trailing text)

Calls
-----
``name(count)`` calls the function ``name`` with ``count`` arguments.
All call sites and the declaration of ``name`` share one Function object,
kept in a per-parse FunctionTable. ``halt`` is a call to the built-in
halt function.
"""

from dataclasses import dataclass
from typing import Optional
import logging
import math
import re

from cpuem_asm.config import AssemblerConfig
from cpuem_asm.cpu import DEFAULT_DATATYPE, Datatype, lookup_datatype
from cpuem_asm.errors import (
    DatatypeMismatchError,
    DuplicateFunctionError,
    ImmediateRangeError,
    MalformedBranchError,
    MalformedCallError,
    ParseError,
    SourceLocation,
    UnexpectedEndError,
    UnexpectedTokenError,
    UnknownKeywordError,
)
from cpuem_asm.assembler.lexer import Token, TokenType, scan
from cpuem_asm.assembler.symbols import (
    Branch,
    Call,
    Function,
    IntegerValue,
    Operation,
    RealValue,
    Symbol,
    Value,
    make_intrinsic,
)


logger = logging.getLogger(__name__)


# Mnemonic used when a typed operation names no operation
DEFAULT_MNEMONIC = "nop"

HALT = "halt"

BRANCH_PREFIX = "br"

# Punctuation that cannot follow a word at the start of a statement
_INVALID_AFTER_WORD = frozenset({":", "[", "]", ")"})

# Line breaks as the lexer counts them
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


# =============================================================================
# Parser State
# =============================================================================

@dataclass
class ParserState:
    """
    Mutable context threaded through statement parsing.

    Attributes:
        active_datatype: Datatype used by statements that don't name one
    """
    active_datatype: Datatype = DEFAULT_DATATYPE


@dataclass(frozen=True)
class BranchCondition:
    """Condition flags decoded from a branch mnemonic."""
    less: bool = False
    greater: bool = False
    equal: bool = False
    zero: bool = False


# =============================================================================
# Function Table
# =============================================================================

class FunctionTable:
    """
    The Function objects of one source unit, keyed by identifier.

    Handing out the same object for every reference to a name lets a
    later pass set a function's hash once and have every call site see it.
    """

    def __init__(self):
        self._functions: dict[str, Function] = {}
        self._declared: list[Function] = []
        self._intrinsics: dict[str, Function] = {}

    def reference(self, identifier: str) -> Function:
        """Return the Function for a name, creating an external one if new."""
        func = self._functions.get(identifier)
        if func is None:
            func = Function(identifier=identifier)
            self._functions[identifier] = func
        return func

    def declare(self, identifier: str, location: SourceLocation) -> Function:
        """
        Mark a name as declared in this unit and return its Function.

        Raises:
            DuplicateFunctionError: If the name was already declared
        """
        func = self.reference(identifier)
        if func.location is not None:
            raise DuplicateFunctionError(
                identifier,
                location=location,
                original_location=func.location,
            )
        func.location = location
        self._declared.append(func)
        return func

    def intrinsic(self, identifier: str) -> Function:
        """Return the shared built-in Function for a keyword."""
        func = self._intrinsics.get(identifier)
        if func is None:
            func = make_intrinsic(identifier)
            self._intrinsics[identifier] = func
        return func

    @property
    def declared(self) -> list[Function]:
        """Functions declared in the unit, in declaration order."""
        return list(self._declared)

    @property
    def external(self) -> list[Function]:
        """Functions that are called but never declared in the unit."""
        return [f for f in self._functions.values() if f.location is None]

    def __len__(self) -> int:
        return len(self._functions)

    def __contains__(self, identifier: str) -> bool:
        return identifier in self._functions


# =============================================================================
# Branch Mnemonic Decoding
# =============================================================================

def decode_branch_mnemonic(mnemonic: str) -> BranchCondition:
    """
    Decode the condition flags of a branch mnemonic.

    Args:
        mnemonic: Text of the form br[lt|gt][neq][eq][z]

    Returns:
        The decoded BranchCondition

    Raises:
        ValueError: With the reason, if the mnemonic is malformed
    """
    if not mnemonic.startswith(BRANCH_PREFIX):
        raise ValueError(f"branch mnemonics start with '{BRANCH_PREFIX}'")

    pos = len(BRANCH_PREFIX)
    less = mnemonic.startswith("lt", pos)
    greater = mnemonic.startswith("gt", pos)
    if less or greater:
        pos += 2

    if mnemonic.startswith("neq", pos):
        if less or greater:
            raise ValueError("'neq' cannot be combined with 'lt' or 'gt'")
        less = greater = True
        pos += 3

    equal = mnemonic.startswith("eq", pos)
    if equal:
        if less and greater:
            raise ValueError("'eq' cannot be combined with 'neq'")
        pos += 2

    zero = mnemonic.startswith("z", pos)
    if zero:
        pos += 1

    if pos != len(mnemonic):
        raise ValueError(f"unknown condition '{mnemonic[pos:]}'")

    return BranchCondition(less=less, greater=greater, equal=equal, zero=zero)


# =============================================================================
# Literal Conversion
# =============================================================================

def parse_integer_literal(text: str) -> int:
    """
    Convert integer literal text to an int.

    Accepts decimal and 0x-prefixed hexadecimal, with optional leading '-'.

    Raises:
        ValueError: If the text is not an integer literal
    """
    body = text[1:] if text.startswith("-") else text
    if body[:2].lower() == "0x":
        value = int(body[2:], 16)
    else:
        value = int(body, 10)
    return -value if text.startswith("-") else value


# =============================================================================
# Parser Implementation
# =============================================================================

class Parser:
    """
    Parses a token list into Functions.

    Usage:
        tokens = scan(source, filename)
        parser = Parser(tokens, filename)
        functions = parser.parse()

    A Parser instance parses one source unit once. The active datatype
    lives in a ParserState created by parse(), so nothing carries over
    between units.
    """

    def __init__(
        self,
        tokens: list[Token],
        filename: str = "<input>",
        default_datatype: Datatype = DEFAULT_DATATYPE,
        source: Optional[str] = None,
    ):
        """
        Initialize the parser.

        Args:
            tokens: List of tokens from the lexer
            filename: Source filename for error reporting
            default_datatype: Active datatype at the start of the unit
            source: Source text the tokens came from, used to show the
                offending line in error messages (optional)
        """
        self._tokens = tokens
        self._filename = filename
        self._source_lines = _LINE_BREAK.split(source) if source else []
        self._default_datatype = default_datatype
        self._pos = 0
        self._table = FunctionTable()

    def parse(self) -> list[Function]:
        """
        Parse all tokens into functions.

        Returns:
            Declared functions in declaration order (empty for no tokens)

        Raises:
            ParseError: On the first grammar violation
        """
        state = ParserState(active_datatype=self._default_datatype)

        try:
            while not self._at_end():
                func = self._parse_function(state)
                logger.debug(
                    f"Parsed function '{func.identifier}' "
                    f"({len(func.body)} symbols)"
                )
        except ParseError as e:
            self._add_source_line(e)
            raise

        for func in self._table.external:
            logger.debug(f"Function '{func.identifier}' is called but not declared")

        return self._table.declared

    @property
    def external_functions(self) -> list[Function]:
        """Callees that were referenced but not declared in this unit."""
        return self._table.external

    @property
    def function_table(self) -> FunctionTable:
        return self._table

    def _add_source_line(self, error: ParseError) -> None:
        if error.location is None:
            return
        index = error.location.line - 1
        if 0 <= index < len(self._source_lines):
            error.attach_source_line(self._source_lines[index])

    # =========================================================================
    # Token Navigation
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self._tokens)

    def _end_location(self) -> SourceLocation:
        """Location just past the last token, for end-of-input errors."""
        if not self._tokens:
            return SourceLocation(self._filename, 1, 1)
        last = self._tokens[-1]
        return SourceLocation(last.filename, last.line, last.column + len(last.value))

    def _current(self, expected: str) -> Token:
        """
        Get the current token.

        Args:
            expected: What the caller is looking for, for the error message

        Raises:
            UnexpectedEndError: If there are no tokens left
        """
        if self._at_end():
            raise UnexpectedEndError(expected, self._end_location())
        return self._tokens[self._pos]

    def _peek(self, offset: int = 1) -> Optional[Token]:
        """Look ahead at a token without consuming, None past the end."""
        pos = self._pos + offset
        if pos >= len(self._tokens):
            return None
        return self._tokens[pos]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        self._pos += 1
        return token

    def _expect_punctuation(self, char: str, expected: str) -> Token:
        token = self._current(expected)
        if not token.is_punctuation(char):
            raise UnexpectedTokenError(
                f"expected {expected}, found '{token.value}'",
                token.location,
            )
        return self._advance()

    # =========================================================================
    # Functions and Blocks
    # =========================================================================

    def _parse_function(self, state: ParserState) -> Function:
        """Parse `identifier { statement* }`."""
        token = self._current("function identifier")
        if token.type != TokenType.WORD:
            raise UnexpectedTokenError(
                f"expected function identifier, found {_describe(token)}",
                token.location,
            )
        self._advance()

        func = self._table.declare(token.value, token.location)
        func.body = self._parse_block(state)
        func.defined = True
        return func

    def _parse_block(self, state: ParserState) -> list[Symbol]:
        """Parse `{ statement* }` and return the statements."""
        self._expect_punctuation("{", "'{' at beginning of function block")

        body: list[Symbol] = []
        while True:
            token = self._current("'}' at end of function block")
            if token.is_punctuation("}"):
                self._advance()
                return body
            body.append(self._parse_statement(state))

    # =========================================================================
    # Statements
    # =========================================================================

    def _parse_statement(self, state: ParserState) -> Symbol:
        """Dispatch on the leading token of a statement."""
        token = self._current("statement")

        if token.type == TokenType.KEYWORD:
            return self._parse_keyword(state)

        if token.type == TokenType.DATATYPE:
            return self._parse_operation(state)

        if token.type == TokenType.WORD:
            return self._parse_word(state)

        if token.is_literal:
            raise UnexpectedTokenError(
                f"literal '{token.value}' cannot start a statement",
                token.location,
                hint="write the datatype first, e.g. 'int 5 push'",
            )

        raise UnexpectedTokenError(
            f"unexpected '{token.value}' in function block",
            token.location,
        )

    def _parse_keyword(self, state: ParserState) -> Symbol:
        token = self._advance()

        if token.value == HALT:
            return Call(
                location=token.location,
                text=HALT,
                callee=self._table.intrinsic(HALT),
                argument_count=0,
            )

        raise UnknownKeywordError(f"unknown keyword '{token.value}'", token.location)

    def _parse_word(self, state: ParserState) -> Symbol:
        """A word starts a branch, a call, or an untyped operation."""
        token = self._current("statement")
        following = self._peek()
        if following is None:
            raise UnexpectedEndError("'}' at end of function block", self._end_location())

        if following.type == TokenType.PUNCTUATION:
            if following.value == ".":
                return self._parse_branch()
            if following.value == "(":
                return self._parse_call()
            if following.value in _INVALID_AFTER_WORD:
                raise UnexpectedTokenError(
                    f"unexpected '{following.value}' after '{token.value}'",
                    following.location,
                )

        return self._parse_operation(state)

    # =========================================================================
    # Operations
    # =========================================================================

    def _parse_operation(self, state: ParserState) -> Operation:
        """
        Parse `[datatype] [literal] [mnemonic]`.

        A leading datatype name updates state.active_datatype. A missing
        mnemonic becomes "nop" and the token after the operation is left
        for the next statement.
        """
        start = self._current("operation")
        parts: list[str] = []

        if start.type == TokenType.DATATYPE:
            self._advance()
            state.active_datatype = lookup_datatype(start.value)
            parts.append(start.value)

        immediate: Optional[Value] = None
        token = self._current("operation mnemonic")
        if token.is_literal:
            self._advance()
            immediate = self._convert_literal(token, state.active_datatype)
            parts.append(token.value)
            token = self._current("operation mnemonic")

        if token.type == TokenType.WORD:
            self._advance()
            mnemonic = token.value
        else:
            mnemonic = DEFAULT_MNEMONIC
        parts.append(mnemonic)

        return Operation(
            location=start.location,
            text=" ".join(parts),
            datatype=state.active_datatype,
            mnemonic=mnemonic,
            immediate=immediate,
        )

    def _convert_literal(self, token: Token, datatype: Datatype) -> Value:
        """
        Convert a literal token to a Value of the active datatype.

        Raises:
            DatatypeMismatchError: If the literal kind does not suit the datatype
            ImmediateRangeError: If the value does not fit the datatype
        """
        if token.type == TokenType.REAL_LITERAL:
            if datatype not in (Datatype.SINGLE, Datatype.DOUBLE):
                raise DatatypeMismatchError(
                    f"expected real datatype for literal '{token.value}', "
                    f"active datatype is '{datatype}'",
                    token.location,
                    hint="set single or double before a real literal",
                )
            try:
                number = float(token.value)
            except ValueError:
                raise ImmediateRangeError(
                    f"malformed real literal '{token.value}'", token.location
                ) from None
            return self._make_real(token, datatype, number)

        try:
            number = parse_integer_literal(token.value)
        except ValueError:
            raise ImmediateRangeError(
                f"malformed integer literal '{token.value}'", token.location
            ) from None

        if datatype.is_real:
            try:
                return self._make_real(token, datatype, float(number))
            except OverflowError:
                raise ImmediateRangeError(
                    f"literal '{token.value}' is out of range for '{datatype}'",
                    token.location,
                ) from None

        if not datatype.is_integer:
            raise DatatypeMismatchError(
                f"integer literal '{token.value}' cannot be used with "
                f"datatype '{datatype}'",
                token.location,
            )

        if not datatype.min_value <= number <= datatype.max_value:
            raise ImmediateRangeError(
                f"literal '{token.value}' is out of range for '{datatype}'",
                token.location,
                hint=f"{datatype} holds {datatype.min_value} to {datatype.max_value}",
            )
        return IntegerValue(datatype, number)

    def _make_real(self, token: Token, datatype: Datatype, number: float) -> RealValue:
        if math.isinf(number):
            raise ImmediateRangeError(
                f"literal '{token.value}' is out of range for '{datatype}'",
                token.location,
            )
        try:
            return RealValue(datatype, number)
        except ValueError as e:
            raise ImmediateRangeError(str(e), token.location) from None

    # =========================================================================
    # Branches
    # =========================================================================

    def _parse_branch(self) -> Branch:
        """Parse `mnemonic . label`."""
        token = self._advance()
        mnemonic = token.value

        try:
            condition = decode_branch_mnemonic(mnemonic)
        except ValueError as e:
            raise MalformedBranchError(mnemonic, str(e), token.location) from None

        self._advance()  # consume '.'

        label = self._current("branch label")
        if label.type != TokenType.WORD:
            raise MalformedBranchError(
                mnemonic,
                f"expected label after '.', found {_describe(label)}",
                label.location,
            )
        self._advance()

        return Branch(
            location=token.location,
            text=f"{mnemonic}.{label.value}",
            label=label.value,
            less=condition.less,
            greater=condition.greater,
            equal=condition.equal,
            zero=condition.zero,
            resolved=False,
        )

    # =========================================================================
    # Calls
    # =========================================================================

    def _parse_call(self) -> Call:
        """Parse `identifier ( count )`."""
        token = self._advance()
        name = token.value

        self._advance()  # consume '('

        count_token = self._current("argument count")
        if count_token.type != TokenType.INTEGER_LITERAL:
            raise MalformedCallError(
                name,
                f"expected integer argument count, found {_describe(count_token)}",
                count_token.location,
            )
        try:
            count = parse_integer_literal(count_token.value)
        except ValueError:
            raise MalformedCallError(
                name,
                f"malformed argument count '{count_token.value}'",
                count_token.location,
            ) from None
        if count < 0:
            raise MalformedCallError(
                name,
                f"argument count cannot be negative ({count_token.value})",
                count_token.location,
            )
        self._advance()

        closing = self._current("')' after argument count")
        if not closing.is_punctuation(")"):
            raise MalformedCallError(
                name,
                f"expected ')', found {_describe(closing)}",
                closing.location,
            )
        self._advance()

        return Call(
            location=token.location,
            text=f"{name}({count_token.value})",
            callee=self._table.reference(name),
            argument_count=count,
        )


def _describe(token: Token) -> str:
    """Describe a token for error messages."""
    kind = token.type.name.lower().replace("_", " ")
    return f"{kind} '{token.value}'"


# =============================================================================
# Convenience Functions
# =============================================================================

def parse(
    tokens: list[Token],
    filename: str = "<input>",
    config: Optional[AssemblerConfig] = None,
    source: Optional[str] = None,
) -> list[Function]:
    """
    Parse a token list into functions.

    Args:
        tokens: Tokens from scan()
        filename: Source filename for error reporting
        config: Assembler configuration (defaults if None)
        source: Source text, for showing the error line (optional)

    Returns:
        Declared functions in declaration order
    """
    config = config or AssemblerConfig()
    return Parser(tokens, filename, config.default_datatype, source).parse()


def parse_source(
    source: str,
    filename: str = "<input>",
    config: Optional[AssemblerConfig] = None,
) -> list[Function]:
    """
    Scan and parse source text in one step.

    Args:
        source: Assembly source text
        filename: Source filename for error reporting
        config: Assembler configuration (defaults if None)

    Returns:
        Declared functions in declaration order
    """
    config = config or AssemblerConfig()
    tokens = scan(source, filename, config.max_token_length)
    return parse(tokens, filename, config, source)
