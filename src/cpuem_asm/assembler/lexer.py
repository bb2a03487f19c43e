"""
Assembly Language Lexer
=======================

This module implements the scanner for the assembly language. It converts
source text into a list of classified tokens that the parser consumes.

Token Types
-----------
- PUNCTUATION: One of . : [ ] { } ( )
- WORD: Function names, mnemonics, labels
- KEYWORD: Reserved words with their own statement form (halt)
- DATATYPE: Datatype names (byte, int, double, list, ...)
- INTEGER_LITERAL: Decimal or 0x-prefixed hexadecimal integers
- REAL_LITERAL: Decimal numbers with a point and/or an exponent

Whitespace (space, newline, carriage return, tab, vertical tab and form
feed) separates tokens and is never emitted. There are no comments and no
multi-character punctuation.

Number Formats
--------------
| Format      | Example        | Token type      |
|-------------|----------------|-----------------|
| Decimal     | 42, -7         | INTEGER_LITERAL |
| Hexadecimal | 0x2A, 0XFF     | INTEGER_LITERAL |
| Real        | 3.5, 1., 2e-3  | REAL_LITERAL    |

Token values keep the exact source text; converting literals to numbers
is the parser's job, since only the parser knows the active datatype.

Example
-------
>>> from cpuem_asm.assembler.lexer import Lexer
>>> for token in Lexer("main { int 5 push }", "example.asm").tokenize():
...     print(token)
Token(WORD, 'main', 1:1)
Token(PUNCTUATION, '{', 1:6)
Token(DATATYPE, 'int', 1:8)
Token(INTEGER_LITERAL, '5', 1:12)
Token(WORD, 'push', 1:14)
Token(PUNCTUATION, '}', 1:19)
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, Optional
import logging
import string

from cpuem_asm.config import MAX_TOKEN_LENGTH
from cpuem_asm.cpu import is_datatype_name
from cpuem_asm.errors import LexError, SourceLocation, TokenTooLongError


logger = logging.getLogger(__name__)


# =============================================================================
# Token Type Enumeration
# =============================================================================

class TokenType(Enum):
    """
    Token classes of the assembly language.
    """
    PUNCTUATION = auto()      # . : [ ] { } ( )
    WORD = auto()             # Identifiers and mnemonics
    KEYWORD = auto()          # halt
    DATATYPE = auto()         # byte, sbyte, ..., list
    INTEGER_LITERAL = auto()  # 42, 0x2A
    REAL_LITERAL = auto()     # 3.5, 1e10


# Reserved words that start their own statement form
KEYWORDS: frozenset[str] = frozenset({
    "halt",
})


# =============================================================================
# Token Data Class
# =============================================================================

@dataclass(frozen=True)
class Token:
    """
    A single token from the source code.

    Attributes:
        type: The TokenType classification
        value: The exact source text of the token
        line: Line number in source (1-indexed)
        column: Column number in source (1-indexed)
        filename: Name of the source file
    """
    type: TokenType
    value: str
    line: int
    column: int
    filename: str = "<input>"

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.line}:{self.column})"

    @property
    def location(self) -> SourceLocation:
        """Return a SourceLocation for error reporting."""
        return SourceLocation(self.filename, self.line, self.column)

    def is_punctuation(self, char: str) -> bool:
        """Check if this token is the given punctuation character."""
        return self.type == TokenType.PUNCTUATION and self.value == char

    @property
    def is_literal(self) -> bool:
        return self.type in (TokenType.INTEGER_LITERAL, TokenType.REAL_LITERAL)


# =============================================================================
# Lexer Implementation
# =============================================================================

class Lexer:
    """
    Tokenizes assembly source code.

    Usage:
        lexer = Lexer(source_text, filename)
        tokens = list(lexer.tokenize())

    Attributes:
        source: The source code being tokenized
        filename: Name of the source file (for error reporting)
        max_token_length: Longest word or literal accepted
    """

    WHITESPACE = " \n\r\t\v\f"

    PUNCTUATION = ".:[]{}()"

    # Characters that can start a word
    WORD_START = string.ascii_letters + "_"

    # Characters that can continue a word
    WORD_CHARS = string.ascii_letters + string.digits + "_"

    DIGITS = string.digits
    HEX_DIGITS = string.hexdigits

    def __init__(
        self,
        source: str,
        filename: str = "<input>",
        max_token_length: int = MAX_TOKEN_LENGTH,
    ):
        """
        Initialize the lexer with source code.

        Args:
            source: The assembly source code to tokenize
            filename: Name of the source file (for error messages)
            max_token_length: Longest word or literal accepted
        """
        self.source = source
        self.filename = filename
        self.max_token_length = max_token_length

        self._pos = 0
        self._line = 1
        self._column = 1
        self._line_start_pos = 0

    def tokenize(self) -> Iterator[Token]:
        """
        Generate tokens from the source code.

        Yields:
            Token objects representing each lexical element

        Raises:
            LexError: If a character cannot start any token, or a
                number literal is malformed
            TokenTooLongError: If a word or literal is too long
        """
        while not self._at_end():
            char = self._peek()

            if char in self.WHITESPACE:
                self._advance()
                continue

            yield self._scan_token()

    # =========================================================================
    # Character Access Methods
    # =========================================================================

    def _at_end(self) -> bool:
        return self._pos >= len(self.source)

    def _peek(self, offset: int = 0) -> str:
        """
        Look at character at current position + offset without advancing.

        Returns empty string if past end of source.
        """
        pos = self._pos + offset
        if pos >= len(self.source):
            return ""
        return self.source[pos]

    def _peek_in(self, chars: str, offset: int = 0) -> bool:
        """Check the character at offset against a set of characters."""
        # '' in chars is True for any string, so test for end first
        char = self._peek(offset)
        return char != "" and char in chars

    def _advance(self) -> str:
        """
        Consume and return the current character, advancing position.

        Updates line and column tracking.
        """
        if self._at_end():
            return ""

        char = self.source[self._pos]
        self._pos += 1

        # A lone \r ends a line too; in \r\n the \n does
        if char == "\n" or (char == "\r" and self._peek() != "\n"):
            self._line += 1
            self._column = 1
            self._line_start_pos = self._pos
        else:
            self._column += 1

        return char

    # =========================================================================
    # Token Creation
    # =========================================================================

    def _make_token(
        self,
        token_type: TokenType,
        value: str,
        start_line: int,
        start_column: int,
    ) -> Token:
        return Token(
            type=token_type,
            value=value,
            line=start_line,
            column=start_column,
            filename=self.filename,
        )

    def _current_line_text(self) -> str:
        line_end = len(self.source)
        for terminator in "\n\r":
            pos = self.source.find(terminator, self._line_start_pos)
            if pos != -1:
                line_end = min(line_end, pos)
        return self.source[self._line_start_pos:line_end]

    def _error(
        self,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ) -> LexError:
        """
        Create a lex error at the current (or given) location.

        Args:
            message: Error description
            line: Override line number
            column: Override column number
        """
        location = SourceLocation(
            self.filename,
            line or self._line,
            column or self._column,
        )
        return LexError(message, location, source_line=self._current_line_text())

    def _check_length(self, chars: list[str], kind: str, line: int, column: int) -> None:
        if len(chars) > self.max_token_length:
            raise TokenTooLongError(
                kind,
                self.max_token_length,
                SourceLocation(self.filename, line, column),
                source_line=self._current_line_text(),
            )

    # =========================================================================
    # Token Scanning
    # =========================================================================

    def _scan_token(self) -> Token:
        """Scan the next token, which must start at a non-blank character."""
        start_line = self._line
        start_column = self._column

        char = self._peek()

        if char in self.PUNCTUATION:
            self._advance()
            return self._make_token(TokenType.PUNCTUATION, char, start_line, start_column)

        if char in self.WORD_START:
            return self._scan_word(start_line, start_column)

        if char in self.DIGITS or (char == "-" and self._peek_in(self.DIGITS, 1)):
            return self._scan_number(start_line, start_column)

        raise self._error(f"unknown token {char!r}")

    def _scan_word(self, start_line: int, start_column: int) -> Token:
        """
        Scan a word and classify it as keyword, datatype name or plain word.

        Words start with a letter or underscore and continue with
        letters, digits and underscores.
        """
        chars = []
        while self._peek_in(self.WORD_CHARS):
            chars.append(self._advance())
            self._check_length(chars, "word", start_line, start_column)

        word = "".join(chars)
        if word in KEYWORDS:
            token_type = TokenType.KEYWORD
        elif is_datatype_name(word):
            token_type = TokenType.DATATYPE
        else:
            token_type = TokenType.WORD
        return self._make_token(token_type, word, start_line, start_column)

    def _scan_number(self, start_line: int, start_column: int) -> Token:
        """
        Scan an integer or real literal.

        Accepts an optional leading '-', a 0x/0X hexadecimal prefix, one
        decimal point and one exponent (e/E with optional sign) in decimal
        literals. The literal text is returned unconverted.
        """
        chars = []
        if self._peek() == "-":
            chars.append(self._advance())

        if self._peek() == "0" and self._peek_in("xX", 1):
            chars.append(self._advance())
            chars.append(self._advance())
            return self._scan_hex_digits(chars, start_line, start_column)

        is_real = False
        seen_point = False
        seen_exponent = False
        while True:
            char = self._peek()
            if char != "" and char in self.DIGITS:
                chars.append(self._advance())
            elif char == ".":
                if seen_point or seen_exponent:
                    raise self._error("malformed number literal: unexpected second '.'")
                seen_point = is_real = True
                chars.append(self._advance())
            elif char != "" and char in "eE":
                if seen_exponent:
                    raise self._error("malformed number literal: unexpected second exponent")
                seen_exponent = is_real = True
                chars.append(self._advance())
                if self._peek_in("+-"):
                    chars.append(self._advance())
                if not self._peek_in(self.DIGITS):
                    raise self._error("malformed number literal: exponent has no digits")
            else:
                break
            self._check_length(chars, "literal", start_line, start_column)

        self._reject_trailing_word_chars()
        token_type = TokenType.REAL_LITERAL if is_real else TokenType.INTEGER_LITERAL
        return self._make_token(token_type, "".join(chars), start_line, start_column)

    def _scan_hex_digits(self, chars: list[str], start_line: int, start_column: int) -> Token:
        """Scan hexadecimal digits after the 0x prefix."""
        prefix_length = len(chars)
        while self._peek_in(self.HEX_DIGITS):
            chars.append(self._advance())
            self._check_length(chars, "literal", start_line, start_column)

        if len(chars) == prefix_length:
            raise self._error("expected hexadecimal digits after '0x'")
        if self._peek() == ".":
            raise self._error("malformed number literal: hexadecimal literal cannot be real")

        self._reject_trailing_word_chars()
        return self._make_token(TokenType.INTEGER_LITERAL, "".join(chars), start_line, start_column)

    def _reject_trailing_word_chars(self) -> None:
        # A literal running straight into a word (12ab, 0x1g) is a typo,
        # not two tokens.
        if self._peek_in(self.WORD_CHARS):
            raise self._error(f"malformed number literal: unexpected {self._peek()!r}")


# =============================================================================
# Convenience Function
# =============================================================================

def scan(
    source: str,
    filename: str = "<input>",
    max_token_length: int = MAX_TOKEN_LENGTH,
) -> list[Token]:
    """
    Scan source text into a list of tokens.

    Args:
        source: Assembly source text
        filename: Name used in error locations
        max_token_length: Longest word or literal accepted

    Returns:
        The tokens in source order (empty for blank source)

    Raises:
        LexError: On the first character that cannot be tokenized
    """
    tokens = list(Lexer(source, filename, max_token_length).tokenize())
    logger.debug(f"Scanned {len(tokens)} tokens from {filename}")
    return tokens
