"""
Datatype Registry
=================

This module defines the 16 datatypes of the instruction set and their
4-bit encoding. Every operation carries one of these datatypes, and the
code generator picks an instruction encoding from the datatype's row of
the 16x16 operation table.

Bit Layout
----------
Integer types pack signedness and width into the low three bits:

    bit 2      : signed flag
    bits 1..0  : size class (0=8, 1=16, 2=32, 3=64 bits)

| Nibble | Name     | Kind                    |
|--------|----------|-------------------------|
| 0x0    | byte     | unsigned 8-bit          |
| 0x1    | ushort   | unsigned 16-bit         |
| 0x2    | uint     | unsigned 32-bit         |
| 0x3    | ulong    | unsigned 64-bit         |
| 0x4    | sbyte    | signed 8-bit            |
| 0x5    | short    | signed 16-bit           |
| 0x6    | int      | signed 32-bit           |
| 0x7    | long     | signed 64-bit           |
| 0x8    | half     | IEEE-754 binary16       |
| 0x9    | single   | IEEE-754 binary32       |
| 0xA    | double   | IEEE-754 binary64       |
| 0xB    | quad     | IEEE-754 binary128      |
| 0xC    | function | function reference      |
| 0xD    | node     | node reference          |
| 0xE    | list     | list reference          |
| 0xF    | reserved | (no meaning)            |

Downstream encoders depend on the bit pattern itself, not just the
member name, so the values above must never change.

Source Spelling
---------------
Thirteen datatypes can be written in source. ``half``, ``quad`` and
``reserved`` have encodings but no source spelling; in source those
names lex as ordinary words.
"""

from enum import IntEnum


# =============================================================================
# Encoding Constants
# =============================================================================

DATATYPE_BITS = 4
DATATYPE_MASK = (1 << DATATYPE_BITS) - 1

SIGNED_FLAG = 0b100
SIZE_CLASS_MASK = 0b011

# Size class -> bit width for integer types
SIZE_CLASS_WIDTHS = (8, 16, 32, 64)

# Dimensions of the per-datatype operation table used by the code generator
OPERATION_TABLE_ROWS = 16
OPERATION_TABLE_COLUMNS = 16

# Operation.selection value meaning "no encoding chosen yet"
INVALID_OPERATION_SELECTION = 0xFF


# =============================================================================
# Datatype Enumeration
# =============================================================================

class Datatype(IntEnum):
    """
    The 16 datatypes of the instruction set, valued by their 4-bit code.
    """
    BYTE = 0x0
    USHORT = 0x1
    UINT = 0x2
    ULONG = 0x3
    SBYTE = 0x4
    SHORT = 0x5
    INT = 0x6
    LONG = 0x7
    HALF = 0x8
    SINGLE = 0x9
    DOUBLE = 0xA
    QUAD = 0xB
    FUNCTION = 0xC
    NODE = 0xD
    LIST = 0xE
    RESERVED = 0xF

    def __str__(self) -> str:
        """Return the source spelling of the datatype."""
        return self.name.lower()

    # =========================================================================
    # Encoding
    # =========================================================================

    def encode(self) -> int:
        """Return the 4-bit code of this datatype."""
        return int(self) & DATATYPE_MASK

    @classmethod
    def decode(cls, nibble: int) -> "Datatype":
        """
        Decode a 4-bit code into its Datatype.

        Args:
            nibble: Integer in the range 0..15

        Raises:
            ValueError: If the value does not fit in 4 bits
        """
        if not 0 <= nibble <= DATATYPE_MASK:
            raise ValueError(f"datatype code {nibble!r} does not fit in {DATATYPE_BITS} bits")
        return cls(nibble)

    @classmethod
    def from_name(cls, name: str) -> "Datatype":
        """
        Look up a datatype by its source spelling (case-sensitive).

        Raises:
            ValueError: If the name is not a datatype name
        """
        if name != name.lower() or name.upper() not in cls.__members__:
            raise ValueError(f"unknown datatype name '{name}'")
        return cls[name.upper()]

    @classmethod
    def integer(cls, signed: bool, size_class: int) -> "Datatype":
        """Build an integer datatype from its signedness and size class."""
        if not 0 <= size_class <= SIZE_CLASS_MASK:
            raise ValueError(f"invalid size class {size_class}")
        return cls((SIGNED_FLAG if signed else 0) | size_class)

    # =========================================================================
    # Classification
    # =========================================================================

    @property
    def is_integer(self) -> bool:
        return self <= Datatype.LONG

    @property
    def is_signed(self) -> bool:
        """True for signed integers and all floating-point types."""
        if self.is_integer:
            return bool(self & SIGNED_FLAG)
        return self.is_real

    @property
    def is_real(self) -> bool:
        return Datatype.HALF <= self <= Datatype.QUAD

    @property
    def is_composite(self) -> bool:
        """True for function, node and list references."""
        return Datatype.FUNCTION <= self <= Datatype.LIST

    @property
    def is_reserved(self) -> bool:
        return self == Datatype.RESERVED

    @property
    def is_lexable(self) -> bool:
        """True if the datatype has a source spelling."""
        return str(self) in DATATYPE_NAMES

    @property
    def size_class(self) -> int:
        """
        Width class of an integer or floating-point datatype.

        0..3 stands for 8/16/32/64-bit integers, or for
        half/single/double/quad floating-point widths.

        Raises:
            ValueError: For composite and reserved datatypes
        """
        if self.is_integer or self.is_real:
            return int(self) & SIZE_CLASS_MASK
        raise ValueError(f"datatype '{self}' has no size class")

    @property
    def bit_width(self) -> int:
        """Storage width of an integer or floating-point value in bits."""
        if self.is_integer:
            return SIZE_CLASS_WIDTHS[self.size_class]
        if self.is_real:
            return 16 << self.size_class
        raise ValueError(f"datatype '{self}' has no fixed bit width")

    @property
    def min_value(self) -> int:
        """Smallest value representable by an integer datatype."""
        if not self.is_integer:
            raise ValueError(f"datatype '{self}' is not an integer type")
        if self.is_signed:
            return -(1 << (self.bit_width - 1))
        return 0

    @property
    def max_value(self) -> int:
        """Largest value representable by an integer datatype."""
        if not self.is_integer:
            raise ValueError(f"datatype '{self}' is not an integer type")
        if self.is_signed:
            return (1 << (self.bit_width - 1)) - 1
        return (1 << self.bit_width) - 1


# =============================================================================
# Source Names
# =============================================================================

# Datatype names recognised by the lexer, in declaration order of the
# language reference. half, quad and reserved are deliberately absent.
DATATYPE_NAMES: tuple[str, ...] = (
    "byte",
    "sbyte",
    "ushort",
    "short",
    "uint",
    "int",
    "ulong",
    "long",
    "single",
    "double",
    "function",
    "node",
    "list",
)

DEFAULT_DATATYPE = Datatype.INT


def is_datatype_name(word: str) -> bool:
    """Check if a word is a lexable datatype name."""
    return word in DATATYPE_NAMES


def lookup_datatype(word: str) -> Datatype:
    """
    Map a lexable datatype name to its Datatype.

    Raises:
        ValueError: If the word is not a lexable datatype name
    """
    if word not in DATATYPE_NAMES:
        raise ValueError(f"'{word}' is not a datatype name")
    return Datatype.from_name(word)
