"""
Symbol Model
============

This module defines the in-memory representation produced by the parser:
functions, the statements (symbols) in their bodies, immediate values and
the content hash that identifies a function.

Object Model
------------
::

    Function ── body ──> [Symbol, Symbol, ...]
                             │
           ┌─────────────────┼──────────────────┐
       Operation           Branch              Call ──> Function (shared)

- **Operation**: a datatype, a mnemonic and an optional immediate Value.
  The opcode group and selection are filled in by the code generator.
- **Branch**: condition flags and a target label. The label is resolved to
  an offset by the linker.
- **Call**: a reference to the callee Function plus an argument count.
  Every call site naming a function holds the *same* Function object, so
  when a later pass sets its hash or loaded flag all call sites see it.

Values
------
Value is a sum type keyed by Datatype:

| Class          | Datatypes                      | Payload              |
|----------------|--------------------------------|----------------------|
| IntegerValue   | byte ... long                  | int (range-checked)  |
| RealValue      | half, single, double, quad     | float                |
| ReferenceValue | function, node, list           | Function/Node/DataList |

Hashes
------
A function's identity is a 32-byte digest of its body, computed by a later
pass. Two sentinels exist before that happens:

- ``Hash.UNRESOLVED`` (all 0x00): not hashed yet
- ``Hash.INTRINSIC`` (all 0xFF): built-in operation with no body (halt)
"""

from dataclasses import dataclass, field
from typing import Any, ClassVar, Optional, Union
import struct

from cpuem_asm.cpu import Datatype, INVALID_OPERATION_SELECTION
from cpuem_asm.errors import SourceLocation


HASH_SIZE = 32


# =============================================================================
# Hash
# =============================================================================

@dataclass(frozen=True)
class Hash:
    """
    Content-derived identity of a function.

    Attributes:
        value: Exactly 32 bytes of digest
    """
    value: bytes

    UNRESOLVED: ClassVar["Hash"]
    INTRINSIC: ClassVar["Hash"]

    def __post_init__(self):
        if len(self.value) != HASH_SIZE:
            raise ValueError(f"hash must be {HASH_SIZE} bytes, got {len(self.value)}")
        object.__setattr__(self, "value", bytes(self.value))

    def __str__(self) -> str:
        return self.value.hex()

    @property
    def is_unresolved(self) -> bool:
        return self == Hash.UNRESOLVED

    @property
    def is_intrinsic(self) -> bool:
        return self == Hash.INTRINSIC


Hash.UNRESOLVED = Hash(bytes(HASH_SIZE))
Hash.INTRINSIC = Hash(b"\xff" * HASH_SIZE)


# =============================================================================
# Referenceable Entities
# =============================================================================

@dataclass(eq=False)
class Function:
    """
    A named function and its body.

    Functions compare by identity: a call site refers to the one Function
    object for its callee, never to a copy.

    Attributes:
        identifier: The function name
        hash: Content hash (UNRESOLVED until a hashing pass runs)
        is_loaded: Set by the linker once the function is placed
        body: Statements in declaration order
        location: Where the function was declared (None if only called)
        defined: True once a declaration with a body has been parsed
    """
    identifier: str
    hash: Hash = Hash.UNRESOLVED
    is_loaded: bool = False
    body: list["Symbol"] = field(default_factory=list)
    location: Optional[SourceLocation] = None
    defined: bool = False

    @property
    def is_intrinsic(self) -> bool:
        """True for built-in operations such as halt."""
        return self.hash.is_intrinsic

    def __repr__(self) -> str:
        return (
            f"Function({self.identifier!r}, symbols={len(self.body)}, "
            f"defined={self.defined})"
        )


def make_intrinsic(identifier: str) -> Function:
    """Create a built-in function: all-ones hash, empty body."""
    return Function(identifier=identifier, hash=Hash.INTRINSIC, defined=True)


@dataclass(eq=False)
class Node:
    """Node reference target. Opaque in the front end."""
    hash: Hash = Hash.UNRESOLVED


@dataclass(eq=False)
class DataList:
    """List cell reference target. Opaque in the front end."""
    data: Optional["Value"] = None
    next: Optional["DataList"] = None


# =============================================================================
# Values
# =============================================================================

@dataclass(frozen=True)
class Value:
    """
    Base class of datatype-tagged values.

    Attributes:
        datatype: The datatype the payload is stored as
    """
    datatype: Datatype

    @property
    def payload(self) -> Any:
        raise NotImplementedError


@dataclass(frozen=True)
class IntegerValue(Value):
    """
    A fixed-width integer.

    Raises:
        ValueError: If the datatype is not an integer type or the
            value does not fit its width and signedness
    """
    value: int

    def __post_init__(self):
        if not self.datatype.is_integer:
            raise ValueError(f"'{self.datatype}' is not an integer datatype")
        if isinstance(self.value, bool) or not isinstance(self.value, int):
            raise ValueError(f"integer value expected, got {self.value!r}")
        if not self.datatype.min_value <= self.value <= self.datatype.max_value:
            raise ValueError(
                f"{self.value} is out of range for {self.datatype} "
                f"({self.datatype.min_value} to {self.datatype.max_value})"
            )

    @property
    def payload(self) -> int:
        return self.value


@dataclass(frozen=True)
class RealValue(Value):
    """
    A floating-point number.

    single values are rounded to IEEE-754 binary32 on construction so the
    stored value is exactly what the encoder will emit.

    Raises:
        ValueError: If the datatype is not a floating-point type, or the
            value overflows a single
    """
    value: float

    def __post_init__(self):
        if not self.datatype.is_real:
            raise ValueError(f"'{self.datatype}' is not a floating-point datatype")
        value = float(self.value)
        if self.datatype == Datatype.SINGLE:
            value = _round_to_single(value)
        object.__setattr__(self, "value", value)

    @property
    def payload(self) -> float:
        return self.value


def _round_to_single(value: float) -> float:
    # Infinities and NaN pack as-is; finite values beyond binary32 overflow
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        raise ValueError(f"{value} is out of range for single") from None


# Composite datatype -> referenced class
_REFERENCE_TYPES = {
    Datatype.FUNCTION: Function,
    Datatype.NODE: Node,
    Datatype.LIST: DataList,
}


@dataclass(frozen=True)
class ReferenceValue(Value):
    """
    A reference to a Function, Node or DataList.

    Raises:
        ValueError: If the datatype is not composite or the target has
            the wrong class
    """
    target: Union[Function, Node, DataList] = field(compare=False)

    def __post_init__(self):
        expected = _REFERENCE_TYPES.get(self.datatype)
        if expected is None:
            raise ValueError(f"'{self.datatype}' is not a reference datatype")
        if not isinstance(self.target, expected):
            raise ValueError(
                f"{self.datatype} reference must target a {expected.__name__}, "
                f"got {type(self.target).__name__}"
            )

    @property
    def payload(self) -> Union[Function, Node, DataList]:
        return self.target


# =============================================================================
# Symbols
# =============================================================================

@dataclass
class Symbol:
    """
    Base class for statements in a function body.

    Attributes:
        location: Where the statement starts in the source
        text: Human-readable rendering for listings and diagnostics only
    """
    location: SourceLocation
    text: str


@dataclass
class Operation(Symbol):
    """
    Data or arithmetic operation.

    Attributes:
        datatype: Datatype the operation works on
        mnemonic: Operation name as written (e.g. "push"), "nop" if omitted
        immediate: Optional immediate operand
        opcode_group: Row of the operation table, set by the code generator
        selection: Column chosen in that row (0xFF = not selected yet)
    """
    datatype: Datatype = Datatype.INT
    mnemonic: str = "nop"
    immediate: Optional[Value] = None
    opcode_group: Optional[int] = None
    selection: int = INVALID_OPERATION_SELECTION

    @property
    def has_immediate(self) -> bool:
        return self.immediate is not None


@dataclass
class Branch(Symbol):
    """
    Conditional (or unconditional) branch to a label.

    The condition is the set of comparison outcomes that take the branch:
    "neq" is less | greater. A branch with no flags is unconditional.

    Attributes:
        label: Target label name
        less: Branch on less-than
        greater: Branch on greater-than
        equal: Branch on equal
        zero: Branch on zero
        resolved: True once the linker has computed offset
        offset: Signed distance to the label (meaningless until resolved)
    """
    label: str = ""
    less: bool = False
    greater: bool = False
    equal: bool = False
    zero: bool = False
    resolved: bool = False
    offset: int = 0

    @property
    def is_unconditional(self) -> bool:
        return not (self.less or self.greater or self.equal or self.zero)


@dataclass
class Call(Symbol):
    """
    Call to a function.

    Attributes:
        callee: The called Function (shared with every other call site),
            None until the parser links the call
        argument_count: Number of arguments declared at the call site
        arguments: Placeholder for argument data (unused by the front end)
    """
    callee: Optional[Function] = field(default=None, repr=False)
    argument_count: int = 0
    arguments: Optional[Any] = None

    @property
    def callee_name(self) -> Optional[str]:
        if self.callee is None:
            return None
        return self.callee.identifier
