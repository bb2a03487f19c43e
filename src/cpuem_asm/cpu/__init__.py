"""
cpuem-asm CPU Package
=====================

Instruction-set definitions shared by the assembler front end and any
later code generator: the 4-bit datatype registry and the dimensions of
the per-datatype operation table.

Usage:
    from cpuem_asm.cpu import Datatype, lookup_datatype

    Datatype.INT.encode()        # 0x6
    Datatype.decode(0x9)         # Datatype.SINGLE
    lookup_datatype("ushort")    # Datatype.USHORT
"""

from cpuem_asm.cpu.datatypes import (
    # Core type
    Datatype,
    # Encoding constants
    DATATYPE_BITS,
    DATATYPE_MASK,
    SIGNED_FLAG,
    SIZE_CLASS_MASK,
    SIZE_CLASS_WIDTHS,
    OPERATION_TABLE_ROWS,
    OPERATION_TABLE_COLUMNS,
    INVALID_OPERATION_SELECTION,
    # Source names
    DATATYPE_NAMES,
    DEFAULT_DATATYPE,
    # Lookup functions
    is_datatype_name,
    lookup_datatype,
)

__all__ = [
    "Datatype",
    "DATATYPE_BITS",
    "DATATYPE_MASK",
    "SIGNED_FLAG",
    "SIZE_CLASS_MASK",
    "SIZE_CLASS_WIDTHS",
    "OPERATION_TABLE_ROWS",
    "OPERATION_TABLE_COLUMNS",
    "INVALID_OPERATION_SELECTION",
    "DATATYPE_NAMES",
    "DEFAULT_DATATYPE",
    "is_datatype_name",
    "lookup_datatype",
]
