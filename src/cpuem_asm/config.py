"""
cpuem-asm Configuration
=======================

Settings that shape how a source unit is scanned and parsed. Values can
come from:
- Default values (defined here)
- Constructor arguments (e.g. from CLI options)
- Environment variables, via AssemblerConfig.from_env()

Environment variables (all optional):
    CPUEM_ASM_MAX_TOKEN_LENGTH   Longest word or literal accepted (default 256)
    CPUEM_ASM_DEFAULT_DATATYPE   Active datatype at the start of a parse
                                 (default "int")
"""

from dataclasses import dataclass
import os

from cpuem_asm.cpu import DEFAULT_DATATYPE, Datatype, lookup_datatype


# Longest word or numeric literal the scanner accepts
MAX_TOKEN_LENGTH = 0x100

ENV_MAX_TOKEN_LENGTH = "CPUEM_ASM_MAX_TOKEN_LENGTH"
ENV_DEFAULT_DATATYPE = "CPUEM_ASM_DEFAULT_DATATYPE"


@dataclass(frozen=True)
class AssemblerConfig:
    """
    Configuration for one assembler front-end run.

    Attributes:
        max_token_length: Longest word or literal, in characters
        default_datatype: Active datatype before any statement names one
    """
    max_token_length: int = MAX_TOKEN_LENGTH
    default_datatype: Datatype = DEFAULT_DATATYPE

    def __post_init__(self):
        if self.max_token_length < 1:
            raise ValueError(
                f"max_token_length must be positive, got {self.max_token_length}"
            )
        if not self.default_datatype.is_lexable:
            raise ValueError(
                f"default datatype '{self.default_datatype}' has no source spelling"
            )

    @classmethod
    def from_env(cls) -> "AssemblerConfig":
        """
        Create an AssemblerConfig from environment variables.

        Unset variables keep their defaults.

        Raises:
            ValueError: If a variable holds an invalid value
        """
        kwargs = {}

        length = os.environ.get(ENV_MAX_TOKEN_LENGTH)
        if length:
            try:
                kwargs["max_token_length"] = int(length, 0)
            except ValueError:
                raise ValueError(
                    f"{ENV_MAX_TOKEN_LENGTH} must be an integer, got '{length}'"
                ) from None

        datatype = os.environ.get(ENV_DEFAULT_DATATYPE)
        if datatype:
            kwargs["default_datatype"] = lookup_datatype(datatype.strip())

        return cls(**kwargs)
