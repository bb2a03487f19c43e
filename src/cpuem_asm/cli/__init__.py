"""
cpuem-asm Command-Line Interface
================================

- **cpuasm**: scan and parse a source file, print or write its listing

The tool is a Click application with --help and consistent exit codes
(see cli.errors).
"""

__all__ = ["cpuasm"]
