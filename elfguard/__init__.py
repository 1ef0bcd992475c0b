"""
ElfGuard -- ELF Hardening Checker
==================================

ElfGuard decodes the headers of ELF executables and shared objects and
reports which exploit mitigations the toolchain applied.

Capabilities:
    - ELF32 / ELF64 decoding in either byte order
    - Identification block, file header, program and section header tables
    - Stack canary detection (``__stack_chk_fail`` in ``.strtab``)
    - Non-executable stack detection (``PT_GNU_STACK``)
    - RELRO classification (none / partial / full)
    - Position-independent executable detection
    - Findings, Rich console tables and JSON reports

Library use::

    from elfguard import decode, infer_security_options

    with open("/bin/ls", "rb") as fh:
        elf = decode(fh)
        options = infer_security_options(elf, fh)

References:
    - TIS Committee. (1995). ELF Specification, Version 1.2.
    - Drepper, U. (2006). How To Write Shared Libraries.
    - Ubuntu Security Team. Built-in compiler hardening features.
"""

from elfguard.analyzers.security import infer_security_options
from elfguard.parsers.elf_parser import decode

__version__ = "1.0.0"
__all__ = [
    "decode",
    "infer_security_options",
]
