"""
ElfGuard Decode Errors
=======================

Typed exception hierarchy raised by the ELF decoders and the mitigation
inference step.  Every error is a :class:`DecodeError` so that a caller
analysing a batch of files can report ``unparsable file: <reason>`` and
move on to the next one.

Each subclass carries a short machine-readable :attr:`DecodeError.kind`
used by the engine when recording failed scans:

    - ``truncated``          -- fewer bytes available than a field needs
    - ``bad-magic``          -- the file is not an ELF image
    - ``invalid-enumerant``  -- a tag value outside its enumeration
    - ``unsupported``        -- a legal value this tool does not handle
    - ``missing-structure``  -- a required PHT/SHT entry is absent
"""

from __future__ import annotations


class DecodeError(Exception):
    """Base class for every failure raised while decoding an ELF image."""

    kind: str = "decode"


class TruncatedReadError(DecodeError):
    """A fixed-size field could not be read in full."""

    kind = "truncated"

    def __init__(self, field: str, expected: int, actual: int) -> None:
        self.field = field
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Truncated read of {field}: needed {expected} byte(s), "
            f"got {actual}"
        )


class BadMagicError(DecodeError):
    """The identification magic is not ``\\x7fELF``."""

    kind = "bad-magic"

    def __init__(self, magic: bytes) -> None:
        self.magic = magic
        super().__init__(f"Not an ELF file: bad magic {magic.hex() or '<empty>'}")


class InvalidEnumerantError(DecodeError):
    """A tag byte or word is outside its enumeration's known values."""

    kind = "invalid-enumerant"

    def __init__(self, field: str, value: int) -> None:
        self.field = field
        self.value = value
        super().__init__(f"Invalid value for {field}: {value:#x}")


class UnsupportedValueError(DecodeError):
    """A field holds a legal value that this tool cannot act upon."""

    kind = "unsupported"

    def __init__(self, field: str, value: object, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Unsupported {field} ({value}): {reason}")


class MissingStructureError(DecodeError):
    """A program or section header required by an analysis is absent."""

    kind = "missing-structure"

    def __init__(self, structure: str, detail: str = "") -> None:
        self.structure = structure
        message = f"Missing required structure: {structure}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
