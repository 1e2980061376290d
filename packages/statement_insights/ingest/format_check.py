"""Container sniffing for spreadsheet byte buffers.

Only the leading magic bytes are inspected; no cryptography happens here.
An encrypted workbook is stored inside a compound-document (OLE2) container,
while a plain ``.xlsx`` is a zip archive.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..errors import FormatValidationError

OLE2_MAGIC = b"\xd0\xcf\x11\xe0"
ZIP_MAGIC = b"PK\x03\x04"

type ContainerKind = Literal["OLE2", "ZIP", "UNKNOWN"]


@dataclass(frozen=True, slots=True)
class FormatCheck:
    is_valid: bool
    is_encrypted: bool
    requires_password: bool
    container: ContainerKind


def _container(buffer: bytes) -> ContainerKind:
    if len(buffer) < 4:
        return "UNKNOWN"
    head = bytes(buffer[:4])
    if head == OLE2_MAGIC:
        return "OLE2"
    if head == ZIP_MAGIC:
        return "ZIP"
    return "UNKNOWN"


def is_encrypted(buffer: bytes) -> bool:
    """True when ``buffer`` starts with the compound-document signature."""

    return _container(buffer) == "OLE2"


def is_valid_format(buffer: bytes) -> bool:
    return _container(buffer) != "UNKNOWN"


def validate_format(buffer: bytes) -> FormatCheck:
    """Classify ``buffer`` in one pass.

    Buffers shorter than four bytes are never valid.
    """

    kind = _container(buffer)
    encrypted = kind == "OLE2"
    return FormatCheck(
        is_valid=kind != "UNKNOWN",
        is_encrypted=encrypted,
        requires_password=encrypted,
        container=kind,
    )


def check_decryptable(buffer: bytes, password: str | None) -> FormatCheck:
    """Validate that ``buffer`` can be handed to the decoder with ``password``.

    Raises
    ------
    FormatValidationError
        ``EMPTY_FILE`` for an empty buffer, ``CORRUPTED_FILE`` when the magic
        bytes match neither container, and ``NO_PASSWORD`` for an encrypted
        container without a usable password.
    """

    if not buffer:
        raise FormatValidationError(
            "Invalid file: The file is empty or corrupted.", code="EMPTY_FILE"
        )
    check = validate_format(buffer)
    if not check.is_valid:
        raise FormatValidationError(
            "The file appears to be corrupted. Please try a different file.",
            code="CORRUPTED_FILE",
        )
    if check.requires_password and (password is None or password.strip() == ""):
        raise FormatValidationError(
            "Password is required to decrypt this file.", code="NO_PASSWORD"
        )
    return check


__all__ = [
    "OLE2_MAGIC",
    "ZIP_MAGIC",
    "ContainerKind",
    "FormatCheck",
    "is_encrypted",
    "is_valid_format",
    "validate_format",
    "check_decryptable",
]
