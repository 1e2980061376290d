"""Spreadsheet decoder: bytes (+ optional password) to a grid of typed cells.

The rest of ingestion never touches a workbook object. It consumes a
:data:`Grid` (rows of cells, each ``str``/``int``/``float``/``date``/
``datetime``/``None``) produced by a :data:`Decoder` callable. The default
decoder reads the first worksheet with ``openpyxl``; encrypted workbooks are
first decrypted in memory with ``msoffcrypto-tool``. Tests and alternative
readers plug in any callable with the same signature.
"""

from __future__ import annotations

import io
import zipfile
from collections.abc import Callable, Sequence
from datetime import date, datetime

import msoffcrypto
import openpyxl
from msoffcrypto.exceptions import DecryptionError as _MsoDecryptionError
from msoffcrypto.exceptions import FileFormatError, InvalidKeyError
from msoffcrypto.format.ooxml import OOXMLFile
from openpyxl.utils.exceptions import InvalidFileException

from ..errors import DecodeError
from ..logging_setup import get_logger
from .format_check import is_encrypted

type Cell = str | int | float | date | datetime | None
type Grid = list[list[Cell]]
type Decoder = Callable[[bytes, str | None], Grid]

_log = get_logger("statement_insights.ingest.decoder")


def _decrypt(buffer: bytes, password: str) -> bytes:
    try:
        office = msoffcrypto.OfficeFile(io.BytesIO(buffer))
        if isinstance(office, OOXMLFile):
            # Agile/standard encryption can check the key before decrypting.
            office.load_key(password=password, verify_password=True)
        else:
            office.load_key(password=password)
        out = io.BytesIO()
        office.decrypt(out)
    except (InvalidKeyError, _MsoDecryptionError) as e:
        raise DecodeError(
            "Incorrect password. Please check the password and try again.",
            wrong_password=True,
        ) from e
    except (FileFormatError, OSError, ValueError) as e:
        raise DecodeError(
            "Failed to read Excel file. File may be corrupted or invalid."
        ) from e
    return out.getvalue()


def decode_workbook(buffer: bytes, password: str | None = None) -> Grid:
    """Decode the first worksheet of an ``.xlsx`` workbook into a grid.

    Parameters
    ----------
    buffer:
        Raw file bytes. A compound-document container is treated as an
        encrypted workbook and requires ``password``.
    password:
        Optional password used to decrypt the container.

    Raises
    ------
    DecodeError
        For a wrong password, a corrupt container, or a workbook without
        worksheets.
    """

    payload = bytes(buffer)
    if is_encrypted(payload):
        if not password:
            raise DecodeError("Password is required to decrypt this file.")
        _log.debug("decrypting %d-byte encrypted container", len(payload))
        payload = _decrypt(payload, password)

    try:
        wb = openpyxl.load_workbook(io.BytesIO(payload), read_only=True, data_only=True)
    except (zipfile.BadZipFile, InvalidFileException, KeyError, OSError, ValueError) as e:
        raise DecodeError(
            "Failed to read Excel file. File may be corrupted or invalid."
        ) from e

    try:
        if not wb.worksheets:
            raise DecodeError("No sheets found in the workbook")
        ws = wb.worksheets[0]
        grid: Grid = [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()

    _log.debug("decoded %d rows from sheet %r", len(grid), ws.title)
    return grid


def grid_from_rows(rows: Sequence[Sequence[Cell]]) -> Grid:
    """Copy ``rows`` into a fresh :data:`Grid` (lists, not tuples)."""

    return [list(r) for r in rows]


def static_decoder(rows: Sequence[Sequence[Cell]]) -> Decoder:
    """Return a decoder that ignores its input and yields ``rows``.

    Useful for feeding already-tabular data (or fixtures) through
    :func:`statement_insights.ingest.statement.parse_statement`.
    """

    def _decode(_buffer: bytes, _password: str | None) -> Grid:
        return grid_from_rows(rows)

    return _decode


__all__ = [
    "Cell",
    "Grid",
    "Decoder",
    "decode_workbook",
    "grid_from_rows",
    "static_decoder",
]
