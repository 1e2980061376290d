"""Statement ingestion: bytes to canonical transactions."""

from .columns import ColumnMapping, map_columns
from .decoder import Decoder, Grid, decode_workbook, static_decoder
from .format_check import check_decryptable, is_encrypted, is_valid_format, validate_format
from .header import find_header_row
from .normalize import detect_channel, parse_amount, parse_date, transaction_id
from .statement import parse_statement, parse_statement_file

__all__ = [
    "ColumnMapping",
    "map_columns",
    "Decoder",
    "Grid",
    "decode_workbook",
    "static_decoder",
    "check_decryptable",
    "is_encrypted",
    "is_valid_format",
    "validate_format",
    "find_header_row",
    "detect_channel",
    "parse_amount",
    "parse_date",
    "transaction_id",
    "parse_statement",
    "parse_statement_file",
]
