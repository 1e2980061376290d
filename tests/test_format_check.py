import pytest

from statement_insights.errors import FormatValidationError
from statement_insights.ingest.format_check import (
    OLE2_MAGIC,
    ZIP_MAGIC,
    check_decryptable,
    is_encrypted,
    is_valid_format,
    validate_format,
)


def test_zip_container_is_plain_and_valid():
    buf = ZIP_MAGIC + b"rest-of-archive"
    check = validate_format(buf)
    assert check.is_valid
    assert not check.is_encrypted
    assert not check.requires_password
    assert check.container == "ZIP"
    assert is_valid_format(buf)
    assert not is_encrypted(buf)


def test_compound_document_is_encrypted():
    buf = OLE2_MAGIC + b"\xa1\xb1\x1a\xe1" + b"\x00" * 32
    check = validate_format(buf)
    assert check.is_valid
    assert check.is_encrypted
    assert check.requires_password
    assert check.container == "OLE2"


@pytest.mark.parametrize("buf", [b"", b"PK", b"%PDF-1.7", b"Date,Details\n"])
def test_short_or_foreign_buffers_are_invalid(buf):
    assert not is_valid_format(buf)
    assert validate_format(buf).container == "UNKNOWN"


def test_check_decryptable_rejects_empty_file():
    with pytest.raises(FormatValidationError) as ei:
        check_decryptable(b"", None)
    assert ei.value.code == "EMPTY_FILE"


def test_check_decryptable_rejects_unknown_magic():
    with pytest.raises(FormatValidationError) as ei:
        check_decryptable(b"not a spreadsheet", None)
    assert ei.value.code == "CORRUPTED_FILE"
    assert "corrupted" in str(ei.value)


@pytest.mark.parametrize("password", [None, "", "   "])
def test_check_decryptable_requires_password_for_encrypted(password):
    with pytest.raises(FormatValidationError) as ei:
        check_decryptable(OLE2_MAGIC + b"\x00" * 16, password)
    assert ei.value.code == "NO_PASSWORD"


def test_check_decryptable_accepts_plain_and_encrypted_with_password():
    assert check_decryptable(ZIP_MAGIC + b"x", None).container == "ZIP"
    assert check_decryptable(OLE2_MAGIC + b"x", "secret").requires_password
