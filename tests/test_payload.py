"""
Tests for base64 payload decoding
"""
import base64

import pytest

from backend.utils.errors import EmptyAfterCleaning, InvalidEncoding, MissingField
from backend.utils.payload import clean_base64, clean_payloads, decode_cleaned, decode_payloads


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def test_decode_payloads_returns_buffers_by_field():
    out = decode_payloads(_b64(b"ai"), _b64(b"head"), _b64(b"foot"))
    assert out == {"aiImage": b"ai", "headerTemplate": b"head", "footerTemplate": b"foot"}


def test_all_fields_missing_names_every_field():
    with pytest.raises(MissingField) as exc:
        decode_payloads(None, None, None)
    assert exc.value.missing == ["aiImage", "headerTemplate", "footerTemplate"]
    for name in ("aiImage", "headerTemplate", "footerTemplate"):
        assert name in exc.value.message
    assert exc.value.status_code == 400


def test_empty_string_counts_as_missing():
    with pytest.raises(MissingField) as exc:
        decode_payloads(_b64(b"x"), "", _b64(b"y"))
    assert exc.value.missing == ["headerTemplate"]


def test_whitespace_only_is_empty_after_cleaning():
    with pytest.raises(EmptyAfterCleaning) as exc:
        decode_payloads("   ", _b64(b"h"), _b64(b"f"))
    assert exc.value.fields == ["aiImage"]
    assert exc.value.client_error


def test_line_wrapped_base64_is_cleaned():
    wrapped = "\n".join(_b64(b"some image bytes here")[i:i + 4] for i in range(0, 28, 4))
    out = decode_payloads(wrapped + " \t\r\n", _b64(b"h"), _b64(b"f"))
    assert out["aiImage"] == b"some image bytes here"


def test_clean_base64_removes_inner_whitespace():
    assert clean_base64(" ab\ncd\t ef\r\n") == "abcdef"


def test_missing_padding_is_tolerated():
    encoded = _b64(b"ab").rstrip("=")
    out = decode_payloads(encoded, _b64(b"h"), _b64(b"f"))
    assert out["aiImage"] == b"ab"


def test_invalid_characters_name_the_field():
    with pytest.raises(InvalidEncoding) as exc:
        decode_payloads(_b64(b"a"), _b64(b"h"), "not*base64!")
    assert exc.value.field == "footerTemplate"
    assert exc.value.role == "footer"
    assert "footerTemplate" in exc.value.message


def test_impossible_length_is_invalid():
    with pytest.raises(InvalidEncoding) as exc:
        decode_payloads("abcde", _b64(b"h"), _b64(b"f"))
    assert exc.value.field == "aiImage"


def test_padding_only_is_invalid():
    with pytest.raises(InvalidEncoding) as exc:
        decode_payloads(_b64(b"a"), "====", _b64(b"f"))
    assert exc.value.field == "headerTemplate"


def test_clean_payloads_returns_stripped_text():
    out = clean_payloads(" YQ==\n", "aA\r\n==", "Zg ==")
    assert out == {"aiImage": "YQ==", "headerTemplate": "aA==", "footerTemplate": "Zg=="}


def test_decode_cleaned_reports_first_bad_field():
    with pytest.raises(InvalidEncoding) as exc:
        decode_cleaned({"aiImage": "YQ==", "headerTemplate": "!!", "footerTemplate": "??"})
    assert exc.value.field == "headerTemplate"
