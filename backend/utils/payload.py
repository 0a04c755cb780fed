# template-compositor/backend/utils/payload.py

from __future__ import annotations

import base64
import binascii
import re
from typing import Dict, Optional

from .errors import EmptyAfterCleaning, InvalidEncoding, MissingField


REQUIRED_FIELDS = ("aiImage", "headerTemplate", "footerTemplate")

_WHITESPACE_RE = re.compile(r"\s+")


def clean_base64(value: str) -> str:
    """Strip every whitespace character (line-wrapped base64 included)."""
    return _WHITESPACE_RE.sub("", value)


def decode_base64(field: str, cleaned: str) -> bytes:
    # tolerate missing "=" padding, reject anything outside the alphabet
    padded = cleaned + "=" * (-len(cleaned) % 4)
    try:
        raw = base64.b64decode(padded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidEncoding(field, str(e)) from e

    if not raw:
        raise InvalidEncoding(field, "decoded buffer is empty")
    return raw


def clean_payloads(
    ai_image: Optional[str],
    header_template: Optional[str],
    footer_template: Optional[str],
) -> Dict[str, str]:
    """
    Validate presence and strip whitespace, keyed by field name.

      1) every field present and non-empty            -> MissingField
      2) every field non-empty after whitespace strip -> EmptyAfterCleaning
    """
    values = dict(zip(REQUIRED_FIELDS, (ai_image, header_template, footer_template)))

    missing = [name for name, v in values.items() if not v]
    if missing:
        raise MissingField(missing)

    cleaned = {name: clean_base64(v) for name, v in values.items()}

    empty = [name for name, v in cleaned.items() if not v]
    if empty:
        raise EmptyAfterCleaning(empty)
    return cleaned


def decode_cleaned(cleaned: Dict[str, str]) -> Dict[str, bytes]:
    # InvalidEncoding(field) for the first field that is not valid base64
    return {name: decode_base64(name, cleaned[name]) for name in REQUIRED_FIELDS}


def decode_payloads(
    ai_image: Optional[str],
    header_template: Optional[str],
    footer_template: Optional[str],
) -> Dict[str, bytes]:
    """Turn the three base64 payloads into raw image buffers. Does not look at pixels."""
    return decode_cleaned(clean_payloads(ai_image, header_template, footer_template))
