import base64
import binascii
import codecs
from typing import Optional

from mail_archiver.errors import DecodeError
from mail_archiver.models.gmail import PartBody
from mail_archiver.utils.logger import logger


def decode_bytes(data: str) -> bytes:
    """
    Decodes a Gmail base64 payload.

    Gmail uses the URL-safe alphabet, frequently without padding. The standard
    alphabet is accepted as well, and whitespace is ignored.
    """
    cleaned = "".join((data or "").split())
    cleaned += "=" * (-len(cleaned) % 4)
    try:
        return base64.b64decode(cleaned, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Malformed base64 payload: {e}") from e


def _known_charset(charset: str) -> str:
    try:
        codec = codecs.lookup(charset)
    except LookupError:
        logger.warning(f"Unknown charset '{charset}', falling back to utf-8")
        return "utf-8"

    # base64, hex, rot13 and friends are bytes-to-bytes codecs
    if not codec._is_text_encoding:
        logger.warning(f"Charset '{charset}' is not a text encoding, falling back to utf-8")
        return "utf-8"
    return codec.name


def decode_body(body: Optional[PartBody], charset: str = "utf-8") -> str:
    """Decoded text of an inline body, or an empty string when there is nothing to decode."""
    if body is None or not body.data:
        return ""

    try:
        raw = decode_bytes(body.data)
    except DecodeError as e:
        logger.warning(f"Skipping body content: {e}")
        return ""

    return raw.decode(_known_charset(charset), errors="replace")
