"""
Reversible transport encoding for patient records.

This stands in for encryption during development: records are serialized to
JSON and Base64 encoded. It provides no confidentiality.
"""

import base64
import binascii
import json
import logging
from typing import Any

from survey_backend.errors import DecodeError
from survey_backend.hashing import to_json

logger = logging.getLogger(__name__)


def encode_record(record: Any) -> str:
    """
    Encode a JSON-serializable record into a transport-safe string.

    Args:
        record: The record to encode

    Returns:
        str: Base64 text of the UTF-8 JSON serialization
    """
    return base64.b64encode(to_json(record).encode("utf-8")).decode("ascii")


def decode_record(text: str) -> Any:
    """
    Decode a string produced by encode_record.

    Args:
        text: The encoded record

    Returns:
        The decoded JSON value

    Raises:
        DecodeError: If the text is not valid Base64, UTF-8 or JSON
    """
    if not isinstance(text, str):
        raise DecodeError(f"Encoded record must be a string, got {type(text).__name__}")

    try:
        raw = base64.b64decode(text.encode("ascii"), validate=True)
        return json.loads(raw.decode("utf-8"))
    except (UnicodeError, binascii.Error, json.JSONDecodeError) as e:
        logger.error(f"Error decoding record: {str(e)}")
        raise DecodeError(f"Malformed record payload: {str(e)}") from e
