"""
Deterministic string hashing used for patient IDs and simulated CIDs.

The hash is the classic 32-bit polynomial string hash (h * 31 + c) computed
over UTF-16 code units, so values match the ones produced by the browser
client. It is not cryptographically secure.
"""

import json
from typing import Any


def to_json(data: Any) -> str:
    """Serialize data as compact JSON, keeping key order and non-ASCII text."""
    return json.dumps(data, separators=(",", ":"), ensure_ascii=False)


def generate_hash(data: Any) -> str:
    """
    Hash a string or JSON-serializable value.

    Args:
        data: A string (hashed as-is) or any JSON-serializable value

    Returns:
        str: The absolute value of the signed 32-bit hash in lowercase hex
    """
    text = data if isinstance(data, str) else to_json(data)
    units = text.encode("utf-16-le", "surrogatepass")

    value = 0
    for i in range(0, len(units), 2):
        code = units[i] | (units[i + 1] << 8)
        value = ((value << 5) - value + code) & 0xFFFFFFFF

    # Reinterpret as signed 32-bit
    if value & 0x80000000:
        value -= 0x100000000

    return format(abs(value), "x")
