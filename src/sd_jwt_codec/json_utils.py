"""JSON and base64url utilities.

This module provides a single place for the JSON encoding rules used on the
wire, isolating the underlying codec from the rest of the package.
"""

import base64
import binascii
import json
from typing import Any

JSONDecodeError = json.JSONDecodeError


def encode(obj: Any) -> str:
    """Encode an object as compact JSON text.

    Non-ASCII characters are kept as-is so that disclosures carry the
    claim value exactly as the issuer wrote it.

    Args:
        obj: The JSON-compatible object to encode

    Returns:
        Compact JSON text
    """
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def decode(text: str) -> Any:
    """Decode JSON text.

    Args:
        text: JSON text

    Returns:
        The decoded object

    Raises:
        JSONDecodeError: If the text is not valid JSON
    """
    return json.loads(text)


def b64url_encode(data: bytes) -> str:
    """Encode bytes as base64url without padding.

    Args:
        data: Raw bytes

    Returns:
        base64url text with the trailing ``=`` removed
    """
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Decode base64url text, with or without padding.

    Args:
        text: base64url text

    Returns:
        The decoded bytes

    Raises:
        ValueError: If the text is not valid base64url
    """
    if not isinstance(text, str):
        raise ValueError("base64url input must be a string")
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.b64decode(padded, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid base64url value: {e}") from e


def is_json_value(obj: Any) -> bool:
    """Check whether an object is one of the JSON value types."""
    return obj is None or isinstance(obj, (str, int, float, bool, dict, list))
