"""
Hashing Utilities

Stable, value-derived identifiers used as path segments for cache and state
keys. The same input always yields the same segment, across processes and
hosts.
"""

import hashlib

BASE62_ALPHABET = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"


def base62_encode(data: bytes) -> str:
    """
    Encode bytes as a base62 string.

    Args:
        data: Bytes to encode

    Returns:
        Base62 string ("0" for empty or all-zero input)
    """
    number = int.from_bytes(data, "big")
    if number == 0:
        return BASE62_ALPHABET[0]

    chars = []
    while number:
        number, remainder = divmod(number, 62)
        chars.append(BASE62_ALPHABET[remainder])
    return "".join(reversed(chars))


def value_hash(value: str) -> str:
    """
    Derive a filesystem-safe identifier from a value.

    SHA-256 of the UTF-8 value, truncated to 128 bits and base62-encoded.

    Args:
        value: Arbitrary string value

    Returns:
        Short alphanumeric identifier
    """
    digest = hashlib.sha256(str(value).encode("utf-8")).digest()
    return base62_encode(digest[:16])
