"""
Utilities

Helpers shared by the storage layer: stable hashing and slugs.
"""

from .hashing import base62_encode, value_hash
from .text import slugify

__all__ = [
    "base62_encode",
    "value_hash",
    "slugify",
]
