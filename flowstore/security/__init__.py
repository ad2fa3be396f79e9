"""
Security Layer

Syntactic validation of logical storage URIs and tenant identifiers.
"""

from .sanitization import (
    DEFAULT_LIMITS,
    DEFAULT_SCHEME,
    SizeLimits,
    UriSanitizer,
    get_sanitizer,
    normalize_uri,
    sanitize_tenant,
)

__all__ = [
    "DEFAULT_LIMITS",
    "DEFAULT_SCHEME",
    "SizeLimits",
    "UriSanitizer",
    "get_sanitizer",
    "normalize_uri",
    "sanitize_tenant",
]
