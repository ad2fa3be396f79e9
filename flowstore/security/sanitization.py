"""
URI Sanitization - Security Layer

Validates logical storage URIs and tenant identifiers before anything is
mapped onto the filesystem. Every check here is syntactic: no file is
touched, so a traversal attempt is rejected regardless of what happens to
exist on disk.

@.architecture
Incoming: storage/resolver.py, storage/local.py --- {str or PathLike logical URI, Optional[str] tenant id}
Processing: split_uri(), normalize_uri(), canonical_uri(), sanitize_tenant(), _strip_scheme(), _validate_segment() --- {4 jobs: scheme_stripping, percent_decoding, segment_validation, size_validation}
Outgoing: storage/resolver.py --- {List[str] path segments, str rooted logical path, str canonical URI, raises InvalidPathError}
"""

import logging
import os
import re
from dataclasses import dataclass
from typing import List, Optional, Union
from urllib.parse import quote, unquote

from flowstore.errors import InvalidPathError

logger = logging.getLogger(__name__)

UriLike = Union[str, "os.PathLike[str]"]

DEFAULT_SCHEME = "kestra"


@dataclass
class SizeLimits:
    """Size limits applied to logical URIs."""

    MAX_URI_LENGTH: int = 4096
    MAX_SEGMENT_LENGTH: int = 255


DEFAULT_LIMITS = SizeLimits()


class UriSanitizer:
    """
    Sanitizes logical storage URIs.

    Features:
    - Strips the storage scheme (``kestra:///a/b`` and ``/a/b`` are the same key)
    - Decodes percent-escapes before validation (``%2e%2e`` is still ``..``)
    - Rejects every ``..`` segment, even ones that would stay under the root
    - Rejects NUL bytes and backslashes
    - Enforces URI and segment length limits
    """

    _scheme_pattern = re.compile(r"^([A-Za-z][A-Za-z0-9+.\-]*):(.*)$", re.DOTALL)

    def __init__(self, scheme: str = DEFAULT_SCHEME, limits: Optional[SizeLimits] = None):
        """
        Initialize sanitizer.

        Args:
            scheme: Storage scheme accepted as URI prefix
            limits: Custom size limits (uses defaults if None)
        """
        if not scheme or not self._scheme_pattern.match(f"{scheme}:"):
            raise ValueError(f"Invalid storage scheme: {scheme!r}")
        self.scheme = scheme.lower()
        self.limits = limits or DEFAULT_LIMITS

    # ==================== URI Sanitization ====================

    def split_uri(self, uri: UriLike) -> List[str]:
        """
        Split a logical URI into validated path segments.

        Empty and ``.`` segments are dropped. The result is never empty: a URI
        that normalizes to the root itself does not address an entry.

        Args:
            uri: Bare (``/ns/flow/file``) or scheme-qualified URI

        Returns:
            Path segments, outermost first

        Raises:
            InvalidPathError: If the URI is malformed or attempts traversal
        """
        if isinstance(uri, str):
            raw = uri
            path = unquote(self._strip_scheme(uri))
        elif isinstance(uri, os.PathLike):
            raw = os.fspath(uri)
            if not isinstance(raw, str):
                raise InvalidPathError(f"Expected a text path, got {type(raw).__name__}")
            path = raw
        else:
            raise InvalidPathError(f"Expected URI string or path, got {type(uri).__name__}")

        if len(raw) > self.limits.MAX_URI_LENGTH:
            raise InvalidPathError(
                f"URI length {len(raw)} exceeds maximum {self.limits.MAX_URI_LENGTH}"
            )

        segments = []
        for segment in path.split("/"):
            if segment in ("", "."):
                continue
            self._validate_segment(segment, raw)
            segments.append(segment)

        if not segments:
            raise InvalidPathError(f"URI does not address an entry below the storage root: {raw!r}")

        return segments

    def normalize_uri(self, uri: UriLike) -> str:
        """Return the rooted, normalized logical path of ``uri`` (``/a/b``)."""
        return "/" + "/".join(self.split_uri(uri))

    def canonical_uri(self, uri: UriLike) -> str:
        """
        Re-express a logical URI with the storage scheme.

        Args:
            uri: Bare or scheme-qualified URI

        Returns:
            Scheme-qualified URI, e.g. ``kestra:///ns/flow/file.yml``
        """
        return self.canonical_from_segments(self.split_uri(uri))

    def canonical_from_segments(self, segments: List[str]) -> str:
        """Build the canonical URI for already validated segments."""
        return f"{self.scheme}://" + quote("/" + "/".join(segments), safe="/")

    # ==================== Tenant Sanitization ====================

    def sanitize_tenant(self, tenant: Optional[str]) -> Optional[str]:
        """
        Validate a tenant identifier.

        Args:
            tenant: Tenant id, or None for the shared root

        Returns:
            The tenant id unchanged

        Raises:
            InvalidPathError: If the id is not a single safe path segment
        """
        if tenant is None:
            return None

        if not isinstance(tenant, str):
            raise InvalidPathError(f"Expected tenant string, got {type(tenant).__name__}")

        if tenant in ("", ".") or "/" in tenant:
            raise InvalidPathError(f"Invalid tenant id: {tenant!r}")

        self._validate_segment(tenant, tenant)
        return tenant

    # ==================== Internals ====================

    def _strip_scheme(self, uri: str) -> str:
        """Remove the storage scheme and an empty authority from ``uri``."""
        if uri.startswith("/"):
            return uri

        match = self._scheme_pattern.match(uri)
        if not match:
            # Relative keys are interpreted as rooted
            return uri

        scheme, remainder = match.groups()
        if scheme.lower() != self.scheme:
            raise InvalidPathError(f"Unsupported URI scheme {scheme!r}, expected {self.scheme!r}")

        if remainder.startswith("//"):
            authority, _, path = remainder[2:].partition("/")
            if authority:
                raise InvalidPathError(f"URI authority is not supported: {uri!r}")
            return "/" + path

        if remainder.startswith("/"):
            return remainder

        raise InvalidPathError(f"Opaque URI is not a storage path: {uri!r}")

    def _validate_segment(self, segment: str, raw: str) -> None:
        """Reject segments that could leave the root or confuse the filesystem."""
        if segment == "..":
            logger.warning(f"Path traversal attempt detected: {raw!r}")
            raise InvalidPathError(f"Path traversal is not allowed: {raw!r}")

        if "\x00" in segment or "\\" in segment:
            raise InvalidPathError(f"Invalid character in path segment: {raw!r}")

        if len(segment) > self.limits.MAX_SEGMENT_LENGTH:
            raise InvalidPathError(
                f"Path segment length {len(segment)} exceeds maximum {self.limits.MAX_SEGMENT_LENGTH}"
            )


# =============================================================================
# Module-level helpers
# =============================================================================

_sanitizer: Optional[UriSanitizer] = None


def get_sanitizer() -> UriSanitizer:
    """Get the sanitizer for the default scheme."""
    global _sanitizer
    if _sanitizer is None:
        _sanitizer = UriSanitizer()
    return _sanitizer


def normalize_uri(uri: UriLike) -> str:
    """Normalize a URI using the default sanitizer."""
    return get_sanitizer().normalize_uri(uri)


def sanitize_tenant(tenant: Optional[str]) -> Optional[str]:
    """Validate a tenant id using the default sanitizer."""
    return get_sanitizer().sanitize_tenant(tenant)
