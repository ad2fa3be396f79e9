"""
Unit Tests: URI Sanitization

Tests for scheme stripping, percent-decoding, traversal rejection, size
limits and tenant validation.
"""

from pathlib import PurePosixPath

import pytest

from flowstore.errors import InvalidPathError, StorageError
from flowstore.security.sanitization import (
    SizeLimits,
    UriSanitizer,
    get_sanitizer,
    normalize_uri,
    sanitize_tenant,
)

pytestmark = pytest.mark.unit


@pytest.fixture
def sanitizer() -> UriSanitizer:
    return UriSanitizer()


# =============================================================================
# Scheme Handling
# =============================================================================

class TestSchemeHandling:
    """Test how scheme-qualified URIs map to logical paths."""

    def test_bare_and_qualified_are_equal(self, sanitizer):
        """Bare and scheme-qualified URIs split identically."""
        assert sanitizer.split_uri("/ns/flow/file.yml") == ["ns", "flow", "file.yml"]
        assert sanitizer.split_uri("kestra:///ns/flow/file.yml") == ["ns", "flow", "file.yml"]

    def test_single_slash_scheme_form(self, sanitizer):
        """kestra:/a/b is accepted as well."""
        assert sanitizer.normalize_uri("kestra:/a/b") == "/a/b"

    def test_scheme_is_case_insensitive(self, sanitizer):
        assert sanitizer.normalize_uri("KESTRA:///a/b") == "/a/b"

    def test_relative_key_is_rooted(self, sanitizer):
        assert sanitizer.normalize_uri("ns/flow/file.yml") == "/ns/flow/file.yml"

    def test_other_scheme_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("file:///etc/passwd")

    def test_authority_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("kestra://host/a/b")

    def test_opaque_uri_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("kestra:a/b")

    def test_custom_scheme(self):
        """A sanitizer only accepts its own scheme."""
        sanitizer = UriSanitizer(scheme="flow")

        assert sanitizer.canonical_uri("/a") == "flow:///a"
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("kestra:///a")

    def test_invalid_scheme_name(self):
        with pytest.raises(ValueError):
            UriSanitizer(scheme="1bad")


# =============================================================================
# Normalization
# =============================================================================

class TestNormalization:
    """Test segment normalization."""

    def test_empty_and_dot_segments_dropped(self, sanitizer):
        assert sanitizer.normalize_uri("//a/./b//c/") == "/a/b/c"

    def test_percent_decoding(self, sanitizer):
        assert sanitizer.split_uri("/a/my%20file.txt") == ["a", "my file.txt"]

    def test_path_like_input(self, sanitizer):
        """PathLike inputs are taken literally."""
        assert sanitizer.split_uri(PurePosixPath("/a/%41")) == ["a", "%41"]

    def test_root_rejected(self, sanitizer):
        """A URI normalizing to the root doesn't address an entry."""
        for uri in ("/", "", "kestra:///", "/./"):
            with pytest.raises(InvalidPathError):
                sanitizer.split_uri(uri)

    def test_non_string_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri(42)

    def test_canonical_uri_quotes_segments(self, sanitizer):
        assert sanitizer.canonical_uri("/a/my file.txt") == "kestra:///a/my%20file.txt"

    def test_canonical_uri_round_trips(self, sanitizer):
        canonical = sanitizer.canonical_uri("/a/my file.txt")
        assert sanitizer.split_uri(canonical) == ["a", "my file.txt"]


# =============================================================================
# Traversal and Invalid Characters
# =============================================================================

class TestTraversal:
    """Test rejection of keys that could leave the root."""

    @pytest.mark.parametrize("uri", [
        "/../etc/passwd",
        "/a/../../b",
        "/a/../b",
        "../a",
        "kestra:///a/../b",
        "/a/%2e%2e/b",
        "/a/%2E%2E/%2E%2E/b",
    ])
    def test_dot_dot_rejected(self, sanitizer, uri):
        """Any '..' segment is rejected, even one staying under the root."""
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri(uri)

    def test_dot_dot_inside_name_allowed(self, sanitizer):
        assert sanitizer.split_uri("/a/..b/c..") == ["a", "..b", "c.."]

    def test_nul_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("/a/b\x00c")

    def test_encoded_nul_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("/a/b%00c")

    def test_backslash_rejected(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("/a/..\\..\\b")

    def test_error_hierarchy(self, sanitizer):
        """Invalid paths are both storage errors and value errors."""
        with pytest.raises(StorageError):
            sanitizer.split_uri("/../x")
        with pytest.raises(ValueError):
            sanitizer.split_uri("/../x")


# =============================================================================
# Size Limits
# =============================================================================

class TestSizeLimits:
    """Test length limits."""

    def test_uri_too_long(self):
        sanitizer = UriSanitizer(limits=SizeLimits(MAX_URI_LENGTH=20))
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("/" + "a/" * 20)

    def test_segment_too_long(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.split_uri("/" + "x" * 256)

    def test_segment_at_limit(self, sanitizer):
        assert sanitizer.split_uri("/" + "x" * 255) == ["x" * 255]


# =============================================================================
# Tenant Validation
# =============================================================================

class TestTenantValidation:
    """Test tenant identifiers."""

    def test_none_is_shared_root(self, sanitizer):
        assert sanitizer.sanitize_tenant(None) is None

    def test_valid_tenant(self, sanitizer):
        assert sanitizer.sanitize_tenant("main") == "main"

    @pytest.mark.parametrize("tenant", ["", ".", "..", "a/b", "a\\b", "a\x00"])
    def test_invalid_tenant(self, sanitizer, tenant):
        with pytest.raises(InvalidPathError):
            sanitizer.sanitize_tenant(tenant)

    def test_non_string_tenant(self, sanitizer):
        with pytest.raises(InvalidPathError):
            sanitizer.sanitize_tenant(1)


class TestModuleHelpers:
    """Test the default-scheme helpers."""

    def test_shared_sanitizer(self):
        assert get_sanitizer() is get_sanitizer()
        assert get_sanitizer().scheme == "kestra"

    def test_helpers(self):
        assert normalize_uri("kestra:///x/y") == "/x/y"
        assert sanitize_tenant("t1") == "t1"
