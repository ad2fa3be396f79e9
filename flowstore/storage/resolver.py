"""
Path Resolver - Storage Layer

Maps (tenant, logical URI) pairs onto physical paths below a configured base
directory. The base directory is injected at construction; one resolver
serves every tenant of that root.

@.architecture
Incoming: storage/local.py --- {Optional[str] tenant, str/PathLike logical URI, Path physical path}
Processing: resolve(), tenant_root(), logical_path(), canonical_uri(), uri_for() --- {3 jobs: tenant_scoping, path_resolution, uri_canonicalization}
Outgoing: storage/local.py --- {Path below the tenant root, str canonical URI, raises InvalidPathError}
"""

import os
from pathlib import Path, PurePosixPath
from typing import Optional, Union

from flowstore.errors import InvalidPathError
from flowstore.security.sanitization import DEFAULT_SCHEME, UriLike, UriSanitizer


class PathResolver:
    """
    Resolves logical URIs to physical paths.

    Tenant roots are disjoint subtrees of the base path:
        base_path/shared/             # tenant is None
        base_path/tenants/<tenant>/   # any other tenant
    """

    SHARED_DIR = "shared"
    TENANTS_DIR = "tenants"

    def __init__(
        self,
        base_path: Union[str, Path],
        scheme: str = DEFAULT_SCHEME,
        sanitizer: Optional[UriSanitizer] = None
    ):
        """
        Initialize resolver.

        Args:
            base_path: Storage base directory (resolved to an absolute path)
            scheme: Storage scheme used for canonical URIs
            sanitizer: Custom sanitizer (built from ``scheme`` if None)
        """
        self.base_path = Path(base_path).expanduser().resolve()
        self.sanitizer = sanitizer or UriSanitizer(scheme=scheme)

    @property
    def scheme(self) -> str:
        return self.sanitizer.scheme

    def tenant_root(self, tenant: Optional[str]) -> Path:
        """Return the storage root of ``tenant``."""
        tenant = self.sanitizer.sanitize_tenant(tenant)
        if tenant is None:
            return self.base_path / self.SHARED_DIR
        return self.base_path / self.TENANTS_DIR / tenant

    def resolve(self, tenant: Optional[str], uri: UriLike) -> Path:
        """
        Resolve a logical URI for a tenant.

        No filesystem access happens here.

        Args:
            tenant: Tenant id, or None for the shared root
            uri: Bare or scheme-qualified logical URI

        Returns:
            Physical path strictly below the tenant root

        Raises:
            InvalidPathError: If the URI or tenant is invalid
        """
        root = self.tenant_root(tenant)
        segments = self.sanitizer.split_uri(uri)
        path = root.joinpath(*segments)

        # Sanitized segments cannot climb, this only guards the invariant
        if root not in path.parents:
            raise InvalidPathError(f"Path escapes storage root: {uri!r}")

        return path

    def logical_path(self, uri: UriLike) -> str:
        """Return the normalized rooted logical path of ``uri``."""
        return self.sanitizer.normalize_uri(uri)

    def canonical_uri(self, uri: UriLike) -> str:
        """Return the scheme-qualified form of ``uri``."""
        return self.sanitizer.canonical_uri(uri)

    def uri_for(self, tenant: Optional[str], path: Path) -> str:
        """
        Map a physical path below the tenant root back to its canonical URI.

        Args:
            tenant: Tenant id the path belongs to
            path: Physical path previously derived from ``resolve``

        Raises:
            InvalidPathError: If ``path`` is not below the tenant root
        """
        root = self.tenant_root(tenant)
        try:
            relative = Path(path).relative_to(root)
        except ValueError:
            raise InvalidPathError(f"Path {path} is outside storage root {root}")

        segments = list(PurePosixPath(relative.as_posix()).parts)
        if not segments:
            raise InvalidPathError(f"Path {path} is the storage root itself")
        return self.sanitizer.canonical_from_segments(segments)

    def __repr__(self) -> str:
        return f"PathResolver(base_path={os.fspath(self.base_path)!r}, scheme={self.scheme!r})"
