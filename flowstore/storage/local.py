"""
Local Storage - Filesystem storage backend

@.architecture
Incoming: Engine callers, storage/registry.py, monitoring/health.py --- {Optional[str] tenant, str/PathLike logical URI, bytes or binary stream payloads}
Processing: exists(), size(), last_modified_time(), get(), put(), create_directory(), get_attributes(), list(), delete(), delete_by_prefix(), all_by_prefix(), move(), get_storage_stats() --- {5 jobs: path_resolution, file_crud, prefix_operations, metadata_collection, operation_metrics}
Outgoing: Local filesystem (open/os.replace/shutil.rmtree), Engine callers --- {BinaryIO streams, str canonical URIs, FileAttributes, List[str] URIs, bool}

Stores artifacts below a base directory:
    base_path/
    ├── shared/
    │   └── <logical path>      # tenant None
    └── tenants/
        └── <tenant>/
            └── <logical path>  # any other tenant

In-flight writes live in hidden ``.<hex>.tmp`` siblings and are never
reported by listing, prefix or statistics operations.

Every operation resolves its URI through PathResolver first, so an invalid
key fails with InvalidPathError before the filesystem is touched.
"""

import errno
import os
import re
import shutil
import stat
import time
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterator, List, Optional, Union

from flowstore.errors import InvalidPathError, NotFoundError
from flowstore.monitoring.logging import get_logger
from flowstore.monitoring.metrics import MetricsRegistry, setup_storage_metrics
from flowstore.security.sanitization import DEFAULT_SCHEME, UriLike
from .base import FileAttributes, FileType, StorageData, StorageInterface
from .resolver import PathResolver

logger = get_logger(__name__)

_MISSING = (FileNotFoundError, NotADirectoryError)

_TEMP_FILE = re.compile(r"^\.[0-9a-f]{32}\.tmp$")


def _is_temp_file(name: str) -> bool:
    """Whether ``name`` is an in-flight put's temporary file."""
    return _TEMP_FILE.match(name) is not None


class LocalStorage(StorageInterface):
    """
    Local filesystem storage.

    Features:
    - Tenant-scoped roots below one base directory
    - Traversal-safe URI resolution before any I/O
    - Atomic file replacement on put
    - Recursive prefix listing and deletion
    - Per-operation metrics
    """

    def __init__(
        self,
        base_path: Union[str, Path] = "./data/storage",
        scheme: str = DEFAULT_SCHEME,
        metrics_registry: Optional[MetricsRegistry] = None
    ):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for all tenants
            scheme: Storage scheme of the returned canonical URIs
            metrics_registry: Registry for operation metrics (global if None)
        """
        self.resolver = PathResolver(base_path, scheme=scheme)
        self.base_path = self.resolver.base_path
        self._metrics = setup_storage_metrics(metrics_registry)
        self._ensure_directories()

    def _ensure_directories(self) -> None:
        """Create the base directory if it doesn't exist."""
        self.base_path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Storage directory ensured at {self.base_path}")

    @contextmanager
    def _track(self, operation: str) -> Iterator[None]:
        """Record count, outcome and duration of one operation."""
        start = time.perf_counter()
        status = "success"
        try:
            yield
        except InvalidPathError:
            status = "invalid_path"
            raise
        except NotFoundError:
            status = "not_found"
            raise
        except Exception:
            status = "error"
            raise
        finally:
            self._metrics['operations_total'].inc(operation=operation, status=status)
            self._metrics['operation_duration_seconds'].observe(
                time.perf_counter() - start, operation=operation
            )

    def _stat(self, path: Path, uri: UriLike) -> os.stat_result:
        try:
            return path.stat()
        except _MISSING:
            raise NotFoundError(f"File not found: {uri}")

    @staticmethod
    def _timestamp(value: float) -> datetime:
        return datetime.fromtimestamp(value, tz=timezone.utc)

    def _attributes(self, path: Path, st: os.stat_result) -> FileAttributes:
        is_dir = stat.S_ISDIR(st.st_mode)
        return FileAttributes(
            file_name=path.name,
            type=FileType.DIRECTORY if is_dir else FileType.FILE,
            size=st.st_size,
            last_modified_time=self._timestamp(st.st_mtime),
            creation_time=self._timestamp(getattr(st, "st_birthtime", st.st_ctime)),
        )

    # =========================================================================
    # FILE OPERATIONS
    # =========================================================================

    def exists(self, tenant: Optional[str], uri: UriLike) -> bool:
        with self._track("exists"):
            return self.resolver.resolve(tenant, uri).exists()

    def size(self, tenant: Optional[str], uri: UriLike) -> int:
        with self._track("size"):
            path = self.resolver.resolve(tenant, uri)
            st = self._stat(path, uri)
            if stat.S_ISDIR(st.st_mode):
                raise NotFoundError(f"Not a file: {uri}")
            return st.st_size

    def last_modified_time(self, tenant: Optional[str], uri: UriLike) -> datetime:
        with self._track("last_modified_time"):
            path = self.resolver.resolve(tenant, uri)
            return self._timestamp(self._stat(path, uri).st_mtime)

    def get(self, tenant: Optional[str], uri: UriLike) -> BinaryIO:
        """
        Open a stored file for reading.

        Args:
            tenant: Tenant id, or None for the shared root
            uri: Logical URI of the file

        Returns:
            Binary stream positioned at the start; the caller closes it

        Raises:
            InvalidPathError: If the URI is invalid
            NotFoundError: If the file doesn't exist or is a directory
        """
        with self._track("get"):
            path = self.resolver.resolve(tenant, uri)
            try:
                stream = open(path, "rb")
            except (FileNotFoundError, NotADirectoryError, IsADirectoryError):
                raise NotFoundError(f"File not found: {uri}")

            logger.debug(f"Opened file: {path}", tenant=tenant)
            return stream

    def put(self, tenant: Optional[str], uri: UriLike, data: Optional[StorageData]) -> str:
        """
        Write a file, replacing any existing one.

        The payload lands in a temporary sibling first and is renamed into
        place, so concurrent readers see either the old or the new content.

        Args:
            tenant: Tenant id, or None for the shared root
            uri: Logical URI to write
            data: Bytes-like payload or readable binary stream

        Returns:
            Canonical URI of the stored file, e.g. ``kestra:///ns/flow/file.yml``

        Raises:
            InvalidPathError: If the URI is invalid (checked before ``data``)
            ValueError: If ``data`` is None
            TypeError: If ``data`` is text instead of bytes
        """
        with self._track("put"):
            path = self.resolver.resolve(tenant, uri)

            if data is None:
                raise ValueError(f"No data supplied to write to {uri}")
            if isinstance(data, str):
                raise TypeError("Expected bytes or a binary stream, got str")

            path.parent.mkdir(parents=True, exist_ok=True)
            temp_path = path.parent / f".{uuid.uuid4().hex}.tmp"

            try:
                with open(temp_path, "wb") as output:
                    if isinstance(data, (bytes, bytearray, memoryview)):
                        output.write(data)
                    else:
                        shutil.copyfileobj(data, output)
                    written = output.tell()
                os.replace(temp_path, path)
            except Exception as e:
                logger.error(f"Failed to write file {uri}: {e}", tenant=tenant)
                temp_path.unlink(missing_ok=True)
                raise

            self._metrics['bytes_written_total'].inc(written)
            logger.info(f"Saved file: {path} ({written} bytes)", tenant=tenant)
            return self.resolver.canonical_uri(uri)

    def create_directory(self, tenant: Optional[str], uri: UriLike) -> None:
        with self._track("create_directory"):
            path = self.resolver.resolve(tenant, uri)
            path.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Directory ensured: {path}", tenant=tenant)

    def get_attributes(self, tenant: Optional[str], uri: UriLike) -> FileAttributes:
        with self._track("get_attributes"):
            path = self.resolver.resolve(tenant, uri)
            return self._attributes(path, self._stat(path, uri))

    def list(self, tenant: Optional[str], uri: UriLike) -> List[FileAttributes]:
        """
        List the immediate children of a directory, sorted by name.

        Raises:
            InvalidPathError: If the URI is invalid
            NotFoundError: If the directory doesn't exist (or is a file)
        """
        with self._track("list"):
            path = self.resolver.resolve(tenant, uri)
            if not path.is_dir():
                raise NotFoundError(f"Directory not found: {uri}")

            entries = []
            for child in sorted(path.iterdir(), key=lambda p: p.name):
                if _is_temp_file(child.name):
                    continue
                try:
                    st = child.stat()
                except _MISSING:
                    # Removed while listing
                    continue
                entries.append(self._attributes(child, st))
            return entries

    # =========================================================================
    # DELETE / MOVE
    # =========================================================================

    def delete(self, tenant: Optional[str], uri: UriLike) -> bool:
        """
        Delete a file, or a directory and everything below it.

        Returns:
            True if something was removed, False if nothing was there
        """
        with self._track("delete"):
            path = self.resolver.resolve(tenant, uri)
            try:
                if path.is_dir() and not path.is_symlink():
                    removed = sum(1 for _ in self._walk_files(path))
                    shutil.rmtree(path)
                else:
                    path.unlink()
                    removed = 1
            except _MISSING:
                return False

            self._metrics['files_deleted_total'].inc(removed)
            logger.info(f"Deleted: {path}", tenant=tenant)
            return True

    def delete_by_prefix(self, tenant: Optional[str], prefix: UriLike) -> List[str]:
        """
        Delete every file at or below a prefix, then the prefix itself.

        Returns:
            Canonical URIs of the deleted files (directories aren't listed);
            empty if nothing was stored there
        """
        with self._track("delete_by_prefix"):
            path = self.resolver.resolve(tenant, prefix)

            if path.is_symlink() or path.is_file():
                try:
                    path.unlink()
                except _MISSING:
                    return []
                deleted = [self.resolver.uri_for(tenant, path)]
            elif path.is_dir():
                deleted = []
                for file_path in list(self._walk_files(path)):
                    try:
                        file_path.unlink()
                    except _MISSING:
                        continue
                    deleted.append(self.resolver.uri_for(tenant, file_path))
                shutil.rmtree(path)
            else:
                return []

            self._metrics['files_deleted_total'].inc(len(deleted))
            logger.info(f"Deleted {len(deleted)} files under {path}", tenant=tenant)
            return deleted

    def move(self, tenant: Optional[str], source: UriLike, destination: UriLike) -> None:
        """
        Move a file or directory subtree to a new location.

        An existing destination file is replaced; moving onto a non-empty
        directory fails with the underlying OSError.

        Raises:
            InvalidPathError: If either URI is invalid
            NotFoundError: If the source doesn't exist
        """
        with self._track("move"):
            source_path = self.resolver.resolve(tenant, source)
            destination_path = self.resolver.resolve(tenant, destination)

            if not source_path.exists() and not source_path.is_symlink():
                raise NotFoundError(f"File not found: {source}")

            destination_path.parent.mkdir(parents=True, exist_ok=True)
            try:
                os.replace(source_path, destination_path)
            except FileNotFoundError:
                raise NotFoundError(f"File not found: {source}")
            except OSError as e:
                if e.errno != errno.EXDEV:
                    raise
                shutil.move(str(source_path), str(destination_path))

            logger.info(f"Moved {source_path} to {destination_path}", tenant=tenant)

    # =========================================================================
    # PREFIX LISTING
    # =========================================================================

    def all_by_prefix(
        self,
        tenant: Optional[str],
        prefix: UriLike,
        include_directories: bool = False
    ) -> List[str]:
        """
        List every entry at or below a prefix, recursively.

        Args:
            tenant: Tenant id, or None for the shared root
            prefix: Logical URI of a directory (or a single file)
            include_directories: Also list directories, with a trailing ``/``

        Returns:
            Sorted canonical URIs; empty if nothing was stored there
        """
        with self._track("all_by_prefix"):
            path = self.resolver.resolve(tenant, prefix)

            if path.is_file():
                if _is_temp_file(path.name):
                    return []
                return [self.resolver.uri_for(tenant, path)]
            if not path.is_dir():
                return []

            results = [self.resolver.uri_for(tenant, f) for f in self._walk_files(path)]
            if include_directories:
                for dirpath, dirnames, _ in os.walk(path):
                    for name in dirnames:
                        results.append(self.resolver.uri_for(tenant, Path(dirpath) / name) + "/")
            return sorted(results)

    def _walk_files(self, root: Path) -> Iterator[Path]:
        """Yield every non-directory entry below ``root``."""
        for dirpath, dirnames, filenames in os.walk(root):
            for name in dirnames:
                if os.path.islink(os.path.join(dirpath, name)):
                    yield Path(dirpath) / name
            for name in filenames:
                if not _is_temp_file(name):
                    yield Path(dirpath) / name

    # =========================================================================
    # STATISTICS
    # =========================================================================

    def get_storage_stats(self, tenant: Optional[str] = None) -> dict:
        """
        Get storage statistics of a tenant root.

        The shared root (``tenant=None``) and each tenant are counted
        separately; no root contains another.

        Returns:
            Dict with file count and total size
        """
        root = self.resolver.tenant_root(tenant)
        stats = {
            "root": str(root),
            "total_files": 0,
            "total_size_bytes": 0,
        }

        if not root.is_dir():
            return stats

        for file_path in self._walk_files(root):
            try:
                stats["total_size_bytes"] += file_path.stat().st_size
            except _MISSING:
                continue
            stats["total_files"] += 1

        return stats

    def __repr__(self) -> str:
        return f"LocalStorage(base_path={str(self.base_path)!r}, scheme={self.resolver.scheme!r})"
