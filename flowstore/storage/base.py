"""
Storage Base Classes

Abstract storage interface shared by every backend, plus the file metadata
snapshot returned by attribute and listing queries.

@.architecture
Incoming: storage/local.py, storage/registry.py --- {backend implementations}
Processing: StorageInterface abstract methods --- {2 jobs: abstraction, metadata_modeling}
Outgoing: Engine callers, storage/registry.py --- {StorageInterface, FileAttributes, FileType}
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import BinaryIO, List, Optional, Union

from flowstore.security.sanitization import UriLike

# Payload accepted by ``put``
StorageData = Union[bytes, bytearray, memoryview, BinaryIO]


class FileType(str, Enum):
    """Kind of a storage entry."""
    FILE = "File"
    DIRECTORY = "Directory"


@dataclass(frozen=True)
class FileAttributes:
    """
    Metadata snapshot of one storage entry.

    Attributes:
        file_name: Last path segment
        type: File or directory
        size: Size in bytes (meaningful for files only)
        last_modified_time: Modification time (UTC)
        creation_time: Creation or metadata-change time (UTC)
    """
    file_name: str
    type: FileType
    size: int
    last_modified_time: datetime
    creation_time: datetime

    @property
    def is_directory(self) -> bool:
        return self.type is FileType.DIRECTORY


class StorageInterface(ABC):
    """
    Abstract base for storage backends.

    Every operation takes a tenant (None for the shared root) and a logical
    URI, bare (``/ns/flow/file.yml``) or scheme-qualified
    (``kestra:///ns/flow/file.yml``). Invalid URIs raise ``InvalidPathError``
    before any I/O; missing entries raise ``NotFoundError`` except in the
    delete family, where absence is a successful no-op.
    """

    @abstractmethod
    def exists(self, tenant: Optional[str], uri: UriLike) -> bool:
        """Check whether an entry exists."""
        pass

    @abstractmethod
    def size(self, tenant: Optional[str], uri: UriLike) -> int:
        """Size of a file in bytes."""
        pass

    @abstractmethod
    def last_modified_time(self, tenant: Optional[str], uri: UriLike) -> datetime:
        """Modification time of an entry."""
        pass

    @abstractmethod
    def get(self, tenant: Optional[str], uri: UriLike) -> BinaryIO:
        """Open a file for reading. The caller closes the stream."""
        pass

    @abstractmethod
    def put(self, tenant: Optional[str], uri: UriLike, data: Optional[StorageData]) -> str:
        """
        Write a file, creating parents and overwriting any existing file.

        Returns:
            Canonical (scheme-qualified) URI of the written file
        """
        pass

    @abstractmethod
    def create_directory(self, tenant: Optional[str], uri: UriLike) -> None:
        """Create a directory and its missing parents."""
        pass

    @abstractmethod
    def get_attributes(self, tenant: Optional[str], uri: UriLike) -> FileAttributes:
        """Metadata of a single file or directory."""
        pass

    @abstractmethod
    def list(self, tenant: Optional[str], uri: UriLike) -> List[FileAttributes]:
        """Immediate children of a directory."""
        pass

    @abstractmethod
    def delete(self, tenant: Optional[str], uri: UriLike) -> bool:
        """
        Delete a file, or a directory recursively.

        Returns:
            True if something was removed, False if nothing was there
        """
        pass

    @abstractmethod
    def delete_by_prefix(self, tenant: Optional[str], prefix: UriLike) -> List[str]:
        """
        Delete everything at or below a prefix.

        Returns:
            Canonical URIs of the deleted files
        """
        pass

    @abstractmethod
    def move(self, tenant: Optional[str], source: UriLike, destination: UriLike) -> None:
        """Move a file or a directory subtree."""
        pass

    @abstractmethod
    def all_by_prefix(
        self,
        tenant: Optional[str],
        prefix: UriLike,
        include_directories: bool = False
    ) -> List[str]:
        """Canonical URIs of every entry at or below a prefix."""
        pass
