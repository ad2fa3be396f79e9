"""
Storage Backend Registry

Factory and registry for storage backends, keyed by the configured storage
type. Backends are cached per (type, base path, scheme), so every caller
configured for the same root shares one instance.

@.architecture
Incoming: config/settings.py, scripts/health_check.py, Engine bootstrap --- {StorageSettings, str storage_type, backend classes}
Processing: register_backend(), create_storage(), get_storage(), list_backends(), clear() --- {3 jobs: backend_registration, backend_selection, factory_creation}
Outgoing: Engine callers --- {StorageInterface instance, List[str] registered types}
"""

import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Type

from flowstore.config.settings import StorageSettings, get_settings
from flowstore.errors import UnknownStorageTypeError
from .base import StorageInterface
from .local import LocalStorage

logger = logging.getLogger(__name__)


class StorageRegistry:
    """
    Registry and factory for storage backends.

    Backend classes take ``base_path`` and ``scheme`` keyword arguments.
    """

    _backend_types: Dict[str, Type[StorageInterface]] = {
        "local": LocalStorage,
    }
    _instances: Dict[Tuple[str, Path, str], StorageInterface] = {}
    _lock = threading.Lock()

    @classmethod
    def register_backend(cls, storage_type: str, backend: Type[StorageInterface]) -> None:
        """
        Register a backend class under a storage type.

        Args:
            storage_type: Type name used in configuration (e.g. "local")
            backend: StorageInterface subclass
        """
        if not (isinstance(backend, type) and issubclass(backend, StorageInterface)):
            raise TypeError(f"{backend!r} is not a StorageInterface implementation")
        with cls._lock:
            cls._backend_types[storage_type.lower()] = backend
        logger.info(f"Registered storage backend: {storage_type}")

    @classmethod
    def list_backends(cls) -> List[str]:
        """List registered storage types."""
        return sorted(cls._backend_types)

    @classmethod
    def create_storage(cls, settings: StorageSettings) -> StorageInterface:
        """
        Create a new backend instance from settings (uncached).

        Raises:
            UnknownStorageTypeError: If the type isn't registered
        """
        storage_type = settings.type.lower()
        backend = cls._backend_types.get(storage_type)
        if backend is None:
            raise UnknownStorageTypeError(
                f"Unknown storage type: {settings.type}. Available: {cls.list_backends()}"
            )
        return backend(base_path=settings.base_path, scheme=settings.scheme)

    @classmethod
    def get_storage(cls, settings: Optional[StorageSettings] = None) -> StorageInterface:
        """
        Get or create the backend for a storage configuration.

        Args:
            settings: Storage settings (application settings if None)

        Returns:
            Shared backend instance; concurrent first calls for one
            configuration still build a single backend
        """
        if settings is None:
            settings = get_settings().storage

        key = (settings.type.lower(), Path(settings.base_path).expanduser().resolve(), settings.scheme.lower())
        with cls._lock:
            if key not in cls._instances:
                cls._instances[key] = cls.create_storage(settings)
                logger.info(f"Created storage backend: {key[0]} at {key[1]}")
            return cls._instances[key]

    @classmethod
    def clear(cls) -> None:
        """Drop cached backend instances."""
        with cls._lock:
            cls._instances.clear()


def get_storage(settings: Optional[StorageSettings] = None) -> StorageInterface:
    """Get the shared storage backend for ``settings``."""
    return StorageRegistry.get_storage(settings)
