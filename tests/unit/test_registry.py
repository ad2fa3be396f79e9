"""
Unit Tests: Storage Registry

Tests for backend selection and instance caching.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from flowstore.config.settings import StorageSettings, reload_settings
from flowstore.errors import UnknownStorageTypeError
from flowstore.storage.local import LocalStorage
from flowstore.storage.registry import StorageRegistry, get_storage

pytestmark = pytest.mark.unit


class TestStorageRegistry:
    """Test backend registry and factory."""

    def test_local_registered(self):
        assert "local" in StorageRegistry.list_backends()

    def test_create_local(self, temp_storage_dir):
        storage = StorageRegistry.create_storage(StorageSettings(base_path=temp_storage_dir))

        assert isinstance(storage, LocalStorage)
        assert storage.base_path == temp_storage_dir.resolve()

    def test_type_is_case_insensitive(self, temp_storage_dir):
        settings = StorageSettings(type="LOCAL", base_path=temp_storage_dir)
        assert isinstance(StorageRegistry.create_storage(settings), LocalStorage)

    def test_scheme_passed_through(self, temp_storage_dir):
        settings = StorageSettings(base_path=temp_storage_dir, scheme="flow")
        storage = StorageRegistry.create_storage(settings)
        assert storage.put(None, "/a", b"x") == "flow:///a"

    def test_unknown_type(self, temp_storage_dir):
        settings = StorageSettings(type="s3", base_path=temp_storage_dir)
        with pytest.raises(UnknownStorageTypeError):
            StorageRegistry.create_storage(settings)

    def test_instances_shared(self, temp_storage_dir):
        settings = StorageSettings(base_path=temp_storage_dir)
        assert get_storage(settings) is get_storage(settings)

    def test_distinct_roots_not_shared(self, temp_dir):
        first = get_storage(StorageSettings(base_path=temp_dir / "a"))
        second = get_storage(StorageSettings(base_path=temp_dir / "b"))
        assert first is not second

    def test_defaults_from_settings(self, temp_storage_dir, monkeypatch):
        monkeypatch.setenv("STORAGE_BASE_PATH", str(temp_storage_dir))
        reload_settings()

        assert get_storage().base_path == temp_storage_dir.resolve()

    def test_register_backend(self, temp_storage_dir):
        class MirrorStorage(LocalStorage):
            pass

        StorageRegistry.register_backend("mirror", MirrorStorage)
        try:
            settings = StorageSettings(type="mirror", base_path=temp_storage_dir)
            assert isinstance(StorageRegistry.create_storage(settings), MirrorStorage)
        finally:
            StorageRegistry._backend_types.pop("mirror")

    def test_register_rejects_non_backend(self):
        with pytest.raises(TypeError):
            StorageRegistry.register_backend("bad", dict)


class TestConcurrentAccess:
    """Test the instance cache under concurrent first use."""

    def test_concurrent_first_calls_share_one_instance(self, temp_storage_dir):
        created = []
        created_lock = threading.Lock()

        class SlowStorage(LocalStorage):
            def __init__(self, **kwargs):
                time.sleep(0.05)
                with created_lock:
                    created.append(self)
                super().__init__(**kwargs)

        StorageRegistry.register_backend("slow", SlowStorage)
        try:
            settings = StorageSettings(type="slow", base_path=temp_storage_dir)
            with ThreadPoolExecutor(max_workers=8) as pool:
                instances = list(pool.map(lambda _: get_storage(settings), range(8)))
        finally:
            StorageRegistry._backend_types.pop("slow")

        assert len(created) == 1
        assert all(instance is instances[0] for instance in instances)

    def test_clear_drops_instances(self, temp_storage_dir):
        settings = StorageSettings(base_path=temp_storage_dir)
        first = get_storage(settings)
        StorageRegistry.clear()

        assert get_storage(settings) is not first
