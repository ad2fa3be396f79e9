"""
Storage Layer

Tenant-scoped file storage addressed by logical URIs, plus the key
derivation rules the engine uses to place artifacts.
"""

from flowstore.errors import InvalidPathError, NotFoundError, StorageError, UnknownStorageTypeError

from .base import FileAttributes, FileType, StorageData, StorageInterface
from .keys import (
    OUTPUT_URI_PREFIX,
    cache_prefix,
    execution_prefix,
    execution_prefix_for,
    execution_prefix_for_flow,
    execution_prefix_for_task_run,
    input_prefix,
    namespace_path,
    output_prefix,
    output_prefix_for_flow,
    output_prefix_for_task_run,
    output_prefix_for_trigger,
    state_prefix,
)
from .local import LocalStorage
from .registry import StorageRegistry, get_storage
from .resolver import PathResolver
from .schemas import ExecutionRef, FlowRef, TaskRunRef, TriggerContextRef

__all__ = [
    # Errors
    "InvalidPathError",
    "NotFoundError",
    "StorageError",
    "UnknownStorageTypeError",

    # Backends
    "FileAttributes",
    "FileType",
    "StorageData",
    "StorageInterface",
    "LocalStorage",
    "PathResolver",
    "StorageRegistry",
    "get_storage",

    # Keys
    "OUTPUT_URI_PREFIX",
    "cache_prefix",
    "execution_prefix",
    "execution_prefix_for",
    "execution_prefix_for_flow",
    "execution_prefix_for_task_run",
    "input_prefix",
    "namespace_path",
    "output_prefix",
    "output_prefix_for_flow",
    "output_prefix_for_task_run",
    "output_prefix_for_trigger",
    "state_prefix",

    # Entity references
    "ExecutionRef",
    "FlowRef",
    "TaskRunRef",
    "TriggerContextRef",
]
