"""Object store backends for UploadGate."""

from typing import TYPE_CHECKING

from uploadgate.storage.backend import StorageBackend
from uploadgate.storage.guarded import GuardedBackend

if TYPE_CHECKING:
    from uploadgate.config import StorageConfig

__all__ = [
    "create_storage_backend",
    "GuardedBackend",
    "StorageBackend",
]


def create_storage_backend(config: "StorageConfig") -> StorageBackend:
    """Create a guarded storage backend instance based on configuration.

    Args:
        config: The storage configuration.

    Returns:
        The configured backend wrapped in a GuardedBackend.

    Raises:
        ValueError: If the backend is unknown.
    """
    backend = config.backend

    if backend == "s3":
        from uploadgate.storage.aws import S3Backend

        inner = S3Backend(
            endpoint=config.endpoint,
            region=config.region,
            access_key_id=config.access_key,
            secret_access_key=config.secret_key,
            use_ssl=config.use_ssl,
            use_path_style=config.use_path_style,
        )
    elif backend == "memory":
        from uploadgate.storage.memory import MemoryStorageBackend

        inner = MemoryStorageBackend()
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    return GuardedBackend(inner)
