from pathlib import Path

from enhancer.config.settings import Settings
from enhancer.storage.base import BaseStorage
from enhancer.storage.http_storage import HttpStorage
from enhancer.storage.local_storage import LocalFileStorage


class StorageFactory:
    """Creates the configured storage backend."""

    BACKENDS = ("local", "http")

    @classmethod
    def create(cls, settings: Settings) -> BaseStorage:
        backend = settings.storage_backend.lower()
        if backend == "local":
            return LocalFileStorage(
                files_root=Path(settings.storage_files_root),
                public_url=settings.storage_public_url,
            )
        if backend == "http":
            return HttpStorage(
                base_url=settings.storage_base_url,
                public_url=settings.storage_public_url,
                api_token=settings.storage_api_token,
                timeout_seconds=settings.storage_timeout_seconds,
            )
        raise ValueError(
            f"Unknown storage backend '{backend}'. Choose from: {list(cls.BACKENDS)}"
        )
