from abc import ABC, abstractmethod


class BaseStorage(ABC):
    """Contract for object storage backends.

    Artifacts are addressed by opaque URLs only; callers never see local
    paths.
    """

    @abstractmethod
    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        """Store `data` under `key` and return its URL.

        Raises:
            StorageError: if the object cannot be written.
        """

    @abstractmethod
    def download(self, url: str) -> bytes:
        """Fetch the bytes behind a URL returned by `upload`.

        Raises:
            StorageError: if the object is missing or cannot be read.
        """
