from pathlib import Path

from enhancer.storage.base import BaseStorage
from enhancer.storage.exceptions import StorageError


class LocalFileStorage(BaseStorage):
    """Stores objects as files under a root directory.

    URLs are `{public_url}/{key}`; `download` accepts only URLs that carry
    that prefix and resolve inside the root.
    """

    FILES_ROOT = Path("/tmp/enhancer-storage")
    DEFAULT_PUBLIC_URL = "local://"

    def __init__(self, files_root: Path | None = None, public_url: str = "") -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._public_url = public_url.rstrip("/") + "/" if public_url else self.DEFAULT_PUBLIC_URL

    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        _ = content_type
        path = self._resolve_path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise StorageError(f"Failed to write {key}: {exc}") from exc
        return f"{self._public_url}{key}"

    def download(self, url: str) -> bytes:
        if not url.startswith(self._public_url):
            raise StorageError(f"URL is not served by this storage: {url}")
        path = self._resolve_path(url[len(self._public_url):])
        if not path.exists():
            raise StorageError(f"File not found: {url}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise StorageError(f"Failed to read {url}: {exc}") from exc

    def _resolve_path(self, key: str) -> Path:
        root = self._files_root.resolve()
        path = (root / key.lstrip("/")).resolve()
        if root != path and root not in path.parents:
            raise StorageError(f"Key escapes storage root: {key}")
        return path
