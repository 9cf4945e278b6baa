from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from enhancer.storage.exceptions import StorageError
from enhancer.storage.factory import StorageFactory
from enhancer.storage.http_storage import HttpStorage
from enhancer.storage.local_storage import LocalFileStorage


def _make_http_storage(handler) -> HttpStorage:  # type: ignore[no-untyped-def]
    return HttpStorage(
        base_url="https://store.internal/bucket/",
        public_url="https://cdn.example.com",
        api_token="token",
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


class TestLocalFileStorage:
    def test_upload_then_download(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(files_root=tmp_path)

        url = storage.upload(b"png-bytes", "assets/u1/d1/bg-1.png", "image/png")

        assert url == "local://assets/u1/d1/bg-1.png"
        assert (tmp_path / "assets/u1/d1/bg-1.png").read_bytes() == b"png-bytes"
        assert storage.download(url) == b"png-bytes"

    def test_public_url_prefix(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(files_root=tmp_path, public_url="https://cdn.example.com/")

        url = storage.upload(b"x", "a.png")

        assert url == "https://cdn.example.com/a.png"
        assert storage.download(url) == b"x"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(files_root=tmp_path)

        with pytest.raises(StorageError, match="File not found"):
            storage.download("local://nope.png")

    def test_foreign_url_raises(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(files_root=tmp_path)

        with pytest.raises(StorageError, match="not served by this storage"):
            storage.download("https://elsewhere.com/a.png")

    def test_key_cannot_escape_root(self, tmp_path: Path) -> None:
        storage = LocalFileStorage(files_root=tmp_path / "root")

        with pytest.raises(StorageError, match="escapes storage root"):
            storage.upload(b"x", "../../etc/passwd")


class TestHttpStorage:
    def test_upload_puts_object_and_returns_public_url(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        url = _make_http_storage(handler).upload(b"data", "/enhanced/u/d/final.png", "image/png")

        assert url == "https://cdn.example.com/enhanced/u/d/final.png"
        assert seen[0].method == "PUT"
        assert str(seen[0].url) == "https://store.internal/bucket/enhanced/u/d/final.png"
        assert seen[0].headers["Authorization"] == "Bearer token"
        assert seen[0].headers["Content-Type"] == "image/png"

    def test_download_returns_body(self) -> None:
        storage = _make_http_storage(lambda request: httpx.Response(200, content=b"body"))

        assert storage.download("https://cdn.example.com/a.png") == b"body"

    def test_rejected_upload_raises(self) -> None:
        storage = _make_http_storage(lambda request: httpx.Response(403))

        with pytest.raises(StorageError, match="status 403"):
            storage.upload(b"x", "a.png")

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(StorageError, match="failed"):
            _make_http_storage(handler).download("https://cdn.example.com/a.png")

    def test_base_url_required(self) -> None:
        with pytest.raises(ValueError, match="storage_base_url is required"):
            HttpStorage(base_url=" ")


class TestStorageFactory:
    def test_creates_local_storage(self, tmp_path: Path) -> None:
        settings = MagicMock(storage_backend="local", storage_files_root=str(tmp_path), storage_public_url="")
        assert isinstance(StorageFactory.create(settings), LocalFileStorage)

    def test_creates_http_storage(self) -> None:
        settings = MagicMock(
            storage_backend="HTTP",
            storage_base_url="https://store.internal",
            storage_public_url="",
            storage_api_token="",
            storage_timeout_seconds=5,
        )
        assert isinstance(StorageFactory.create(settings), HttpStorage)

    def test_unknown_backend_raises(self) -> None:
        settings = MagicMock(storage_backend="ftp")
        with pytest.raises(ValueError, match="Unknown storage backend 'ftp'"):
            StorageFactory.create(settings)
