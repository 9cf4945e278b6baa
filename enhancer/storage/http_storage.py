import httpx

from enhancer.logging.logger import Log
from enhancer.storage.base import BaseStorage
from enhancer.storage.exceptions import StorageError


class HttpStorage(BaseStorage):
    """Object storage reached over HTTP (S3-style PUT/GET gateway).

    Objects are written with `PUT {base_url}/{key}` and published under
    `{public_url}/{key}`.
    """

    def __init__(
        self,
        *,
        base_url: str,
        public_url: str = "",
        api_token: str = "",
        timeout_seconds: int = 30,
        client: httpx.Client | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("storage_base_url is required for storage_backend=http")
        self._base_url = base_url.rstrip("/")
        self._public_url = (public_url or base_url).rstrip("/")
        self._api_token = api_token
        self._client = client or httpx.Client(timeout=timeout_seconds)

    def upload(self, data: bytes, key: str, content_type: str = "application/octet-stream") -> str:
        key = key.lstrip("/")
        try:
            resp = self._client.put(
                f"{self._base_url}/{key}",
                content=data,
                headers=self._headers({"Content-Type": content_type}),
            )
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Upload of {key} rejected with status {exc.response.status_code}"
            ) from exc
        except httpx.TransportError as exc:
            raise StorageError(f"Upload of {key} failed: {exc}") from exc
        Log.debug(f"Uploaded {len(data)} bytes to {key}")
        return f"{self._public_url}/{key}"

    def download(self, url: str) -> bytes:
        try:
            resp = self._client.get(url, headers=self._headers())
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise StorageError(
                f"Download of {url} failed with status {exc.response.status_code}"
            ) from exc
        except httpx.TransportError as exc:
            raise StorageError(f"Download of {url} failed: {exc}") from exc
        return resp.content

    def _headers(self, extra: dict[str, str] | None = None) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._api_token}"} if self._api_token else {}
        if extra:
            headers.update(extra)
        return headers
