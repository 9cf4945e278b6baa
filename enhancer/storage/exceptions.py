from enhancer.pipeline.exceptions import UpstreamError


class StorageError(UpstreamError):
    """Raised when an object cannot be stored or fetched."""

    code = "storage_error"
