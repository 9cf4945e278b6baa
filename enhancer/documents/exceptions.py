from enhancer.pipeline.exceptions import EnhancementError


class DocumentReadError(EnhancementError):
    """Raised when a document cannot be opened, rendered or written."""

    code = "document_read_error"
