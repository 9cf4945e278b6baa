class RepositoryError(Exception):
    """Raised when a database write does not produce the expected row."""
