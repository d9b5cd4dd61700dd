"""Error taxonomy for the memory service."""


class MemoryServiceError(Exception):
    """Base error carrying a human-readable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MemoryServiceError):
    """Client input is malformed. Always maps to HTTP 400."""


class StorageError(MemoryServiceError):
    """Vector backend unreachable or rejected the request."""


class ProviderError(MemoryServiceError):
    """Embedding or generation backend failed."""
