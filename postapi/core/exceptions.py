"""
Domain errors for the post API.

Every error carries the HTTP status it maps to; the handlers registered in
``postapi.main`` turn them into responses.
"""

from typing import Dict, List


class PostApiError(Exception):
    """Base class for all errors raised by the post API."""

    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationFailed(PostApiError):
    """Raised when request fields break one or more validation rules."""

    status_code = 422

    def __init__(self, errors: Dict[str, List[str]]):
        super().__init__("The given data was invalid.")
        self.errors = errors


class PostNotFound(PostApiError):
    status_code = 404

    def __init__(self, post_id: int):
        super().__init__("Post not found")
        self.post_id = post_id


class StorageError(PostApiError):
    """I/O fault while writing, reading or deleting a blob."""


class BlobNotFound(StorageError):
    status_code = 404

    def __init__(self, name: str):
        super().__init__(f"Blob not found: {name}")
        self.name = name


class PersistenceError(PostApiError):
    """Database fault while reading or writing posts."""
