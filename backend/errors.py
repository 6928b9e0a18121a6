"""
Project error type.

HTTPError is what stages forward when a request cannot be completed:
the status travels with the error so the terminal error renderer can use it.
"""

from typing import Optional


class HTTPError(Exception):
    """An error with an HTTP status attached."""

    def __init__(self, status: int, message: str, type: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.message = message
        self.type = type

    @property
    def expose(self) -> bool:
        # Client errors carry a message meant for the client
        return self.status < 500

    def __repr__(self) -> str:
        return f"HTTPError(status={self.status}, message={self.message!r})"


class NotFound(HTTPError):
    def __init__(self, message: str = "Not Found"):
        super().__init__(404, message)
