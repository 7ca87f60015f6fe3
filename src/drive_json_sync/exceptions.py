"""Drive JSON Sync exceptions."""

from __future__ import annotations


class DriveSyncError(Exception):
    """Base exception for authentication and Drive file errors.

    Attributes:
        message: Human-readable error message
        status_code: HTTP status code (if applicable)
        response_body: Raw response body text (if available)
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response_body = response_body

    def __str__(self) -> str:
        if self.status_code:
            return f"[{self.status_code}] {self.message}"
        return self.message


class TransportError(DriveSyncError):
    """Raised when the HTTP exchange itself could not complete."""


class ProtocolError(DriveSyncError):
    """Raised when the remote API answers with a non-2xx status.

    Each operation has its own subclass with a fixed message prefix.
    """

    prefix = "Request failed"


class AuthExchangeError(ProtocolError):
    """Raised when trading an authorization code for tokens fails."""

    prefix = "Failed to exchange authorization code"


class AuthRefreshError(ProtocolError):
    """Raised when refreshing an access token fails."""

    prefix = "Failed to refresh access token"


class FileLookupError(ProtocolError):
    """Raised when searching for a Drive file fails."""

    prefix = "Failed to find Drive file"


class FileCreateError(ProtocolError):
    """Raised when creating a Drive file fails."""

    prefix = "Failed to create Drive file"


class FileUpdateError(ProtocolError):
    """Raised when updating a Drive file's content fails."""

    prefix = "Failed to update Drive file"


class FileDownloadError(ProtocolError):
    """Raised when downloading a Drive file fails."""

    prefix = "Failed to download Drive file"
