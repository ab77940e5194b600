"""Error taxonomy for the check-in pipeline."""

from __future__ import annotations

from typing import Optional


class SidewayQRError(Exception):
    """Base class for every error raised by this package."""


class StorageError(SidewayQRError):
    """The credential store could not be read or written."""


class AuthError(SidewayQRError):
    """Login did not produce a credential."""

    def __init__(self, message: str, *, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class InvalidCredentialsError(AuthError):
    """The server rejected the email/password pair."""


class AuthServerError(AuthError):
    """The server failed while logging in, or was unreachable."""


class ApiError(SidewayQRError):
    """An authenticated API call did not succeed."""


class UnauthenticatedError(ApiError):
    """No credential is stored, or the server no longer accepts it."""


class ServerError(ApiError):
    """Unexpected response status; ``status`` is None when the request never completed."""

    def __init__(self, status: Optional[int], message: Optional[str] = None) -> None:
        super().__init__(message or (f"Server responded with status {status}" if status else "Server unreachable"))
        self.status = status


class ParseError(SidewayQRError, ValueError):
    """A scanned payload could not be decoded."""


class MalformedPayloadError(ParseError):
    def __init__(self, raw: Optional[str], reason: str) -> None:
        super().__init__(f"Malformed scan payload {raw!r}: {reason}")
        self.raw = raw
        self.reason = reason


__all__ = [
    "SidewayQRError",
    "StorageError",
    "AuthError",
    "InvalidCredentialsError",
    "AuthServerError",
    "ApiError",
    "UnauthenticatedError",
    "ServerError",
    "ParseError",
    "MalformedPayloadError",
]
