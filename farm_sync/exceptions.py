"""Exceptions and structured errors related to farm-sync."""

from dataclasses import dataclass

__all__ = [
    "FarmSyncException",
    "RemoteError",
    "NoIdentityError",
    "ConfigException",
    "ErrorInfo",
]

UNKNOWN_ERROR = "Unknown error"


class FarmSyncException(Exception):
    """Generic base exception used for this library."""


class RemoteError(FarmSyncException):
    """Raised when the remote store or auth provider rejects a request."""

    def __init__(self, message: str | None, status: int | None = None) -> None:
        super().__init__(message or UNKNOWN_ERROR)
        self.message = message or UNKNOWN_ERROR
        self.status = status


class NoIdentityError(FarmSyncException):
    """Raised when an operation requires a signed in identity."""

    def __init__(self) -> None:
        super().__init__("No user found")


class ConfigException(FarmSyncException):
    """Raised when the configuration file is not formatted as expected."""


@dataclass(frozen=True)
class ErrorInfo:
    """Structured error returned to callers of store operations."""

    message: str
    status: int | None = None

    @classmethod
    def from_exception(cls, err: BaseException) -> "ErrorInfo":
        """Normalize any exception into an ErrorInfo.

        Remote rejections keep their status, everything else only carries
        the message, or a generic one if the exception has none.
        """
        if isinstance(err, RemoteError):
            return cls(message=err.message, status=err.status)
        return cls(message=str(err) or UNKNOWN_ERROR)

    def __str__(self) -> str:
        if self.status is not None:
            return f"{self.message} ({self.status})"
        return self.message
