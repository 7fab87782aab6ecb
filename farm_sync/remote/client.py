"""Contract for the remote store and auth provider used by the stores."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import Any

from farm_sync.models import AuthResponse, Identity, Session

__all__ = [
    "RemoteClient",
    "AuthChangeEvent",
    "SessionChangeCallback",
    "CROPS_TABLE",
    "ACTIVITIES_TABLE",
    "WEATHER_TABLE",
    "PROFILES_TABLE",
]

CROPS_TABLE = "crops"
ACTIVITIES_TABLE = "farm_activities"
WEATHER_TABLE = "weather_data"
PROFILES_TABLE = "profiles"


class AuthChangeEvent(str, Enum):
    """Kinds of session change notifications."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


SessionChangeCallback = Callable[[AuthChangeEvent, Session | None], None]


class RemoteClient(ABC):
    """Authenticated access to the remote tables and the auth provider.

    Every method raises `RemoteError` when the remote side rejects the
    request. Transport failures surface as whatever exception the underlying
    client raises.
    """

    @abstractmethod
    async def select_where(
        self,
        table: str,
        column: str,
        value: Any,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return the rows of a table where column equals value."""

    @abstractmethod
    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row and return the canonical row."""

    @abstractmethod
    async def upsert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row or merge it into the existing row with the same id."""

    @abstractmethod
    async def update_where(
        self, table: str, column: str, value: Any, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Update the row where column equals value and return the canonical row."""

    @abstractmethod
    async def delete_where(self, table: str, column: str, value: Any) -> None:
        """Delete the rows where column equals value."""

    @abstractmethod
    async def get_session(self) -> Session | None:
        """Return the current session, if any."""

    @abstractmethod
    async def sign_in_with_password(self, email: str, password: str) -> AuthResponse:
        """Sign in with an email and password."""

    @abstractmethod
    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthResponse:
        """Register a new identity with the given metadata."""

    @abstractmethod
    async def sign_in_with_otp(self, email: str, metadata: dict[str, Any]) -> None:
        """Issue a one-time code to the email address."""

    @abstractmethod
    async def verify_otp(self, email: str, token: str) -> AuthResponse:
        """Exchange a one-time code for a session."""

    @abstractmethod
    async def update_user(
        self,
        password: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Identity:
        """Update the credential or metadata of the signed in identity."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Invalidate the current session."""

    @abstractmethod
    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        """Register a callback for session changes.

        Returns a callable that can be called to remove the listener.
        """
