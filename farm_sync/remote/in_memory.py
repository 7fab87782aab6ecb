"""Module for an in-process remote store and auth provider.

The in-memory remote behaves like the hosted service as seen from the
client: it assigns ids and timestamps, keeps rows isolated per identity,
issues one-time codes and notifies listeners when the session changes.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
import itertools
import logging
import secrets
import time
import uuid
from collections.abc import Callable
from typing import Any

from farm_sync.exceptions import RemoteError
from farm_sync.models import AuthResponse, Identity, Session

from .client import (
    ACTIVITIES_TABLE,
    CROPS_TABLE,
    PROFILES_TABLE,
    WEATHER_TABLE,
    AuthChangeEvent,
    RemoteClient,
    SessionChangeCallback,
)

__all__ = ["InMemoryRemote"]

_LOGGER = logging.getLogger(__name__)

# Tables and the column holding the owning identity id
OWNER_COLUMNS = {
    CROPS_TABLE: "user_id",
    ACTIVITIES_TABLE: "user_id",
    WEATHER_TABLE: "user_id",
    PROFILES_TABLE: "id",
}
TABLES_WITH_UPDATED_AT = {CROPS_TABLE, ACTIVITIES_TABLE, PROFILES_TABLE}
MIN_PASSWORD_LENGTH = 6
SESSION_LIFETIME_SECONDS = 3600


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class _AuthUser:
    identity: Identity
    password: str | None = None
    confirmed: bool = False


@dataclass
class _Table:
    rows: dict[str, dict[str, Any]] = field(default_factory=dict)
    order: dict[str, int] = field(default_factory=dict)


class InMemoryRemote(RemoteClient):
    """In-memory implementation of the RemoteClient interface.

    Rows are isolated per identity: reads only return rows owned by the
    signed in identity and writes of rows owned by anyone else are rejected.
    """

    def __init__(self, auto_confirm: bool = True, row_isolation: bool = True) -> None:
        """Initialize the InMemoryRemote.

        Args:
            auto_confirm: Password sign ups return a session immediately
                instead of waiting for an email confirmation.
            row_isolation: Reject access to rows owned by other identities.
        """
        self._auto_confirm = auto_confirm
        self._row_isolation = row_isolation
        self._tables: dict[str, _Table] = {name: _Table() for name in OWNER_COLUMNS}
        self._users: dict[str, _AuthUser] = {}
        self._session: Session | None = None
        self._listeners: list[SessionChangeCallback] = []
        self._seq = itertools.count()
        self.issued_codes: dict[str, str] = {}
        """Outstanding one-time codes by email, the stand-in for the mailbox."""

    def _table(self, table: str) -> _Table:
        if (found := self._tables.get(table)) is None:
            raise RemoteError(f'relation "{table}" does not exist', 404)
        return found

    def _owner_id(self) -> str | None:
        if self._session is None:
            return None
        return self._session.identity.id

    def _check_owner(self, table: str, row: dict[str, Any]) -> None:
        if not self._row_isolation:
            return
        if (owner_id := self._owner_id()) is None:
            raise RemoteError("JWT required", 401)
        if row.get(OWNER_COLUMNS[table]) != owner_id:
            raise RemoteError(
                f'new row violates row-level security policy for table "{table}"',
                403,
            )

    def _visible(self, table: str, row: dict[str, Any]) -> bool:
        if not self._row_isolation:
            return True
        owner_id = self._owner_id()
        return owner_id is not None and row.get(OWNER_COLUMNS[table]) == owner_id

    def _store_row(self, table: str, data: _Table, row: dict[str, Any]) -> None:
        data.rows[row["id"]] = row
        data.order.setdefault(row["id"], next(self._seq))

    async def select_where(
        self,
        table: str,
        column: str,
        value: Any,
        order_by: str,
        descending: bool = True,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return the visible rows of a table where column equals value."""
        data = self._table(table)
        rows = [
            row
            for row in data.rows.values()
            if row.get(column) == value and self._visible(table, row)
        ]
        rows.sort(
            key=lambda row: (row.get(order_by) or "", data.order[row["id"]]),
            reverse=descending,
        )
        if limit is not None:
            rows = rows[:limit]
        _LOGGER.debug("Selected %d rows from %s", len(rows), table)
        return copy.deepcopy(rows)

    async def insert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row, assigning an id and timestamps when missing."""
        data = self._table(table)
        new_row = copy.deepcopy(row)
        new_row.setdefault("id", str(uuid.uuid4()))
        if new_row["id"] in data.rows:
            raise RemoteError(
                f'duplicate key value violates unique constraint "{table}_pkey"', 409
            )
        self._check_owner(table, new_row)
        now = _now()
        new_row.setdefault("created_at", now)
        if table in TABLES_WITH_UPDATED_AT:
            new_row.setdefault("updated_at", now)
        self._store_row(table, data, new_row)
        return copy.deepcopy(new_row)

    async def upsert(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        """Insert a row or merge it into the existing row with the same id."""
        data = self._table(table)
        if "id" not in row or row["id"] not in data.rows:
            return await self.insert(table, row)
        existing = data.rows[row["id"]]
        self._check_owner(table, existing)
        merged = {**existing, **copy.deepcopy(row)}
        self._check_owner(table, merged)
        self._store_row(table, data, merged)
        return copy.deepcopy(merged)

    async def update_where(
        self, table: str, column: str, value: Any, fields: dict[str, Any]
    ) -> dict[str, Any]:
        """Update the row where column equals value and return the canonical row."""
        data = self._table(table)
        matches = [
            row
            for row in data.rows.values()
            if row.get(column) == value and self._visible(table, row)
        ]
        if not matches:
            raise RemoteError("JSON object requested, multiple (or no) rows returned", 406)
        updated = {**matches[0], **copy.deepcopy(fields), "id": matches[0]["id"]}
        self._check_owner(table, updated)
        self._store_row(table, data, updated)
        return copy.deepcopy(updated)

    async def delete_where(self, table: str, column: str, value: Any) -> None:
        """Delete the visible rows where column equals value."""
        data = self._table(table)
        for row_id, row in list(data.rows.items()):
            if row.get(column) == value and self._visible(table, row):
                del data.rows[row_id]
                del data.order[row_id]

    def _new_session(self, identity: Identity) -> Session:
        return Session(
            access_token=secrets.token_urlsafe(32),
            refresh_token=secrets.token_urlsafe(16),
            expires_at=time.time() + SESSION_LIFETIME_SECONDS,
            identity=copy.deepcopy(identity),
        )

    def _set_session(self, event: AuthChangeEvent, session: Session | None) -> None:
        self._session = session
        for callback in list(self._listeners):
            try:
                callback(event, copy.deepcopy(session))
            except Exception:
                _LOGGER.exception("Session change callback failed for %s", event)

    async def get_session(self) -> Session | None:
        """Return the current session, if any."""
        return copy.deepcopy(self._session)

    async def sign_in_with_password(self, email: str, password: str) -> AuthResponse:
        """Sign in with an email and password."""
        user = self._users.get(email)
        if user is None or user.password is None or user.password != password:
            raise RemoteError("Invalid login credentials", 400)
        if not user.confirmed:
            raise RemoteError("Email not confirmed", 400)
        session = self._new_session(user.identity)
        self._set_session(AuthChangeEvent.SIGNED_IN, session)
        return AuthResponse(
            identity=copy.deepcopy(user.identity), session=copy.deepcopy(session)
        )

    async def sign_up(
        self, email: str, password: str, metadata: dict[str, Any]
    ) -> AuthResponse:
        """Register a new identity with the given metadata."""
        if email in self._users:
            raise RemoteError("User already registered", 422)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise RemoteError(
                f"Password should be at least {MIN_PASSWORD_LENGTH} characters", 422
            )
        identity = Identity(
            id=str(uuid.uuid4()), email=email, metadata=copy.deepcopy(metadata)
        )
        user = _AuthUser(identity=identity, password=password)
        self._users[email] = user
        if not self._auto_confirm:
            return AuthResponse(identity=copy.deepcopy(identity))
        user.confirmed = True
        session = self._new_session(identity)
        self._set_session(AuthChangeEvent.SIGNED_IN, session)
        return AuthResponse(
            identity=copy.deepcopy(identity), session=copy.deepcopy(session)
        )

    async def sign_in_with_otp(self, email: str, metadata: dict[str, Any]) -> None:
        """Issue a six digit one-time code for the email address."""
        if email not in self._users:
            self._users[email] = _AuthUser(
                identity=Identity(
                    id=str(uuid.uuid4()), email=email, metadata=copy.deepcopy(metadata)
                )
            )
        self.issued_codes[email] = f"{secrets.randbelow(10**6):06d}"
        _LOGGER.debug("Issued one-time code for %s", email)

    async def verify_otp(self, email: str, token: str) -> AuthResponse:
        """Exchange a one-time code for a session."""
        if (user := self._users.get(email)) is None or self.issued_codes.get(
            email
        ) != token:
            raise RemoteError("Token has expired or is invalid", 403)
        del self.issued_codes[email]
        user.confirmed = True
        session = self._new_session(user.identity)
        self._set_session(AuthChangeEvent.SIGNED_IN, session)
        return AuthResponse(
            identity=copy.deepcopy(user.identity), session=copy.deepcopy(session)
        )

    async def update_user(
        self,
        password: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Identity:
        """Update the password or merge metadata into the signed in identity."""
        if self._session is None:
            raise RemoteError("Auth session missing!", 401)
        user = self._users[self._session.identity.email]
        if password is not None:
            if len(password) < MIN_PASSWORD_LENGTH:
                raise RemoteError(
                    f"Password should be at least {MIN_PASSWORD_LENGTH} characters",
                    422,
                )
            user.password = password
        if metadata:
            user.identity.metadata.update(copy.deepcopy(metadata))
        session = copy.deepcopy(self._session)
        session.identity = copy.deepcopy(user.identity)
        self._set_session(AuthChangeEvent.USER_UPDATED, session)
        return copy.deepcopy(user.identity)

    async def sign_out(self) -> None:
        """Invalidate the current session."""
        if self._session is None:
            return
        self._set_session(AuthChangeEvent.SIGNED_OUT, None)

    async def refresh_session(self) -> Session:
        """Replace the access token of the current session."""
        if self._session is None:
            raise RemoteError("Auth session missing!", 401)
        session = self._new_session(self._users[self._session.identity.email].identity)
        self._set_session(AuthChangeEvent.TOKEN_REFRESHED, session)
        return copy.deepcopy(session)

    def on_session_change(self, callback: SessionChangeCallback) -> Callable[[], None]:
        """Register a callback for session changes."""

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        self._listeners.append(callback)
        return remove
