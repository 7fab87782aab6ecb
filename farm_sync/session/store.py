"""Session store holding the signed in identity and its session.

The store owns the sign in, sign up, one-time code, sign out and profile
update flows. Every flow except sign out reports failures as an `ErrorInfo`
return value and leaves the state untouched when the primary call fails.
Secondary writes (the profile row on sign up, the password on code
verification, the metadata mirror on profile update) are best effort: their
failures are logged and never undo the primary result.
"""

from collections.abc import Callable, Mapping
import dataclasses
from datetime import datetime, timezone
import logging
from typing import Any

from farm_sync.config import SessionStoreConfig
from farm_sync.events import Listeners, SessionEvent
from farm_sync.exceptions import ErrorInfo, NoIdentityError, RemoteError
from farm_sync.models import AuthResponse, Identity, Session
from farm_sync.remote import AuthChangeEvent, RemoteClient

from .state import SessionState, split_profile_updates

__all__ = ["SessionStore"]

_LOGGER = logging.getLogger(__name__)


def _error(operation: str, err: Exception) -> ErrorInfo:
    if isinstance(err, RemoteError):
        _LOGGER.error("%s failed: %s", operation, err)
    else:
        _LOGGER.exception("%s failed with an unexpected error", operation)
    return ErrorInfo.from_exception(err)


def _noop() -> None:
    pass


class SessionStore:
    """State container for the current identity and session."""

    def __init__(
        self, remote: RemoteClient, config: SessionStoreConfig | None = None
    ) -> None:
        """Initialize the SessionStore.

        Args:
            remote: Client for the auth provider and the profiles table
            config: The configuration for the store
        """
        self._remote = remote
        self._config = config or SessionStoreConfig()
        self._identity: Identity | None = None
        self._session: Session | None = None
        self._initializing = True
        self._commits = 0
        self._listeners: Listeners[SessionEvent] = Listeners()
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def identity(self) -> Identity | None:
        """The signed in identity, if any."""
        return self._identity

    @property
    def session(self) -> Session | None:
        """The current session, if any."""
        return self._session

    @property
    def initializing(self) -> bool:
        """True until the first session lookup has completed."""
        return self._initializing

    @property
    def state(self) -> SessionState:
        """The lifecycle state derived from the current values."""
        if self._initializing:
            return SessionState.UNINITIALIZED
        if self._identity is not None:
            return SessionState.AUTHENTICATED
        return SessionState.ANONYMOUS

    def add_listener(
        self, event: SessionEvent, callback: Callable[..., None]
    ) -> Callable[[], None]:
        """Register a callback invoked with (identity, session) on changes.

        Returns a callable that can be called to remove the listener.
        """
        return self._listeners.add(event, callback)

    def _commit(self) -> None:
        self._initializing = False
        self._commits += 1

    def _set(self, identity: Identity | None, session: Session | None) -> None:
        self._identity = identity
        self._session = session
        _LOGGER.debug("Session state is now %s", self.state)
        self._listeners.fire(SessionEvent.SESSION_CHANGED, identity, session)

    def _apply(self, response: AuthResponse) -> None:
        identity = response.identity
        if identity is None and response.session is not None:
            identity = response.session.identity
        self._commit()
        self._set(identity, response.session)

    def _on_session_change(
        self, event: AuthChangeEvent, session: Session | None
    ) -> None:
        _LOGGER.debug("Received session change %s", event)
        self._set(session.identity if session else None, session)

    async def initialize(self) -> Callable[[], None]:
        """Load the existing session and subscribe to future session changes.

        Never raises. If the lookup fails the store ends up anonymous and no
        subscription is registered.
        A sign in or sign out that completes while the lookup is in flight
        is kept.

        Returns:
            A callable that disposes the session change subscription.
        """
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        commits = self._commits
        try:
            session = await self._remote.get_session()
        except Exception:
            _LOGGER.exception("Session initialization failed")
            if commits == self._commits:
                self._initializing = False
                self._set(None, None)
            return _noop
        if commits == self._commits:
            self._initializing = False
            self._set(session.identity if session else None, session)
        else:
            # A sign in or sign out committed while the lookup was in flight
            _LOGGER.debug("Keeping session committed during initialization")

        remove = self._remote.on_session_change(self._on_session_change)

        def dispose() -> None:
            remove()
            if self._unsubscribe is dispose:
                self._unsubscribe = None

        self._unsubscribe = dispose
        return dispose

    def close(self) -> None:
        """Dispose the session change subscription, if any."""
        if self._unsubscribe is not None:
            self._unsubscribe()

    async def sign_in(self, email: str, password: str) -> ErrorInfo | None:
        """Sign in with an email and password."""
        try:
            response = await self._remote.sign_in_with_password(email, password)
        except Exception as err:
            return _error("Sign in", err)
        self._apply(response)
        _LOGGER.info("Signed in as %s", email)
        return None

    async def sign_up(
        self, email: str, password: str, full_name: str
    ) -> ErrorInfo | None:
        """Register a new identity and create its profile row."""
        try:
            response = await self._remote.sign_up(
                email, password, {"full_name": full_name}
            )
        except Exception as err:
            return _error("Sign up", err)

        if (identity := response.identity) is not None:
            try:
                await self._remote.insert(
                    self._config.profiles_table,
                    {"id": identity.id, "email": identity.email, "full_name": full_name},
                )
            except Exception as err:
                # The identity exists, the profile row can be created later
                _LOGGER.error("Profile creation for %s failed: %s", email, err)

        self._apply(response)
        _LOGGER.info("Signed up as %s", email)
        return None

    async def sign_up_with_otp(self, email: str, full_name: str) -> ErrorInfo | None:
        """Ask the auth provider to send a one-time code to the email address."""
        try:
            await self._remote.sign_in_with_otp(email, {"full_name": full_name})
        except Exception as err:
            return _error("One-time code request", err)
        return None

    async def verify_otp(
        self,
        email: str,
        token: str,
        password: str | None = None,
        full_name: str | None = None,
    ) -> ErrorInfo | None:
        """Exchange a one-time code for a session.

        When given, the password is set and the profile row is upserted after
        the code is accepted. Neither step can fail the verification.
        """
        try:
            response = await self._remote.verify_otp(email, token)
        except Exception as err:
            return _error("One-time code verification", err)

        if (identity := response.identity) is None:
            return None

        if password:
            try:
                await self._remote.update_user(password=password)
            except Exception as err:
                _LOGGER.error("Password update for %s failed: %s", email, err)

        if full_name:
            try:
                await self._remote.upsert(
                    self._config.profiles_table,
                    {
                        "id": identity.id,
                        "email": email,
                        "full_name": full_name,
                        "updated_at": datetime.now(timezone.utc).isoformat(),
                    },
                )
            except Exception as err:
                _LOGGER.error("Profile upsert for %s failed: %s", email, err)

        self._apply(response)
        _LOGGER.info("Verified one-time code for %s", email)
        return None

    async def sign_out(self) -> None:
        """Clear the local session, then sign out remotely.

        The local state is cleared even if the remote call fails. A remote
        failure is raised to the caller afterwards.
        """
        self._commit()
        self._set(None, None)
        try:
            await self._remote.sign_out()
        except Exception as err:
            _LOGGER.error("Remote sign out failed: %s", err)
            raise
        _LOGGER.info("Signed out")

    async def update_profile(self, updates: Mapping[str, Any]) -> ErrorInfo | None:
        """Write a profile update to the profiles row and the identity metadata.

        The profiles row is the persistent copy and a failure there fails the
        call. The metadata mirror is written afterwards and only logged when
        it fails.
        """
        if (identity := self._identity) is None:
            return ErrorInfo.from_exception(NoIdentityError())

        profile_fields, metadata = split_profile_updates(updates)

        if profile_fields:
            try:
                await self._remote.upsert(
                    self._config.profiles_table,
                    {
                        "id": identity.id,
                        "email": identity.email,
                        **profile_fields,
                        "updated_at": datetime.now(timezone.utc).isoformat(),
                    },
                )
            except Exception as err:
                return _error("Profile update", err)

        if metadata:
            try:
                updated = await self._remote.update_user(metadata=metadata)
            except Exception as err:
                _LOGGER.error("Metadata update for %s failed: %s", identity.id, err)
            else:
                current = self._identity
                if current is None or current.id != updated.id:
                    _LOGGER.debug("Dropping metadata update for %s", updated.id)
                    return None
                session = self._session
                if session is not None:
                    session = dataclasses.replace(session, identity=updated)
                self._set(updated, session)
        return None
