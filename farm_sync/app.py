"""Container wiring the session and record stores to a single remote client.

Consumers receive a `FarmSync` instance (or its stores) instead of reaching
for module level state, so separate instances stay fully isolated.

Example:
    async with FarmSync(InMemoryRemote()) as farm:
        await farm.session.sign_in("a@b.com", "secret")
        await farm.block_till_done()
        print(farm.records.crops)
"""

import asyncio
from collections.abc import Callable
import logging
from types import TracebackType

from .config import FarmSyncConfig
from .events import SessionEvent
from .exceptions import ErrorInfo, NoIdentityError
from .models import Identity, Session
from .records import RecordStore
from .remote import RemoteClient
from .session import SessionStore
from .task import TaskService

__all__ = ["FarmSync"]

_LOGGER = logging.getLogger(__name__)


class FarmSync:
    """The session store and record store of one application instance."""

    def __init__(
        self, remote: RemoteClient, config: FarmSyncConfig | None = None
    ) -> None:
        """Initialize FarmSync.

        Args:
            remote: Client shared by both stores
            config: The configuration for the stores
        """
        self._config = config or FarmSyncConfig()
        self.session = SessionStore(remote, self._config.session)
        self.records = RecordStore(remote, self._config.records)
        self._task_service = TaskService()
        self._remove_listener: Callable[[], None] | None = None
        self._refreshed_for: str | None = None

    async def __aenter__(self) -> "FarmSync":
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.close()

    async def start(self) -> None:
        """Initialize the session and start refreshing records on sign in."""
        if self._config.refresh_on_sign_in and self._remove_listener is None:
            self._remove_listener = self.session.add_listener(
                SessionEvent.SESSION_CHANGED, self._on_session_changed
            )
        await self.session.initialize()

    def _on_session_changed(
        self, identity: Identity | None, session: Session | None
    ) -> None:
        if identity is None:
            self._refreshed_for = None
            return
        if identity.id == self._refreshed_for:
            return
        self._refreshed_for = identity.id
        _LOGGER.debug("Scheduling record refresh for %s", identity.id)
        self._task_service.create_task(
            self._refresh_for(identity.id), name=f"refresh-{identity.id}"
        )

    async def _refresh_for(self, user_id: str) -> ErrorInfo | None:
        results = await asyncio.gather(
            self.records.fetch_crops(user_id),
            self.records.fetch_activities(user_id),
            self.records.fetch_weather(user_id),
        )
        return next((error for error in results if error is not None), None)

    async def refresh(self) -> ErrorInfo | None:
        """Fetch every collection for the signed in identity.

        Returns the first fetch error, if any.
        """
        if (identity := self.session.identity) is None:
            return ErrorInfo.from_exception(NoIdentityError())
        return await self._refresh_for(identity.id)

    async def block_till_done(self) -> None:
        """Wait for scheduled background refreshes to complete."""
        await self._task_service.block_till_done()

    async def close(self) -> None:
        """Dispose subscriptions and cancel background refreshes."""
        if self._remove_listener is not None:
            self._remove_listener()
            self._remove_listener = None
        self.session.close()
        await self._task_service.close()
