"""Module for the record store holding the crops, activities and weather records.

Each collection is only ever written by this store:

- `fetch` replaces the whole collection with the rows owned by a user.
- `add`, `update` and `delete` write to the remote store first and only
  change the local collection once the canonical row comes back, so a
  failed call leaves the collection exactly as it was.

Operations are not serialized. Two calls racing on the same collection are
applied in the order their responses arrive, unless
`RecordStoreConfig.discard_stale_fetches` is enabled, in which case a fetch
response that was overtaken by a newer fetch or by a mutation is dropped.
"""

from collections import defaultdict
from collections.abc import Callable, Mapping
from datetime import datetime, timezone
import itertools
import logging
from typing import Any, DefaultDict, cast

from farm_sync.config import RecordStoreConfig
from farm_sync.events import Listeners, RecordEvent
from farm_sync.exceptions import ErrorInfo, RemoteError
from farm_sync.models import Crop, FarmActivity, Record, WeatherRecord
from farm_sync.remote import RemoteClient

from .collection import COLLECTIONS, ID_COLUMN, OWNER_COLUMN, Collection, CollectionSpec

__all__ = ["RecordStore"]

_LOGGER = logging.getLogger(__name__)


def _error(operation: str, collection: Collection, err: Exception) -> ErrorInfo:
    if isinstance(err, RemoteError):
        _LOGGER.error("%s %s failed: %s", operation, collection, err)
    else:
        _LOGGER.exception("%s %s failed with an unexpected error", operation, collection)
    return ErrorInfo.from_exception(err)


class RecordStore:
    """State container for the record collections of the current user."""

    def __init__(
        self, remote: RemoteClient, config: RecordStoreConfig | None = None
    ) -> None:
        """Initialize the RecordStore.

        Args:
            remote: Client for the remote tables
            config: The configuration for the store
        """
        self._remote = remote
        self._config = config or RecordStoreConfig()
        self._records: dict[Collection, list[Record]] = {c: [] for c in Collection}
        self._loading = False
        self._last_error: ErrorInfo | None = None
        self._listeners: Listeners[RecordEvent] = Listeners()
        self._fetch_tickets = itertools.count(1)
        self._applied_tickets: DefaultDict[Collection, int] = defaultdict(int)
        self._mutations: DefaultDict[Collection, int] = defaultdict(int)

    @property
    def crops(self) -> list[Crop]:
        """Snapshot of the crops, newest first."""
        return cast(list[Crop], self.get(Collection.CROPS))

    @property
    def activities(self) -> list[FarmActivity]:
        """Snapshot of the farm activities, most recent date first."""
        return cast(list[FarmActivity], self.get(Collection.ACTIVITIES))

    @property
    def weather_records(self) -> list[WeatherRecord]:
        """Snapshot of the cached weather records, most recent first."""
        return cast(list[WeatherRecord], self.get(Collection.WEATHER))

    @property
    def loading(self) -> bool:
        """True while a fetch is in flight."""
        return self._loading

    @property
    def last_error(self) -> ErrorInfo | None:
        """The error of the most recent failed fetch."""
        return self._last_error

    def get(self, collection: Collection) -> list[Record]:
        """Return a snapshot of a collection."""
        return list(self._records[collection])

    def clear_error(self) -> None:
        """Forget the last fetch error."""
        self._last_error = None

    def add_listener(
        self, event: RecordEvent, callback: Callable[..., None]
    ) -> Callable[[], None]:
        """Register a callback for a store event.

        COLLECTION_UPDATED callbacks receive (collection, records),
        LOADING_CHANGED callbacks receive the new flag and FETCH_FAILED
        callbacks receive (collection, error).

        Returns a callable that can be called to remove the listener.
        """
        return self._listeners.add(event, callback)

    def _cache_limit(self, spec: CollectionSpec) -> int | None:
        return self._config.weather_cache_limit if spec.capped else None

    def _set_loading(self, loading: bool) -> None:
        if self._loading != loading:
            self._loading = loading
            self._listeners.fire(RecordEvent.LOADING_CHANGED, loading)

    def _replace(self, collection: Collection, records: list[Record]) -> None:
        self._records[collection] = records
        self._listeners.fire(RecordEvent.COLLECTION_UPDATED, collection, list(records))

    def _mutated(self, collection: Collection, records: list[Record]) -> None:
        self._mutations[collection] += 1
        self._replace(collection, records)

    async def fetch(self, collection: Collection, user_id: str) -> ErrorInfo | None:
        """Replace a collection with the rows owned by the user.

        On failure the previous contents are kept and the error is also
        recorded in `last_error`.
        """
        spec = COLLECTIONS[collection]
        ticket = next(self._fetch_tickets)
        mutations = self._mutations[collection]
        self._last_error = None
        self._set_loading(True)
        try:
            rows = await self._remote.select_where(
                collection,
                OWNER_COLUMN,
                user_id,
                spec.order_by,
                descending=True,
                limit=self._cache_limit(spec),
            )
            records = [spec.model.from_dict(row) for row in rows or []]
        except Exception as err:
            error = _error("Fetching", collection, err)
            self._last_error = error
            self._set_loading(False)
            self._listeners.fire(RecordEvent.FETCH_FAILED, collection, error)
            return error
        self._set_loading(False)

        if self._config.discard_stale_fetches and (
            ticket < self._applied_tickets[collection]
            or mutations != self._mutations[collection]
        ):
            _LOGGER.debug("Discarding stale fetch %d of %s", ticket, collection)
            return None
        self._applied_tickets[collection] = ticket
        _LOGGER.debug("Fetched %d %s for %s", len(records), collection, user_id)
        self._replace(collection, records)
        return None

    async def add(
        self, collection: Collection, record: Mapping[str, Any]
    ) -> ErrorInfo | None:
        """Insert a record and put the canonical row at the front of the collection.

        The owner id is taken from the record as given by the caller.
        """
        spec = COLLECTIONS[collection]
        if (error := spec.validate_new(record)) is not None:
            return error
        try:
            row = await self._remote.insert(collection, dict(record))
            created = spec.model.from_dict(row)
        except Exception as err:
            return _error("Adding to", collection, err)

        records = [created, *self._records[collection]]
        if (limit := self._cache_limit(spec)) is not None:
            records = records[:limit]
        self._mutated(collection, records)
        return None

    async def update(
        self, collection: Collection, record_id: str, fields: Mapping[str, Any]
    ) -> ErrorInfo | None:
        """Update a record and replace the cached copy with the canonical row."""
        spec = COLLECTIONS[collection]
        payload = dict(fields)
        if spec.has_updated_at:
            payload["updated_at"] = datetime.now(timezone.utc).isoformat()
        try:
            row = await self._remote.update_where(
                collection, ID_COLUMN, record_id, payload
            )
            updated = spec.model.from_dict(row)
        except Exception as err:
            return _error("Updating", collection, err)

        self._mutated(
            collection,
            [
                updated if existing.id == record_id else existing
                for existing in self._records[collection]
            ],
        )
        return None

    async def delete(self, collection: Collection, record_id: str) -> ErrorInfo | None:
        """Delete a record and drop it from the collection."""
        try:
            await self._remote.delete_where(collection, ID_COLUMN, record_id)
        except Exception as err:
            return _error("Deleting from", collection, err)

        self._mutated(
            collection,
            [
                existing
                for existing in self._records[collection]
                if existing.id != record_id
            ],
        )
        return None

    async def fetch_crops(self, user_id: str) -> ErrorInfo | None:
        """Replace the crops with those owned by the user, newest first."""
        return await self.fetch(Collection.CROPS, user_id)

    async def add_crop(self, crop: Mapping[str, Any]) -> ErrorInfo | None:
        """Add a crop."""
        return await self.add(Collection.CROPS, crop)

    async def update_crop(
        self, crop_id: str, fields: Mapping[str, Any]
    ) -> ErrorInfo | None:
        """Update a crop. Any status value is accepted."""
        return await self.update(Collection.CROPS, crop_id, fields)

    async def delete_crop(self, crop_id: str) -> ErrorInfo | None:
        """Delete a crop."""
        return await self.delete(Collection.CROPS, crop_id)

    async def fetch_activities(self, user_id: str) -> ErrorInfo | None:
        """Replace the activities with those owned by the user, latest date first."""
        return await self.fetch(Collection.ACTIVITIES, user_id)

    async def add_activity(self, activity: Mapping[str, Any]) -> ErrorInfo | None:
        """Add a farm activity. The description must not be empty."""
        return await self.add(Collection.ACTIVITIES, activity)

    async def update_activity(
        self, activity_id: str, fields: Mapping[str, Any]
    ) -> ErrorInfo | None:
        return await self.update(Collection.ACTIVITIES, activity_id, fields)

    async def delete_activity(self, activity_id: str) -> ErrorInfo | None:
        return await self.delete(Collection.ACTIVITIES, activity_id)

    async def fetch_weather(self, user_id: str) -> ErrorInfo | None:
        """Replace the weather cache with the most recent records of the user."""
        return await self.fetch(Collection.WEATHER, user_id)

    async def add_weather(self, weather: Mapping[str, Any]) -> ErrorInfo | None:
        """Add a weather record, evicting the oldest cached one beyond the cap."""
        return await self.add(Collection.WEATHER, weather)

    async def update_weather(
        self, weather_id: str, fields: Mapping[str, Any]
    ) -> ErrorInfo | None:
        return await self.update(Collection.WEATHER, weather_id, fields)

    async def delete_weather(self, weather_id: str) -> ErrorInfo | None:
        return await self.delete(Collection.WEATHER, weather_id)
