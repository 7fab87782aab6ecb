"""Descriptions of the record collections mirrored from the remote store."""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from farm_sync.exceptions import ErrorInfo
from farm_sync.models import Crop, FarmActivity, Record, WeatherRecord
from farm_sync.remote import ACTIVITIES_TABLE, CROPS_TABLE, WEATHER_TABLE

__all__ = [
    "Collection",
    "CollectionSpec",
    "COLLECTIONS",
]

OWNER_COLUMN = "user_id"
ID_COLUMN = "id"


class Collection(StrEnum):
    """The record collections, named after their remote tables."""

    CROPS = CROPS_TABLE
    ACTIVITIES = ACTIVITIES_TABLE
    WEATHER = WEATHER_TABLE


@dataclass(frozen=True)
class CollectionSpec:
    """How a collection is queried, parsed and cached."""

    collection: Collection
    model: type[Record]
    order_by: str
    """Column sorted newest first when fetching."""

    has_updated_at: bool = True
    capped: bool = False
    """Whether the local cache keeps only the most recent records."""

    required_text: tuple[str, ...] = ()
    """Fields that must be non-empty strings when adding a record."""

    def validate_new(self, record: Mapping[str, Any]) -> ErrorInfo | None:
        """Return an error if the new record is missing a required field."""
        for name in self.required_text:
            value = record.get(name)
            if not isinstance(value, str) or not value.strip():
                return ErrorInfo(message=f"{name.capitalize()} is required")
        return None


COLLECTIONS: dict[Collection, CollectionSpec] = {
    Collection.CROPS: CollectionSpec(
        collection=Collection.CROPS,
        model=Crop,
        order_by="created_at",
    ),
    Collection.ACTIVITIES: CollectionSpec(
        collection=Collection.ACTIVITIES,
        model=FarmActivity,
        order_by="date",
        required_text=("description",),
    ),
    Collection.WEATHER: CollectionSpec(
        collection=Collection.WEATHER,
        model=WeatherRecord,
        order_by="recorded_at",
        has_updated_at=False,
        capped=True,
    ),
}
