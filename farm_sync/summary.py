"""Dashboard statistics derived from the record store read model."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from mashumaro import DataClassDictMixin

from .models import FarmActivity
from .records import RecordStore

__all__ = [
    "FarmStats",
    "farm_stats",
    "recent_activities",
    "total_activity_cost",
]

RECENT_ACTIVITY_DAYS = 7


@dataclass(frozen=True)
class FarmStats(DataClassDictMixin):
    """Counts shown on the dashboard and profile overview."""

    total_crops: int
    active_crops: int
    total_activities: int
    recent_activities: int
    """Activities dated within the last week."""
    weather_records: int


def _parse_date(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def farm_stats(records: RecordStore, now: datetime | None = None) -> FarmStats:
    """Compute the dashboard counts from the current collections.

    Dates without a timezone, including a naive `now`, are read as UTC.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    week_ago = now - timedelta(days=RECENT_ACTIVITY_DAYS)
    crops = records.crops
    activities = records.activities
    recent = 0
    for activity in activities:
        if (date := _parse_date(activity.date)) is not None and date >= week_ago:
            recent += 1
    return FarmStats(
        total_crops=len(crops),
        active_crops=sum(1 for crop in crops if crop.active),
        total_activities=len(activities),
        recent_activities=recent,
        weather_records=len(records.weather_records),
    )


def recent_activities(records: RecordStore, limit: int = 5) -> list[FarmActivity]:
    """Return the latest activities in collection order."""
    return records.activities[:limit]


def total_activity_cost(records: RecordStore) -> float:
    """Return the summed cost of all activities, treating missing costs as zero."""
    return sum(activity.cost or 0.0 for activity in records.activities)
