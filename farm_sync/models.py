"""Representation of the records synchronized with the remote store.

Rows arrive from the remote store as plain dictionaries and are parsed into
the dataclasses below. The dataclasses mirror the remote tables, so a model
can always be rebuilt from its canonical row and serialized back with
`to_dict()` for a write.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from mashumaro import DataClassDictMixin
from mashumaro.config import BaseConfig

__all__ = [
    "CropStatus",
    "ActivityType",
    "Identity",
    "Session",
    "AuthResponse",
    "Profile",
    "Record",
    "Crop",
    "FarmActivity",
    "WeatherRecord",
]


class CropStatus(StrEnum):
    """Known crop status values.

    The status field itself is a plain string so values outside this set are
    persisted unchanged.
    """

    PLANTED = "planted"
    GROWING = "growing"
    HARVESTED = "harvested"
    FAILED = "failed"


class ActivityType(StrEnum):
    """Known farm activity types."""

    PLANTING = "planting"
    WATERING = "watering"
    FERTILIZING = "fertilizing"
    HARVESTING = "harvesting"
    PEST_CONTROL = "pest_control"
    OTHER = "other"


ACTIVE_CROP_STATUSES = frozenset({CropStatus.PLANTED, CropStatus.GROWING})


@dataclass(kw_only=True)
class BaseModel(DataClassDictMixin):
    """Base class for all models."""

    class Config(BaseConfig):
        omit_none = True


@dataclass(kw_only=True)
class Identity(BaseModel):
    """The authenticated user as known to the client."""

    id: str
    """Opaque id assigned by the auth provider."""

    email: str
    """Email address used to sign in."""

    metadata: dict[str, Any] = field(default_factory=dict)
    """Open mapping of profile attributes (farm name, location, phone, ...)."""

    @property
    def full_name(self) -> str | None:
        """Return the display name stored in the identity metadata."""
        return self.metadata.get("full_name")


@dataclass(kw_only=True)
class Session(BaseModel):
    """Credential proving an identity is currently authenticated."""

    access_token: str
    identity: Identity
    refresh_token: str | None = None
    expires_at: float | None = None
    """Expiry in epoch seconds, managed by the remote client."""


@dataclass(kw_only=True)
class AuthResponse(BaseModel):
    """Result of an auth provider call that may create a session."""

    identity: Identity | None = None
    session: Session | None = None


@dataclass(kw_only=True)
class Profile(BaseModel):
    """A row of the profiles table keyed by the identity id."""

    id: str
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    farm_name: str | None = None
    farm_location: str | None = None
    farm_size: float | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(kw_only=True)
class Record(BaseModel):
    """Fields shared by every record owned by an identity."""

    id: str
    user_id: str
    created_at: str


@dataclass(kw_only=True)
class Crop(Record):
    """A crop planted by the user."""

    name: str
    planting_date: str
    status: str = CropStatus.PLANTED
    variety: str | None = None
    expected_harvest_date: str | None = None
    actual_harvest_date: str | None = None
    field_location: str | None = None
    area_planted: float | None = None
    notes: str | None = None
    updated_at: str | None = None

    @property
    def active(self) -> bool:
        """Return True if the crop is still in the ground."""
        return self.status in ACTIVE_CROP_STATUSES


@dataclass(kw_only=True)
class FarmActivity(Record):
    """A unit of farm work, optionally tied to a crop."""

    activity_type: str
    description: str
    date: str
    crop_id: str | None = None
    """The related crop, or None for a general activity."""
    duration_hours: float | None = None
    cost: float | None = None
    notes: str | None = None
    updated_at: str | None = None


@dataclass(kw_only=True)
class WeatherRecord(Record):
    """A weather observation recorded by the user."""

    location: str
    temperature: float
    humidity: float
    rainfall: float
    wind_speed: float
    weather_condition: str
    recorded_at: str
    notes: str | None = None
