"""Session lifecycle states and the profile update field mapping."""

from collections.abc import Mapping
from enum import StrEnum
import logging
from typing import Any

__all__ = [
    "SessionState",
    "split_profile_updates",
]

_LOGGER = logging.getLogger(__name__)

# Columns of the profiles row that a profile update may write.
PROFILE_ROW_FIELDS = ("full_name", "avatar_url", "farm_name", "farm_size")

# Keys mirrored into the identity metadata.
METADATA_FIELDS = ("full_name", "phone", "farm_size", "farming_experience")

LOCATION_KEYS = ("farm_location", "location")


class SessionState(StrEnum):
    """Lifecycle state of the session store."""

    UNINITIALIZED = "uninitialized"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


def split_profile_updates(
    updates: Mapping[str, Any],
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Split a profile update into the profiles row fields and identity metadata.

    The name and the farm location are written to both destinations so
    either one can be read on its own. The location is called
    `farm_location` in the profiles row and `location` in the metadata, and
    either key is accepted as input.

    Returns:
        A tuple of (profile row fields, metadata fields).
    """
    profile_fields = {key: updates[key] for key in PROFILE_ROW_FIELDS if key in updates}
    metadata = {key: updates[key] for key in METADATA_FIELDS if key in updates}
    for key in LOCATION_KEYS:
        if key in updates:
            profile_fields["farm_location"] = updates[key]
            metadata["location"] = updates[key]
            break
    if ignored := set(updates) - set(PROFILE_ROW_FIELDS) - set(METADATA_FIELDS) - set(
        LOCATION_KEYS
    ):
        _LOGGER.debug("Ignoring unknown profile fields %s", sorted(ignored))
    return profile_fields, metadata
