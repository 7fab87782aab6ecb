"""
The remote module defines how the stores talk to the hosted store and auth provider.

- RemoteClient is the abstract contract: owner-filtered CRUD on named tables
  plus the auth calls used by the session store.
- InMemoryRemote is an in-process implementation used for development and tests.

All rejections are raised as RemoteError and normalized by the stores.
"""

from .client import (
    RemoteClient,
    AuthChangeEvent,
    SessionChangeCallback,
    CROPS_TABLE,
    ACTIVITIES_TABLE,
    WEATHER_TABLE,
    PROFILES_TABLE,
)
from .in_memory import InMemoryRemote

__all__ = [
    "RemoteClient",
    "AuthChangeEvent",
    "SessionChangeCallback",
    "InMemoryRemote",
    "CROPS_TABLE",
    "ACTIVITIES_TABLE",
    "WEATHER_TABLE",
    "PROFILES_TABLE",
]
