"""
farm-sync keeps the client side state of a farm record keeping application in
step with a remote relational store and its auth provider.
"""

from .app import FarmSync
from .config import FarmSyncConfig, RecordStoreConfig, SessionStoreConfig
from .exceptions import ErrorInfo
from .records import Collection, RecordStore
from .session import SessionState, SessionStore

__all__ = [
    "FarmSync",
    "FarmSyncConfig",
    "RecordStoreConfig",
    "SessionStoreConfig",
    "ErrorInfo",
    "Collection",
    "RecordStore",
    "SessionState",
    "SessionStore",
    "app",
    "config",
    "events",
    "exceptions",
    "models",
    "records",
    "remote",
    "session",
    "summary",
]
