"""Session store and its lifecycle states."""

from .state import SessionState, split_profile_updates
from .store import SessionStore

__all__ = [
    "SessionStore",
    "SessionState",
    "split_profile_updates",
]
