"""
The records module keeps the local copies of the user's crops, farm activities
and weather records in step with the remote store.

- Collections are replaced wholesale by fetch and changed only after the
  remote store returns the canonical row of a write.
- Every operation reports failures as an ErrorInfo value instead of raising.
"""

from .collection import Collection, CollectionSpec, COLLECTIONS
from .store import RecordStore

__all__ = [
    "Collection",
    "CollectionSpec",
    "COLLECTIONS",
    "RecordStore",
]
