"""Storage layer for SnapVCS.

This module provides the content-addressable object store and the HEAD
reference.
"""

from snapvcs.storage.object_store import ObjectStore, validate_object_id
from snapvcs.storage.refs import Head

__all__ = [
    "ObjectStore",
    "Head",
    "validate_object_id",
]
