"""
Store: persistance des sessions par rôle.
"""

from .key_value_store import KeyValueSessionStore, storage_key

__all__ = [
    "KeyValueSessionStore",
    "storage_key",
]
