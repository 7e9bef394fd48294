"""
Storage package for clipkeep.

Provides the persistent JSON document store and its change events.
"""

from clipkeep.database.store import (
    Cleared,
    DocumentStore,
    HistoryChanged,
    KeyChanged,
    SettingsChanged,
    StoreEvent,
    StoreState,
)

__all__ = [
    'DocumentStore',
    'StoreState',
    'StoreEvent',
    'KeyChanged',
    'HistoryChanged',
    'SettingsChanged',
    'Cleared',
]
