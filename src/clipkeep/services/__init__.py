"""Service layer for clipkeep."""

from .clipboard_service import ClipboardPoller, cap_history, merge_into_history
from .history_service import HistoryService
from .sync_service import SyncProgress, SyncService

__all__ = [
    "ClipboardPoller",
    "HistoryService",
    "SyncProgress",
    "SyncService",
    "cap_history",
    "merge_into_history",
]
