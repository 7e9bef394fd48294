import logging
from typing import List, Optional

from clipkeep.database import DocumentStore
from clipkeep.models.clipboard_item import ClipboardItem
from clipkeep.services.clipboard_service import ClipboardPoller, now_ms
from clipkeep.utils.retention import filter_by_retention

logger = logging.getLogger(__name__)

CATEGORIES = ("all", "text", "image", "favorite")


class HistoryService:
    """User-facing operations on ``clipboardHistory``."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    def items(self) -> List[ClipboardItem]:
        return self.store.get_history()

    def get(self, item_id: str) -> Optional[ClipboardItem]:
        return next((item for item in self.items() if item.id == item_id), None)

    def remove(self, item_id: str) -> bool:
        history = self.items()
        new_history = [item for item in history if item.id != item_id]
        if len(new_history) == len(history):
            logger.warning("No history item with id %s", item_id)
            return False
        return self.store.set_history(new_history)

    def toggle_favorite(self, item_id: str) -> bool:
        history = self.items()
        found = False
        new_history = []
        for item in history:
            if item.id == item_id:
                item = item.model_copy(update={"favorite": not item.favorite})
                found = True
            new_history.append(item)
        if not found:
            logger.warning("No history item with id %s", item_id)
            return False
        return self.store.set_history(new_history)

    def search(self, query: str = "", category: str = "all") -> List[ClipboardItem]:
        if category not in CATEGORIES:
            raise ValueError(f"Unknown category {category!r}, expected one of {CATEGORIES}")

        needle = query.lower()
        results = []
        for item in self.items():
            if category == "favorite" and not item.favorite:
                continue
            if category in ("text", "image") and item.type != category:
                continue
            if needle and needle not in item.content.lower():
                continue
            results.append(item)
        return results

    def cleanup(self, now: Optional[int] = None) -> int:
        """Prune rows outside the retention window and persist the result."""
        settings = self.store.get_settings()
        history = self.items()
        kept = filter_by_retention(
            history,
            settings.retentionPeriod,
            settings.retentionUnit,
            now if now is not None else now_ms(),
        )
        removed = len(history) - len(kept)
        if removed and self.store.set_history(kept):
            logger.info(f"Cleaned up {removed} old items")
            return removed
        return 0

    def copy_back(self, item_id: str, poller: ClipboardPoller) -> bool:
        item = self.get(item_id)
        if item is None:
            logger.warning("No history item with id %s", item_id)
            return False
        return poller.write_to_clipboard(item)
