"""Clipboard poller for clipkeep.

Samples the OS clipboard on a fixed interval and records new content at the
front of ``clipboardHistory`` in the :class:`~clipkeep.database.DocumentStore`.
"""

import logging
import threading
import time
from typing import Callable, List, Optional, Tuple

from clipkeep.clipboard import ClipboardBackend, get_clipboard_backend
from clipkeep.database import DocumentStore
from clipkeep.models.clipboard_item import ClipboardItem
from clipkeep.utils.config import DEFAULT_HISTORY_LIMIT
from clipkeep.utils.images import image_metadata

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


def cap_history(items: List[ClipboardItem], limit: Optional[int]) -> List[ClipboardItem]:
    """Drop the oldest non-favorite rows until ``items`` fits in ``limit``.

    Favorites are kept even if that leaves the list over the limit.
    """
    if limit is None or len(items) <= limit:
        return items

    excess = len(items) - limit
    kept: List[ClipboardItem] = []
    for item in reversed(items):
        if excess > 0 and not item.favorite:
            excess -= 1
            continue
        kept.append(item)
    kept.reverse()
    return kept


def merge_into_history(
    history: List[ClipboardItem],
    new_item: ClipboardItem,
    limit: Optional[int] = None,
) -> List[ClipboardItem]:
    """Put ``new_item`` at index 0, replacing any row with the same content.

    A replaced row keeps its id and favorite flag.
    """
    existing = next((item for item in history if item.content == new_item.content), None)
    if existing is not None:
        new_item = new_item.model_copy(
            update={"id": existing.id, "favorite": existing.favorite})
    merged = [new_item] + [item for item in history if item.content != new_item.content]
    return cap_history(merged, limit)


class ClipboardPoller:

    def __init__(
        self,
        store: DocumentStore,
        backend: Optional[ClipboardBackend] = None,
        *,
        poll_interval: float = 1.0,
        history_limit: Optional[int] = DEFAULT_HISTORY_LIMIT,
        clock: Optional[Callable[[], int]] = None,
        auto_start: bool = False,
    ) -> None:
        if history_limit is not None and history_limit < 1:
            raise ValueError("history_limit must be >= 1 or None")

        self.store = store
        self.backend = backend or get_clipboard_backend()
        self.poll_interval = poll_interval
        self.history_limit = history_limit
        self._clock = clock or now_ms
        self._lock = threading.RLock()
        self._stop_event = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._is_running = False
        self._last_text = ""
        self._last_image = ""
        self._listeners: List[Callable[[ClipboardItem], None]] = []

        if auto_start:
            self.start_monitoring()

    # ---------------------------------------------------------------------
    # Lifecycle management
    # ---------------------------------------------------------------------
    @property
    def is_monitoring(self) -> bool:
        return self._is_running

    def start_monitoring(self) -> None:
        with self._lock:
            if self._is_running:
                logger.warning("Clipboard monitoring already started")
                return

            self._stop_event.clear()
            self._is_running = True
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="clipkeep-poller", daemon=True)
            self._poll_thread.start()
            logger.info("Clipboard monitoring started (interval=%ss)", self.poll_interval)

    def stop_monitoring(self) -> None:
        with self._lock:
            if not self._is_running:
                return

            self._is_running = False
            self._stop_event.set()
            thread = self._poll_thread
            self._poll_thread = None

        # join outside the lock; a tick in progress is allowed to finish
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        logger.info("Clipboard monitoring stopped")

    def run_forever(self) -> None:
        try:
            if not self._is_running:
                self.start_monitoring()

            while not self._stop_event.wait(timeout=self.poll_interval):
                continue
        except KeyboardInterrupt:
            logger.info("Clipboard monitoring interrupted by user")
        finally:
            self.stop_monitoring()

    def on_change(self, callback: Callable[[ClipboardItem], None]) -> Callable[[], None]:
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    # ---------------------------------------------------------------------
    # Polling
    # ---------------------------------------------------------------------
    def _poll_loop(self) -> None:
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.poll_interval)

    def poll_once(self) -> Optional[ClipboardItem]:
        """Run one sampling tick; returns the recorded item, if any."""
        try:
            detected = self._detect_change()
            if detected is None:
                return None

            kind, item = detected
            recorded = self._handle_clipboard_change(item)
            if recorded is None:
                return None

            if kind == "image":
                self._last_image = item.content
            else:
                self._last_text = item.content
            return recorded
        except Exception:
            logger.exception("Error monitoring clipboard")
            return None

    def _detect_change(self) -> Optional[Tuple[str, ClipboardItem]]:
        # image wins: copying an image usually fills the text slot too
        image = self.backend.read_image()
        if not image.is_empty():
            self._last_text = ""
            data_url = image.to_data_url()
            if data_url == self._last_image:
                return None
            return "image", ClipboardItem(
                content=data_url,
                type="image",
                timestamp=self._clock(),
                metadata=image_metadata(data_url),
            )

        self._last_image = ""
        text = (self.backend.read_text() or "").strip()
        if not text:
            self._last_text = ""
            return None
        if text == self._last_text:
            return None
        return "text", ClipboardItem(content=text, type="text", timestamp=self._clock())

    def _handle_clipboard_change(self, new_item: ClipboardItem) -> Optional[ClipboardItem]:
        history = self.store.get_history()
        new_history = merge_into_history(history, new_item, self.history_limit)
        if not self.store.set_history(new_history):
            logger.warning("Could not record clipboard change; will retry next tick")
            return None

        recorded = new_history[0]
        logger.info("Clipboard changed: type=%s id=%s", recorded.type, recorded.id)
        for callback in list(self._listeners):
            try:
                callback(recorded)
            except Exception:
                logger.exception("Error while calling on_change listener")
        return recorded

    # ---------------------------------------------------------------------
    # Copy-back
    # ---------------------------------------------------------------------
    def write_to_clipboard(self, item: ClipboardItem) -> bool:
        try:
            if item.type == "image":
                self.backend.write_image(item.content)
            else:
                self.backend.write_text(item.content)
            return True
        except Exception as e:
            logger.error(f"Error writing to clipboard: {e}")
            return False

    # ---------------------------------------------------------------------
    # Context manager helpers
    # ---------------------------------------------------------------------
    def __enter__(self) -> "ClipboardPoller":
        self.start_monitoring()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop_monitoring()
