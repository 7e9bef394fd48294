import threading
from typing import Optional

from clipkeep.clipboard.base import ClipboardBackend, ClipboardImage


class MemoryClipboard(ClipboardBackend):
    """In-process single-slot clipboard for headless runs and tests.

    Like the OS clipboard, writing text drops any image and vice versa.
    """

    def __init__(self, text: str = "", image_data_url: Optional[str] = None):
        self._lock = threading.Lock()
        self._text = text
        self._image = image_data_url or ""

    def read_text(self) -> str:
        with self._lock:
            return self._text

    def read_image(self) -> ClipboardImage:
        with self._lock:
            return ClipboardImage(self._image)

    def write_text(self, text: str) -> None:
        with self._lock:
            self._text = text
            self._image = ""

    def write_image(self, data_url: str) -> None:
        with self._lock:
            self._image = data_url
            self._text = ""

    def clear(self) -> None:
        with self._lock:
            self._text = ""
            self._image = ""
