from abc import ABC, abstractmethod
from typing import Optional


class ClipboardImage:
    """Image currently on the clipboard, held as a PNG data URL."""

    def __init__(self, data_url: Optional[str] = None):
        self._data_url = data_url or ""

    def is_empty(self) -> bool:
        return not self._data_url

    def to_data_url(self) -> str:
        return self._data_url


EMPTY_IMAGE = ClipboardImage()


class ClipboardBackend(ABC):
    """Native clipboard primitives.

    Reads return empty values when the clipboard cannot be read; writes raise
    :class:`~clipkeep.errors.ClipboardAccessError`.
    """

    @abstractmethod
    def read_text(self) -> str:
        pass

    @abstractmethod
    def read_image(self) -> ClipboardImage:
        pass

    @abstractmethod
    def write_text(self, text: str) -> None:
        pass

    @abstractmethod
    def write_image(self, data_url: str) -> None:
        pass
