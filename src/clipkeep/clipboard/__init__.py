from clipkeep.clipboard.base import ClipboardBackend, ClipboardImage, EMPTY_IMAGE
from clipkeep.clipboard.factory import get_clipboard_class, get_clipboard_backend
from clipkeep.clipboard.memory import MemoryClipboard

__all__ = [
    'ClipboardBackend',
    'ClipboardImage',
    'EMPTY_IMAGE',
    'MemoryClipboard',
    'get_clipboard_class',
    'get_clipboard_backend',
]
