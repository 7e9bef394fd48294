import platform
from typing import Type

from clipkeep.clipboard.base import ClipboardBackend


def get_clipboard_class() -> Type[ClipboardBackend]:
    system = platform.system()

    if system == "Windows":
        from clipkeep.clipboard.windows import WindowsClipboard
        return WindowsClipboard
    elif system == "Linux":
        from clipkeep.clipboard.linux import LinuxClipboard
        return LinuxClipboard
    elif system == "Darwin":
        from clipkeep.clipboard.macos import MacOSClipboard
        return MacOSClipboard
    else:
        raise NotImplementedError(f"Platform '{system}' is not supported")


def get_clipboard_backend() -> ClipboardBackend:
    clipboard_class = get_clipboard_class()
    return clipboard_class()
