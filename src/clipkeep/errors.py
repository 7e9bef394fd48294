class ClipKeepError(Exception):
    """Base class for clipkeep errors."""


class ClipboardAccessError(ClipKeepError):
    pass


class SyncError(ClipKeepError):
    pass
