from clipkeep.models.clipboard_item import ClipboardItem, ImageMetadata, new_item_id
from clipkeep.models.settings import Settings, RetentionUnit, default_shortcut
from clipkeep.models.document import HISTORY_KEY, SETTINGS_KEY, default_document

__all__ = [
    'ClipboardItem',
    'ImageMetadata',
    'new_item_id',
    'Settings',
    'RetentionUnit',
    'default_shortcut',
    'HISTORY_KEY',
    'SETTINGS_KEY',
    'default_document',
]
