from typing import Any, Dict

from clipkeep.models.settings import Settings

HISTORY_KEY = "clipboardHistory"
SETTINGS_KEY = "settings"


def default_document() -> Dict[str, Any]:
    return {
        HISTORY_KEY: [],
        SETTINGS_KEY: Settings().to_record(),
    }
