import platform
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field

RetentionUnit = Literal["days", "months", "years", "permanent"]


def default_shortcut() -> str:
    return "Command+Shift+V" if platform.system() == "Darwin" else "Ctrl+Shift+V"


class Settings(BaseModel):
    shortcut: str = Field(default_factory=default_shortcut)
    retentionPeriod: int = Field(default=30, ge=0)
    retentionUnit: RetentionUnit = "days"
    rcloneConfig: Optional[str] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)
