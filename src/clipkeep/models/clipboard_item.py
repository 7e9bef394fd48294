from typing import Any, Dict, Literal, Optional

import ulid
from pydantic import BaseModel, Field

ItemType = Literal["text", "image"]


def new_item_id() -> str:
    return f"i_{ulid.new()}"


class ImageMetadata(BaseModel):
    width: int = 0
    height: int = 0
    size: int = 0


class ClipboardItem(BaseModel):
    """One captured clipboard snapshot, as stored in ``clipboardHistory``."""
    id: str = Field(default_factory=new_item_id)
    content: str
    type: ItemType = "text"
    timestamp: int  # ms since epoch
    favorite: bool = False
    metadata: Optional[ImageMetadata] = None

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "ClipboardItem":
        return cls.model_validate(record)
