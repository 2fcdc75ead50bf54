from typing import Optional

from pydantic import BaseModel, Field


class Icon(BaseModel):
    id: str
    filename: str
    linked_id: Optional[str] = Field(
        default=None, description="Object the icon asset is attached to"
    )
