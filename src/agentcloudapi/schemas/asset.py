from typing import Optional

from pydantic import BaseModel


class Asset(BaseModel):
    id: str
    filename: str
    original_filename: Optional[str] = None
    mimetype: Optional[str] = None
    size: Optional[int] = None
    linked_to_id: Optional[str] = None
    linked_collection: Optional[str] = None
