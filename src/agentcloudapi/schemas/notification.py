from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class Notification(BaseModel):
    id: str
    type: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    seen: bool = False
    created_at: Optional[datetime] = None
