from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel


class Session(BaseModel):
    id: str
    team_id: str
    app_id: Optional[str] = None
    name: Optional[str] = None
    status: str
    started_by: Optional[str] = None
    created_at: Optional[datetime] = None


class SessionMessage(BaseModel):
    id: str
    session_id: str
    type: Optional[str] = None
    message: Optional[Any] = None
    created_at: Optional[datetime] = None
