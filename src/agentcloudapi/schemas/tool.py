from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Tool(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    type: str = Field(description="function, rag or builtin")
    data: Optional[Dict[str, Any]] = None
    datasource_id: Optional[str] = None
    state: str = "pending"
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ToolRevision(BaseModel):
    id: str
    tool_id: str
    content: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
