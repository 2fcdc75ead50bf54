from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Icon


class Agent(BaseModel):
    id: str
    team_id: str
    name: str
    role: Optional[str] = None
    goal: Optional[str] = None
    backstory: Optional[str] = None
    model_id: Optional[str] = None
    function_model_id: Optional[str] = Field(
        default=None, description="Model used for function calling"
    )
    tool_ids: list[str] = Field(default_factory=list)
    allow_delegation: bool = False
    verbose: int = 0
    icon: Optional[Icon] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
