from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from .common import Icon


class App(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    type: str = Field(description="chat or crew")
    agent_ids: list[str] = Field(default_factory=list)
    task_ids: list[str] = Field(default_factory=list)
    process: Optional[str] = Field(default=None, description="Crew process")
    manager_model_id: Optional[str] = None
    sharing_mode: str = "team"
    tags: Optional[list[str]] = None
    icon: Optional[Icon] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PublicApp(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    type: str
    icon: Optional[Icon] = None


class ShareLink(BaseModel):
    id: str
    token: str
    type: str
    payload: Optional[dict] = None
    expires_at: Optional[datetime] = None
