from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Org(BaseModel):
    id: str
    name: str
    owner_id: str
    plan: str


class Team(BaseModel):
    id: str
    org_id: str
    name: str
    owner_id: str
    llm_model_id: Optional[str] = Field(default=None, description="Default LLM model")
    embedding_model_id: Optional[str] = Field(
        default=None, description="Default embedding model"
    )
    created_at: Optional[datetime] = None


class TeamMember(BaseModel):
    id: str
    account_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    role: str
    permissions: list[str] = Field(
        default_factory=list, description="Names of the capabilities held"
    )
