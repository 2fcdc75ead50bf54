from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class Account(BaseModel):
    id: str
    name: str
    email: str
    email_verified: bool = False
    current_org_id: Optional[str] = None
    current_team_id: Optional[str] = None
    role: Optional[str] = Field(default=None, description="Onboarding persona")
    onboarded: bool = False
    created_at: Optional[datetime] = None


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    account_id: str
    redirect: str
