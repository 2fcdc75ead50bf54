from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Model(BaseModel):
    id: str
    team_id: str
    name: str
    model: str = Field(description="Provider model identifier")
    type: str = Field(description="Provider type")
    config: Optional[Dict[str, Any]] = Field(
        default=None, description="Provider settings such as API keys"
    )
    embedding_length: Optional[int] = Field(
        default=None, description="Vector length, set for embedding models only"
    )
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
