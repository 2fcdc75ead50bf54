from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class Datasource(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    source_type: Optional[str] = None
    source_id: Optional[str] = None
    connection_id: Optional[str] = None
    status: str = Field(description="draft, processing, embedding, ready or error")
    stream_config: Optional[Dict[str, Any]] = None
    schedule: Optional[Dict[str, Any]] = None
    embedding_field: Optional[str] = None
    model_id: Optional[str] = None
    filename: Optional[str] = None
    record_count: Optional[Dict[str, int]] = None
    last_synced_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
