from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from .common import Icon


class FormField(BaseModel):
    position: Any
    type: str
    name: str
    label: str
    description: Optional[str] = None
    options: Optional[list[str]] = Field(
        default=None, description="Choices for radio, checkbox and select fields"
    )


class Task(BaseModel):
    id: str
    team_id: str
    name: str
    description: Optional[str] = None
    expected_output: Optional[str] = None
    agent_id: Optional[str] = None
    tool_ids: list[str] = Field(default_factory=list)
    context: list[str] = Field(
        default_factory=list, description="Tasks whose output feeds this task"
    )
    async_execution: bool = False
    requires_human_input: bool = False
    display_only_final_output: bool = False
    store_task_output: bool = False
    task_output_file_name: Optional[str] = None
    is_structured_output: Optional[bool] = None
    form_fields: Optional[list[FormField]] = None
    icon: Optional[Icon] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
