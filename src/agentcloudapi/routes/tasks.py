"""API routes for managing tasks."""

import logging
import re

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Query, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..db.models import Agent as AgentModel
from ..db.models import Task as TaskModel
from ..db.models import Tool as ToolModel
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.agent import Agent
from ..schemas.task import Task
from ..schemas.tool import Tool
from ..services.asset_service import AssetService
from ..utils import (
    OBJECT_ID_PATTERN,
    count_team_objects,
    get_team_object,
    model_to_schema,
    models_to_schema,
    new_object_id,
    team_objects,
)
from ..validation import chain_validations, validate_form_fields

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])

TASK_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "description", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "requires_human_input", "validation": {"of_type": "boolean"}},
    {"field": "expected_output", "validation": {"not_empty": True, "of_type": "string"}},
    {
        "field": "tool_ids",
        "validation": {
            "has_length": 24,
            "as_array": True,
            "of_type": "string",
            "custom_error": "Invalid Tools",
        },
    },
    {"field": "async_execution", "validation": {"of_type": "boolean"}},
    {"field": "agent_id", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "icon_id", "validation": {"of_type": "string"}},
    {
        "field": "context",
        "validation": {
            "has_length": 24,
            "as_array": True,
            "of_type": "string",
            "custom_error": "Invalid context",
        },
    },
]

# Icons are only attached when a task is created
EDIT_TASK_RULES = [r for r in TASK_RULES if r["field"] != "icon_id"]

TASK_LABELS = {
    "name": "Name",
    "description": "Description",
    "requires_human_input": "Requires Human Input",
    "expected_output": "Expected Output",
    "tool_ids": "Tool IDs",
    "async_execution": "Async Execution",
    "agent_id": "Agent ID",
    "icon_id": "Icon ID",
}


def tasks_data(db: Session, context: TeamContext) -> dict:
    """Tasks, tools and agents of a team, as the task pages need them."""
    return {
        "csrf": context.csrf,
        "tasks": models_to_schema(team_objects(db, TaskModel, context.team_id), Task),
        "tools": models_to_schema(team_objects(db, ToolModel, context.team_id), Tool),
        "agents": models_to_schema(team_objects(db, AgentModel, context.team_id), Agent),
    }


def task_data(db: Session, context: TeamContext, task_id: str) -> dict:
    record = get_team_object(db, TaskModel, context.team_id, task_id)
    if not record:
        raise HTTPException(status_code=404, detail="Task not found")
    return {**tasks_data(db, context), "task": model_to_schema(record, Task)}


def format_output_file_name(name):
    """Replace runs of whitespace in an output file name with underscores."""
    return re.sub(r"\s+", "_", name) if name else name


def check_task_body(body: dict, rules: list[dict]) -> str | None:
    """Run field rules and the human input form checks on a task body."""
    error = chain_validations(body, rules, TASK_LABELS)
    if error:
        return error
    if body.get("requires_human_input") and body.get("form_fields"):
        return validate_form_fields(body["form_fields"])
    return None


def check_task_references(db: Session, team_id: str, body: dict) -> bool:
    """Check the referenced agent, ready tools and context tasks exist in the team."""
    tool_ids = body.get("tool_ids") or []
    if tool_ids and count_team_objects(
        db, ToolModel, team_id, tool_ids, ToolModel.state == "ready"
    ) != len(set(tool_ids)):
        return False

    context_ids = body.get("context") or []
    if context_ids and count_team_objects(db, TaskModel, team_id, context_ids) != len(
        set(context_ids)
    ):
        return False

    return get_team_object(db, AgentModel, team_id, body["agent_id"]) is not None


def task_fields(body: dict) -> dict:
    """Mutable task fields taken from a validated body."""
    return {
        "name": body["name"],
        "description": body["description"],
        "expected_output": body["expected_output"],
        "agent_id": body["agent_id"],
        "tool_ids": body.get("tool_ids") or [],
        "context": body.get("context") or [],
        "async_execution": body.get("async_execution") is True,
        "requires_human_input": body.get("requires_human_input") is True,
        "display_only_final_output": body.get("display_only_final_output") is True,
        "store_task_output": body.get("store_task_output") is True,
        "task_output_file_name": format_output_file_name(body.get("task_output_file_name")),
        "form_fields": body.get("form_fields"),
        "is_structured_output": body.get("is_structured_output"),
    }


@router.get("/tasks.json", operation_id="list_tasks", tags=["mcp"])
@router.get("/tasks", operation_id="tasks_page")
async def list_tasks(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's tasks.

    Returns the tasks together with the tools and agents they can reference.
    """
    return tasks_data(db, context)


@router.get("/task/add", operation_id="task_add_page")
@has_perms.one(Permissions.CREATE_TASK)
async def task_add_page(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Form data for creating a task."""
    return tasks_data(db, context)


@router.get("/task.json", operation_id="get_task_by_name", tags=["mcp"])
async def get_task_by_name(
    name: str = Query(..., description="Task name"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> Task:
    """Look up a task by its name."""
    record = (
        team_objects(db, TaskModel, context.team_id)
        .filter(TaskModel.name == name)
        .first()
    )
    if not record:
        raise HTTPException(status_code=404, detail="Task not found")
    return model_to_schema(record, Task)


@router.get("/task/{task_id}.json", operation_id="get_task", tags=["mcp"])
async def get_task(
    task_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Task identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve a single task.

    Returns the task along with the team's tasks, tools and agents.
    """
    return task_data(db, context, task_id)


@router.get("/task/{task_id}/edit", operation_id="task_edit_page")
@has_perms.one(Permissions.EDIT_TASK)
async def task_edit_page(
    task_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Task identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Form data for editing a task."""
    return task_data(db, context, task_id)


@router.post("/forms/task/add", operation_id="add_task")
@has_perms.one(Permissions.CREATE_TASK)
async def add_task(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Create a task.

    Validates the submitted fields and the agent, tools and context tasks they
    reference, attaches the optional icon asset and stores the task.
    """
    error = check_task_body(body, TASK_RULES)
    if error:
        return form_error(request, error)

    if not check_task_references(db, context.team_id, body):
        return form_error(request, "Invalid inputs")

    # Attach the icon before the task exists; the two writes are not atomic
    task_id = new_object_id()
    icon = AssetService(db).attach_asset_to_object(body.get("icon_id"), task_id, "tasks")

    record = TaskModel(
        id=task_id,
        org_id=context.org_id,
        team_id=context.team_id,
        icon=AssetService.icon_for(icon, task_id),
        **task_fields(body),
    )
    db.add(record)
    db.commit()
    logger.info(f"Added task {task_id} to team {context.team_id}")

    return dynamic_response(
        request, 302, {"id": task_id, "redirect": f"/{context.team_id}/tasks"}
    )


@router.post("/forms/task/{task_id}/edit", operation_id="edit_task")
@has_perms.one(Permissions.EDIT_TASK)
async def edit_task(
    request: Request,
    task_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Task identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Replace the mutable fields of a task."""
    error = check_task_body(body, EDIT_TASK_RULES)
    if error:
        return form_error(request, error)

    record = get_team_object(db, TaskModel, context.team_id, task_id)
    if not record:
        return form_error(request, "Invalid inputs")

    if not check_task_references(db, context.team_id, body):
        return form_error(request, "Invalid inputs")

    for field, value in task_fields(body).items():
        setattr(record, field, value)
    db.commit()

    return dynamic_response(request, 302, {})


@router.delete("/forms/task/{task_id}", operation_id="delete_task")
@has_perms.one(Permissions.DELETE_TASK)
async def delete_task(
    request: Request,
    task_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Task identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Delete a task.

    Apps and tasks that reference it keep their references.
    """
    record = get_team_object(db, TaskModel, context.team_id, task_id)
    if not record:
        raise HTTPException(status_code=404, detail="Task not found")
    # TODO: drop the id from apps.task_ids and tasks.context that reference it
    db.delete(record)
    db.commit()
    return dynamic_response(request, 302, {})
