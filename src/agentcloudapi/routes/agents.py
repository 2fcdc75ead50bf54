"""API routes for managing agents."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..db.models import Agent as AgentModel
from ..db.models import Model as ModelModel
from ..db.models import Tool as ToolModel
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.agent import Agent
from ..schemas.model import Model
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
from ..validation import chain_validations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])

AGENT_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "role", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "goal", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "backstory", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "model_id", "validation": {"not_empty": True, "has_length": 24, "of_type": "string"}},
    {"field": "function_model_id", "validation": {"has_length": 24, "of_type": "string"}},
    {"field": "allow_delegation", "validation": {"of_type": "boolean"}},
    {"field": "verbose", "validation": {"of_type": "number"}},
    {
        "field": "tool_ids",
        "validation": {
            "has_length": 24,
            "as_array": True,
            "of_type": "string",
            "custom_error": "Invalid Tools",
        },
    },
    {"field": "icon_id", "validation": {"of_type": "string"}},
]

AGENT_LABELS = {
    "name": "Name",
    "role": "Role",
    "goal": "Goal",
    "backstory": "Backstory",
    "model_id": "Model",
    "function_model_id": "Function Calling Model",
    "allow_delegation": "Allow Delegation",
    "verbose": "Verbose",
}


def agents_data(db: Session, context: TeamContext) -> dict:
    return {
        "csrf": context.csrf,
        "agents": models_to_schema(team_objects(db, AgentModel, context.team_id), Agent),
        "models": models_to_schema(team_objects(db, ModelModel, context.team_id), Model),
        "tools": models_to_schema(team_objects(db, ToolModel, context.team_id), Tool),
    }


def check_agent_references(db: Session, team_id: str, body: dict) -> bool:
    """The models and tools an agent uses must belong to the team."""
    model_ids = {body["model_id"]}
    if body.get("function_model_id"):
        model_ids.add(body["function_model_id"])
    if count_team_objects(db, ModelModel, team_id, list(model_ids)) != len(model_ids):
        return False

    tool_ids = body.get("tool_ids") or []
    return not tool_ids or count_team_objects(db, ToolModel, team_id, tool_ids) == len(
        set(tool_ids)
    )


def agent_fields(body: dict) -> dict:
    return {
        "name": body["name"],
        "role": body["role"],
        "goal": body["goal"],
        "backstory": body["backstory"],
        "model_id": body["model_id"],
        "function_model_id": body.get("function_model_id"),
        "allow_delegation": body.get("allow_delegation") is True,
        "verbose": int(body.get("verbose") or 0),
        "tool_ids": body.get("tool_ids") or [],
    }


@router.get("/agents.json", operation_id="list_agents", tags=["mcp"])
@router.get("/agents", operation_id="agents_page")
async def list_agents(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's agents with the models and tools they can use."""
    return agents_data(db, context)


@router.get("/agent/add", operation_id="agent_add_page")
@has_perms.one(Permissions.CREATE_AGENT)
async def agent_add_page(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    return agents_data(db, context)


@router.get("/agent/{agent_id}.json", operation_id="get_agent", tags=["mcp"])
@router.get("/agent/{agent_id}/edit", operation_id="agent_edit_page")
async def get_agent(
    agent_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Agent identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve a single agent."""
    record = get_team_object(db, AgentModel, context.team_id, agent_id)
    if not record:
        raise HTTPException(status_code=404, detail="Agent not found")
    return {**agents_data(db, context), "agent": model_to_schema(record, Agent)}


@router.post("/forms/agent/add", operation_id="add_agent")
@has_perms.one(Permissions.CREATE_AGENT)
async def add_agent(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Create an agent.

    The agent's model, optional function calling model and tools must all
    belong to the team.
    """
    error = chain_validations(body, AGENT_RULES, AGENT_LABELS)
    if error:
        return form_error(request, error)
    if not check_agent_references(db, context.team_id, body):
        return form_error(request, "Invalid inputs")

    agent_id = new_object_id()
    icon = AssetService(db).attach_asset_to_object(body.get("icon_id"), agent_id, "agents")
    db.add(
        AgentModel(
            id=agent_id,
            org_id=context.org_id,
            team_id=context.team_id,
            icon=AssetService.icon_for(icon, agent_id),
            **agent_fields(body),
        )
    )
    db.commit()
    logger.info(f"Added agent {agent_id} to team {context.team_id}")

    return dynamic_response(
        request, 302, {"id": agent_id, "redirect": f"/{context.team_id}/agents"}
    )


@router.post("/forms/agent/{agent_id}/edit", operation_id="edit_agent")
@has_perms.one(Permissions.EDIT_AGENT)
async def edit_agent(
    request: Request,
    agent_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Agent identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Replace the fields of an agent."""
    error = chain_validations(body, AGENT_RULES, AGENT_LABELS)
    if error:
        return form_error(request, error)

    record = get_team_object(db, AgentModel, context.team_id, agent_id)
    if not record or not check_agent_references(db, context.team_id, body):
        return form_error(request, "Invalid inputs")

    for field, value in agent_fields(body).items():
        setattr(record, field, value)
    db.commit()

    return dynamic_response(request, 302, {"redirect": f"/{context.team_id}/agents"})


@router.delete("/forms/agent/{agent_id}", operation_id="delete_agent")
@has_perms.one(Permissions.DELETE_AGENT)
async def delete_agent(
    request: Request,
    agent_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Agent identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    record = get_team_object(db, AgentModel, context.team_id, agent_id)
    if not record:
        raise HTTPException(status_code=404, detail="Agent not found")
    db.delete(record)
    db.commit()
    logger.info(f"Deleted agent {agent_id} from team {context.team_id}")
    return dynamic_response(request, 302, {})
