"""API routes for managing apps and their share links."""

import logging
import secrets

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..db.models import Agent as AgentModel
from ..db.models import App as AppModel
from ..db.models import Model as ModelModel
from ..db.models import ShareLink as ShareLinkModel
from ..db.models import Task as TaskModel
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.agent import Agent
from ..schemas.app import App
from ..schemas.model import Model
from ..schemas.task import Task
from ..services.asset_service import AssetService
from ..subscription import PlanLimitsKeys, check_subscription_limit
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

APP_TYPES = ["chat", "crew"]
APP_PROCESSES = ["sequential", "hierarchical"]
SHARING_MODES = ["team", "public", "private"]

APP_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "description", "validation": {"of_type": "string"}},
    {"field": "type", "validation": {"not_empty": True, "in_set": APP_TYPES}},
    {"field": "process", "validation": {"in_set": APP_PROCESSES}},
    {"field": "sharing_mode", "validation": {"in_set": SHARING_MODES}},
    {
        "field": "agent_ids",
        "validation": {
            "not_empty": True,
            "has_length": 24,
            "as_array": True,
            "of_type": "string",
            "custom_error": "Invalid agents",
        },
    },
    {
        "field": "task_ids",
        "validation": {
            "has_length": 24,
            "as_array": True,
            "of_type": "string",
            "custom_error": "Invalid tasks",
        },
    },
    {"field": "manager_model_id", "validation": {"has_length": 24, "of_type": "string"}},
    {"field": "tags", "validation": {"as_array": True, "of_type": "string"}},
    {"field": "icon_id", "validation": {"of_type": "string"}},
]

APP_LABELS = {
    "name": "Name",
    "description": "Description",
    "type": "Type",
    "process": "Process",
    "sharing_mode": "Sharing Mode",
    "manager_model_id": "Manager Model",
    "tags": "Tags",
}


def apps_data(db: Session, context: TeamContext) -> dict:
    team_id = context.team_id
    return {
        "csrf": context.csrf,
        "apps": models_to_schema(team_objects(db, AppModel, team_id), App),
        "agents": models_to_schema(team_objects(db, AgentModel, team_id), Agent),
        "tasks": models_to_schema(team_objects(db, TaskModel, team_id), Task),
        "models": models_to_schema(team_objects(db, ModelModel, team_id), Model),
    }


def check_app_body(db: Session, team_id: str, body: dict):
    """Validate an app body; returns an error message or None."""
    error = chain_validations(body, APP_RULES, APP_LABELS)
    if error:
        return error

    agent_ids = body["agent_ids"]
    task_ids = body.get("task_ids") or []
    if body["type"] == "chat" and len(agent_ids) != 1:
        return "Chat apps must have exactly one agent"
    if body["type"] == "crew":
        if not task_ids:
            return "Crew apps must have at least one task"
        if body.get("process") == "hierarchical" and not body.get("manager_model_id"):
            return "Hierarchical crews require a manager model"

    if count_team_objects(db, AgentModel, team_id, agent_ids) != len(set(agent_ids)):
        return "Invalid inputs"
    if task_ids and count_team_objects(db, TaskModel, team_id, task_ids) != len(set(task_ids)):
        return "Invalid inputs"
    manager_model_id = body.get("manager_model_id")
    if manager_model_id and not get_team_object(db, ModelModel, team_id, manager_model_id):
        return "Invalid inputs"
    return None


def app_fields(body: dict) -> dict:
    crew = body["type"] == "crew"
    return {
        "name": body["name"],
        "description": body.get("description"),
        "type": body["type"],
        "agent_ids": body["agent_ids"],
        "task_ids": (body.get("task_ids") or []) if crew else [],
        "process": (body.get("process") or "sequential") if crew else None,
        "manager_model_id": body.get("manager_model_id") if crew else None,
        "sharing_mode": body.get("sharing_mode") or "team",
        "tags": body.get("tags") or [],
    }


@router.get("/apps.json", operation_id="list_apps", tags=["mcp"])
@router.get("/apps", operation_id="apps_page")
async def list_apps(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's apps.

    The agents, tasks and models an app can be built from are returned with them.
    """
    return apps_data(db, context)


@router.get("/app/add", operation_id="app_add_page")
@has_perms.one(Permissions.CREATE_APP)
async def app_add_page(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    return apps_data(db, context)


@router.get("/app/{app_id}.json", operation_id="get_app", tags=["mcp"])
@router.get("/app/{app_id}/edit", operation_id="app_edit_page")
async def get_app(
    app_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="App identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve a single app."""
    record = get_team_object(db, AppModel, context.team_id, app_id)
    if not record:
        raise HTTPException(status_code=404, detail="App not found")
    return {**apps_data(db, context), "app": model_to_schema(record, App)}


@router.post("/forms/app/add", operation_id="add_app")
@has_perms.one(Permissions.CREATE_APP)
@check_subscription_limit(PlanLimitsKeys.apps)
async def add_app(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Create a chat or crew app.

    Chat apps wrap exactly one agent. Crew apps run tasks with their agents in
    sequence, or under a manager model when the process is hierarchical.
    """
    error = check_app_body(db, context.team_id, body)
    if error:
        return form_error(request, error)

    app_id = new_object_id()
    icon = AssetService(db).attach_asset_to_object(body.get("icon_id"), app_id, "apps")
    db.add(
        AppModel(
            id=app_id,
            org_id=context.org_id,
            team_id=context.team_id,
            icon=AssetService.icon_for(icon, app_id),
            **app_fields(body),
        )
    )

    # Claim a share link created beforehand by the add form
    share_link_token = body.get("share_link_token")
    if share_link_token:
        link = (
            team_objects(db, ShareLinkModel, context.team_id)
            .filter(ShareLinkModel.token == share_link_token)
            .first()
        )
        if link:
            link.payload = {"id": app_id}

    db.commit()
    logger.info(f"Added {body['type']} app {app_id} to team {context.team_id}")

    return dynamic_response(
        request, 302, {"id": app_id, "redirect": f"/{context.team_id}/apps"}
    )


@router.post("/forms/app/{app_id}/edit", operation_id="edit_app")
@has_perms.one(Permissions.EDIT_APP)
async def edit_app(
    request: Request,
    app_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="App identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    error = check_app_body(db, context.team_id, body)
    if error:
        return form_error(request, error)

    record = get_team_object(db, AppModel, context.team_id, app_id)
    if not record:
        return form_error(request, "Invalid inputs")

    for field, value in app_fields(body).items():
        setattr(record, field, value)
    db.commit()

    return dynamic_response(request, 302, {"redirect": f"/{context.team_id}/apps"})


@router.delete("/forms/app/{app_id}", operation_id="delete_app")
@has_perms.one(Permissions.DELETE_APP)
async def delete_app(
    request: Request,
    app_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="App identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Delete an app and the share links pointing at it."""
    record = get_team_object(db, AppModel, context.team_id, app_id)
    if not record:
        raise HTTPException(status_code=404, detail="App not found")

    for link in team_objects(db, ShareLinkModel, context.team_id):
        if (link.payload or {}).get("id") == app_id:
            db.delete(link)
    db.delete(record)
    db.commit()
    return dynamic_response(request, 302, {})


@router.post("/forms/sharelink/add", operation_id="add_share_link")
@has_perms.one(Permissions.CREATE_APP)
async def add_share_link(
    request: Request,
    body: dict = Body(default={}),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Reserve a share link token.

    The link is bound to an app right away when ``app_id`` is given, or when
    the app created with its token is saved.
    """
    app_id = body.get("app_id")
    if app_id and not get_team_object(db, AppModel, context.team_id, app_id):
        return form_error(request, "Invalid inputs")

    link = ShareLinkModel(
        org_id=context.org_id,
        team_id=context.team_id,
        token=secrets.token_urlsafe(16),
        type="app",
        payload={"id": app_id},
    )
    db.add(link)
    db.commit()
    return dynamic_response(request, 302, {"token": link.token, "id": link.id})
