"""API routes for managing tools and function tool revisions."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..db.models import Datasource as DatasourceModel
from ..db.models import Tool as ToolModel
from ..db.models import ToolRevision as ToolRevisionModel
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.datasource import Datasource
from ..schemas.tool import Tool, ToolRevision
from ..subscription import PlanLimitsKeys, plan_limits
from ..utils import (
    OBJECT_ID_PATTERN,
    get_team_object,
    model_to_schema,
    models_to_schema,
    team_objects,
)
from ..validation import chain_validations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])

TOOL_TYPES = ["function", "rag", "builtin"]

TOOL_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "description", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "type", "validation": {"not_empty": True, "in_set": TOOL_TYPES}},
    {"field": "data", "validation": {"of_type": "object"}},
    {"field": "datasource_id", "validation": {"has_length": 24, "of_type": "string"}},
]

TOOL_LABELS = {
    "name": "Name",
    "description": "Description",
    "type": "Type",
    "data": "Data",
    "datasource_id": "Datasource",
}


def tools_data(db: Session, context: TeamContext) -> dict:
    return {
        "csrf": context.csrf,
        "tools": models_to_schema(team_objects(db, ToolModel, context.team_id), Tool),
        "datasources": models_to_schema(
            team_objects(db, DatasourceModel, context.team_id), Datasource
        ),
    }


def check_tool_body(db: Session, context: TeamContext, body: dict):
    """Validate a tool body against the rules and the org plan."""
    error = chain_validations(body, TOOL_RULES, TOOL_LABELS)
    if error:
        return error

    if body["type"] == "function":
        if not plan_limits(context.org.plan).get(PlanLimitsKeys.max_function_tools):
            return "Your plan does not include function tools"
        if not (body.get("data") or {}).get("code"):
            return "Function tools must have code"
    elif body["type"] == "rag":
        datasource_id = body.get("datasource_id")
        if not datasource_id or not get_team_object(
            db, DatasourceModel, context.team_id, datasource_id
        ):
            return "Invalid inputs"
    return None


def tool_fields(body: dict) -> dict:
    return {
        "name": body["name"],
        "description": body["description"],
        "type": body["type"],
        "data": body.get("data") or {},
        "datasource_id": body.get("datasource_id") if body["type"] == "rag" else None,
        # No separate deployment step; a saved tool can be used right away
        "state": "ready",
    }


@router.get("/tools.json", operation_id="list_tools", tags=["mcp"])
@router.get("/tools", operation_id="tools_page")
async def list_tools(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's tools and the datasources RAG tools can query."""
    return tools_data(db, context)


@router.get("/tool/add", operation_id="tool_add_page")
@has_perms.one(Permissions.CREATE_TOOL)
async def tool_add_page(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    return tools_data(db, context)


@router.get("/tool/{tool_id}.json", operation_id="get_tool", tags=["mcp"])
@router.get("/tool/{tool_id}/edit", operation_id="tool_edit_page")
async def get_tool(
    tool_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Tool identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve a tool with its revision history, newest first."""
    record = get_team_object(db, ToolModel, context.team_id, tool_id)
    if not record:
        raise HTTPException(status_code=404, detail="Tool not found")
    revisions = (
        team_objects(db, ToolRevisionModel, context.team_id)
        .filter(ToolRevisionModel.tool_id == tool_id)
        .order_by(ToolRevisionModel.created_at.desc())
    )
    return {
        **tools_data(db, context),
        "tool": model_to_schema(record, Tool),
        "revisions": models_to_schema(revisions, ToolRevision),
    }


@router.post("/forms/tool/add", operation_id="add_tool")
@has_perms.one(Permissions.CREATE_TOOL)
async def add_tool(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Create a tool.

    Function tools need a plan that includes them and carry their code in
    ``data``; RAG tools must name a datasource of the team.
    """
    error = check_tool_body(db, context, body)
    if error:
        return form_error(request, error)

    record = ToolModel(org_id=context.org_id, team_id=context.team_id, **tool_fields(body))
    db.add(record)
    db.commit()
    logger.info(f"Added {record.type} tool {record.id} to team {context.team_id}")

    return dynamic_response(
        request, 302, {"id": record.id, "redirect": f"/{context.team_id}/tools"}
    )


@router.post("/forms/tool/{tool_id}/edit", operation_id="edit_tool")
@has_perms.one(Permissions.EDIT_TOOL)
async def edit_tool(
    request: Request,
    tool_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Tool identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Replace a tool, keeping the previous function code as a revision."""
    error = check_tool_body(db, context, body)
    if error:
        return form_error(request, error)

    record = get_team_object(db, ToolModel, context.team_id, tool_id)
    if not record:
        return form_error(request, "Invalid inputs")

    fields = tool_fields(body)
    if record.type == "function" and record.data and record.data != fields["data"]:
        db.add(
            ToolRevisionModel(
                org_id=context.org_id,
                team_id=context.team_id,
                tool_id=record.id,
                content=record.data,
            )
        )
    for field, value in fields.items():
        setattr(record, field, value)
    db.commit()

    return dynamic_response(request, 302, {"redirect": f"/{context.team_id}/tools"})


@router.delete("/forms/tool/{tool_id}", operation_id="delete_tool")
@has_perms.one(Permissions.DELETE_TOOL)
async def delete_tool(
    request: Request,
    tool_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Tool identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    record = get_team_object(db, ToolModel, context.team_id, tool_id)
    if not record:
        raise HTTPException(status_code=404, detail="Tool not found")
    team_objects(db, ToolRevisionModel, context.team_id).filter(
        ToolRevisionModel.tool_id == tool_id
    ).delete(synchronize_session="fetch")
    db.delete(record)
    db.commit()
    return dynamic_response(request, 302, {})


@router.post("/forms/revision/{revision_id}/apply", operation_id="apply_tool_revision")
@has_perms.one(Permissions.EDIT_TOOL)
async def apply_tool_revision(
    request: Request,
    revision_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Revision identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Restore a tool's function code from one of its revisions."""
    revision = get_team_object(db, ToolRevisionModel, context.team_id, revision_id)
    if not revision:
        raise HTTPException(status_code=404, detail="Revision not found")
    tool = get_team_object(db, ToolModel, context.team_id, revision.tool_id)
    if not tool:
        raise HTTPException(status_code=404, detail="Tool not found")

    tool.data = revision.content
    db.commit()
    logger.info(f"Applied revision {revision_id} to tool {tool.id}")

    return dynamic_response(
        request, 302, {"redirect": f"/{context.team_id}/tool/{tool.id}/edit"}
    )


@router.delete("/forms/revision/{revision_id}", operation_id="delete_tool_revision")
@has_perms.one(Permissions.EDIT_TOOL)
async def delete_tool_revision(
    request: Request,
    revision_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Revision identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    revision = get_team_object(db, ToolRevisionModel, context.team_id, revision_id)
    if not revision:
        raise HTTPException(status_code=404, detail="Revision not found")
    db.delete(revision)
    db.commit()
    return dynamic_response(request, 302, {})
