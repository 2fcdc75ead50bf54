"""API routes for managing model configurations."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..db.models import Model as ModelModel
from ..model_catalog import model_options
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.model import Model
from ..services.model_service import ModelService, ModelServiceError
from ..utils import OBJECT_ID_PATTERN, model_to_schema, models_to_schema, team_objects

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])


def models_data(db: Session, context: TeamContext) -> dict:
    return {
        "csrf": context.csrf,
        "models": models_to_schema(team_objects(db, ModelModel, context.team_id), Model),
        "model_options": model_options(),
    }


@router.get("/models.json", operation_id="list_models", tags=["mcp"])
@router.get("/models", operation_id="models_page")
async def list_models(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's models and the providers new models can use."""
    return models_data(db, context)


@router.get("/model/add", operation_id="model_add_page")
@has_perms.one(Permissions.CREATE_MODEL)
async def model_add_page(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    return models_data(db, context)


@router.get("/model/{model_id}.json", operation_id="get_model", tags=["mcp"])
async def get_model(
    model_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Model identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve a single model configuration."""
    record = ModelService(db, context.org_id, context.team_id).get(model_id)
    if not record:
        raise HTTPException(status_code=404, detail="Model not found")
    return {**models_data(db, context), "model": model_to_schema(record, Model)}


@router.post("/forms/model/add", operation_id="add_model")
@has_perms.one(Permissions.CREATE_MODEL)
async def add_model(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Add a model configuration.

    The model must be one the provider offers and every setting the provider
    requires must be present.
    """
    service = ModelService(db, context.org_id, context.team_id)
    try:
        record = service.add_model(body)
    except ModelServiceError as e:
        return form_error(request, str(e))

    return dynamic_response(
        request, 302, {"id": record.id, "redirect": f"/{context.team_id}/models"}
    )


@router.post("/forms/model/{model_id}/edit", operation_id="edit_model")
@has_perms.one(Permissions.EDIT_MODEL)
async def edit_model(
    request: Request,
    model_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Model identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    service = ModelService(db, context.org_id, context.team_id)
    try:
        service.edit_model(model_id, body)
    except ModelServiceError as e:
        return form_error(request, str(e))

    return dynamic_response(request, 302, {"redirect": f"/{context.team_id}/models"})


@router.delete("/forms/model/{model_id}", operation_id="delete_model")
@has_perms.one(Permissions.DELETE_MODEL)
async def delete_model(
    request: Request,
    model_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Model identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Delete a model, unsetting it wherever it is a team default."""
    if not ModelService(db, context.org_id, context.team_id).delete_model(model_id):
        raise HTTPException(status_code=404, detail="Model not found")
    logger.info(f"Deleted model {model_id} from team {context.team_id}")
    return dynamic_response(request, 302, {})
