"""Onboarding: connector discovery and choosing the team's default models."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..services.airbyte_client import (
    AirbyteClient,
    AirbyteClientError,
    get_airbyte_client,
)
from ..services.connectors import filter_connectors
from ..services.model_configuration import (
    ModelConfigurationForm,
    submit_model_configuration,
)
from ..services.model_service import ModelService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])

CONNECTOR_LIST_ERROR = "Failed to fetch connector list, please ensure Airbyte is running."


@router.get("/onboarding", operation_id="list_connectors", tags=["mcp"])
async def list_connectors(
    search: str = Query(None, description="Case-insensitive connector name filter"),
    context: TeamContext = Depends(get_team_context),
    client: AirbyteClient = Depends(get_airbyte_client),
) -> dict:
    """List the connectors a datasource can be created from.

    Connectors sharing a name are listed once.
    """
    try:
        connectors = client.list_source_definitions()
    except AirbyteClientError as e:
        logger.error(f"Fetching connectors failed: {e}")
        raise HTTPException(status_code=502, detail=CONNECTOR_LIST_ERROR)
    return {"csrf": context.csrf, "connectors": filter_connectors(connectors, search)}


@router.get("/onboarding/configuremodels", operation_id="model_configuration_form")
async def model_configuration_form(
    llm_type: str = Query(None, description="Provider chosen for the LLM"),
    embedding_type: str = Query(None, description="Provider chosen for embeddings"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Current state of the default model form.

    The form starts from the team's default models. Choosing another provider
    for either model clears that model.
    """
    team_models = ModelService(db, context.org_id, context.team_id).team_models()
    form = ModelConfigurationForm.from_team_models(
        team_models["llm_model"], team_models["embedding_model"]
    )
    try:
        if llm_type:
            form.llm.select_type(llm_type)
        if embedding_type:
            form.embedding.select_type(embedding_type)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid model type")
    return {"csrf": context.csrf, **form.to_dict()}


@router.post("/onboarding/configuremodels", operation_id="configure_models")
@has_perms.one(Permissions.CREATE_MODEL)
async def configure_models(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Save the chosen models and make them the team defaults."""
    try:
        form = ModelConfigurationForm.from_body(body)
    except ValueError as e:
        return form_error(request, str(e))
    error = form.validate()
    if error:
        return form_error(request, error)

    service = ModelService(db, context.org_id, context.team_id)

    async def add_model(model_body):
        return service.add_model(model_body)

    async def set_default_model(model_id, slot):
        return service.set_default_model(model_id, slot)

    result = await submit_model_configuration(
        form, context.team_id, add_model, set_default_model
    )
    return dynamic_response(request, 302, result)
