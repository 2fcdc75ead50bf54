"""API routes for managing datasources and their Airbyte connections."""

import logging

from fastapi import (
    APIRouter,
    Body,
    Depends,
    File,
    Form,
    HTTPException,
    Path,
    Request,
    UploadFile,
)
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..config import settings
from ..db import get_db
from ..db.models import Datasource as DatasourceModel
from ..db.models import Model as ModelModel
from ..db.models import Tool as ToolModel
from ..model_catalog import is_embedding_model
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.datasource import Datasource
from ..schemas.model import Model
from ..services.airbyte_client import AirbyteClient, get_airbyte_client
from ..services.asset_service import AssetService
from ..subscription import (
    PlanLimitsKeys,
    check_subscription_boolean,
    plan_limits,
)
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

SCHEDULE_TYPES = ["manual", "basic", "cron"]

TEST_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "description", "validation": {"of_type": "string"}},
    {"field": "source_definition_id", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "source_config", "validation": {"not_empty": True, "of_type": "object"}},
]

ADD_RULES = [
    {"field": "datasource_id", "validation": {"not_empty": True, "has_length": 24, "of_type": "string"}},
    {"field": "streams", "validation": {"not_empty": True, "as_array": True, "of_type": "string"}},
    {"field": "schedule", "validation": {"of_type": "object"}},
    {"field": "model_id", "validation": {"not_empty": True, "has_length": 24, "of_type": "string"}},
    {"field": "embedding_field", "validation": {"not_empty": True, "of_type": "string"}},
]

DATASOURCE_LABELS = {
    "name": "Name",
    "description": "Description",
    "source_definition_id": "Connector",
    "source_config": "Connector Configuration",
    "datasource_id": "Datasource",
    "streams": "Streams",
    "schedule": "Schedule",
    "model_id": "Embedding Model",
    "embedding_field": "Embedding Field",
}


def datasources_data(db: Session, context: TeamContext) -> dict:
    return {
        "csrf": context.csrf,
        "datasources": models_to_schema(
            team_objects(db, DatasourceModel, context.team_id), Datasource
        ),
        "models": models_to_schema(team_objects(db, ModelModel, context.team_id), Model),
    }


def get_datasource_or_404(db: Session, context: TeamContext, datasource_id: str):
    record = get_team_object(db, DatasourceModel, context.team_id, datasource_id)
    if not record:
        raise HTTPException(status_code=404, detail="Datasource not found")
    return record


def check_schedule(schedule):
    """Validate a sync schedule; returns an error message or None."""
    if schedule is None:
        return None
    if schedule.get("schedule_type", "manual") not in SCHEDULE_TYPES:
        return f"Schedule type must be one of: {', '.join(SCHEDULE_TYPES)}"
    if schedule.get("schedule_type") == "cron" and not schedule.get("cron_expression"):
        return "Cron schedules require a cron expression"
    return None


def check_embedding_model(db: Session, team_id: str, model_id: str) -> bool:
    model = get_team_object(db, ModelModel, team_id, model_id)
    return model is not None and is_embedding_model(model.model)


@router.get("/datasources.json", operation_id="list_datasources", tags=["mcp"])
@router.get("/datasources", operation_id="datasources_page")
async def list_datasources(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's datasources.

    Each datasource carries its sync status, selected streams and schedule.
    """
    return datasources_data(db, context)


@router.get("/datasource/add", operation_id="datasource_add_page")
@has_perms.one(Permissions.CREATE_DATASOURCE)
async def datasource_add_page(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    return datasources_data(db, context)


@router.get("/datasource/{datasource_id}.json", operation_id="get_datasource", tags=["mcp"])
@router.get("/datasource/{datasource_id}/edit", operation_id="datasource_edit_page")
async def get_datasource(
    datasource_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve a single datasource."""
    record = get_datasource_or_404(db, context, datasource_id)
    return {**datasources_data(db, context), "datasource": model_to_schema(record, Datasource)}


@router.post("/forms/datasource/upload", operation_id="upload_datasource_file")
@has_perms.one(Permissions.CREATE_DATASOURCE)
async def upload_datasource_file(
    request: Request,
    file: UploadFile = File(..., description="File to embed"),
    name: str = Form(..., description="Name for the datasource"),
    model_id: str = Form(..., description="Embedding model identifier"),
    description: str = Form(None, description="Optional description"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Create a datasource from an uploaded file.

    The file is stored as an asset and the datasource starts out processing.
    """
    if not name.strip():
        return form_error(request, "Name is a required field")
    if not check_embedding_model(db, context.team_id, model_id):
        return form_error(request, "Invalid inputs")

    data = await file.read()
    max_bytes = plan_limits(context.org.plan)[PlanLimitsKeys.max_file_upload_bytes]
    if len(data) > max_bytes:
        return form_error(request, f"File exceeds the upload limit of your plan ({max_bytes} bytes)")
    if not data:
        return form_error(request, "Uploaded file is empty")

    asset = AssetService(db).store(
        context.org_id, context.team_id, file.filename, file.content_type, data
    )
    record = DatasourceModel(
        org_id=context.org_id,
        team_id=context.team_id,
        name=name,
        description=description,
        source_type="file",
        filename=asset.filename,
        model_id=model_id,
        status="processing",
    )
    db.add(record)
    db.commit()
    AssetService(db).attach_asset_to_object(asset.id, record.id, "datasources")
    logger.info(f"Created file datasource {record.id} from asset {asset.id}")

    return dynamic_response(
        request, 302, {"id": record.id, "redirect": f"/{context.team_id}/datasources"}
    )


@router.post("/forms/datasource/test", operation_id="test_datasource")
@has_perms.one(Permissions.CREATE_DATASOURCE)
async def test_datasource(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
):
    """Test a connector configuration.

    Creates the Airbyte source, checks that it can connect and discovers its
    streams. A draft datasource is recorded so the connection can be finished
    with the chosen streams.
    """
    error = chain_validations(body, TEST_RULES, DATASOURCE_LABELS)
    if error:
        return form_error(request, error)

    source = client.create_source(
        f"{body['name']} ({context.team_id})",
        body["source_definition_id"],
        body["source_config"],
    )
    source_id = source["sourceId"]

    check = client.check_source(source_id)
    if check.get("status") != "succeeded":
        client.delete_source(source_id)
        return form_error(request, check.get("message") or "Connection test failed")

    discovered = client.discover_schema(source_id)

    record = DatasourceModel(
        org_id=context.org_id,
        team_id=context.team_id,
        name=body["name"],
        description=body.get("description"),
        source_type=body["source_definition_id"],
        source_id=source_id,
        workspace_id=client.workspace_id,
        status="draft",
    )
    db.add(record)
    db.commit()
    logger.info(f"Created draft datasource {record.id} for source {source_id}")

    return dynamic_response(
        request, 302, {"datasource_id": record.id, "discovered_schema": discovered}
    )


@router.post("/forms/datasource/add", operation_id="add_datasource")
@has_perms.one(Permissions.CREATE_DATASOURCE)
@check_subscription_boolean(PlanLimitsKeys.data_connections)
async def add_datasource(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
):
    """Connect a tested datasource and start its first sync."""
    error = chain_validations(body, ADD_RULES, DATASOURCE_LABELS) or check_schedule(
        body.get("schedule")
    )
    if error:
        return form_error(request, error)

    record = get_team_object(db, DatasourceModel, context.team_id, body["datasource_id"])
    if not record or record.status != "draft" or not record.source_id:
        return form_error(request, "Invalid inputs")
    if not check_embedding_model(db, context.team_id, body["model_id"]):
        return form_error(request, "Invalid inputs")

    discovered = client.discover_schema(record.source_id)
    connection = client.create_connection(
        record.name,
        record.source_id,
        settings.airbyte_destination_id,
        client.build_sync_catalog(discovered, body["streams"]),
        body.get("schedule"),
    )
    client.trigger_sync(connection["connectionId"])

    record.connection_id = connection["connectionId"]
    record.destination_id = settings.airbyte_destination_id
    record.stream_config = {"streams": body["streams"]}
    record.schedule = body.get("schedule") or {"schedule_type": "manual"}
    record.model_id = body["model_id"]
    record.embedding_field = body["embedding_field"]
    record.status = "processing"
    db.commit()
    logger.info(f"Connected datasource {record.id} as connection {record.connection_id}")

    return dynamic_response(
        request, 302, {"id": record.id, "redirect": f"/{context.team_id}/datasources"}
    )


@router.patch("/forms/datasource/{datasource_id}/streams", operation_id="update_datasource_streams")
@has_perms.one(Permissions.EDIT_DATASOURCE)
async def update_datasource_streams(
    request: Request,
    datasource_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
):
    """Change the streams a connected datasource syncs.

    With ``sync`` set the connection is synced right away.
    """
    error = chain_validations(
        body,
        [{"field": "streams", "validation": {"not_empty": True, "as_array": True, "of_type": "string"}}],
        DATASOURCE_LABELS,
    )
    if error:
        return form_error(request, error)

    record = get_datasource_or_404(db, context, datasource_id)
    if not record.connection_id:
        return form_error(request, "Datasource is not connected")

    discovered = client.discover_schema(record.source_id)
    client.update_connection(
        record.connection_id,
        sync_catalog=client.build_sync_catalog(discovered, body["streams"]),
    )
    record.stream_config = {"streams": body["streams"]}
    if body.get("sync") is True:
        client.trigger_sync(record.connection_id)
        record.status = "processing"
    db.commit()

    return dynamic_response(request, 302, {})


@router.patch("/forms/datasource/{datasource_id}/schedule", operation_id="update_datasource_schedule")
@has_perms.one(Permissions.EDIT_DATASOURCE)
async def update_datasource_schedule(
    request: Request,
    datasource_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
):
    schedule = body.get("schedule")
    if not isinstance(schedule, dict):
        return form_error(request, "Schedule is a required field")
    error = check_schedule(schedule)
    if error:
        return form_error(request, error)

    record = get_datasource_or_404(db, context, datasource_id)
    if not record.connection_id:
        return form_error(request, "Datasource is not connected")

    client.update_connection(record.connection_id, schedule=schedule)
    record.schedule = schedule
    db.commit()

    return dynamic_response(request, 302, {})


@router.post("/forms/datasource/{datasource_id}/sync", operation_id="sync_datasource")
@has_perms.one(Permissions.SYNC_DATASOURCE)
async def sync_datasource(
    request: Request,
    datasource_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
):
    """Start a sync of a connected datasource."""
    record = get_datasource_or_404(db, context, datasource_id)
    if not record.connection_id:
        return form_error(request, "Datasource is not connected")

    client.trigger_sync(record.connection_id)
    record.status = "processing"
    db.commit()
    logger.info(f"Triggered sync of datasource {record.id}")

    return dynamic_response(request, 302, {})


@router.delete("/forms/datasource/{datasource_id}", operation_id="delete_datasource")
@has_perms.one(Permissions.DELETE_DATASOURCE)
async def delete_datasource(
    request: Request,
    datasource_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
):
    """Delete a datasource, its Airbyte connection and source, and its RAG tools."""
    record = get_datasource_or_404(db, context, datasource_id)

    if record.connection_id:
        client.delete_connection(record.connection_id)
    if record.source_id:
        client.delete_source(record.source_id)

    team_objects(db, ToolModel, context.team_id).filter(
        ToolModel.datasource_id == datasource_id
    ).delete(synchronize_session="fetch")
    db.delete(record)
    db.commit()
    logger.info(f"Deleted datasource {datasource_id} from team {context.team_id}")

    return dynamic_response(request, 302, {})
