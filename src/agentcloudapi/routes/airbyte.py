"""Airbyte proxy endpoints and the webhooks that drive datasource status."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context
from ..db import get_db
from ..db.models import Datasource as DatasourceModel
from ..db.models import Notification as NotificationModel
from ..services.airbyte_client import AirbyteClient, get_airbyte_client
from ..utils import OBJECT_ID_PATTERN, get_team_object

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}/airbyte")
webhooks_router = APIRouter(prefix="/webhook")


def connected_datasource(db: Session, context: TeamContext, datasource_id: str):
    record = get_team_object(db, DatasourceModel, context.team_id, datasource_id)
    if not record:
        raise HTTPException(status_code=404, detail="Datasource not found")
    return record


@router.get("/specification", operation_id="get_connector_specification", tags=["mcp"])
async def get_specification(
    source_definition_id: str = Query(..., description="Connector definition identifier"),
    context: TeamContext = Depends(get_team_context),
    client: AirbyteClient = Depends(get_airbyte_client),
) -> dict:
    """Fetch the configuration form a connector expects."""
    return client.get_specification(source_definition_id)


@router.get("/schema", operation_id="get_datasource_schema", tags=["mcp"])
async def get_schema(
    datasource_id: str = Query(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
) -> dict:
    """Discover the streams a datasource's source exposes."""
    record = connected_datasource(db, context, datasource_id)
    if not record.source_id:
        raise HTTPException(status_code=404, detail="Datasource has no source")
    return client.discover_schema(record.source_id)


@router.get("/jobs", operation_id="list_datasource_jobs", tags=["mcp"])
async def list_jobs(
    datasource_id: str = Query(..., pattern=OBJECT_ID_PATTERN, description="Datasource identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
    client: AirbyteClient = Depends(get_airbyte_client),
) -> list[dict]:
    """List recent sync jobs of a datasource's connection."""
    record = connected_datasource(db, context, datasource_id)
    if not record.connection_id:
        return []
    return client.list_jobs(record.connection_id)


def _connection_id_from(body: dict):
    """Airbyte notifications nest the connection; plain callers send it flat."""
    connection_id = body.get("connection_id")
    if not connection_id:
        data = body.get("data")
        connection = data.get("connection") if isinstance(data, dict) else None
        connection_id = connection.get("id") if isinstance(connection, dict) else None
    return connection_id if isinstance(connection_id, str) else None


@webhooks_router.post("/sync-successful", operation_id="sync_successful_webhook")
async def sync_successful(body: dict = Body(...), db: Session = Depends(get_db)) -> dict:
    """Mark a synced datasource as embedding.

    Called by Airbyte when a connection sync finishes.
    """
    connection_id = _connection_id_from(body)
    if not connection_id:
        raise HTTPException(status_code=400, detail="Missing connection id")

    record = (
        db.query(DatasourceModel)
        .filter(DatasourceModel.connection_id == connection_id)
        .first()
    )
    if not record:
        raise HTTPException(status_code=404, detail="Datasource not found")

    record.status = "embedding"
    record.last_synced_at = datetime.now(timezone.utc).replace(tzinfo=None)
    if isinstance(body.get("record_count"), dict):
        record.record_count = body["record_count"]
    db.commit()
    logger.info(f"Datasource {record.id} synced, embedding")
    return {"id": record.id, "status": record.status}


@webhooks_router.post("/embed-successful", operation_id="embed_successful_webhook")
async def embed_successful(body: dict = Body(...), db: Session = Depends(get_db)) -> dict:
    """Mark an embedded datasource as ready and notify its team."""
    datasource_id = body.get("datasource_id")
    record = db.get(DatasourceModel, datasource_id) if isinstance(datasource_id, str) else None
    if not record:
        raise HTTPException(status_code=404, detail="Datasource not found")

    record.status = "ready"
    db.add(
        NotificationModel(
            org_id=record.org_id,
            team_id=record.team_id,
            type="datasource",
            title="Embedding complete",
            description=f"Datasource {record.name} is ready to use",
        )
    )
    db.commit()
    logger.info(f"Datasource {record.id} embedded, ready")
    return {"id": record.id, "status": record.status}
