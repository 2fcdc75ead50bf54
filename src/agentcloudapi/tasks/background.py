"""Periodic jobs run by the application scheduler."""

import logging

from ..db import db_manager
from ..db.models import Datasource as DatasourceModel
from ..db.models import Notification as NotificationModel
from ..services.airbyte_client import AirbyteClient, AirbyteClientError

logger = logging.getLogger(__name__)

FAILED_JOB_STATUSES = {"failed", "cancelled", "incomplete"}


async def refresh_datasource_jobs(session_factory=None, client: AirbyteClient = None) -> int:
    """Mark processing datasources whose latest sync job failed as errored.

    Returns the number of datasources moved to the error status.
    """
    SessionLocal = session_factory or db_manager.get_session_local()
    owns_client = client is None
    client = client or AirbyteClient()
    db = SessionLocal()
    failed = 0
    try:
        processing = db.query(DatasourceModel).filter(
            DatasourceModel.status == "processing",
            DatasourceModel.connection_id.isnot(None),
        )
        for record in processing.all():
            try:
                jobs = client.list_jobs(record.connection_id, limit=1)
            except AirbyteClientError as e:
                logger.warning(f"Could not fetch jobs of datasource {record.id}: {e}")
                continue
            if not jobs:
                continue

            status = (jobs[0].get("job") or {}).get("status")
            if status in FAILED_JOB_STATUSES:
                record.status = "error"
                db.add(
                    NotificationModel(
                        org_id=record.org_id,
                        team_id=record.team_id,
                        type="datasource",
                        title="Sync failed",
                        description=f"Syncing datasource {record.name} ended with status {status}",
                    )
                )
                failed += 1
                logger.info(f"Datasource {record.id} sync {status}, marked as error")
        db.commit()
    finally:
        db.close()
        if owns_client:
            client.close()
    return failed
