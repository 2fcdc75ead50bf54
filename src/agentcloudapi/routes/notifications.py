"""API routes for team notifications."""

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, verify_csrf
from ..db import get_db
from ..db.models import Notification as NotificationModel
from ..responses import dynamic_response, form_error
from ..schemas.notification import Notification
from ..utils import models_to_schema, team_objects

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])


@router.get("/notifications.json", operation_id="list_notifications", tags=["mcp"])
async def list_notifications(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's notifications, newest first."""
    records = team_objects(db, NotificationModel, context.team_id).order_by(
        NotificationModel.created_at.desc()
    )
    return {"csrf": context.csrf, "notifications": models_to_schema(records, Notification)}


@router.patch("/forms/notification/seen", operation_id="mark_notifications_seen")
async def mark_notifications_seen(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Mark the given notifications as seen."""
    ids = body.get("notification_ids")
    if not isinstance(ids, list) or not ids:
        return form_error(request, "Invalid inputs")

    team_objects(db, NotificationModel, context.team_id).filter(
        NotificationModel.id.in_(ids)
    ).update({NotificationModel.seen: True}, synchronize_session="fetch")
    db.commit()
    return dynamic_response(request, 302, {})
