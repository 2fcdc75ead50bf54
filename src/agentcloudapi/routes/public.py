"""Unauthenticated access to publicly shared apps."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from sqlalchemy.orm import Session

from ..auth import get_optional_account
from ..db import get_db
from ..db.models import App as AppModel
from ..db.models import ChatSession as ChatSessionModel
from ..db.models import ShareLink as ShareLinkModel
from ..db.models import Task as TaskModel
from ..responses import dynamic_response
from ..schemas.app import PublicApp
from ..schemas.session import SessionMessage
from ..schemas.task import Task
from ..utils import OBJECT_ID_PATTERN, get_team_object, model_to_schema, models_to_schema
from .sessions import session_messages, start_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/s/{resource_slug}")


def share_link_grants(db: Session, team_id: str, app_id: str, token: Optional[str]) -> bool:
    """Whether an unexpired share link token points at the app."""
    if not token:
        return False
    link = (
        db.query(ShareLinkModel)
        .filter(ShareLinkModel.token == token, ShareLinkModel.team_id == team_id)
        .first()
    )
    if not link or (link.payload or {}).get("id") != app_id:
        return False
    now = datetime.now(timezone.utc).replace(tzinfo=None)
    return link.expires_at is None or link.expires_at > now


def public_app(db: Session, team_id: str, app_id: str, token: Optional[str] = None) -> AppModel:
    """Fetch an app visible without team membership, or 404."""
    app = get_team_object(db, AppModel, team_id, app_id)
    if not app or not (
        app.sharing_mode == "public" or share_link_grants(db, team_id, app_id, token)
    ):
        raise HTTPException(status_code=404, detail="App not found")
    return app


@router.get("/app/{app_id}", operation_id="get_public_app")
async def get_public_app(
    resource_slug: str = Path(..., pattern=OBJECT_ID_PATTERN),
    app_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="App identifier"),
    token: str = Query(None, description="Share link token"),
    db: Session = Depends(get_db),
) -> PublicApp:
    """Describe a shared app to a visitor."""
    return model_to_schema(public_app(db, resource_slug, app_id, token), PublicApp)


@router.get("/session/{session_id}/messages.json", operation_id="list_public_session_messages")
async def list_public_session_messages(
    resource_slug: str = Path(..., pattern=OBJECT_ID_PATTERN),
    session_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Session identifier"),
    token: str = Query(None, description="Share link token"),
    db: Session = Depends(get_db),
) -> list[SessionMessage]:
    """Messages of a session started from a shared app."""
    record = get_team_object(db, ChatSessionModel, resource_slug, session_id)
    if not record:
        raise HTTPException(status_code=404, detail="Session not found")
    public_app(db, resource_slug, record.app_id, token)
    return models_to_schema(session_messages(db, session_id), SessionMessage)


@router.get("/task.json", operation_id="get_public_task")
async def get_public_task(
    resource_slug: str = Path(..., pattern=OBJECT_ID_PATTERN),
    app_id: str = Query(..., pattern=OBJECT_ID_PATTERN, description="Shared app identifier"),
    name: str = Query(..., description="Task name"),
    token: str = Query(None, description="Share link token"),
    db: Session = Depends(get_db),
) -> Task:
    """Look up a task of a shared crew app by name.

    Visitors need the task's human input form to answer it.
    """
    app = public_app(db, resource_slug, app_id, token)
    record = (
        db.query(TaskModel)
        .filter(
            TaskModel.team_id == resource_slug,
            TaskModel.id.in_(app.task_ids or []),
            TaskModel.name == name,
        )
        .first()
    )
    if not record:
        raise HTTPException(status_code=404, detail="Task not found")
    return model_to_schema(record, Task)


@router.post("/forms/app/{app_id}/start", operation_id="start_public_session")
async def start_public_session(
    request: Request,
    resource_slug: str = Path(..., pattern=OBJECT_ID_PATTERN),
    app_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="App identifier"),
    token: str = Query(None, description="Share link token"),
    account=Depends(get_optional_account),
    db: Session = Depends(get_db),
):
    """Start a session of a shared app, signed in or not."""
    app = public_app(db, resource_slug, app_id, token)
    record = start_session(db, app, started_by=account.id if account else None)
    return dynamic_response(
        request,
        302,
        {"id": record.id, "redirect": f"/s/{resource_slug}/session/{record.id}"},
    )
