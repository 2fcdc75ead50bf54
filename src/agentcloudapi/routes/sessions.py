"""API routes for chat sessions of the team's apps."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, verify_csrf
from ..db import get_db
from ..db.models import App as AppModel
from ..db.models import ChatSession as ChatSessionModel
from ..db.models import SessionMessage as SessionMessageModel
from ..responses import dynamic_response, form_error
from ..schemas.session import Session as SessionSchema
from ..schemas.session import SessionMessage
from ..utils import (
    OBJECT_ID_PATTERN,
    get_team_object,
    model_to_schema,
    models_to_schema,
    team_objects,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])


def session_messages(db: Session, session_id: str):
    return (
        db.query(SessionMessageModel)
        .filter(SessionMessageModel.session_id == session_id)
        .order_by(SessionMessageModel.created_at)
    )


def start_session(db: Session, app: AppModel, started_by=None) -> ChatSessionModel:
    """Record a new session of an app."""
    record = ChatSessionModel(
        org_id=app.org_id,
        team_id=app.team_id,
        app_id=app.id,
        name=app.name,
        status="started",
        started_by=started_by,
    )
    db.add(record)
    db.commit()
    logger.info(f"Started session {record.id} of app {app.id}")
    return record


def get_session_or_404(db: Session, context: TeamContext, session_id: str):
    record = get_team_object(db, ChatSessionModel, context.team_id, session_id)
    if not record:
        raise HTTPException(status_code=404, detail="Session not found")
    return record


@router.get("/sessions.json", operation_id="list_sessions", tags=["mcp"])
async def list_sessions(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """List the team's sessions, most recent first."""
    records = team_objects(db, ChatSessionModel, context.team_id).order_by(
        ChatSessionModel.created_at.desc()
    )
    return {"csrf": context.csrf, "sessions": models_to_schema(records, SessionSchema)}


@router.get("/session/{session_id}.json", operation_id="get_session", tags=["mcp"])
async def get_session(
    session_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Session identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> SessionSchema:
    return model_to_schema(get_session_or_404(db, context, session_id), SessionSchema)


@router.get(
    "/session/{session_id}/messages.json",
    operation_id="list_session_messages",
    tags=["mcp"],
)
async def list_session_messages(
    session_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Session identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> list[SessionMessage]:
    """Messages of a session in the order they were sent."""
    get_session_or_404(db, context, session_id)
    return models_to_schema(session_messages(db, session_id), SessionMessage)


@router.post("/forms/session/add", operation_id="add_session")
async def add_session(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Start a session of one of the team's apps."""
    app_id = body.get("app_id")
    app = get_team_object(db, AppModel, context.team_id, app_id) if app_id else None
    if not app:
        return form_error(request, "Invalid inputs")

    record = start_session(db, app, started_by=context.account.id)
    return dynamic_response(
        request,
        302,
        {"id": record.id, "redirect": f"/{context.team_id}/session/{record.id}"},
    )


@router.post("/forms/session/{session_id}/cancel", operation_id="cancel_session")
async def cancel_session(
    request: Request,
    session_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Session identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    record = get_session_or_404(db, context, session_id)
    record.status = "terminated"
    db.commit()
    return dynamic_response(request, 302, {})


@router.delete("/forms/session/{session_id}", operation_id="delete_session")
async def delete_session(
    request: Request,
    session_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Session identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Delete a session and its messages."""
    record = get_session_or_404(db, context, session_id)
    db.query(SessionMessageModel).filter(
        SessionMessageModel.session_id == session_id
    ).delete(synchronize_session="fetch")
    db.delete(record)
    db.commit()
    return dynamic_response(request, 302, {})
