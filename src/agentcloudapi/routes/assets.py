"""API routes for uploading assets such as icons."""

from fastapi import APIRouter, Depends, File, Request, UploadFile
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..permissions import Permissions
from ..responses import dynamic_response, form_error
from ..schemas.asset import Asset
from ..services.asset_service import AssetService
from ..subscription import PlanLimitsKeys, plan_limits
from ..utils import model_to_schema

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])


@router.post("/forms/asset/add", operation_id="add_asset")
@has_perms.one(Permissions.UPLOAD_ASSET)
async def add_asset(
    request: Request,
    file: UploadFile = File(..., description="File to upload"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Upload a file.

    The returned asset id can be passed as ``icon_id`` when creating an app,
    agent or task, which links the asset to the new object.
    """
    data = await file.read()
    if not data:
        return form_error(request, "Uploaded file is empty")
    max_bytes = plan_limits(context.org.plan)[PlanLimitsKeys.max_file_upload_bytes]
    if len(data) > max_bytes:
        return form_error(request, f"File exceeds the upload limit of your plan ({max_bytes} bytes)")

    record = AssetService(db).store(
        context.org_id, context.team_id, file.filename, file.content_type, data
    )
    return dynamic_response(
        request, 302, model_to_schema(record, Asset).model_dump()
    )
