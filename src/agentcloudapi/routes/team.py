"""API routes for teams, their members and default models."""

import logging
import secrets

from fastapi import APIRouter, Body, Depends, HTTPException, Path, Request
from sqlalchemy.orm import Session

from ..auth import TeamContext, get_team_context, has_perms, verify_csrf
from ..db import get_db
from ..db.models import Account as AccountModel
from ..db.models import Team as TeamModel
from ..db.models import TeamMember as TeamMemberModel
from ..permissions import (
    Permissions,
    PermissionSet,
    TeamRole,
    permissions_for_role,
    resolve_permissions,
)
from ..responses import dynamic_response, form_error
from ..schemas.model import Model
from ..schemas.team import Org, Team, TeamMember
from ..services.model_service import ModelService, ModelServiceError
from ..subscription import (
    PlanLimitsKeys,
    SubscriptionPlan,
    check_subscription_limit,
    check_subscription_plan,
)
from ..utils import OBJECT_ID_PATTERN, model_to_schema, new_object_id
from ..validation import chain_validations

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/{resource_slug}", dependencies=[Depends(verify_csrf)])

# Ownership is only ever changed by transferring it
GRANTABLE_PERMISSIONS = [
    p
    for p in Permissions
    if p not in (Permissions.ORG_OWNER, Permissions.ORG_ADMIN, Permissions.TEAM_OWNER)
]

INVITE_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "email", "validation": {"not_empty": True, "of_type": "string"}},
    {
        "field": "role",
        "validation": {"in_set": [TeamRole.TEAM_MEMBER.value, TeamRole.TEAM_ADMIN.value]},
    },
]

INVITE_LABELS = {"name": "Name", "email": "Email", "role": "Role"}


def member_schema(db: Session, context: TeamContext, member: TeamMemberModel) -> TeamMember:
    account = db.get(AccountModel, member.account_id)
    permissions = resolve_permissions(
        member.permissions, member.role, is_org_owner=context.org.owner_id == member.account_id
    )
    return TeamMember(
        id=member.id,
        account_id=member.account_id,
        name=account.name if account else None,
        email=account.email if account else None,
        role=member.role,
        permissions=permissions.names(),
    )


def find_member(db: Session, team_id: str, account_id: str):
    return (
        db.query(TeamMemberModel)
        .filter(TeamMemberModel.team_id == team_id, TeamMemberModel.account_id == account_id)
        .first()
    )


@router.get("/team.json", operation_id="get_team", tags=["mcp"])
@router.get("/team", operation_id="team_page")
async def get_team(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """Retrieve the team with its members and the other teams of its org."""
    members = db.query(TeamMemberModel).filter(TeamMemberModel.team_id == context.team_id)
    org_teams = db.query(TeamModel).filter(TeamModel.org_id == context.org_id)
    return {
        "csrf": context.csrf,
        "org": Org.model_validate(context.org, from_attributes=True),
        "team": model_to_schema(context.team, Team),
        "members": [member_schema(db, context, m) for m in members],
        "teams": [model_to_schema(t, Team) for t in org_teams],
        "permissions": context.permissions.names(),
    }


@router.get("/team/models.json", operation_id="get_team_models", tags=["mcp"])
async def get_team_models(
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> dict:
    """The team's default LLM and embedding models."""
    team_models = ModelService(db, context.org_id, context.team_id).team_models()
    return {
        slot: model_to_schema(record, Model) if record else None
        for slot, record in team_models.items()
    }


@router.get("/team/{member_id}.json", operation_id="get_team_member", tags=["mcp"])
async def get_team_member(
    member_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Member account identifier"),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
) -> TeamMember:
    member = find_member(db, context.team_id, member_id)
    if not member:
        raise HTTPException(status_code=404, detail="Team member not found")
    return member_schema(db, context, member)


@router.post("/forms/team/{member_id}/edit", operation_id="edit_team_member")
@has_perms.one(Permissions.EDIT_TEAM_MEMBER)
async def edit_team_member(
    request: Request,
    member_id: str = Path(..., pattern=OBJECT_ID_PATTERN, description="Member account identifier"),
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Change a member's role and extra capabilities.

    ``permissions`` lists capability names granted on top of the role. The
    team owner cannot be edited.
    """
    member = find_member(db, context.team_id, member_id)
    if not member:
        return form_error(request, "Invalid inputs")
    if member.account_id == context.team.owner_id:
        return form_error(request, "The team owner cannot be edited")

    role = body.get("role", member.role)
    if role not in (TeamRole.TEAM_MEMBER.value, TeamRole.TEAM_ADMIN.value):
        return form_error(request, "Invalid role")

    names = body.get("permissions") or []
    grantable = {p.name: p for p in GRANTABLE_PERMISSIONS}
    if not isinstance(names, list) or any(name not in grantable for name in names):
        return form_error(request, "Invalid permissions")

    member.role = role
    member.permissions = PermissionSet.of(*(grantable[name] for name in names)).mask
    db.commit()
    logger.info(f"Updated member {member_id} of team {context.team_id}")

    return dynamic_response(request, 302, {})


@router.post("/forms/team/invite", operation_id="invite_team_member")
@has_perms.one(Permissions.ADD_TEAM_MEMBER)
@check_subscription_plan([SubscriptionPlan.TEAMS, SubscriptionPlan.ENTERPRISE])
@check_subscription_limit(PlanLimitsKeys.users)
async def invite_team_member(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Add an account to the team, creating an unverified account when needed."""
    error = chain_validations(body, INVITE_RULES, INVITE_LABELS)
    if error:
        return form_error(request, error)

    email = body["email"].strip().lower()
    account = db.query(AccountModel).filter(AccountModel.email == email).first()
    if account is None:
        account = AccountModel(
            name=body["name"],
            email=email,
            verify_token=secrets.token_hex(32),
            current_org_id=context.org_id,
            current_team_id=context.team_id,
        )
        db.add(account)
        db.flush()
    elif find_member(db, context.team_id, account.id):
        return form_error(request, "User is already a member of this team")

    role = body.get("role") or TeamRole.TEAM_MEMBER.value
    db.add(
        TeamMemberModel(
            team_id=context.team_id,
            account_id=account.id,
            role=role,
            permissions=permissions_for_role(role).mask,
        )
    )
    db.commit()
    logger.info(f"Invited account {account.id} to team {context.team_id} as {role}")

    return dynamic_response(request, 302, {"id": account.id})


@router.delete("/forms/team/invite", operation_id="remove_team_member")
@has_perms.one(Permissions.REMOVE_TEAM_MEMBER)
async def remove_team_member(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    member_id = body.get("member_id")
    member = find_member(db, context.team_id, member_id) if member_id else None
    if not member:
        return form_error(request, "Invalid inputs")
    if member.account_id == context.team.owner_id:
        return form_error(request, "The team owner cannot be removed")

    db.delete(member)
    db.commit()
    logger.info(f"Removed account {member_id} from team {context.team_id}")
    return dynamic_response(request, 302, {})


@router.post("/forms/team/transfer-ownership", operation_id="transfer_team_ownership")
@has_perms.any(Permissions.ORG_OWNER, Permissions.TEAM_OWNER)
async def transfer_ownership(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Hand the team to another member, who becomes its owner.

    The previous owner stays on the team as an admin.
    """
    new_owner_id = body.get("new_owner_id")
    new_owner = find_member(db, context.team_id, new_owner_id) if new_owner_id else None
    if not new_owner:
        return form_error(request, "Invalid inputs")

    previous_owner = find_member(db, context.team_id, context.team.owner_id)
    if previous_owner and previous_owner.id != new_owner.id:
        previous_owner.role = TeamRole.TEAM_ADMIN.value
        previous_owner.permissions = permissions_for_role(TeamRole.TEAM_ADMIN).mask

    new_owner.role = TeamRole.TEAM_OWNER.value
    new_owner.permissions = permissions_for_role(TeamRole.TEAM_OWNER).mask
    context.team.owner_id = new_owner.account_id
    db.commit()
    logger.info(f"Transferred team {context.team_id} to account {new_owner.account_id}")

    return dynamic_response(request, 302, {})


@router.post("/forms/team/add", operation_id="add_team")
@has_perms.any(Permissions.ORG_OWNER, Permissions.ORG_ADMIN)
@check_subscription_plan([SubscriptionPlan.TEAMS, SubscriptionPlan.ENTERPRISE])
async def add_team(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Create another team in the org, owned by the caller."""
    error = chain_validations(
        body, [{"field": "name", "validation": {"not_empty": True, "of_type": "string"}}], {"name": "Team Name"}
    )
    if error:
        return form_error(request, error)

    team_id = new_object_id()
    db.add(
        TeamModel(id=team_id, org_id=context.org_id, name=body["name"], owner_id=context.account.id)
    )
    db.add(
        TeamMemberModel(
            team_id=team_id,
            account_id=context.account.id,
            role=TeamRole.TEAM_OWNER.value,
            permissions=permissions_for_role(TeamRole.TEAM_OWNER).mask,
        )
    )
    db.commit()
    logger.info(f"Created team {team_id} in org {context.org_id}")

    return dynamic_response(request, 302, {"id": team_id, "redirect": f"/{team_id}/apps"})


@router.post("/forms/team/set-default-model", operation_id="set_default_model")
@has_perms.one(Permissions.EDIT_MODEL)
async def set_default_model(
    request: Request,
    body: dict = Body(...),
    context: TeamContext = Depends(get_team_context),
    db: Session = Depends(get_db),
):
    """Point the team's default LLM or embedding model at one of its models."""
    service = ModelService(db, context.org_id, context.team_id)
    try:
        service.set_default_model(body.get("model_id"), body.get("type"))
    except ModelServiceError as e:
        return form_error(request, str(e))
    return dynamic_response(request, 302, {})
