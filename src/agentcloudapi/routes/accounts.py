"""API routes for accounts: sign up, sign in and account settings."""

import logging
import secrets

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ..auth import (
    TOKEN_COOKIE,
    create_access_token,
    csrf_token_for,
    get_current_account,
    hash_password,
    load_team_context,
    verify_csrf,
    verify_password,
)
from ..config import settings
from ..db import get_db
from ..db.models import Account as AccountModel
from ..db.models import Org as OrgModel
from ..db.models import Team as TeamModel
from ..db.models import TeamMember as TeamMemberModel
from ..permissions import TeamRole, permissions_for_role
from ..responses import dynamic_response, form_error
from ..schemas.account import Account, LoginResponse
from ..schemas.team import Org, Team
from ..subscription import fetch_usage, plan_limits
from ..utils import is_object_id, model_to_schema, new_object_id
from ..validation import chain_validations

logger = logging.getLogger(__name__)

router = APIRouter()

ACCOUNT_ROLES = ["developer", "data_engineer", "product_manager", "executive", "other"]

REGISTER_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "email", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "password", "validation": {"not_empty": True, "of_type": "string", "length_min": 8}},
]

LOGIN_RULES = [
    {"field": "email", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "password", "validation": {"not_empty": True, "of_type": "string"}},
]

ACCOUNT_LABELS = {"name": "Name", "email": "Email", "password": "Password"}


def normalize_email(email: str) -> str:
    return email.strip().lower()


def with_dev_token(data: dict, token: str) -> dict:
    """Include one-time tokens in responses when no mail is sent."""
    if settings.environment == "development":
        return {**data, "token": token}
    return data


def account_teams(db: Session, account: AccountModel) -> list[Team]:
    team_ids = [
        m.team_id
        for m in db.query(TeamMemberModel).filter(TeamMemberModel.account_id == account.id)
    ]
    if not team_ids:
        return []
    return [
        model_to_schema(t, Team)
        for t in db.query(TeamModel).filter(TeamModel.id.in_(team_ids))
    ]


@router.post("/forms/account/register", operation_id="register_account")
async def register(request: Request, body: dict = Body(...), db: Session = Depends(get_db)):
    """Create an account together with its own org and team.

    The account has to verify its email before it can sign in.
    """
    error = chain_validations(body, REGISTER_RULES, ACCOUNT_LABELS)
    if error:
        return form_error(request, error)

    email = normalize_email(body["email"])
    if db.query(AccountModel).filter(AccountModel.email == email).first():
        return form_error(request, "User already exists")

    account_id, org_id, team_id = new_object_id(), new_object_id(), new_object_id()
    verify_token = secrets.token_hex(32)

    # Create database records
    db.add(OrgModel(id=org_id, name=f"{body['name']}'s Org", owner_id=account_id))
    db.add(TeamModel(id=team_id, org_id=org_id, name=f"{body['name']}'s Team", owner_id=account_id))
    db.add(
        AccountModel(
            id=account_id,
            name=body["name"],
            email=email,
            password_hash=hash_password(body["password"]),
            verify_token=verify_token,
            current_org_id=org_id,
            current_team_id=team_id,
        )
    )
    db.add(
        TeamMemberModel(
            team_id=team_id,
            account_id=account_id,
            role=TeamRole.TEAM_OWNER.value,
            permissions=permissions_for_role(TeamRole.TEAM_OWNER).mask,
        )
    )
    db.commit()
    logger.info(f"Registered account {account_id} with team {team_id}")

    return dynamic_response(request, 302, with_dev_token({"redirect": "/verify"}, verify_token))


@router.post("/forms/account/login", operation_id="login")
async def login(request: Request, body: dict = Body(...), db: Session = Depends(get_db)):
    """Sign in with email and password.

    The session token is returned and also set as a cookie for browsers.
    """
    error = chain_validations(body, LOGIN_RULES, ACCOUNT_LABELS)
    if error:
        return form_error(request, error)

    account = (
        db.query(AccountModel)
        .filter(AccountModel.email == normalize_email(body["email"]))
        .first()
    )
    if not account or not verify_password(account.password_hash, body["password"]):
        return form_error(request, "Incorrect email or password", status_code=401)
    if not account.email_verified:
        return form_error(request, "Please verify your email before signing in", status_code=403)

    token = create_access_token(account.id)
    redirect = f"/{account.current_team_id}/apps" if account.onboarded else "/welcome"
    payload = LoginResponse(access_token=token, account_id=account.id, redirect=redirect)

    response = dynamic_response(request, 302, payload.model_dump())
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=settings.jwt_expiry_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.environment == "production",
    )
    logger.info(f"Account {account.id} signed in")
    return response


@router.post("/forms/account/logout", operation_id="logout", dependencies=[Depends(verify_csrf)])
async def logout(request: Request, account: AccountModel = Depends(get_current_account)):
    response = dynamic_response(request, 302, {"redirect": "/login"})
    response.delete_cookie(TOKEN_COOKIE)
    return response


@router.post("/forms/account/verify", operation_id="verify_account")
async def verify(request: Request, body: dict = Body(...), db: Session = Depends(get_db)):
    """Confirm an email address with the token issued at registration."""
    token = body.get("token")
    account = (
        db.query(AccountModel).filter(AccountModel.verify_token == token).first()
        if isinstance(token, str) and token
        else None
    )
    if not account:
        return form_error(request, "Invalid token")

    account.email_verified = True
    account.verify_token = None
    db.commit()
    return dynamic_response(request, 302, {"redirect": "/login?verifysuccess=true"})


@router.post("/forms/account/requestchangepassword", operation_id="request_change_password")
async def request_change_password(
    request: Request, body: dict = Body(...), db: Session = Depends(get_db)
):
    """Issue a password reset token.

    Answers the same whether or not the email belongs to an account.
    """
    email = body.get("email")
    data = {"redirect": "/login?changepassword=true"}
    if not isinstance(email, str) or not email.strip():
        return form_error(request, "Email is a required field")

    account = db.query(AccountModel).filter(AccountModel.email == normalize_email(email)).first()
    if account:
        account.verify_token = secrets.token_hex(32)
        db.commit()
        data = with_dev_token(data, account.verify_token)
    return dynamic_response(request, 302, data)


@router.post("/forms/account/changepassword", operation_id="change_password")
async def change_password(request: Request, body: dict = Body(...), db: Session = Depends(get_db)):
    error = chain_validations(
        body,
        [
            {"field": "token", "validation": {"not_empty": True, "of_type": "string"}},
            REGISTER_RULES[2],
        ],
        {**ACCOUNT_LABELS, "token": "Token"},
    )
    if error:
        return form_error(request, error)

    account = db.query(AccountModel).filter(AccountModel.verify_token == body["token"]).first()
    if not account:
        return form_error(request, "Invalid token")

    account.password_hash = hash_password(body["password"])
    account.verify_token = None
    # Resetting through the emailed token proves the address
    account.email_verified = True
    db.commit()
    return dynamic_response(request, 302, {"redirect": "/login?changepassword=true"})


@router.post("/forms/account/switch", operation_id="switch_team", dependencies=[Depends(verify_csrf)])
async def switch_team(
    request: Request,
    body: dict = Body(...),
    account: AccountModel = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Make another team the account's current team."""
    team_id = body.get("team_id")
    context = load_team_context(db, account, team_id) if is_object_id(team_id) else None
    if context is None:
        return form_error(request, "Invalid inputs")

    account.current_org_id = context.org_id
    account.current_team_id = context.team_id
    db.commit()
    return dynamic_response(request, 302, {"redirect": f"/{context.team_id}/apps"})


@router.post("/forms/account/role", operation_id="set_account_role", dependencies=[Depends(verify_csrf)])
async def set_role(
    request: Request,
    body: dict = Body(...),
    account: AccountModel = Depends(get_current_account),
    db: Session = Depends(get_db),
):
    """Record the persona chosen on the welcome screen."""
    error = chain_validations(
        body, [{"field": "role", "validation": {"not_empty": True, "in_set": ACCOUNT_ROLES}}], {"role": "Role"}
    )
    if error:
        return form_error(request, error)

    account.role = body["role"]
    account.onboarded = True
    db.commit()
    return dynamic_response(
        request, 302, {"redirect": f"/{account.current_team_id}/onboarding"}
    )


@router.get("/account.json", operation_id="get_account", tags=["mcp"])
async def get_account(
    account: AccountModel = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> dict:
    """The signed in account with its teams and CSRF token."""
    return {
        "csrf": csrf_token_for(account.id),
        "account": model_to_schema(account, Account),
        "teams": account_teams(db, account),
    }


@router.get("/billing.json", operation_id="get_billing", tags=["mcp"])
async def get_billing(
    account: AccountModel = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> dict:
    """Plan, limits and usage of the account's current team."""
    context = load_team_context(db, account, account.current_team_id)
    if context is None:
        raise HTTPException(status_code=404, detail="Team not found")
    return {
        "csrf": context.csrf,
        "org": model_to_schema(context.org, Org),
        "limits": {k.value: v for k, v in plan_limits(context.org.plan).items()},
        "usage": {k.value: v for k, v in fetch_usage(db, context.team_id).items()},
    }
