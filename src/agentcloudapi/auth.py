"""Authentication, team membership and permission utilities used by the API."""

import hashlib
import hmac
import logging
from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError
from fastapi import Depends, HTTPException, Path, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from .config import settings
from .db import get_db
from .db.models import Account as AccountModel
from .db.models import Org as OrgModel
from .db.models import Team as TeamModel
from .db.models import TeamMember as TeamMemberModel
from .permissions import Permissions, PermissionSet, resolve_permissions
from .utils import OBJECT_ID_PATTERN

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)
password_hasher = PasswordHasher()

TOKEN_COOKIE = "token"
CSRF_HEADER = "x-csrf-token"
CSRF_FIELD = "_csrf"
SAFE_METHODS = {"GET", "HEAD", "OPTIONS"}


def hash_password(password: str) -> str:
    return password_hasher.hash(password)


def verify_password(password_hash: Optional[str], password: str) -> bool:
    """Check a password against a stored argon2 hash."""
    if not password_hash:
        return False
    try:
        return password_hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False


def create_access_token(account_id: str, expires_in: Optional[int] = None) -> str:
    """Issue an HS256 JWT for an account."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": account_id,
        "iat": now,
        "exp": now + timedelta(seconds=expires_in or settings.jwt_expiry_seconds),
        "iss": "agentcloud-api",
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm="HS256")


def csrf_token_for(account_id: str) -> str:
    """Derive the CSRF token bound to an account."""
    return hmac.new(
        settings.csrf_key.encode("utf-8"), account_id.encode("utf-8"), hashlib.sha256
    ).hexdigest()


def _token_from_request(
    request: Request, credentials: Optional[HTTPAuthorizationCredentials]
) -> Optional[str]:
    if credentials and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(TOKEN_COOKIE)


async def get_optional_account(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> Optional[AccountModel]:
    """Resolve the account behind a bearer token or session cookie, if any."""
    token = _token_from_request(request, credentials)
    if not token:
        return None
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=["HS256"])
    except jwt.PyJWTError as e:
        logger.info(f"Rejected session token: {e}")
        return None
    account_id = payload.get("sub")
    if not account_id:
        return None
    return db.get(AccountModel, account_id)


async def get_current_account(
    account: Optional[AccountModel] = Depends(get_optional_account),
) -> AccountModel:
    """Require an authenticated account."""
    if account is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return account


async def verify_csrf(
    request: Request, account: AccountModel = Depends(get_current_account)
) -> None:
    """Reject mutating requests that do not carry the account's CSRF token."""
    if request.method in SAFE_METHODS:
        return

    supplied = request.headers.get(CSRF_HEADER)
    if not supplied:
        content_type = request.headers.get("content-type", "")
        if content_type.startswith("application/json"):
            try:
                body = await request.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                supplied = body.get(CSRF_FIELD)
        elif content_type.startswith(
            ("multipart/form-data", "application/x-www-form-urlencoded")
        ):
            form = await request.form()
            supplied = form.get(CSRF_FIELD)

    if not isinstance(supplied, str) or not hmac.compare_digest(
        supplied, csrf_token_for(account.id)
    ):
        raise HTTPException(status_code=403, detail="invalid csrf token")


class TeamContext:
    """The account, org, team and capabilities a team route runs with."""

    def __init__(
        self,
        account: AccountModel,
        org: OrgModel,
        team: TeamModel,
        member: TeamMemberModel,
        permissions: PermissionSet,
    ):
        self.account = account
        self.org = org
        self.team = team
        self.member = member
        self.permissions = permissions

    @property
    def team_id(self) -> str:
        return self.team.id

    @property
    def org_id(self) -> str:
        return self.org.id

    @property
    def csrf(self) -> str:
        return csrf_token_for(self.account.id)


def load_team_context(
    db: Session, account: AccountModel, team_id: str
) -> Optional[TeamContext]:
    """Build the context for an account in a team, or None if not a member."""
    team = db.get(TeamModel, team_id)
    if not team:
        return None
    member = (
        db.query(TeamMemberModel)
        .filter(
            TeamMemberModel.team_id == team_id,
            TeamMemberModel.account_id == account.id,
        )
        .first()
    )
    if not member:
        return None
    org = db.get(OrgModel, team.org_id)
    permissions = resolve_permissions(
        member.permissions, member.role, is_org_owner=org.owner_id == account.id
    )
    return TeamContext(account, org, team, member, permissions)


async def get_team_context(
    resource_slug: str = Path(..., pattern=OBJECT_ID_PATTERN),
    account: AccountModel = Depends(get_current_account),
    db: Session = Depends(get_db),
) -> TeamContext:
    """Check the resource slug names a team the account belongs to."""
    context = load_team_context(db, account, resource_slug)
    if context is None:
        raise HTTPException(status_code=403, detail="No access to this team")
    return context


def _find_context(kwargs: dict) -> Optional[TeamContext]:
    for value in kwargs.values():
        if isinstance(value, TeamContext):
            return value
    return None


def _require(check, description: str):
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            context = _find_context(kwargs)
            if not context:
                raise HTTPException(status_code=401, detail="Authentication required")

            if not check(context.permissions):
                raise HTTPException(
                    status_code=403,
                    detail=f"Missing permission: {description}",
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator


class has_perms:
    """Route decorators requiring team capabilities."""

    @staticmethod
    def one(permission: Permissions):
        """Require a single capability."""
        return _require(lambda perms: perms.has(permission), permission.name)

    @staticmethod
    def any(*permissions: Permissions):
        """Require at least one of several capabilities."""
        return _require(
            lambda perms: perms.has_any(*permissions),
            " or ".join(p.name for p in permissions),
        )
