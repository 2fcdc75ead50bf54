"""Subscription plans and the limits each plan grants."""

import logging
from enum import Enum
from functools import wraps
from typing import Any

from fastapi import HTTPException
from sqlalchemy.orm import Session

from .db.models import App as AppModel
from .db.models import Datasource as DatasourceModel
from .db.models import TeamMember as TeamMemberModel
from .db.models import Team as TeamModel
from .db.models import Tool as ToolModel

logger = logging.getLogger(__name__)


class SubscriptionPlan(str, Enum):
    FREE = "FREE"
    PRO = "PRO"
    TEAMS = "TEAMS"
    ENTERPRISE = "ENTERPRISE"


class PlanLimitsKeys(str, Enum):
    users = "users"
    apps = "apps"
    data_connections = "data_connections"
    max_function_tools = "max_function_tools"
    max_file_upload_bytes = "max_file_upload_bytes"


MB = 1024 * 1024

pricing_matrix: dict[SubscriptionPlan, dict[PlanLimitsKeys, Any]] = {
    SubscriptionPlan.FREE: {
        PlanLimitsKeys.users: 1,
        PlanLimitsKeys.apps: 3,
        PlanLimitsKeys.data_connections: False,
        PlanLimitsKeys.max_function_tools: False,
        PlanLimitsKeys.max_file_upload_bytes: 5 * MB,
    },
    SubscriptionPlan.PRO: {
        PlanLimitsKeys.users: 1,
        PlanLimitsKeys.apps: 20,
        PlanLimitsKeys.data_connections: True,
        PlanLimitsKeys.max_function_tools: True,
        PlanLimitsKeys.max_file_upload_bytes: 10 * MB,
    },
    SubscriptionPlan.TEAMS: {
        PlanLimitsKeys.users: 10,
        PlanLimitsKeys.apps: 100,
        PlanLimitsKeys.data_connections: True,
        PlanLimitsKeys.max_function_tools: True,
        PlanLimitsKeys.max_file_upload_bytes: 25 * MB,
    },
    SubscriptionPlan.ENTERPRISE: {
        PlanLimitsKeys.users: 1000,
        PlanLimitsKeys.apps: 10000,
        PlanLimitsKeys.data_connections: True,
        PlanLimitsKeys.max_function_tools: True,
        PlanLimitsKeys.max_file_upload_bytes: 100 * MB,
    },
}


def plan_limits(plan: str) -> dict[PlanLimitsKeys, Any]:
    """Limits for a plan name, treating unknown plans as FREE."""
    try:
        return pricing_matrix[SubscriptionPlan(plan)]
    except ValueError:
        return pricing_matrix[SubscriptionPlan.FREE]


def fetch_usage(db: Session, team_id: str) -> dict[PlanLimitsKeys, int]:
    """Count the resources a team currently consumes against its plan."""
    team = db.get(TeamModel, team_id)
    org_team_ids = [
        t.id for t in db.query(TeamModel).filter(TeamModel.org_id == team.org_id)
    ]
    return {
        # Seats are counted across the whole org
        PlanLimitsKeys.users: db.query(TeamMemberModel.account_id)
        .filter(TeamMemberModel.team_id.in_(org_team_ids))
        .distinct()
        .count(),
        PlanLimitsKeys.apps: db.query(AppModel)
        .filter(AppModel.team_id == team_id)
        .count(),
        PlanLimitsKeys.data_connections: db.query(DatasourceModel)
        .filter(DatasourceModel.team_id == team_id)
        .count(),
        PlanLimitsKeys.max_function_tools: db.query(ToolModel)
        .filter(ToolModel.team_id == team_id, ToolModel.type == "function")
        .count(),
    }


def _find(kwargs: dict, cls):
    for value in kwargs.values():
        if isinstance(value, cls):
            return value
    return None


def _guard(check):
    """Wrap a route with a check run against the caller's org plan and usage."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            # Deferred to avoid a cycle with the auth module
            from .auth import TeamContext

            context = _find(kwargs, TeamContext)
            db = _find(kwargs, Session)
            if not context or db is None:
                raise HTTPException(status_code=401, detail="Authentication required")

            error = check(context, db)
            if error:
                logger.info(f"Subscription check failed for team {context.team_id}: {error}")
                raise HTTPException(status_code=400, detail=error)

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def check_subscription_plan(plans: list[SubscriptionPlan]):
    """Require the org to be on one of the given plans."""

    def check(context, db):
        if context.org.plan not in {p.value for p in plans}:
            return f"This feature requires one of the following plans: {', '.join(p.value for p in plans)}"
        return None

    return _guard(check)


def check_subscription_limit(key: PlanLimitsKeys):
    """Require current usage of a counted resource to be below the plan limit."""

    def check(context, db):
        limit = plan_limits(context.org.plan).get(key)
        usage = fetch_usage(db, context.team_id).get(key, 0)
        if limit is not None and usage >= limit:
            return f"You have reached the {key.value} limit of your plan ({limit})"
        return None

    return _guard(check)


def check_subscription_boolean(key: PlanLimitsKeys):
    """Require a feature flag of the plan to be enabled."""

    def check(context, db):
        if not plan_limits(context.org.plan).get(key):
            return f"Your plan does not include {key.value.replace('_', ' ')}"
        return None

    return _guard(check)
