import os

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("ENABLE_SCHEDULER", "false")
os.environ.setdefault("ENVIRONMENT", "development")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agentcloudapi.auth import create_access_token, csrf_token_for, hash_password
from agentcloudapi.config import settings
from agentcloudapi.db import Base, get_db
from agentcloudapi.db import models  # noqa: F401
from agentcloudapi.db.models import Account, Org, Team, TeamMember
from agentcloudapi.main import app
from agentcloudapi.permissions import permissions_for_role
from agentcloudapi.utils import new_object_id


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    TestingSessionLocal = sessionmaker(
        autocommit=False, autoflush=False, expire_on_commit=False, bind=engine
    )
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def client(db, tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "asset_storage_path", str(tmp_path / "assets"))

    def override_db():
        yield db

    app.dependency_overrides[get_db] = override_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(account_id: str) -> dict:
    return {
        "Authorization": f"Bearer {create_access_token(account_id)}",
        "X-CSRF-Token": csrf_token_for(account_id),
        "Accept": "application/json",
    }


def add_account(db, name="Ada", email=None, password="correct horse"):
    account = Account(
        id=new_object_id(),
        name=name,
        email=email or f"{new_object_id()}@example.com",
        password_hash=hash_password(password),
        email_verified=True,
        onboarded=True,
    )
    db.add(account)
    db.commit()
    return account


def add_member(db, team, account, role="TEAM_MEMBER"):
    member = TeamMember(
        team_id=team.id,
        account_id=account.id,
        role=role,
        permissions=permissions_for_role(role).mask,
    )
    db.add(member)
    db.commit()
    return member


@pytest.fixture
def make_team(db):
    """Create an org and team owned by a fresh account."""

    def _make(plan="FREE"):
        owner = add_account(db)
        org = Org(id=new_object_id(), name="Org", owner_id=owner.id, plan=plan)
        team = Team(id=new_object_id(), org_id=org.id, name="Team", owner_id=owner.id)
        db.add_all([org, team])
        db.commit()
        owner.current_org_id = org.id
        owner.current_team_id = team.id
        db.commit()
        add_member(db, team, owner, role="TEAM_OWNER")
        return SimpleNamespace(
            org=org,
            team=team,
            owner=owner,
            slug=team.id,
            headers=auth_headers(owner.id),
        )

    return _make


@pytest.fixture
def team(make_team):
    return make_team()
