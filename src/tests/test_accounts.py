from agentcloudapi.db.models import Account, TeamMember

from conftest import add_account


def register(client, email="grace@example.com", password="long enough"):
    return client.post(
        "/forms/account/register",
        json={"name": "Grace", "email": email, "password": password},
    )


def test_register_creates_org_and_team(client, db):
    response = register(client)
    assert response.status_code == 200
    assert response.json()["redirect"] == "/verify"

    account = db.query(Account).filter(Account.email == "grace@example.com").one()
    assert account.email_verified is False
    member = db.query(TeamMember).filter(TeamMember.account_id == account.id).one()
    assert member.role == "TEAM_OWNER"
    assert member.team_id == account.current_team_id


def test_register_rejects_short_password_and_duplicates(client, db):
    assert register(client, password="short").json() == {
        "error": "Password must be at least 8 characters"
    }
    register(client)
    assert register(client).json() == {"error": "User already exists"}


def test_verify_then_login(client, db):
    token = register(client).json()["token"]

    response = client.post("/forms/account/login", json={"email": "grace@example.com", "password": "long enough"})
    assert response.status_code == 403

    assert client.post("/forms/account/verify", json={"token": token}).status_code == 200

    response = client.post(
        "/forms/account/login", json={"email": "Grace@Example.com", "password": "long enough"}
    )
    assert response.status_code == 200
    assert response.json()["access_token"]
    assert "token" in response.cookies


def test_login_with_wrong_password(client, db):
    add_account(db, email="ada@example.com", password="correct horse")
    response = client.post("/forms/account/login", json={"email": "ada@example.com", "password": "nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Incorrect email or password"}


def test_password_reset(client, db):
    add_account(db, email="ada@example.com", password="correct horse")
    token = client.post(
        "/forms/account/requestchangepassword", json={"email": "ada@example.com"}
    ).json()["token"]

    response = client.post(
        "/forms/account/changepassword", json={"token": token, "password": "battery staple"}
    )
    assert response.status_code == 200

    response = client.post(
        "/forms/account/login", json={"email": "ada@example.com", "password": "battery staple"}
    )
    assert response.status_code == 200


def test_reset_request_for_unknown_email_looks_the_same(client):
    response = client.post("/forms/account/requestchangepassword", json={"email": "who@example.com"})
    assert response.status_code == 200
    assert "token" not in response.json()


def test_account_json_includes_csrf_and_teams(client, team):
    data = client.get("/account.json", headers=team.headers).json()
    assert data["csrf"] == team.headers["X-CSRF-Token"]
    assert [t["id"] for t in data["teams"]] == [team.slug]


def test_billing(client, team):
    data = client.get("/billing.json", headers=team.headers).json()
    assert data["org"]["plan"] == "FREE"
    assert data["limits"]["apps"] == 3
    assert data["usage"]["users"] == 1


def test_switch_team_requires_membership(client, db, team, make_team):
    other = make_team()
    response = client.post("/forms/account/switch", json={"team_id": other.slug}, headers=team.headers)
    assert response.status_code == 400

    response = client.post("/forms/account/switch", json={"team_id": team.slug}, headers=team.headers)
    assert response.json()["redirect"] == f"/{team.slug}/apps"


def test_set_role(client, db, team):
    response = client.post("/forms/account/role", json={"role": "developer"}, headers=team.headers)
    assert response.status_code == 200
    assert db.get(Account, team.owner.id).role == "developer"

    response = client.post("/forms/account/role", json={"role": "wizard"}, headers=team.headers)
    assert response.status_code == 400


def test_logout_requires_csrf(client, team):
    headers = {"Authorization": team.headers["Authorization"]}
    assert client.post("/forms/account/logout", headers=headers).status_code == 403
    assert client.post("/forms/account/logout", headers=team.headers).status_code == 200
