from datetime import datetime, timedelta, timezone

import pytest

from agentcloudapi.db.models import App, ChatSession, SessionMessage, ShareLink, Task
from agentcloudapi.utils import new_object_id

JSON = {"Accept": "application/json"}


@pytest.fixture
def make_app(db, team):
    def _make(sharing_mode="public", **overrides):
        fields = {"name": "Helper", "type": "chat", "agent_ids": [new_object_id()]}
        fields.update(overrides)
        record = App(
            org_id=team.org.id, team_id=team.team.id, sharing_mode=sharing_mode, **fields
        )
        db.add(record)
        db.commit()
        return record

    return _make


def add_link(db, team, app, expires_at=None):
    link = ShareLink(
        org_id=team.org.id,
        team_id=team.team.id,
        token=new_object_id(),
        payload={"id": app.id},
        expires_at=expires_at,
    )
    db.add(link)
    db.commit()
    return link


def test_public_app_is_visible_without_account(client, team, make_app):
    app = make_app()
    response = client.get(f"/s/{team.slug}/app/{app.id}")
    assert response.status_code == 200
    assert response.json() == {
        "id": app.id,
        "name": "Helper",
        "description": None,
        "type": "chat",
        "icon": None,
    }


def test_team_app_is_hidden(client, team, make_app):
    app = make_app(sharing_mode="team")
    assert client.get(f"/s/{team.slug}/app/{app.id}").status_code == 404


def test_share_link_grants_access(client, db, team, make_app):
    app = make_app(sharing_mode="private")
    link = add_link(db, team, app)

    response = client.get(f"/s/{team.slug}/app/{app.id}", params={"token": link.token})
    assert response.status_code == 200

    other = make_app(sharing_mode="private")
    response = client.get(f"/s/{team.slug}/app/{other.id}", params={"token": link.token})
    assert response.status_code == 404


def test_expired_share_link(client, db, team, make_app):
    app = make_app(sharing_mode="private")
    link = add_link(db, team, app, expires_at=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(hours=1))
    response = client.get(f"/s/{team.slug}/app/{app.id}", params={"token": link.token})
    assert response.status_code == 404


def test_start_session_anonymously(client, db, team, make_app):
    app = make_app()
    response = client.post(f"/s/{team.slug}/forms/app/{app.id}/start", headers=JSON)
    assert response.status_code == 200
    session_id = response.json()["id"]
    assert response.json()["redirect"] == f"/s/{team.slug}/session/{session_id}"

    record = db.get(ChatSession, session_id)
    assert record.app_id == app.id
    assert record.started_by is None


def test_start_session_records_signed_in_visitor(client, db, team, make_app):
    app = make_app()
    response = client.post(
        f"/s/{team.slug}/forms/app/{app.id}/start",
        headers={**JSON, "Authorization": team.headers["Authorization"]},
    )
    assert db.get(ChatSession, response.json()["id"]).started_by == team.owner.id


def test_public_session_messages(client, db, team, make_app):
    app = make_app()
    session_id = client.post(f"/s/{team.slug}/forms/app/{app.id}/start", headers=JSON).json()["id"]
    for day, text in ((2, "second"), (1, "first")):
        db.add(
            SessionMessage(
                session_id=session_id,
                type="message",
                message={"text": text},
                created_at=datetime(2024, 1, day),
            )
        )
    db.commit()

    response = client.get(f"/s/{team.slug}/session/{session_id}/messages.json")
    assert [m["message"]["text"] for m in response.json()] == ["first", "second"]


def test_public_task_lookup_is_limited_to_app_tasks(client, db, team, make_app):
    tasks = [
        Task(org_id=team.org.id, team_id=team.team.id, name=name, description="d")
        for name in ("Ask", "Hidden")
    ]
    db.add_all(tasks)
    db.commit()
    app = make_app(name="Crew", type="crew", task_ids=[tasks[0].id])

    params = {"app_id": app.id, "name": "Ask"}
    response = client.get(f"/s/{team.slug}/task.json", params=params)
    assert response.status_code == 200
    assert response.json()["id"] == tasks[0].id

    params["name"] = "Hidden"
    assert client.get(f"/s/{team.slug}/task.json", params=params).status_code == 404
