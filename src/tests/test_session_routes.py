from datetime import datetime

import pytest

from agentcloudapi.db.models import App, ChatSession, Notification, SessionMessage
from agentcloudapi.utils import new_object_id

from conftest import add_account, auth_headers


@pytest.fixture
def app(db, team):
    record = App(
        org_id=team.org.id,
        team_id=team.team.id,
        name="Helper",
        type="chat",
        agent_ids=[new_object_id()],
    )
    db.add(record)
    db.commit()
    return record


def start(client, team, app_id):
    return client.post(f"/{team.slug}/forms/session/add", json={"app_id": app_id}, headers=team.headers)


def test_start_session(client, db, team, app):
    response = start(client, team, app.id)
    assert response.status_code == 200
    session_id = response.json()["id"]

    data = client.get(f"/{team.slug}/session/{session_id}.json", headers=team.headers).json()
    assert data["app_id"] == app.id
    assert data["status"] == "started"
    assert data["started_by"] == team.owner.id


def test_start_session_for_unknown_app(client, team):
    response = start(client, team, new_object_id())
    assert response.json() == {"error": "Invalid inputs"}


def test_cancel_and_delete_session(client, db, team, app):
    session_id = start(client, team, app.id).json()["id"]
    db.add(SessionMessage(session_id=session_id, type="message", message={"text": "hi"}))
    db.commit()

    response = client.get(f"/{team.slug}/session/{session_id}/messages.json", headers=team.headers)
    assert len(response.json()) == 1

    client.post(f"/{team.slug}/forms/session/{session_id}/cancel", headers=team.headers)
    record = db.get(ChatSession, session_id)
    db.refresh(record)
    assert record.status == "terminated"

    response = client.delete(f"/{team.slug}/forms/session/{session_id}", headers=team.headers)
    assert response.status_code == 200
    assert db.query(SessionMessage).count() == 0
    assert client.get(f"/{team.slug}/sessions.json", headers=team.headers).json()["sessions"] == []


def test_sessions_are_team_scoped(client, team, make_team, app):
    session_id = start(client, team, app.id).json()["id"]
    other = make_team()
    response = client.get(f"/{other.slug}/session/{session_id}.json", headers=other.headers)
    assert response.status_code == 404


def test_notifications_newest_first_and_mark_seen(client, db, team):
    records = [
        Notification(
            org_id=team.org.id,
            team_id=team.team.id,
            type="datasource",
            title=title,
            created_at=datetime(2024, 1, day),
        )
        for day, title in ((1, "older"), (2, "newer"))
    ]
    db.add_all(records)
    db.commit()

    data = client.get(f"/{team.slug}/notifications.json", headers=team.headers).json()
    assert [n["title"] for n in data["notifications"]] == ["newer", "older"]

    response = client.patch(
        f"/{team.slug}/forms/notification/seen",
        json={"notification_ids": [records[0].id]},
        headers=team.headers,
    )
    assert response.status_code == 200
    seen = {
        n["title"]: n["seen"]
        for n in client.get(f"/{team.slug}/notifications.json", headers=team.headers).json()["notifications"]
    }
    assert seen == {"older": True, "newer": False}


def test_mark_seen_needs_ids(client, team):
    response = client.patch(
        f"/{team.slug}/forms/notification/seen", json={"notification_ids": []}, headers=team.headers
    )
    assert response.status_code == 400


def test_browser_forms_are_redirected(client, db):
    account = add_account(db)
    headers = auth_headers(account.id)
    del headers["Accept"]

    response = client.post("/forms/account/logout", headers=headers, follow_redirects=False)
    assert response.status_code == 302
    assert response.headers["location"] == "/login"
