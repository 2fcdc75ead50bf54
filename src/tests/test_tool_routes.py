from datetime import datetime

import pytest

from agentcloudapi.db.models import Datasource, Tool, ToolRevision


def tool_body(**overrides):
    body = {
        "name": "add",
        "description": "Adds two numbers",
        "type": "function",
        "data": {"code": "def add(a, b):\n    return a + b", "runtime": "python3"},
    }
    body.update(overrides)
    return body


def add_tool(client, team, body):
    return client.post(f"/{team.slug}/forms/tool/add", json=body, headers=team.headers)


@pytest.fixture
def pro_team(make_team):
    return make_team(plan="PRO")


def test_function_tools_need_plan(client, team):
    response = add_tool(client, team, tool_body())
    assert response.status_code == 400
    assert response.json() == {"error": "Your plan does not include function tools"}


def test_function_tools_need_code(client, pro_team):
    response = add_tool(client, pro_team, tool_body(data={}))
    assert response.json() == {"error": "Function tools must have code"}


def test_add_function_tool(client, db, pro_team):
    response = add_tool(client, pro_team, tool_body())
    assert response.status_code == 200
    record = db.get(Tool, response.json()["id"])
    assert record.state == "ready"
    assert record.datasource_id is None


def test_rag_tool_needs_team_datasource(client, db, team):
    response = add_tool(client, team, tool_body(type="rag", data={}))
    assert response.json() == {"error": "Invalid inputs"}

    datasource = Datasource(org_id=team.org.id, team_id=team.team.id, name="Docs")
    db.add(datasource)
    db.commit()
    response = add_tool(client, team, tool_body(type="rag", data={}, datasource_id=datasource.id))
    assert response.status_code == 200
    assert db.get(Tool, response.json()["id"]).datasource_id == datasource.id


def test_edit_keeps_previous_code_as_revision(client, db, pro_team):
    tool_id = add_tool(client, pro_team, tool_body()).json()["id"]
    new_data = {"code": "def add(a, b):\n    return b + a", "runtime": "python3"}

    response = client.post(
        f"/{pro_team.slug}/forms/tool/{tool_id}/edit",
        json=tool_body(data=new_data),
        headers=pro_team.headers,
    )
    assert response.status_code == 200

    data = client.get(f"/{pro_team.slug}/tool/{tool_id}.json", headers=pro_team.headers).json()
    assert data["tool"]["data"] == new_data
    assert len(data["revisions"]) == 1
    assert data["revisions"][0]["content"] == tool_body()["data"]


def test_edit_without_code_change_keeps_no_revision(client, db, pro_team):
    tool_id = add_tool(client, pro_team, tool_body()).json()["id"]
    client.post(
        f"/{pro_team.slug}/forms/tool/{tool_id}/edit",
        json=tool_body(description="Sums"),
        headers=pro_team.headers,
    )
    assert db.query(ToolRevision).count() == 0


def test_apply_revision_restores_code(client, db, pro_team):
    tool_id = add_tool(client, pro_team, tool_body()).json()["id"]
    old = {"code": "def add(a, b):\n    return 0"}
    revision = ToolRevision(
        org_id=pro_team.org.id,
        team_id=pro_team.team.id,
        tool_id=tool_id,
        content=old,
        created_at=datetime(2024, 1, 1),
    )
    db.add(revision)
    db.commit()

    response = client.post(
        f"/{pro_team.slug}/forms/revision/{revision.id}/apply", headers=pro_team.headers
    )
    assert response.status_code == 200
    assert response.json()["redirect"] == f"/{pro_team.slug}/tool/{tool_id}/edit"
    record = db.get(Tool, tool_id)
    db.refresh(record)
    assert record.data == old

    response = client.delete(f"/{pro_team.slug}/forms/revision/{revision.id}", headers=pro_team.headers)
    assert response.status_code == 200
    assert db.query(ToolRevision).count() == 0


def test_delete_tool_removes_revisions(client, db, pro_team):
    tool_id = add_tool(client, pro_team, tool_body()).json()["id"]
    client.post(
        f"/{pro_team.slug}/forms/tool/{tool_id}/edit",
        json=tool_body(data={"code": "pass"}),
        headers=pro_team.headers,
    )
    response = client.delete(f"/{pro_team.slug}/forms/tool/{tool_id}", headers=pro_team.headers)
    assert response.status_code == 200
    assert db.query(Tool).count() == 0
    assert db.query(ToolRevision).count() == 0
