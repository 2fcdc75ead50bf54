import pytest

from agentcloudapi.db.models import Agent, Model, Tool
from agentcloudapi.utils import new_object_id

from conftest import add_account, add_member, auth_headers


@pytest.fixture
def model(db, team):
    record = Model(
        org_id=team.org.id, team_id=team.team.id, name="GPT", model="gpt-4o-mini", type="open_ai"
    )
    db.add(record)
    db.commit()
    return record


def agent_body(model, **overrides):
    body = {
        "name": "Researcher",
        "role": "Research analyst",
        "goal": "Find facts",
        "backstory": "Curious by nature",
        "model_id": model.id,
        "tool_ids": [],
    }
    body.update(overrides)
    return body


def add_agent(client, team, body):
    return client.post(f"/{team.slug}/forms/agent/add", json=body, headers=team.headers)


def test_add_agent_requires_goal(client, team, model):
    response = add_agent(client, team, agent_body(model, goal=""))
    assert response.status_code == 400
    assert response.json() == {"error": "Goal is a required field"}


def test_add_agent_rejects_model_of_other_team(client, team, model):
    response = add_agent(client, team, agent_body(model, model_id=new_object_id()))
    assert response.json() == {"error": "Invalid inputs"}


def test_add_agent_rejects_unknown_tools(client, team, model):
    response = add_agent(client, team, agent_body(model, tool_ids=[new_object_id()]))
    assert response.json() == {"error": "Invalid inputs"}


def test_add_and_edit_agent(client, db, team, model):
    tool = Tool(org_id=team.org.id, team_id=team.team.id, name="search", type="builtin", state="ready")
    db.add(tool)
    db.commit()

    response = add_agent(client, team, agent_body(model, tool_ids=[tool.id], verbose=2))
    assert response.status_code == 200
    agent_id = response.json()["id"]
    assert response.json()["redirect"] == f"/{team.slug}/agents"

    record = db.get(Agent, agent_id)
    assert record.tool_ids == [tool.id]
    assert record.verbose == 2
    assert record.allow_delegation is False

    response = client.post(
        f"/{team.slug}/forms/agent/{agent_id}/edit",
        json=agent_body(model, name="Writer", allow_delegation=True),
        headers=team.headers,
    )
    assert response.status_code == 200
    data = client.get(f"/{team.slug}/agent/{agent_id}.json", headers=team.headers).json()
    assert data["agent"]["name"] == "Writer"
    assert data["agent"]["tool_ids"] == []
    assert data["agent"]["allow_delegation"] is True


def test_delete_agent(client, db, team, model):
    agent_id = add_agent(client, team, agent_body(model)).json()["id"]
    response = client.delete(f"/{team.slug}/forms/agent/{agent_id}", headers=team.headers)
    assert response.status_code == 200
    assert db.get(Agent, agent_id) is None

    response = client.delete(f"/{team.slug}/forms/agent/{agent_id}", headers=team.headers)
    assert response.status_code == 404


def test_guests_cannot_add_agents(client, db, team, model):
    guest = add_account(db, name="Guest")
    add_member(db, team.team, guest, role="GUEST")
    response = client.post(
        f"/{team.slug}/forms/agent/add", json=agent_body(model), headers=auth_headers(guest.id)
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Missing permission: CREATE_AGENT"
