import pytest

from agentcloudapi.db.models import Agent, App, Model, ShareLink, Task
from agentcloudapi.utils import new_object_id


@pytest.fixture
def agents(db, team):
    records = [
        Agent(
            org_id=team.org.id,
            team_id=team.team.id,
            name=name,
            role="Research",
            goal="Find facts",
            backstory="Curious",
            model_id=new_object_id(),
        )
        for name in ("Researcher", "Writer")
    ]
    db.add_all(records)
    db.commit()
    return records


@pytest.fixture
def task(db, team, agents):
    record = Task(
        org_id=team.org.id,
        team_id=team.team.id,
        name="Summarize",
        description="Summarize the findings",
        agent_id=agents[0].id,
    )
    db.add(record)
    db.commit()
    return record


def app_body(agents, **overrides):
    body = {"name": "Helper", "type": "chat", "agent_ids": [agents[0].id]}
    body.update(overrides)
    return body


def add_app(client, team, body):
    return client.post(f"/{team.slug}/forms/app/add", json=body, headers=team.headers)


def test_chat_app_needs_exactly_one_agent(client, team, agents):
    response = add_app(client, team, app_body(agents, agent_ids=[a.id for a in agents]))
    assert response.status_code == 400
    assert response.json() == {"error": "Chat apps must have exactly one agent"}


def test_add_app_rejects_malformed_agents(client, team, agents):
    response = add_app(client, team, app_body(agents, agent_ids=["abc"]))
    assert response.json() == {"error": "Invalid agents"}


def test_add_app_rejects_agents_of_other_teams(client, team, agents):
    response = add_app(client, team, app_body(agents, agent_ids=[new_object_id()]))
    assert response.json() == {"error": "Invalid inputs"}


def test_crew_app_needs_tasks(client, team, agents):
    response = add_app(client, team, app_body(agents, type="crew"))
    assert response.json() == {"error": "Crew apps must have at least one task"}


def test_hierarchical_crew_needs_manager(client, team, agents, task):
    body = app_body(agents, type="crew", task_ids=[task.id], process="hierarchical")
    response = add_app(client, team, body)
    assert response.json() == {"error": "Hierarchical crews require a manager model"}


def test_add_hierarchical_crew(client, db, team, agents, task):
    manager = Model(
        org_id=team.org.id, team_id=team.team.id, name="GPT", model="gpt-4o", type="open_ai"
    )
    db.add(manager)
    db.commit()

    body = app_body(
        agents,
        type="crew",
        agent_ids=[a.id for a in agents],
        task_ids=[task.id],
        process="hierarchical",
        manager_model_id=manager.id,
    )
    response = add_app(client, team, body)
    assert response.status_code == 200
    app_id = response.json()["id"]

    data = client.get(f"/{team.slug}/app/{app_id}.json", headers=team.headers).json()
    assert data["app"]["process"] == "hierarchical"
    assert data["app"]["task_ids"] == [task.id]
    assert data["app"]["sharing_mode"] == "team"


def test_chat_app_drops_crew_fields(client, db, team, agents, task):
    body = app_body(agents, task_ids=[task.id], process="hierarchical")
    response = add_app(client, team, body)
    record = db.get(App, response.json()["id"])
    assert record.task_ids == []
    assert record.process is None


def test_share_link_is_claimed_by_new_app(client, db, team, agents):
    response = client.post(f"/{team.slug}/forms/sharelink/add", json={}, headers=team.headers)
    token = response.json()["token"]

    response = add_app(client, team, app_body(agents, share_link_token=token))
    app_id = response.json()["id"]
    link = db.query(ShareLink).filter(ShareLink.token == token).one()
    assert link.payload == {"id": app_id}

    response = client.delete(f"/{team.slug}/forms/app/{app_id}", headers=team.headers)
    assert response.status_code == 200
    assert db.query(ShareLink).count() == 0
    assert db.get(App, app_id) is None


def test_share_link_for_unknown_app(client, team):
    response = client.post(
        f"/{team.slug}/forms/sharelink/add", json={"app_id": new_object_id()}, headers=team.headers
    )
    assert response.status_code == 400


def test_edit_app(client, db, team, agents):
    app_id = add_app(client, team, app_body(agents)).json()["id"]
    response = client.post(
        f"/{team.slug}/forms/app/{app_id}/edit",
        json=app_body(agents, name="Renamed", agent_ids=[agents[1].id], sharing_mode="public"),
        headers=team.headers,
    )
    assert response.status_code == 200

    record = db.get(App, app_id)
    db.refresh(record)
    assert record.name == "Renamed"
    assert record.agent_ids == [agents[1].id]
    assert record.sharing_mode == "public"


def test_list_apps_includes_building_blocks(client, team, agents, task):
    data = client.get(f"/{team.slug}/apps.json", headers=team.headers).json()
    assert data["apps"] == []
    assert {a["name"] for a in data["agents"]} == {"Researcher", "Writer"}
    assert [t["id"] for t in data["tasks"]] == [task.id]


def test_delete_unknown_app(client, team):
    response = client.delete(f"/{team.slug}/forms/app/{new_object_id()}", headers=team.headers)
    assert response.status_code == 404
