from agentcloudapi.db.models import Team

OPENAI_LLM = {
    "name": "OpenAI",
    "model": "gpt-4o-mini",
    "type": "open_ai",
    "config": {"api_key": "sk-test"},
}
OPENAI_EMBEDDING = {**OPENAI_LLM, "model": "text-embedding-3-small"}


def add_model(client, team, body):
    return client.post(f"/{team.slug}/forms/model/add", json=body, headers=team.headers)


def test_add_model(client, team):
    response = add_model(client, team, OPENAI_EMBEDDING)
    assert response.status_code == 200
    model_id = response.json()["id"]

    model = client.get(f"/{team.slug}/model/{model_id}.json", headers=team.headers).json()["model"]
    assert model["embedding_length"] == 1536
    assert model["config"]["model"] == "text-embedding-3-small"


def test_add_model_rejects_unknown_model(client, team):
    response = add_model(client, team, {**OPENAI_LLM, "model": "gpt-9"})
    assert response.status_code == 400
    assert "not available" in response.json()["error"]


def test_add_model_requires_provider_settings(client, team):
    response = add_model(client, team, {**OPENAI_LLM, "config": {}})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required config: api_key"


def test_set_default_models(client, db, team):
    llm_id = add_model(client, team, OPENAI_LLM).json()["id"]
    embedding_id = add_model(client, team, OPENAI_EMBEDDING).json()["id"]

    url = f"/{team.slug}/forms/team/set-default-model"
    assert client.post(url, json={"model_id": llm_id, "type": "llm"}, headers=team.headers).status_code == 200
    assert client.post(url, json={"model_id": embedding_id, "type": "embedding"}, headers=team.headers).status_code == 200

    defaults = client.get(f"/{team.slug}/team/models.json", headers=team.headers).json()
    assert defaults["llm_model"]["id"] == llm_id
    assert defaults["embedding_model"]["id"] == embedding_id


def test_set_default_model_checks_slot(client, team):
    llm_id = add_model(client, team, OPENAI_LLM).json()["id"]
    url = f"/{team.slug}/forms/team/set-default-model"

    response = client.post(url, json={"model_id": llm_id, "type": "embedding"}, headers=team.headers)
    assert response.status_code == 400

    response = client.post(url, json={"model_id": llm_id, "type": "vision"}, headers=team.headers)
    assert response.json() == {"error": "Invalid model type"}


def test_delete_model_clears_default(client, db, team):
    llm_id = add_model(client, team, OPENAI_LLM).json()["id"]
    client.post(
        f"/{team.slug}/forms/team/set-default-model",
        json={"model_id": llm_id, "type": "llm"},
        headers=team.headers,
    )

    response = client.delete(f"/{team.slug}/forms/model/{llm_id}", headers=team.headers)
    assert response.status_code == 200
    assert db.get(Team, team.team.id).llm_model_id is None

    response = client.delete(f"/{team.slug}/forms/model/{llm_id}", headers=team.headers)
    assert response.status_code == 404


def test_configure_models_onboarding(client, team):
    body = {
        "llm": {"type": "open_ai", "model": "gpt-4o-mini", "config": {"api_key": "sk"}},
        "embedding": {"type": "open_ai", "model": "text-embedding-3-small", "config": {"api_key": "sk"}},
    }
    response = client.post(f"/{team.slug}/onboarding/configuremodels", json=body, headers=team.headers)
    assert response.status_code == 200
    assert response.json() == {"redirect": f"/{team.slug}/app/add", "notifications": []}

    form = client.get(f"/{team.slug}/onboarding/configuremodels", headers=team.headers).json()
    assert form["llm"]["model"]["value"] == "gpt-4o-mini"
    assert form["embedding"]["model"]["value"] == "text-embedding-3-small"
    assert form["can_submit"] is True


def test_configure_models_provider_change_clears_model(client, team):
    form = client.get(
        f"/{team.slug}/onboarding/configuremodels",
        params={"llm_type": "anthropic"},
        headers=team.headers,
    ).json()
    assert form["llm"]["type"]["value"] == "anthropic"
    assert form["llm"]["model"]["value"] is None
    assert form["embedding"]["model"]["value"] == "text-embedding-3-small"


def test_configure_models_mixing_providers(client, team):
    body = {
        "llm": {"type": "open_ai", "model": "gpt-4o-mini", "config": {"api_key": "sk"}},
        "embedding": {"type": "ollama", "model": "nomic-embed-text", "config": {"base_url": "http://x"}},
    }
    response = client.post(f"/{team.slug}/onboarding/configuremodels", json=body, headers=team.headers)
    assert response.status_code == 200
    assert response.json()["notifications"] == []

    defaults = client.get(f"/{team.slug}/team/models.json", headers=team.headers).json()
    assert defaults["embedding_model"]["model"] == "nomic-embed-text"


def test_configure_models_rejects_malformed_selections(client, team):
    url = f"/{team.slug}/onboarding/configuremodels"

    response = client.post(url, json={"llm": "open_ai"}, headers=team.headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid llm model selection"}

    body = {"llm": {"type": "open_ai", "model": "gpt-4o", "config": 5}}
    response = client.post(url, json=body, headers=team.headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Invalid llm model config"}

    body = {"embedding": {"type": "not_a_provider", "model": "x"}}
    response = client.post(url, json=body, headers=team.headers)
    assert response.json() == {"error": "Invalid model type"}
