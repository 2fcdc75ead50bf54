import asyncio
from types import SimpleNamespace

import pytest

from agentcloudapi.model_catalog import DefaultModelSlot, field_label, required_config_fields
from agentcloudapi.services.model_configuration import (
    ModelConfigurationForm,
    ModelSelection,
    submit_model_configuration,
)


def filled_form():
    return ModelConfigurationForm.from_body(
        {
            "llm": {"type": "open_ai", "model": "gpt-4o", "config": {"api_key": "sk-1"}},
            "embedding": {
                "type": "open_ai",
                "model": "text-embedding-3-small",
                "config": {"api_key": "sk-2"},
            },
        }
    )


def test_defaults():
    form = ModelConfigurationForm.defaults()
    assert form.llm.model_type.value == "open_ai"
    assert form.llm.model == "gpt-4o-mini"
    assert form.embedding.model == "text-embedding-3-small"


def test_prefill_from_team_models():
    llm = SimpleNamespace(type="anthropic", model="claude-3-haiku-20240307", config={"api_key": "k"})
    form = ModelConfigurationForm.from_team_models(llm_model=llm)
    assert form.llm.model_type.value == "anthropic"
    assert form.llm.config == {"api_key": "k"}
    assert form.embedding.model == "text-embedding-3-small"


def test_changing_provider_resets_model():
    selection = ModelSelection(DefaultModelSlot.LLM, "open_ai", "gpt-4o")
    selection.select_type("open_ai")
    assert selection.model == "gpt-4o"

    selection.select_type("groq")
    assert selection.model is None
    assert selection.model_type.value == "groq"


def test_model_choices_split_llm_and_embedding():
    llm = ModelSelection(DefaultModelSlot.LLM, "open_ai", None)
    embedding = ModelSelection(DefaultModelSlot.EMBEDDING, "open_ai", None)

    llm_values = [c["value"] for c in llm.model_choices()]
    embedding_values = [c["value"] for c in embedding.model_choices()]
    assert llm_values[0] is None
    assert "gpt-4o" in llm_values and "text-embedding-3-small" not in llm_values
    assert embedding_values[1:] == [
        "text-embedding-3-small",
        "text-embedding-3-large",
        "text-embedding-ada-002",
    ]
    assert [c for c in llm.model_choices() if c.get("recommended")][0]["value"] == "gpt-4o-mini"


def test_required_fields():
    fields = required_config_fields("open_ai", "llm_model_config")
    assert fields == [
        {"name": "llm_model_config.api_key", "label": "Api Key", "placeholder": "Paste your API key"}
    ]
    ollama = required_config_fields("ollama", "embedding_model_config")
    assert ollama[0]["placeholder"] == "Enter the Base Url"


def test_validate():
    assert filled_form().validate() is None

    form = ModelConfigurationForm.from_body({"llm": {"type": "open_ai", "model": "gpt-4o"}})
    assert form.validate() == "Api Key is required"

    empty = ModelConfigurationForm.from_body({})
    assert not empty.can_submit()
    assert empty.validate() == "Select an LLM or an embedding model"


def test_model_body():
    body = filled_form().llm.model_body()
    assert body == {
        "name": "OpenAI",
        "model": "gpt-4o",
        "type": "open_ai",
        "config": {"model": "gpt-4o", "api_key": "sk-1"},
    }


def test_submit_runs_both_pipelines_concurrently():
    started = {"llm": asyncio.Event(), "embedding": asyncio.Event()}
    defaults = []

    async def add_model(body):
        slot = "embedding" if body["model"].startswith("text-embedding") else "llm"
        started[slot].set()
        other = "llm" if slot == "embedding" else "embedding"
        # Each pipeline waits for the other to have started
        await asyncio.wait_for(started[other].wait(), timeout=1)
        return SimpleNamespace(id=f"{slot}-id")

    async def set_default_model(model_id, slot):
        defaults.append((model_id, slot))

    result = asyncio.run(
        submit_model_configuration(filled_form(), "team1", add_model, set_default_model)
    )

    assert result == {"redirect": "/team1/app/add", "notifications": []}
    assert sorted(defaults) == [("embedding-id", "embedding"), ("llm-id", "llm")]


def test_submit_failures_are_independent():
    defaults = []

    async def add_model(body):
        if body["model"] == "gpt-4o":
            raise ValueError("quota exceeded")
        return SimpleNamespace(id="embedding-id")

    async def set_default_model(model_id, slot):
        defaults.append(slot)

    result = asyncio.run(
        submit_model_configuration(filled_form(), "team1", add_model, set_default_model)
    )

    assert result["redirect"] == "/team1/app/add"
    assert result["notifications"] == [{"type": "error", "message": "quota exceeded"}]
    assert defaults == ["embedding"]


def test_submit_skips_unselected_models():
    calls = []

    async def add_model(body):
        calls.append(body["model"])
        return SimpleNamespace(id="x")

    async def set_default_model(model_id, slot):
        pass

    form = filled_form()
    form.embedding.select_type("fastembed")
    asyncio.run(submit_model_configuration(form, "team1", add_model, set_default_model))
    assert calls == ["gpt-4o"]


def test_field_label_keeps_inner_capitals():
    assert field_label("api_key") == "Api Key"
    assert field_label("azure_openAI_endpoint") == "Azure OpenAI Endpoint"


@pytest.mark.parametrize(
    "body, message",
    [
        ({"llm": "open_ai"}, "Invalid llm model selection"),
        ({"embedding": ["ollama"]}, "Invalid embedding model selection"),
        ({"llm": {"type": "open_ai", "config": "sk"}}, "Invalid llm model config"),
        ({"llm": {"type": "mystery"}}, "Invalid model type"),
    ],
)
def test_from_body_rejects_malformed_selections(body, message):
    with pytest.raises(ValueError, match=message):
        ModelConfigurationForm.from_body(body)
