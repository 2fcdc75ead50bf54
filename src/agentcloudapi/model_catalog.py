"""Supported model providers, their models and the settings each one requires."""

import re
from enum import Enum


class ModelType(str, Enum):
    OPENAI = "open_ai"
    AZURE_OPENAI = "azure_open_ai"
    ANTHROPIC = "anthropic"
    GOOGLE_VERTEX = "google_vertex"
    GROQ = "groq"
    OLLAMA = "ollama"
    FASTEMBED = "fastembed"


class DefaultModelSlot(str, Enum):
    LLM = "llm"
    EMBEDDING = "embedding"


# Display labels, in the order providers are offered
MODEL_TYPE_LABELS: dict[ModelType, str] = {
    ModelType.OPENAI: "OpenAI",
    ModelType.AZURE_OPENAI: "Azure OpenAI",
    ModelType.ANTHROPIC: "Anthropic",
    ModelType.GOOGLE_VERTEX: "Google Vertex",
    ModelType.GROQ: "Groq",
    ModelType.OLLAMA: "Ollama",
    ModelType.FASTEMBED: "FastEmbed",
}

MODEL_LIST: dict[ModelType, list[str]] = {
    ModelType.OPENAI: [
        "gpt-4o-mini",
        "gpt-4o",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
        "text-embedding-3-small",
        "text-embedding-3-large",
        "text-embedding-ada-002",
    ],
    ModelType.AZURE_OPENAI: [
        "gpt-4o-mini",
        "gpt-4o",
        "gpt-35-turbo",
        "text-embedding-3-small",
        "text-embedding-3-large",
        "text-embedding-ada-002",
    ],
    ModelType.ANTHROPIC: [
        "claude-3-5-sonnet-20240620",
        "claude-3-opus-20240229",
        "claude-3-haiku-20240307",
    ],
    ModelType.GOOGLE_VERTEX: [
        "gemini-1.5-pro",
        "gemini-1.5-flash",
        "text-embedding-004",
        "textembedding-gecko@003",
    ],
    ModelType.GROQ: ["llama3-70b-8192", "llama3-8b-8192", "mixtral-8x7b-32768"],
    ModelType.OLLAMA: ["llama3", "mistral", "nomic-embed-text"],
    ModelType.FASTEMBED: [
        "fast-bge-small-en",
        "fast-bge-base-en",
        "fast-all-MiniLM-L6-v2",
    ],
}

# Only embedding models have a vector length
MODEL_EMBEDDING_LENGTH: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "text-embedding-004": 768,
    "textembedding-gecko@003": 768,
    "nomic-embed-text": 768,
    "fast-bge-small-en": 384,
    "fast-bge-base-en": 768,
    "fast-all-MiniLM-L6-v2": 384,
}

MODEL_TYPE_REQUIREMENTS: dict[ModelType, dict[str, dict]] = {
    ModelType.OPENAI: {"api_key": {"optional": False}, "base_url": {"optional": True}},
    ModelType.AZURE_OPENAI: {
        "api_key": {"optional": False},
        "azure_endpoint": {"optional": False},
        "azure_deployment": {"optional": False},
        "api_version": {"optional": False},
    },
    ModelType.ANTHROPIC: {"api_key": {"optional": False}},
    ModelType.GOOGLE_VERTEX: {
        "credentials": {"optional": False},
        "location": {"optional": True},
    },
    ModelType.GROQ: {"groq_api_key": {"optional": False}},
    ModelType.OLLAMA: {"base_url": {"optional": False}},
    ModelType.FASTEMBED: {},
}

DEFAULT_LLM_MODEL = "gpt-4o-mini"
DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"


def model_options() -> list[dict]:
    """Provider choices as label/value options."""
    return [{"label": label, "value": t.value} for t, label in MODEL_TYPE_LABELS.items()]


def is_embedding_model(model: str) -> bool:
    return model in MODEL_EMBEDDING_LENGTH


def llm_models(model_type: str) -> list[str]:
    return [m for m in MODEL_LIST.get(ModelType(model_type), []) if not is_embedding_model(m)]


def embedding_models(model_type: str) -> list[str]:
    return [m for m in MODEL_LIST.get(ModelType(model_type), []) if is_embedding_model(m)]


def required_config_keys(model_type: str) -> list[str]:
    requirements = MODEL_TYPE_REQUIREMENTS.get(ModelType(model_type), {})
    return [key for key, spec in requirements.items() if not spec.get("optional")]


def field_label(key: str) -> str:
    """Turn a config key like ``api_key`` into ``Api Key``, keeping inner capitals."""
    return re.sub(r"\b\w", lambda m: m.group().upper(), key.replace("_", " "))


def required_config_fields(model_type: str, prefix: str) -> list[dict]:
    """Input definitions for the required settings of a provider."""
    fields = []
    for key in required_config_keys(model_type):
        label = field_label(key)
        placeholder = "Paste your API key" if key.endswith("key") else f"Enter the {label}"
        fields.append({"name": f"{prefix}.{key}", "label": label, "placeholder": placeholder})
    return fields
