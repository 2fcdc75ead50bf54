"""Onboarding form choosing a team's default LLM and embedding models.

The form holds two independent selections, one per default model slot. Each
selection is a provider type, a model of that provider and the provider
settings. Changing the provider of a selection clears its model.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from ..model_catalog import (
    DEFAULT_EMBEDDING_MODEL,
    DEFAULT_LLM_MODEL,
    MODEL_TYPE_LABELS,
    DefaultModelSlot,
    ModelType,
    embedding_models,
    llm_models,
    model_options,
    required_config_fields,
)

logger = logging.getLogger(__name__)

AddModel = Callable[[Dict[str, Any]], Awaitable[Any]]
SetDefaultModel = Callable[[str, str], Awaitable[Any]]

REDIRECT_AFTER_SUBMIT = "/{resource_slug}/app/add"


class ModelSelection:
    """A provider type, a model of that provider and its settings."""

    def __init__(
        self,
        slot: DefaultModelSlot,
        model_type: str,
        model: Optional[str],
        config: Optional[Dict[str, str]] = None,
    ):
        self.slot = slot
        self.model_type = ModelType(model_type)
        self.model = model
        self.config = dict(config or {})

    @property
    def config_prefix(self) -> str:
        return "llm_model_config" if self.slot == DefaultModelSlot.LLM else "embedding_model_config"

    def select_type(self, model_type: str) -> None:
        """Switch provider, clearing the model if the provider changed."""
        new_type = ModelType(model_type)
        if new_type != self.model_type:
            self.model_type = new_type
            self.model = None

    def model_choices(self) -> list[dict]:
        """Models of the provider for this slot, preceded by an empty choice."""
        if self.slot == DefaultModelSlot.LLM:
            models = llm_models(self.model_type)
            recommended = DEFAULT_LLM_MODEL
        else:
            models = embedding_models(self.model_type)
            recommended = DEFAULT_EMBEDDING_MODEL
        choices = [{"label": None, "value": None}]
        for model in models:
            choice = {"label": model, "value": model}
            if model == recommended:
                choice["recommended"] = True
            choices.append(choice)
        return choices

    def required_fields(self) -> list[dict]:
        return required_config_fields(self.model_type, self.config_prefix)

    def validate(self) -> Optional[str]:
        """Check the selection, which is valid when no model is chosen."""
        if not self.model:
            return None
        if self.model not in [c["value"] for c in self.model_choices()]:
            return f"{self.model} is not a {self.slot.value} model of {MODEL_TYPE_LABELS[self.model_type]}"
        for field in self.required_fields():
            key = field["name"].split(".", 1)[1]
            if not self.config.get(key):
                return f"{field['label']} is required"
        return None

    def model_body(self) -> Dict[str, Any]:
        """Body for adding this selection as a model."""
        return {
            "name": MODEL_TYPE_LABELS[self.model_type],
            "model": self.model,
            "type": self.model_type.value,
            "config": {"model": self.model, **self.config},
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": {"label": MODEL_TYPE_LABELS[self.model_type], "value": self.model_type.value},
            "model": {"label": self.model, "value": self.model},
            "config": self.config,
            "model_choices": self.model_choices(),
            "required_fields": self.required_fields(),
        }


class ModelConfigurationForm:
    """The pair of default model selections offered during onboarding."""

    def __init__(self, llm: ModelSelection, embedding: ModelSelection):
        self.llm = llm
        self.embedding = embedding

    @classmethod
    def defaults(cls) -> "ModelConfigurationForm":
        first_type = next(iter(MODEL_TYPE_LABELS))
        return cls(
            ModelSelection(DefaultModelSlot.LLM, first_type, DEFAULT_LLM_MODEL),
            ModelSelection(DefaultModelSlot.EMBEDDING, first_type, DEFAULT_EMBEDDING_MODEL),
        )

    @classmethod
    def from_team_models(cls, llm_model=None, embedding_model=None) -> "ModelConfigurationForm":
        """Prefill the form from the team's current default models."""
        form = cls.defaults()
        if llm_model is not None:
            form.llm = ModelSelection(
                DefaultModelSlot.LLM, llm_model.type, llm_model.model, llm_model.config
            )
        if embedding_model is not None:
            form.embedding = ModelSelection(
                DefaultModelSlot.EMBEDDING,
                embedding_model.type,
                embedding_model.model,
                embedding_model.config,
            )
        return form

    @classmethod
    def from_body(cls, body: Dict[str, Any]) -> "ModelConfigurationForm":
        """Build a submitted form.

        Raises ValueError with a client facing message for malformed selections
        and unknown providers.
        """
        first_type = next(iter(MODEL_TYPE_LABELS)).value
        selections = []
        for slot in (DefaultModelSlot.LLM, DefaultModelSlot.EMBEDDING):
            part = body.get(slot.value) or {}
            if not isinstance(part, dict):
                raise ValueError(f"Invalid {slot.value} model selection")
            config = part.get("config")
            if config is not None and not isinstance(config, dict):
                raise ValueError(f"Invalid {slot.value} model config")
            try:
                model_type = ModelType(part.get("type") or first_type)
            except ValueError:
                raise ValueError("Invalid model type") from None
            selections.append(ModelSelection(slot, model_type, part.get("model"), config))
        return cls(*selections)

    def selections(self) -> list[ModelSelection]:
        return [self.llm, self.embedding]

    def can_submit(self) -> bool:
        """At least one of the two models must be chosen."""
        return bool(self.llm.model or self.embedding.model)

    def validate(self) -> Optional[str]:
        if not self.can_submit():
            return "Select an LLM or an embedding model"
        for selection in self.selections():
            error = selection.validate()
            if error:
                return error
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "model_options": model_options(),
            "llm": self.llm.to_dict(),
            "embedding": self.embedding.to_dict(),
            "can_submit": self.can_submit(),
        }


async def _add_and_set_default(
    selection: ModelSelection, add_model: AddModel, set_default_model: SetDefaultModel
) -> Optional[str]:
    """Add one selected model and make it the default; returns an error message on failure."""
    try:
        added = await add_model(selection.model_body())
    except Exception as e:
        logger.warning(f"Adding {selection.slot.value} model failed: {e}")
        return str(e)
    try:
        await set_default_model(added.id, selection.slot.value)
    except Exception as e:
        logger.warning(f"Setting default {selection.slot.value} model failed: {e}")
        return str(e)
    return None


async def submit_model_configuration(
    form: ModelConfigurationForm,
    resource_slug: str,
    add_model: AddModel,
    set_default_model: SetDefaultModel,
) -> Dict[str, Any]:
    """Store each chosen model and set it as the team default.

    The two pipelines run concurrently and independently. The result always
    carries the redirect target; failures are reported as notifications and
    leave whatever the other pipeline did in place.
    """
    pipelines = [
        _add_and_set_default(selection, add_model, set_default_model)
        for selection in form.selections()
        if selection.model
    ]
    results = await asyncio.gather(*pipelines)
    return {
        "redirect": REDIRECT_AFTER_SUBMIT.format(resource_slug=resource_slug),
        "notifications": [{"type": "error", "message": r} for r in results if r],
    }
