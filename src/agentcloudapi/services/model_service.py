"""Model configuration management for a team."""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from ..db.models import Model as ModelModel
from ..db.models import Team as TeamModel
from ..model_catalog import (
    MODEL_EMBEDDING_LENGTH,
    MODEL_LIST,
    DefaultModelSlot,
    ModelType,
    is_embedding_model,
    required_config_keys,
)
from ..validation import chain_validations

logger = logging.getLogger(__name__)

MODEL_RULES = [
    {"field": "name", "validation": {"not_empty": True, "of_type": "string"}},
    {"field": "model", "validation": {"not_empty": True, "of_type": "string"}},
    {
        "field": "type",
        "validation": {
            "not_empty": True,
            "of_type": "string",
            "in_set": [t.value for t in ModelType],
        },
    },
    {"field": "config", "validation": {"of_type": "object"}},
]

MODEL_LABELS = {"name": "Name", "model": "Model", "type": "Type", "config": "Config"}


class ModelServiceError(Exception):
    """Raised when a model configuration cannot be stored."""

    pass


class ModelService:
    """Create, edit and select default models within one team."""

    def __init__(self, db: Session, org_id: str, team_id: str):
        self.db = db
        self.org_id = org_id
        self.team_id = team_id

    def validate(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """Check a model body and return its normalized fields."""
        error = chain_validations(body, MODEL_RULES, MODEL_LABELS)
        if error:
            raise ModelServiceError(error)

        model_type = ModelType(body["type"])
        model = body["model"]
        if model not in MODEL_LIST[model_type]:
            raise ModelServiceError(f"Model {model} is not available for {model_type.value}")

        config = dict(body.get("config") or {})
        missing = [key for key in required_config_keys(model_type) if not config.get(key)]
        if missing:
            raise ModelServiceError(f"Missing required config: {', '.join(missing)}")
        config["model"] = model

        return {
            "name": body["name"],
            "model": model,
            "type": model_type.value,
            "config": config,
            "embedding_length": MODEL_EMBEDDING_LENGTH.get(model),
        }

    def get(self, model_id: str) -> ModelModel | None:
        return (
            self.db.query(ModelModel)
            .filter(ModelModel.id == model_id, ModelModel.team_id == self.team_id)
            .first()
        )

    def add_model(self, body: Dict[str, Any]) -> ModelModel:
        fields = self.validate(body)
        record = ModelModel(org_id=self.org_id, team_id=self.team_id, **fields)
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Added model {record.id} ({record.type}/{record.model}) to team {self.team_id}")
        return record

    def edit_model(self, model_id: str, body: Dict[str, Any]) -> ModelModel:
        record = self.get(model_id)
        if not record:
            raise ModelServiceError("Invalid inputs")
        for field, value in self.validate(body).items():
            setattr(record, field, value)
        self.db.commit()
        self.db.refresh(record)
        return record

    def delete_model(self, model_id: str) -> bool:
        """Delete a model, clearing any team default slot pointing at it."""
        record = self.get(model_id)
        if not record:
            return False
        team = self.db.get(TeamModel, self.team_id)
        if team.llm_model_id == model_id:
            team.llm_model_id = None
        if team.embedding_model_id == model_id:
            team.embedding_model_id = None
        self.db.delete(record)
        self.db.commit()
        return True

    def set_default_model(self, model_id: str, slot: str) -> TeamModel:
        """Point one of the team's default model slots at a model."""
        try:
            slot = DefaultModelSlot(slot)
        except ValueError:
            raise ModelServiceError("Invalid model type")

        record = self.get(model_id)
        if not record:
            raise ModelServiceError("Invalid inputs")

        if (slot == DefaultModelSlot.EMBEDDING) != is_embedding_model(record.model):
            raise ModelServiceError(f"Model {record.model} cannot be the default {slot.value} model")

        team = self.db.get(TeamModel, self.team_id)
        if slot == DefaultModelSlot.LLM:
            team.llm_model_id = record.id
        else:
            team.embedding_model_id = record.id
        self.db.commit()
        logger.info(f"Team {self.team_id} default {slot.value} model set to {record.id}")
        return team

    def team_models(self) -> Dict[str, ModelModel | None]:
        """The models currently in the team's default slots."""
        team = self.db.get(TeamModel, self.team_id)
        return {
            "llm_model": self.get(team.llm_model_id) if team.llm_model_id else None,
            "embedding_model": (
                self.get(team.embedding_model_id) if team.embedding_model_id else None
            ),
        }
