"""Object ids, team scoped queries and model to schema conversion."""

import os
import re
import time
from typing import Iterable, Type, TypeVar

from pydantic import BaseModel

ModelT = TypeVar("ModelT")
SchemaT = TypeVar("SchemaT", bound=BaseModel)

OBJECT_ID_PATTERN = r"^[a-f0-9]{24}$"
_object_id_re = re.compile(OBJECT_ID_PATTERN)


def new_object_id() -> str:
    """Generate a 24-character hex id: 4-byte timestamp followed by 8 random bytes."""
    return int(time.time()).to_bytes(4, "big").hex() + os.urandom(8).hex()


def is_object_id(value) -> bool:
    """Check whether a value is a well-formed 24-character hex id."""
    return isinstance(value, str) and bool(_object_id_re.match(value))


def model_to_schema(model: ModelT, schema_cls: Type[SchemaT]) -> SchemaT:
    """Build a response schema from an ORM row."""
    return schema_cls.model_validate(model, from_attributes=True)


def models_to_schema(models: Iterable[ModelT], schema_cls: Type[SchemaT]) -> list[SchemaT]:
    """Build response schemas from ORM rows."""
    return [model_to_schema(m, schema_cls) for m in models]


def team_objects(db, model_cls, team_id: str):
    """Query the rows of a team-scoped model belonging to one team."""
    return db.query(model_cls).filter(model_cls.team_id == team_id)


def get_team_object(db, model_cls, team_id: str, object_id: str):
    """Fetch a row by id only if it belongs to the team."""
    return team_objects(db, model_cls, team_id).filter(model_cls.id == object_id).first()


def count_team_objects(db, model_cls, team_id: str, ids: list[str], *criteria) -> int:
    """Count how many of the given ids exist in the team."""
    if not ids:
        return 0
    return (
        team_objects(db, model_cls, team_id)
        .filter(model_cls.id.in_(set(ids)), *criteria)
        .count()
    )
