"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from ..errors import ValidationError
from .rubric import Rubric


class StoreConfig(BaseModel):
    backend: Literal["memory", "json"] = "json"
    path: str = "evalboard.json"


class AggregationConfig(BaseModel):
    # trimming drops two totals, so a quorum below 3 would divide by zero
    trim_quorum: int = Field(5, ge=3)


class RubricConfig(BaseModel):
    setting_key: str = "rubric"
    default: Rubric | None = None


class EvaluatorConfig(BaseModel):
    display_name: str | None = None
    token_path: str = ".evalboard/interviewer_id"


class AuthConfig(BaseModel):
    required: bool = False
    username: str | None = None
    password: str | None = None
    session_path: str = ".evalboard/session.json"


class AppConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    aggregation: AggregationConfig = Field(default_factory=AggregationConfig)
    rubric: RubricConfig = Field(default_factory=RubricConfig)
    evaluator: EvaluatorConfig = Field(default_factory=EvaluatorConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)

    def to_settings(self) -> dict[str, Any]:
        return self.model_dump(mode="python")


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ValidationError("Config must be a mapping")
    try:
        return AppConfig.model_validate(raw)
    except PydanticValidationError as exc:
        messages = [
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        ]
        raise ValidationError("Invalid configuration", errors=messages) from exc
