from __future__ import annotations

from collections.abc import Mapping
from typing import TypeVar

from pydantic import BaseModel, ConfigDict, Field, computed_field


TBaseSchema = TypeVar("TBaseSchema", bound="BaseSchema")

SCORE_MIN = 0.0
SCORE_MAX = 10.0


class BaseSchema(BaseModel):
    def to_json(self) -> str:
        return self.model_dump_json()

    def to_dict(self) -> dict[str, object]:
        return self.model_dump()

    @classmethod
    def from_json(cls: type[TBaseSchema], data: str) -> TBaseSchema:
        return cls.model_validate_json(data)

    @classmethod
    def from_dict(cls: type[TBaseSchema], data: Mapping[str, object]) -> TBaseSchema:
        return cls.model_validate(data)


class Constraints(BaseSchema):
    """Free-text scaffolding supplied once per run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    domain: str = ""
    problem: str = ""
    budget_limit: str = Field(default="", alias="budgetLimit")
    timeline: str = ""
    other_requirements: str = Field(default="", alias="otherRequirements")


class Score(BaseSchema):
    """Four rubric dimensions on [0, 10]; ``total`` is always derived from them."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    novelty: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    feasibility: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    impact: float = Field(ge=SCORE_MIN, le=SCORE_MAX)
    cost_efficiency: float = Field(ge=SCORE_MIN, le=SCORE_MAX, alias="costEfficiency")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        return (self.novelty + self.feasibility + self.impact + self.cost_efficiency) / 4


class Idea(BaseSchema):
    id: str = Field(min_length=1)
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    score: Score | None = None
    rationale: str | None = None

    @property
    def is_scored(self) -> bool:
        return self.score is not None


class Iteration(BaseSchema):
    index: int = Field(ge=0)
    ideas: list[Idea]
    average_score: float
    delta_score: float = 0.0
    patterns_identified: list[str] | None = None

    @property
    def scored_count(self) -> int:
        return sum(1 for idea in self.ideas if idea.score is not None)

    def top_ideas(self, k: int = 5) -> list[Idea]:
        from .ranking import top_ideas

        return top_ideas(self.ideas, k)


class LLMProviderConfig(BaseSchema):
    provider_id: str = "main_provider"
    provider_type: str = "gemini"
    base_url: str | None = None
    model_name: str = "gemini-3-pro-preview"
    api_key: str | None = None
    timeout_seconds: int = 120


class StageSettings(BaseSchema):
    temperature: float = Field(default=1.0, ge=0.0, le=2.0)
    max_output_tokens: int = Field(default=8000, gt=0)
    thinking_budget: int | None = Field(default=None, ge=0)
