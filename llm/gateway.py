"""Model gateway: one schema-constrained model call per workflow stage."""

from __future__ import annotations

import itertools
import json
import logging
from collections.abc import Sequence
from typing import cast

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from nexus_core.errors import GenerationError
from nexus_core.schemas import SCORE_MAX, SCORE_MIN, Constraints, Idea, Iteration, Score, StageSettings

from .base import BaseLLMProvider, LLMResponse
from .prompts import IDEAS_SCHEMA, PATTERNS_SCHEMA, SCORES_SCHEMA, PromptTemplate

logger = logging.getLogger(__name__)


class _RawIdea(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)


class _RawScores(BaseModel):
    # json.loads accepts NaN and Infinity; neither can be clamped into a Score
    novelty: float = Field(allow_inf_nan=False)
    feasibility: float = Field(allow_inf_nan=False)
    impact: float = Field(allow_inf_nan=False)
    costEfficiency: float = Field(allow_inf_nan=False)


class _ScoredEntry(BaseModel):
    title: str
    scores: _RawScores
    rationale: str


_IDEAS_ADAPTER = TypeAdapter(list[_RawIdea])
_SCORES_ADAPTER = TypeAdapter(list[_ScoredEntry])
_PATTERNS_ADAPTER = TypeAdapter(list[str])


def _clamp(value: float) -> float:
    return min(max(value, SCORE_MIN), SCORE_MAX)


def _decode_array(text: str, stage: str) -> list[object]:
    try:
        payload = cast(object, json.loads(text or "[]"))
    except json.JSONDecodeError as exc:
        raise GenerationError(f"Model returned invalid JSON during {stage}: {exc}", stage) from exc
    if not isinstance(payload, list):
        raise GenerationError(
            f"Model returned {type(payload).__name__} instead of an array during {stage}", stage
        )
    return cast(list[object], payload)


class ModelGateway:
    """Builds prompts, calls the provider and validates the JSON it returns.

    Every failure (transport, malformed JSON, schema violation) surfaces as a
    ``GenerationError``. Nothing is retried.
    """

    def __init__(
        self,
        provider: BaseLLMProvider,
        prompts: PromptTemplate | None = None,
        generation: StageSettings | None = None,
        scoring: StageSettings | None = None,
        patterns: StageSettings | None = None,
    ) -> None:
        self.provider = provider
        self.prompts = prompts or PromptTemplate()
        self.generation = generation or StageSettings()
        self.scoring = scoring or StageSettings(max_output_tokens=8000, thinking_budget=4000)
        self.patterns = patterns or StageSettings(max_output_tokens=3000, thinking_budget=2000)
        self._idea_counter: itertools.count[int] = itertools.count()

    @property
    def population_size(self) -> int:
        return self.prompts.population_size

    def generate_ideas(
        self, constraints: Constraints, previous_iteration: Iteration | None = None
    ) -> list[Idea]:
        if previous_iteration is not None and previous_iteration.patterns_identified:
            prompt = self.prompts.evolve(constraints, previous_iteration.patterns_identified)
        else:
            prompt = self.prompts.generate_fresh(constraints)

        response = self._call("generate", prompt, IDEAS_SCHEMA, self.generation)
        payload = _decode_array(response.text, "generate")
        try:
            raw_ideas = _IDEAS_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise GenerationError(f"Generated ideas do not match the schema: {exc}", "generate") from exc
        if not raw_ideas:
            raise GenerationError("Model returned no ideas", "generate")
        if len(raw_ideas) > self.population_size:
            logger.info("Truncating %d generated ideas to %d", len(raw_ideas), self.population_size)
            raw_ideas = raw_ideas[: self.population_size]

        return [
            Idea(id=self._next_idea_id(), title=raw.title, description=raw.description)
            for raw in raw_ideas
        ]

    def score_ideas(self, ideas: Sequence[Idea]) -> list[Idea]:
        if not ideas:
            raise ValueError("ideas must be non-empty")

        response = self._call("score", self.prompts.score(ideas), SCORES_SCHEMA, self.scoring)
        payload = _decode_array(response.text, "score")
        try:
            entries = _SCORES_ADAPTER.validate_python(payload)
        except ValidationError as exc:
            raise GenerationError(f"Scores do not match the schema: {exc}", "score") from exc

        by_title: dict[str, _ScoredEntry] = {}
        for entry in entries:
            by_title.setdefault(entry.title, entry)

        scored: list[Idea] = []
        unmatched = 0
        for idea in ideas:
            entry = by_title.get(idea.title)
            if entry is None:
                unmatched += 1
                scored.append(idea)
                continue
            score = Score(
                novelty=_clamp(entry.scores.novelty),
                feasibility=_clamp(entry.scores.feasibility),
                impact=_clamp(entry.scores.impact),
                cost_efficiency=_clamp(entry.scores.costEfficiency),
            )
            scored.append(idea.model_copy(update={"score": score, "rationale": entry.rationale}))
        if unmatched:
            logger.warning("%d of %d ideas had no matching score and stay unscored", unmatched, len(ideas))
        return scored

    def extract_patterns(self, top: Sequence[Idea]) -> list[str]:
        response = self._call(
            "extract_patterns", self.prompts.extract_patterns(top), PATTERNS_SCHEMA, self.patterns
        )
        payload = _decode_array(response.text, "extract_patterns")
        try:
            return _PATTERNS_ADAPTER.validate_python(payload, strict=True)
        except ValidationError as exc:
            raise GenerationError(f"Patterns do not match the schema: {exc}", "extract_patterns") from exc

    def _call(
        self,
        stage: str,
        prompt: str,
        schema: dict[str, object],
        settings: StageSettings,
    ) -> LLMResponse:
        logger.info("Calling %s for stage %s", self.provider.model_name, stage)
        try:
            response = self.provider.generate(
                prompt,
                temperature=settings.temperature,
                max_tokens=settings.max_output_tokens,
                response_schema=schema,
                thinking_budget=settings.thinking_budget,
            )
        except Exception as exc:
            raise GenerationError(f"Model call failed during {stage}: {exc}", stage) from exc
        logger.debug("Stage %s answered in %.0f ms", stage, response.latency_ms)
        return response

    def _next_idea_id(self) -> str:
        return f"idea-{next(self._idea_counter)}"
