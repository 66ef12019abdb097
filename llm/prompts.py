"""Prompt templates and output schemas for the three gateway stages."""

from __future__ import annotations

import json
import textwrap
from collections.abc import Iterable, Sequence

from nexus_core.schemas import Constraints, Idea


IDEAS_SCHEMA: dict[str, object] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "description": {"type": "string"},
        },
        "required": ["title", "description"],
    },
}

SCORES_SCHEMA: dict[str, object] = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "title": {"type": "string"},
            "scores": {
                "type": "object",
                "properties": {
                    "novelty": {"type": "number"},
                    "feasibility": {"type": "number"},
                    "impact": {"type": "number"},
                    "costEfficiency": {"type": "number"},
                },
                "required": ["novelty", "feasibility", "impact", "costEfficiency"],
            },
            "rationale": {"type": "string"},
        },
        "required": ["title", "scores", "rationale"],
    },
}

PATTERNS_SCHEMA: dict[str, object] = {
    "type": "array",
    "items": {"type": "string"},
}


def _constraints_block(constraints: Constraints) -> str:
    return textwrap.dedent(
        f"""
        Domain: {constraints.domain}
        Problem: {constraints.problem}
        Budget: {constraints.budget_limit}
        Timeline: {constraints.timeline}
        Additional: {constraints.other_requirements}
        """
    ).strip()


def _numbered(lines: Iterable[str]) -> str:
    return "\n".join(f"{index + 1}. {line}" for index, line in enumerate(lines))


class PromptTemplate:
    def __init__(self, population_size: int = 20, pattern_count: int = 5) -> None:
        if population_size <= 0:
            raise ValueError("population_size must be positive")
        self.population_size = population_size
        self.pattern_count = pattern_count

    def generate_fresh(self, constraints: Constraints) -> str:
        return "\n\n".join(
            [
                "RAPID GENERATION TASK:",
                _constraints_block(constraints),
                f"TASK: Generate {self.population_size} diverse, innovative, and feasibility-checked ideas. "
                "Provide a title and description for each.",
            ]
        )

    def evolve(self, constraints: Constraints, patterns: Sequence[str]) -> str:
        return "\n\n".join(
            [
                "SYSTEMATIC EVOLUTION TASK:",
                _constraints_block(constraints),
                "EVOLUTIONARY PATTERNS TO INCORPORATE:\n" + _numbered(patterns),
                f"TASK: Generate {self.population_size} high-quality ideas that double down on these patterns "
                "while strictly adhering to the original constraints.\n"
                "Ensure high diversity in how these patterns are applied.",
            ]
        )

    def score(self, ideas: Sequence[Idea]) -> str:
        payload = json.dumps(
            [{"title": idea.title, "description": idea.description} for idea in ideas],
            ensure_ascii=False,
        )
        rubric = textwrap.dedent(
            f"""
            SCIENTIFIC RUBRIC EVALUATION:
            Score these {len(ideas)} ideas on four dimensions (0-10):
            1. Novelty (Is it truly new?)
            2. Feasibility (Can it be executed given the constraints?)
            3. Impact (Does it solve the core problem effectively?)
            4. Cost Efficiency (Does the value exceed the investment?)

            Echo each idea's title exactly and give one rationale per idea.
            """
        ).strip()
        return "\n\n".join([rubric, f"Ideas to evaluate:\n{payload}"])

    def extract_patterns(self, ideas: Sequence[Idea]) -> str:
        source = json.dumps(
            [f"{idea.title}: {idea.description}" for idea in ideas],
            ensure_ascii=False,
        )
        return "\n\n".join(
            [
                "PATTERN RECOGNITION ANALYTICS:",
                f"Analyze these top-performing ideas and extract {self.pattern_count} high-level 'success patterns'.\n"
                "These patterns should explain WHY these ideas scored well and should be used to guide "
                f"the generation of the next {self.population_size} ideas.",
                f"Source Material: {source}",
            ]
        )
