"""Pure view models derived from workflow state. No rendering happens here."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

from engine.plotting import chart_points
from engine.report import ReportGenerator, format_delta, format_percent
from nexus_core.ranking import top_ideas, total_improvement
from nexus_core.schemas import Constraints, Iteration
from nexus_core.workflow import WorkflowState

Screen = Literal["form", "loading", "summary"]

DEFAULT_CONSTRAINTS = Constraints(
    domain="Software Engineering",
    problem="Reducing churn for a SaaS productivity tool using AI agents.",
    budget_limit="Under $50k initial R&D",
    timeline="3 months to MVP",
    other_requirements="Must prioritize user privacy and low latency.",
)

STEP_NAMES = ("Foundations", "Optimization", "Peak Evolution")
RECOMMENDED_ITERATIONS = 3
LOADING_HINT = "Nexus Engine is analyzing scientific constraints..."
PATTERNS_EMPTY_HINT = "Initial generation. Patterns will emerge in the next iteration."


@dataclass(frozen=True)
class StatCard:
    label: str
    value: str
    sub: str
    highlight: bool = False


@dataclass(frozen=True)
class StepView:
    number: int
    name: str
    reached: bool


@dataclass(frozen=True)
class IdeaCardView:
    rank: int
    title: str
    description: str
    score: str
    dimensions: dict[str, float]
    rationale: str | None


@dataclass(frozen=True)
class ManifestRow:
    concept: str
    mechanism: str
    metric: str


@dataclass(frozen=True)
class IterationSummaryView:
    heading: str
    chart: list[tuple[str, float]]
    stats: list[StatCard]
    steps: list[StepView]
    top_cards: list[IdeaCardView]
    manifest: list[ManifestRow]
    patterns: list[str] = field(default_factory=list)
    patterns_hint: str | None = None
    total_improvement: str = "+0%"
    report: str = ""


def screen_for(state: WorkflowState) -> Screen:
    if state == WorkflowState.SETUP:
        return "form"
    if state in (WorkflowState.GENERATING, WorkflowState.SCORING, WorkflowState.EVOLVING):
        return "loading"
    return "summary"


def evolve_button_label(history: Sequence[Iteration], max_iterations: int) -> str:
    if len(history) >= max_iterations:
        return "Max Iterations"
    return "Evolve Next Generation →"


def footer_text(history: Sequence[Iteration]) -> str:
    return (
        f"Iteration {len(history)} complete. "
        f"Recommended: {RECOMMENDED_ITERATIONS} iterations for peak efficiency."
    )


def _stat_cards(current: Iteration) -> list[StatCard]:
    return [
        StatCard("Mean Quality", format_percent(current.average_score), "Aggregate Score"),
        StatCard("Population", str(len(current.ideas)), "Diverse Ideas"),
        StatCard("Delta", format_delta(current.delta_score), "vs Prev Gen", highlight=True),
        StatCard("Stage", str(current.index + 1), "Evolutionary Step"),
    ]


def _idea_cards(current: Iteration, top_k: int) -> list[IdeaCardView]:
    cards: list[IdeaCardView] = []
    for rank, idea in enumerate(top_ideas(current.ideas, top_k), start=1):
        score = idea.score
        if score is None:
            continue
        cards.append(
            IdeaCardView(
                rank=rank,
                title=idea.title,
                description=idea.description,
                score=format_percent(score.total),
                dimensions={
                    "Novelty": score.novelty,
                    "Feasibility": score.feasibility,
                    "Impact": score.impact,
                    "Cost Efficiency": score.cost_efficiency,
                },
                rationale=idea.rationale,
            )
        )
    return cards


def build_summary(history: Sequence[Iteration], top_k: int = 5) -> IterationSummaryView:
    """Everything the summary screen shows, computed from the iteration history."""
    if not history:
        raise ValueError("history must contain at least one iteration")
    current = history[-1]

    manifest = [
        ManifestRow(
            concept=idea.title,
            mechanism=idea.description,
            metric=format_percent(idea.score.total) if idea.score is not None else "-",
        )
        for idea in current.ideas
    ]
    steps = [
        StepView(number=n, name=name, reached=len(history) >= n)
        for n, name in enumerate(STEP_NAMES, start=1)
    ]
    patterns = list(current.patterns_identified or [])

    return IterationSummaryView(
        heading=f"Generation Output {current.index + 1}",
        chart=chart_points(history),
        stats=_stat_cards(current),
        steps=steps,
        top_cards=_idea_cards(current, top_k),
        manifest=manifest,
        patterns=patterns,
        patterns_hint=None if current.patterns_identified is not None else PATTERNS_EMPTY_HINT,
        total_improvement=f"{total_improvement(history):+.0f}%",
        report=ReportGenerator(history, top_k=top_k).generate_text(),
    )
