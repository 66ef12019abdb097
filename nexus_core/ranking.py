from __future__ import annotations

from collections.abc import Sequence

from .schemas import Idea, Iteration


def _total_key(idea: Idea) -> float:
    return idea.score.total if idea.score is not None else 0.0


def average_score(ideas: Sequence[Idea]) -> float:
    """Mean total across the batch; unscored ideas count as 0."""
    if not ideas:
        return 0.0
    return sum(_total_key(idea) for idea in ideas) / len(ideas)


def delta_score(current_average: float, previous_average: float | None) -> float:
    if previous_average is None:
        return 0.0
    return current_average - previous_average


def top_ideas(ideas: Sequence[Idea], k: int = 5) -> list[Idea]:
    """Highest totals first, ties kept in input order. Unscored ideas are never ranked."""
    if k <= 0:
        return []
    scored = [idea for idea in ideas if idea.score is not None]
    # sorted() is stable, so equal totals keep their original relative order
    ordered = sorted(scored, key=_total_key, reverse=True)
    return ordered[:k]


def as_percent(value: float) -> float:
    return value * 10


def total_improvement(history: Sequence[Iteration]) -> float:
    """Percent change of the latest average over the first iteration's average."""
    if not history:
        return 0.0
    baseline = history[0].average_score or 1.0
    return history[-1].average_score / baseline * 100 - 100
