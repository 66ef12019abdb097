from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from nexus_core.ranking import as_percent, top_ideas, total_improvement
from nexus_core.schemas import Iteration

PATTERNS_PLACEHOLDER = "Initial Generation"


def format_percent(score: float) -> str:
    return f"{as_percent(score):.1f}%"


def format_delta(delta: float) -> str:
    sign = "+" if delta >= 0 else ""
    return f"{sign}{as_percent(delta):.1f}%"


class ReportGenerator:
    def __init__(self, history: Sequence[Iteration], top_k: int = 5):
        if not history:
            raise ValueError("history must contain at least one iteration")
        self.history = list(history)
        self.top_k = top_k
        self.current = self.history[-1]
        self.kpis = self._calculate_kpis()

    def _calculate_kpis(self) -> dict:
        averages = [iteration.average_score for iteration in self.history]
        best_index = max(range(len(averages)), key=lambda i: averages[i])
        return {
            "iterations": len(self.history),
            "best_average": averages[best_index],
            "best_iteration": best_index + 1,
            "total_improvement": total_improvement(self.history),
            "scored_ideas": self.current.scored_count,
            "population": len(self.current.ideas),
        }

    def generate_text(self) -> str:
        """Plain-text report of the current iteration, meant for the clipboard."""
        current = self.current
        top = top_ideas(current.ideas, self.top_k)
        ideas_block = "\n".join(
            f"{idx + 1}. {idea.title} (Score: {format_percent(idea.score.total)})\n{idea.description}\n"
            for idx, idea in enumerate(top)
            if idea.score is not None
        )
        patterns_block = (
            "\n".join(f"{idx + 1}. {pattern}" for idx, pattern in enumerate(current.patterns_identified or []))
            or PATTERNS_PLACEHOLDER
        )
        return (
            "NEXUS CREATIVE ENGINE REPORT\n"
            f"Project Iteration: {current.index + 1}\n"
            f"Average Quality: {format_percent(current.average_score)}\n"
            f"Delta Improvement: {format_delta(current.delta_score)}\n\n"
            "TOP IDEAS:\n"
            f"{ideas_block}"
            "\nSUCCESS PATTERNS:\n"
            f"{patterns_block}"
        )

    def generate_markdown(self, output_path: Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        date = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        iteration_rows = "\n".join(
            f"| {it.index + 1} | {format_percent(it.average_score)} | {format_delta(it.delta_score)} "
            f"| {it.scored_count}/{len(it.ideas)} |"
            for it in self.history
        )
        top_rows = "\n".join(
            f"| {idx + 1} | {idea.title} | {format_percent(idea.score.total)} |"
            for idx, idea in enumerate(top_ideas(self.current.ideas, self.top_k))
            if idea.score is not None
        )
        patterns = "\n".join(f"- {p}" for p in self.current.patterns_identified or []) or f"- {PATTERNS_PLACEHOLDER}"

        md_content = f"""# Nexus Creative Engine Report

## Run Summary
- **Date:** {date}
- **Iterations:** {self.kpis['iterations']}
- **Best Mean Quality:** {format_percent(self.kpis['best_average'])} (iteration {self.kpis['best_iteration']})
- **Total Improvement:** {self.kpis['total_improvement']:+.0f}%

## Evolution
| Iteration | Mean Quality | Delta | Scored |
|-----------|--------------|-------|--------|
{iteration_rows}

## Top Ideas (iteration {self.current.index + 1})
| Rank | Title | Score |
|------|-------|-------|
{top_rows}

## Success Patterns
{patterns}
"""
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(md_content)
