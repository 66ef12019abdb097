"""Visualization of mean quality across generations."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from nexus_core.ranking import as_percent
from nexus_core.schemas import Iteration

_ACCENT = '#6366f1'


def chart_points(history: Sequence[Iteration]) -> list[tuple[str, float]]:
    """(label, mean quality %) per generation, rounded to one decimal."""
    return [(f"GEN {it.index + 1}", round(as_percent(it.average_score), 1)) for it in history]


class PlotGenerator:
    def _set_style(self) -> None:
        style = 'seaborn-v0_8-whitegrid' if 'seaborn-v0_8-whitegrid' in plt.style.available else 'ggplot'
        plt.style.use(style)

    def _reset_style(self) -> None:
        plt.style.use('default')

    def plot_evolution_curve(
        self, history: Sequence[Iteration], save_path: str | Path | None = None
    ) -> Figure:
        self._set_style()
        points = chart_points(history)
        labels = [label for label, _ in points]
        scores = [score for _, score in points]
        positions = list(range(len(points)))

        fig, ax = plt.subplots(figsize=(10, 4))
        if points:
            ax.fill_between(positions, scores, alpha=0.15, color=_ACCENT)
            ax.plot(positions, scores, color=_ACCENT, linewidth=3, marker='o')
        ax.set_xticks(positions)
        ax.set_xticklabels(labels)
        ax.set_ylim(0, 100)
        ax.set_ylabel('Mean Quality (%)', fontsize=11)
        ax.set_title('Evolutionary Gradient', fontsize=13, fontweight='bold')
        ax.grid(True, axis='y', alpha=0.3, linestyle='--')
        fig.tight_layout()

        if save_path is not None:
            save_path = Path(save_path)
            save_path.parent.mkdir(parents=True, exist_ok=True)
            fig.savefig(save_path, dpi=150, bbox_inches='tight')
        self._reset_style()
        return fig
