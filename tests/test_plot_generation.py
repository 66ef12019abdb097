import pytest
import matplotlib.pyplot as plt
from matplotlib.figure import Figure

from engine.plotting import PlotGenerator, chart_points
from nexus_core.schemas import Iteration


@pytest.fixture
def sample_history():
    return [
        Iteration(index=0, ideas=[], average_score=6.23),
        Iteration(index=1, ideas=[], average_score=7.01, delta_score=0.78),
        Iteration(index=2, ideas=[], average_score=6.95, delta_score=-0.06),
    ]


def test_chart_points(sample_history):
    assert chart_points(sample_history) == [("GEN 1", 62.3), ("GEN 2", 70.1), ("GEN 3", 69.5)]


def test_plot_evolution_curve(sample_history, tmp_path):
    pg = PlotGenerator()
    save_path = tmp_path / "plots" / "evolution.png"

    fig = pg.plot_evolution_curve(sample_history, save_path)

    assert isinstance(fig, Figure)
    assert save_path.exists()
    assert fig.axes[0].get_ylim() == (0.0, 100.0)
    plt.close(fig)


def test_plot_single_iteration_without_saving(sample_history):
    fig = PlotGenerator().plot_evolution_curve(sample_history[:1])

    assert [label.get_text() for label in fig.axes[0].get_xticklabels()] == ["GEN 1"]
    plt.close(fig)
