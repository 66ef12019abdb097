from __future__ import annotations

from collections.abc import Sequence

import pytest

from engine.runner import build_workflow
from engine.config import EngineConfig
from nexus_core.errors import GenerationError, WorkflowError
from nexus_core.schemas import Constraints, Idea, Iteration, Score
from nexus_core.workflow import IterationWorkflow, WorkflowState


RETAIL = Constraints(
    domain="Retail",
    problem="Reduce cart abandonment",
    budget_limit="$10k",
    timeline="1 quarter",
    other_requirements="",
)


class FakeGateway:
    """Scores every idea of batch n with the n-th entry of ``batch_scores``."""

    def __init__(self, batch_scores: Sequence[tuple[float, float, float, float]] = ((8, 7, 9, 6),)) -> None:
        self.batch_scores = list(batch_scores)
        self.population = 20
        self.batches = 0
        self.fail_on: set[str] = set()
        self.pattern_calls: list[list[str]] = []
        self.previous_seen: list[Iteration | None] = []
        self.workflow: IterationWorkflow | None = None
        self.states_seen: list[WorkflowState] = []

    def generate_ideas(self, constraints: Constraints, previous_iteration: Iteration | None = None) -> list[Idea]:
        self._observe()
        if "generate" in self.fail_on:
            raise GenerationError("model unavailable", "generate")
        self.previous_seen.append(previous_iteration)
        batch = self.batches
        self.batches += 1
        return [
            Idea(id=f"idea-{batch}-{i}", title=f"Batch {batch} idea {i}", description="desc")
            for i in range(self.population)
        ]

    def score_ideas(self, ideas: Sequence[Idea]) -> list[Idea]:
        self._observe()
        if "score" in self.fail_on:
            raise GenerationError("bad scores", "score")
        dims = self.batch_scores[min(self.batches - 1, len(self.batch_scores) - 1)]
        score = Score(novelty=dims[0], feasibility=dims[1], impact=dims[2], cost_efficiency=dims[3])
        return [idea.model_copy(update={"score": score, "rationale": "ok"}) for idea in ideas]

    def extract_patterns(self, top: Sequence[Idea]) -> list[str]:
        self._observe()
        if "patterns" in self.fail_on:
            raise GenerationError("no patterns", "extract_patterns")
        self.pattern_calls.append([idea.id for idea in top])
        return ["Remove friction", "Reward loyalty"]

    def _observe(self) -> None:
        if self.workflow is not None:
            self.states_seen.append(self.workflow.state)


def test_start_produces_first_iteration() -> None:
    gateway = FakeGateway()
    workflow = IterationWorkflow(gateway)

    first = workflow.start(RETAIL)

    assert workflow.state == WorkflowState.REVIEWING
    assert len(workflow.history) == 1
    assert first.index == 0
    assert len(first.ideas) == 20
    assert all(idea.score is not None and idea.score.total == pytest.approx(7.5) for idea in first.ideas)
    assert first.average_score == pytest.approx(7.5)
    assert first.delta_score == 0.0
    assert first.patterns_identified is None
    assert [idea.id for idea in first.top_ideas(5)] == [f"idea-0-{i}" for i in range(5)]
    assert gateway.previous_seen == [None]


def test_start_failure_returns_to_setup_with_empty_history() -> None:
    gateway = FakeGateway()
    gateway.fail_on.add("score")
    workflow = IterationWorkflow(gateway)

    with pytest.raises(GenerationError):
        workflow.start(RETAIL)

    assert workflow.state == WorkflowState.SETUP
    assert workflow.history == ()
    assert workflow.constraints is None
    assert isinstance(workflow.last_error, GenerationError)


def test_states_seen_by_gateway_during_start_and_evolve() -> None:
    gateway = FakeGateway()
    workflow = IterationWorkflow(gateway)
    gateway.workflow = workflow

    workflow.start(RETAIL)
    workflow.evolve()

    assert gateway.states_seen == [
        WorkflowState.GENERATING,
        WorkflowState.SCORING,
        WorkflowState.EVOLVING,
        WorkflowState.EVOLVING,
        WorkflowState.EVOLVING,
    ]


def test_evolve_appends_iteration_with_patterns_and_delta() -> None:
    gateway = FakeGateway(batch_scores=[(8, 7, 9, 6), (7, 7, 7, 7)])
    workflow = IterationWorkflow(gateway)
    workflow.start(RETAIL)

    second = workflow.evolve()

    assert second.index == 1
    assert second.patterns_identified == ["Remove friction", "Reward loyalty"]
    assert second.average_score == pytest.approx(7.0)
    assert second.delta_score == pytest.approx(-0.5)
    assert len(workflow.history) == 2
    assert gateway.pattern_calls == [[f"idea-0-{i}" for i in range(5)]]
    seeded = gateway.previous_seen[1]
    assert seeded is not None
    assert seeded.index == 0
    assert seeded.patterns_identified == ["Remove friction", "Reward loyalty"]
    # the committed first iteration is not rewritten
    assert workflow.history[0].patterns_identified is None


def test_delta_is_difference_of_consecutive_averages() -> None:
    gateway = FakeGateway(batch_scores=[(5, 5, 5, 5), (6, 6, 6, 6), (9, 9, 9, 9)])
    workflow = IterationWorkflow(gateway)
    workflow.start(RETAIL)
    workflow.evolve()
    workflow.evolve()

    history = workflow.history
    for previous, current in zip(history, history[1:]):
        assert current.delta_score == pytest.approx(current.average_score - previous.average_score)
    assert [it.index for it in history] == [0, 1, 2]


def test_evolve_failure_keeps_history() -> None:
    gateway = FakeGateway()
    workflow = IterationWorkflow(gateway)
    workflow.start(RETAIL)
    gateway.fail_on.add("patterns")

    with pytest.raises(GenerationError):
        workflow.evolve()

    assert workflow.state == WorkflowState.REVIEWING
    assert len(workflow.history) == 1
    assert workflow.last_error is not None

    gateway.fail_on.clear()
    workflow.evolve()
    assert len(workflow.history) == 2
    assert workflow.last_error is None


@pytest.mark.parametrize("failing_stage", ["generate", "score"])
def test_evolve_failure_after_patterns_keeps_history(failing_stage: str) -> None:
    gateway = FakeGateway()
    workflow = IterationWorkflow(gateway)
    workflow.start(RETAIL)
    before = workflow.history
    gateway.fail_on.add(failing_stage)

    with pytest.raises(GenerationError) as exc_info:
        workflow.evolve()

    assert len(gateway.pattern_calls) == 1
    assert workflow.state == WorkflowState.REVIEWING
    assert workflow.history == before
    assert workflow.history[0].patterns_identified is None
    assert workflow.last_error is exc_info.value
    assert workflow.can_evolve


def test_iteration_cap_reaches_finished() -> None:
    workflow = IterationWorkflow(FakeGateway(), max_iterations=5)
    workflow.start(RETAIL)
    for _ in range(4):
        assert workflow.can_evolve
        workflow.evolve()

    assert len(workflow.history) == 5
    assert workflow.state == WorkflowState.FINISHED
    assert not workflow.can_evolve
    with pytest.raises(WorkflowError):
        workflow.evolve()
    assert len(workflow.history) == 5


def test_evolve_before_start_is_rejected() -> None:
    workflow = IterationWorkflow(FakeGateway())

    with pytest.raises(WorkflowError):
        workflow.evolve()


def test_start_twice_is_rejected() -> None:
    workflow = IterationWorkflow(FakeGateway())
    workflow.start(RETAIL)

    with pytest.raises(WorkflowError):
        workflow.start(RETAIL)


def test_reset_clears_everything() -> None:
    workflow = IterationWorkflow(FakeGateway())
    workflow.start(RETAIL)
    workflow.evolve()

    workflow.reset()

    assert workflow.state == WorkflowState.SETUP
    assert workflow.history == ()
    assert workflow.constraints is None
    workflow.start(RETAIL)
    assert len(workflow.history) == 1


def test_actions_rejected_while_busy() -> None:
    gateway = FakeGateway()
    workflow = IterationWorkflow(gateway)
    errors: list[WorkflowError] = []

    def reenter(state: WorkflowState, message: str) -> None:
        if state == WorkflowState.GENERATING:
            for action in (lambda: workflow.start(RETAIL), workflow.evolve, workflow.reset):
                try:
                    action()
                except WorkflowError as exc:
                    errors.append(exc)

    workflow.on_transition = reenter
    workflow.start(RETAIL)

    assert len(errors) == 3
    assert len(workflow.history) == 1
    assert gateway.batches == 1


def test_transition_messages() -> None:
    messages: list[tuple[WorkflowState, str]] = []
    workflow = IterationWorkflow(FakeGateway(), on_transition=lambda s, m: messages.append((s, m)))

    workflow.start(RETAIL)
    workflow.evolve()

    assert messages[0] == (WorkflowState.GENERATING, "Stage 1: Generating 20 diverse ideas...")
    assert messages[1][0] == WorkflowState.SCORING
    assert "4-dimension rubric" in messages[1][1]
    assert messages[2] == (WorkflowState.REVIEWING, "")
    assert messages[3][0] == WorkflowState.EVOLVING
    assert messages[3][1].startswith("Stage 3")
    assert "refined ideas" in messages[4][1]
    assert messages[5][1] == "Stage 2: Re-scoring refined ideas..."
    assert messages[-1] == (WorkflowState.REVIEWING, "")
    assert workflow.loading_message == ""


def test_is_busy_only_during_model_stages() -> None:
    busy: list[bool] = []
    workflow = IterationWorkflow(FakeGateway())
    workflow.on_transition = lambda state, message: busy.append(workflow.is_busy)

    assert not workflow.is_busy
    workflow.start(RETAIL)

    assert busy == [True, True, False]


def test_invalid_construction() -> None:
    with pytest.raises(ValueError):
        IterationWorkflow(FakeGateway(), max_iterations=0)
    with pytest.raises(ValueError):
        IterationWorkflow(FakeGateway(), top_k=0)


def test_end_to_end_with_fake_provider() -> None:
    workflow = build_workflow(EngineConfig(population_size=6, max_iterations=3), demo=True)

    workflow.start(RETAIL)
    workflow.evolve()
    workflow.evolve()

    history = workflow.history
    assert workflow.state == WorkflowState.FINISHED
    assert [len(it.ideas) for it in history] == [6, 6, 6]
    assert history[1].patterns_identified
    assert all(idea.title.startswith("Refined ") for idea in history[2].ideas)
    ids = [idea.id for it in history for idea in it.ideas]
    assert len(ids) == len(set(ids))
