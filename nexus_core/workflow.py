from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from enum import Enum
from typing import Protocol

from .errors import GenerationError, WorkflowError
from .ranking import average_score, delta_score, top_ideas
from .schemas import Constraints, Idea, Iteration

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    SETUP = "SETUP"
    GENERATING = "GENERATING"
    SCORING = "SCORING"
    REVIEWING = "REVIEWING"
    EVOLVING = "EVOLVING"
    FINISHED = "FINISHED"


BUSY_STATES = frozenset(
    {WorkflowState.GENERATING, WorkflowState.SCORING, WorkflowState.EVOLVING}
)


class IdeaGateway(Protocol):
    def generate_ideas(
        self, constraints: Constraints, previous_iteration: Iteration | None = None
    ) -> list[Idea]:
        ...

    def score_ideas(self, ideas: Sequence[Idea]) -> list[Idea]:
        ...

    def extract_patterns(self, top: Sequence[Idea]) -> list[str]:
        ...


TransitionCallback = Callable[[WorkflowState, str], None]


class IterationWorkflow:
    """Sequences gateway calls into an append-only history of iterations.

    ``start`` runs the first generate/score pass, ``evolve`` extracts success
    patterns from the current top scorers and runs a refined pass, ``reset``
    discards everything. A failed stage never leaves a partial iteration behind:
    history is only appended once all calls of a stage have succeeded.
    """

    def __init__(
        self,
        gateway: IdeaGateway,
        max_iterations: int = 5,
        top_k: int = 5,
        population_size: int = 20,
        on_transition: TransitionCallback | None = None,
    ) -> None:
        if max_iterations <= 0:
            raise ValueError("max_iterations must be positive")
        if top_k <= 0:
            raise ValueError("top_k must be positive")
        self.gateway: IdeaGateway = gateway
        self.max_iterations: int = max_iterations
        self.top_k: int = top_k
        self.population_size: int = population_size
        self.on_transition: TransitionCallback | None = on_transition
        self._state: WorkflowState = WorkflowState.SETUP
        self._constraints: Constraints | None = None
        self._history: list[Iteration] = []
        self._loading_message: str = ""
        self.last_error: GenerationError | None = None

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def constraints(self) -> Constraints | None:
        return self._constraints

    @property
    def history(self) -> tuple[Iteration, ...]:
        return tuple(self._history)

    @property
    def current_iteration(self) -> Iteration | None:
        return self._history[-1] if self._history else None

    @property
    def loading_message(self) -> str:
        return self._loading_message

    @property
    def is_busy(self) -> bool:
        return self._state in BUSY_STATES

    @property
    def can_evolve(self) -> bool:
        return (
            self._state == WorkflowState.REVIEWING
            and self._constraints is not None
            and 0 < len(self._history) < self.max_iterations
        )

    def start(self, constraints: Constraints) -> Iteration:
        self._ensure_idle("start")
        if self._state != WorkflowState.SETUP:
            raise WorkflowError(f"Cannot start a run from state {self._state.value}")

        self._constraints = constraints
        self.last_error = None
        try:
            self._transition(
                WorkflowState.GENERATING,
                f"Stage 1: Generating {self.population_size} diverse ideas...",
            )
            ideas = self.gateway.generate_ideas(constraints)

            self._transition(
                WorkflowState.SCORING,
                "Stage 2: Quantitatively scoring ideas based on 4-dimension rubric...",
            )
            scored = self.gateway.score_ideas(ideas)
        except GenerationError as exc:
            logger.exception("Initial generation failed")
            self._abort_start(exc)
            raise
        except Exception:
            self._abort_start(None)
            raise

        first = Iteration(
            index=0,
            ideas=scored,
            average_score=average_score(scored),
            delta_score=0.0,
        )
        self._history = [first]
        logger.info("Iteration 1 complete: average %.2f", first.average_score)
        self._settle()
        return first

    def evolve(self) -> Iteration:
        """Extract patterns from the current top scorers and commit a refined iteration."""
        self._ensure_idle("evolve")
        if self._state == WorkflowState.FINISHED or len(self._history) >= self.max_iterations:
            raise WorkflowError(f"Maximum of {self.max_iterations} iterations reached")
        if self._state != WorkflowState.REVIEWING or self._constraints is None:
            raise WorkflowError(f"Cannot evolve from state {self._state.value}")

        current = self._history[-1]
        self.last_error = None
        try:
            self._transition(
                WorkflowState.EVOLVING,
                "Stage 3: Extracting success patterns and evolving the next batch...",
            )
            patterns = self.gateway.extract_patterns(top_ideas(current.ideas, self.top_k))

            self._notify(f"Stage 1: Generating {self.population_size} refined ideas using evolved patterns...")
            seeded = current.model_copy(update={"patterns_identified": patterns})
            ideas = self.gateway.generate_ideas(self._constraints, seeded)

            self._notify("Stage 2: Re-scoring refined ideas...")
            scored = self.gateway.score_ideas(ideas)
        except GenerationError as exc:
            logger.exception("Evolution of iteration %d failed", current.index + 1)
            self.last_error = exc
            self._transition(WorkflowState.REVIEWING, "")
            raise
        except Exception:
            self._transition(WorkflowState.REVIEWING, "")
            raise

        new_average = average_score(scored)
        iteration = Iteration(
            index=len(self._history),
            ideas=scored,
            average_score=new_average,
            delta_score=delta_score(new_average, current.average_score),
            patterns_identified=list(patterns),
        )
        self._history.append(iteration)
        logger.info(
            "Iteration %d complete: average %.2f (delta %+.2f)",
            iteration.index + 1,
            iteration.average_score,
            iteration.delta_score,
        )
        self._settle()
        return iteration

    def reset(self) -> None:
        self._ensure_idle("reset")
        self._history = []
        self._constraints = None
        self.last_error = None
        self._transition(WorkflowState.SETUP, "")

    def _abort_start(self, error: GenerationError | None) -> None:
        self._history = []
        self._constraints = None
        self.last_error = error
        self._transition(WorkflowState.SETUP, "")

    def _settle(self) -> None:
        if len(self._history) >= self.max_iterations:
            self._transition(WorkflowState.FINISHED, "")
        else:
            self._transition(WorkflowState.REVIEWING, "")

    def _ensure_idle(self, action: str) -> None:
        if self.is_busy:
            raise WorkflowError(f"Cannot {action} while {self._state.value.lower()} is in progress")

    def _transition(self, state: WorkflowState, message: str) -> None:
        self._state = state
        self._loading_message = message
        logger.debug("Workflow -> %s %s", state.value, message)
        if self.on_transition is not None:
            self.on_transition(state, message)

    def _notify(self, message: str) -> None:
        self._loading_message = message
        if self.on_transition is not None:
            self.on_transition(self._state, message)
