"""
Nexus Core Module

Data model, ranking and the iteration workflow for systematic idea evolution.

This module provides:
- Typed records for constraints, ideas, scores and iterations
- Aggregate metrics (average score, delta, total improvement)
- Top-K ranking of scored ideas
- The generate -> score -> evolve state machine
"""

__version__ = "0.1.0"

from .errors import GenerationError, WorkflowError
from .ranking import average_score, delta_score, top_ideas
from .schemas import Constraints, Idea, Iteration, Score
from .workflow import IterationWorkflow, WorkflowState

__all__ = [
    "Constraints",
    "GenerationError",
    "Idea",
    "Iteration",
    "IterationWorkflow",
    "Score",
    "WorkflowError",
    "WorkflowState",
    "average_score",
    "delta_score",
    "top_ideas",
]
