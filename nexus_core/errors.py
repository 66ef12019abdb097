"""Error types shared by the gateway and the workflow controller."""

from __future__ import annotations


class GenerationError(RuntimeError):
    """A model gateway call failed: transport error, malformed JSON or schema violation."""

    stage: str

    def __init__(self, message: str, stage: str = "generate") -> None:
        super().__init__(message)
        self.stage = stage


class WorkflowError(RuntimeError):
    """An action was requested that the current workflow state does not allow."""
