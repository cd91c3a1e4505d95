from __future__ import annotations


class OrchestrationError(RuntimeError):
    """Base class for orchestration failures."""


class TaskValidationError(OrchestrationError):
    """Raised when a submitted task is structurally incomplete."""


class UnresolvedAgentError(TaskValidationError):
    """Raised when a task names an agent that is not registered."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = list(missing)
        super().__init__(f"Unregistered agents: {', '.join(self.missing)}")


class AgentExecutionError(OrchestrationError):
    """Raised inside an agent call; always converted into a failed AgentResult."""

    def __init__(self, agent: str, message: str) -> None:
        self.agent = agent
        super().__init__(message)


class UnsupportedPipelineError(OrchestrationError):
    """Raised when a task requests a pipeline mode with no executor."""

    def __init__(self, pipeline: object) -> None:
        self.pipeline = pipeline
        super().__init__(f"Unsupported pipeline mode: {pipeline}")


class DuplicateTaskError(TaskValidationError):
    """Raised when a task id is already in flight."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} is already running")
