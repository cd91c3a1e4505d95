from __future__ import annotations

from ..agents.registry import AgentRegistry
from ..schemas.tasks import AnalysisTask
from .exceptions import TaskValidationError, UnresolvedAgentError


def validate_task(task: AnalysisTask, registry: AgentRegistry) -> None:
    """Reject structurally incomplete tasks before any state is created."""
    if not task.id or not task.id.strip():
        raise TaskValidationError("Task identifier is required")
    if not task.records:
        raise TaskValidationError("Task input records must not be empty")
    if not task.required_agents:
        raise TaskValidationError("Task must name at least one required agent")
    missing = [name for name in task.required_agents if name not in registry]
    if missing:
        raise UnresolvedAgentError(missing)
