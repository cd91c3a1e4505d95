from __future__ import annotations

import random
import string
import time
from datetime import datetime, timezone
from typing import Any, Iterable, Literal, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..orchestration.enums import PipelineMode, RiskLevel, TaskPriority, TaskState, TaskType
from .agents import AgentResult

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_task_id(prefix: str = "task") -> str:
    suffix = "".join(random.choices(_ID_ALPHABET, k=9))
    return f"{prefix}_{int(time.time() * 1000)}_{suffix}"


def _coerce_tag(enum_cls: type, value: Any) -> Any:
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().upper())
        except ValueError:
            return value
    return value


class AnalysisTask(BaseModel):
    """Canonical, immutable description of one analysis run."""

    model_config = ConfigDict(frozen=True)

    id: str
    type: TaskType | str = TaskType.BATCH
    priority: TaskPriority = TaskPriority.MEDIUM
    records: tuple[Any, ...] = ()
    user_context: dict[str, Any] = Field(default_factory=dict)
    required_agents: tuple[str, ...] = ()
    pipeline: PipelineMode | str = PipelineMode.SEQUENTIAL
    metadata: dict[str, Any] | None = None

    @field_validator("pipeline", mode="before")
    @classmethod
    def _coerce_pipeline(cls, value: Any) -> Any:
        return _coerce_tag(PipelineMode, value)

    @field_validator("type", mode="before")
    @classmethod
    def _coerce_type(cls, value: Any) -> Any:
        return _coerce_tag(TaskType, value)


def new_analysis_task(
    records: Iterable[Any],
    *,
    required_agents: Iterable[str],
    task_id: str | None = None,
    task_type: TaskType | str = TaskType.BATCH,
    priority: TaskPriority | str = TaskPriority.MEDIUM,
    user_context: Mapping[str, Any] | None = None,
    pipeline: PipelineMode | str = PipelineMode.SEQUENTIAL,
    metadata: Mapping[str, Any] | None = None,
) -> AnalysisTask:
    return AnalysisTask(
        id=generate_task_id() if task_id is None else task_id,
        type=task_type,
        priority=priority,
        records=tuple(records),
        user_context=dict(user_context or {}),
        required_agents=tuple(required_agents),
        pipeline=pipeline,
        metadata=dict(metadata) if metadata is not None else None,
    )


def _first(descriptor: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in descriptor and descriptor[key] is not None:
            return descriptor[key]
    return default


def task_from_legacy(
    descriptor: Mapping[str, Any],
    pipeline: PipelineMode | str,
    *,
    available_agents: Iterable[str],
) -> AnalysisTask:
    """Build a task from the minimal descriptor plus an explicit pipeline.

    Agents default to everything currently registered when the descriptor does
    not name any.
    """
    required = _first(descriptor, "required_agents", "requiredAgents")
    return new_analysis_task(
        _first(descriptor, "records", "log_data", "logData", default=()),
        required_agents=required if required is not None else available_agents,
        task_id=_first(descriptor, "id", "task_id"),
        task_type=_first(descriptor, "type", default=TaskType.BATCH),
        priority=_first(descriptor, "priority", default=TaskPriority.MEDIUM),
        user_context=_first(descriptor, "user_context", "userContext", default={}),
        pipeline=pipeline,
        metadata=_first(descriptor, "metadata"),
    )


class AggregatedAnalysis(BaseModel):
    normalized_logs: Any = None
    features: Any = None
    errors: Any = None
    anomalies: Any = None
    behavior: Any = None
    issues: Any = None
    report: Any = None
    overall_risk_level: RiskLevel = RiskLevel.LOW
    overall_confidence: float = 0.0


class AnalysisSummary(BaseModel):
    total_agents: int = 0
    successful_agents: int = 0
    failed_agents: int = 0
    overall_confidence: float = 0.0


class AnalysisResult(BaseModel):
    task_id: str
    success: bool
    total_processing_time: float = Field(ge=0.0, description="Milliseconds")
    agent_results: list[AgentResult] = Field(default_factory=list)
    aggregated_data: AggregatedAnalysis = Field(default_factory=AggregatedAnalysis)
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)


class TaskStatus(BaseModel):
    task_id: str
    status: TaskState = TaskState.PENDING
    progress: float = Field(default=0.0, ge=0.0, le=100.0)
    current_agent: str | None = None
    start_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    end_time: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in {TaskState.COMPLETED, TaskState.FAILED, TaskState.CANCELLED}


class PerformanceStats(BaseModel):
    total_tasks: int = 0
    successful_tasks: int = 0
    failed_tasks: int = 0
    success_rate: float = 0.0
    average_processing_time: float = Field(default=0.0, description="Milliseconds, rolling window")
    last_update: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


# ──────────────────────────────────────────────────────────────────────────────
# HTTP request bodies
# ──────────────────────────────────────────────────────────────────────────────


class AnalysisOptions(BaseModel):
    pipeline: PipelineMode | None = None
    priority: TaskPriority | None = None


class ComprehensiveAnalysisRequest(BaseModel):
    user_feedback: str
    log_data: list[Any]
    user_context: dict[str, Any] | None = None
    pipeline: PipelineMode | None = None
    priority: TaskPriority | None = None
    analysis_type: TaskType | None = None
    required_agents: list[str] | None = None
    metadata: dict[str, Any] | None = None


class QuickAnalysisRequest(BaseModel):
    user_feedback: str
    log_data: list[Any]
    options: AnalysisOptions | None = None


class QuickInsights(BaseModel):
    top_issues: list[Any] = Field(default_factory=list)
    risk_level: RiskLevel = RiskLevel.LOW
    urgent_actions: list[Any] = Field(default_factory=list)
    system_health: Literal["GOOD", "MODERATE", "POOR"] = "GOOD"


class QuickAnalysisResponse(AnalysisResult):
    quick_insights: QuickInsights = Field(default_factory=QuickInsights)


class ErrorAnalysisSkipped(BaseModel):
    message: str
    suggestion: str
