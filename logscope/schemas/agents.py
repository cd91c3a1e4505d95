from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AgentKind(str, Enum):
    LOG_NORMALIZATION = "log_normalization"
    FEATURE_EXTRACTION = "feature_extraction"
    ERROR_ANALYSIS = "error_analysis"
    ANOMALY_DETECTION = "anomaly_detection"
    BEHAVIOR_ANALYSIS = "behavior_analysis"
    ISSUE_DETECTION = "issue_detection"
    REPORT_GENERATION = "report_generation"
    GENERIC = "generic"


class AgentResult(BaseModel):
    """Outcome of one agent invocation within a task."""
    agent_name: str = ""
    agent_kind: AgentKind = AgentKind.GENERIC
    success: bool
    data: Any = None
    error: str | None = None
    processing_time: float | None = Field(default=None, ge=0.0, description="Milliseconds")
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)

    @classmethod
    def failure(cls, agent_name: str, error: str, *, kind: AgentKind = AgentKind.GENERIC) -> "AgentResult":
        return cls(
            agent_name=agent_name,
            agent_kind=kind,
            success=False,
            error=error,
            processing_time=0.0,
        )


class RegisteredAgent(BaseModel):
    name: str
    version: str
    kind: AgentKind
    capabilities: list[str] = Field(default_factory=list)
    status: str = Field(default="active")


class AgentListResponse(BaseModel):
    agents: list[RegisteredAgent] = Field(default_factory=list)
    total_count: int = 0
    healthy_count: int = 0


class AgentHealthResponse(BaseModel):
    agent_name: str
    is_healthy: bool
    last_checked: datetime
