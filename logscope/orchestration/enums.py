from __future__ import annotations

from enum import Enum


class PipelineMode(str, Enum):
    SEQUENTIAL = "SEQUENTIAL"
    PARALLEL = "PARALLEL"
    CONDITIONAL = "CONDITIONAL"


class TaskState(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    # Reserved: no transition produces it yet.
    CANCELLED = "CANCELLED"


class TaskType(str, Enum):
    REAL_TIME = "REAL_TIME"
    BATCH = "BATCH"
    DEEP_ANALYSIS = "DEEP_ANALYSIS"
    ERROR_FOCUSED_ANALYSIS = "ERROR_FOCUSED_ANALYSIS"
    COMPREHENSIVE_ANALYSIS = "COMPREHENSIVE_ANALYSIS"


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _RISK_ORDER.index(self)

    @classmethod
    def parse(cls, value: object) -> "RiskLevel | None":
        if isinstance(value, RiskLevel):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


_RISK_ORDER = (RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL)


__all__ = ["PipelineMode", "TaskState", "TaskType", "TaskPriority", "RiskLevel"]
