from __future__ import annotations

from typing import Any, Iterator, Mapping, Sequence

from pydantic import BaseModel

from ..schemas.agents import AgentKind, AgentResult
from ..schemas.tasks import AggregatedAnalysis, AnalysisSummary
from .enums import RiskLevel

SLOT_BY_KIND: Mapping[AgentKind, str] = {
    AgentKind.LOG_NORMALIZATION: "normalized_logs",
    AgentKind.FEATURE_EXTRACTION: "features",
    AgentKind.ERROR_ANALYSIS: "errors",
    AgentKind.ANOMALY_DETECTION: "anomalies",
    AgentKind.BEHAVIOR_ANALYSIS: "behavior",
    AgentKind.ISSUE_DETECTION: "issues",
    AgentKind.REPORT_GENERATION: "report",
}

RISK_LEVEL_KEYS = frozenset({"risk_level", "riskLevel"})


def _successful(results: Sequence[AgentResult]) -> list[AgentResult]:
    return [result for result in results if result.success]


def _iter_risk_levels(payload: Any) -> Iterator[RiskLevel]:
    if isinstance(payload, BaseModel):
        payload = payload.model_dump()
    if isinstance(payload, Mapping):
        for key, value in payload.items():
            if key in RISK_LEVEL_KEYS:
                level = RiskLevel.parse(value)
                if level is not None:
                    yield level
            else:
                yield from _iter_risk_levels(value)
    elif isinstance(payload, (list, tuple)):
        for item in payload:
            yield from _iter_risk_levels(item)


def overall_risk_level(results: Sequence[AgentResult]) -> RiskLevel:
    levels = [level for result in _successful(results) for level in _iter_risk_levels(result.data)]
    if not levels:
        return RiskLevel.LOW
    return max(levels, key=lambda level: level.rank)


def overall_confidence(results: Sequence[AgentResult]) -> float:
    scores = [result.confidence for result in _successful(results) if result.confidence is not None]
    if not scores:
        return 0.0
    return sum(scores) / len(scores)


def aggregate_results(results: Sequence[AgentResult]) -> AggregatedAnalysis:
    """Fold agent payloads into their slots and derive risk and confidence.

    Later successful results of the same kind replace earlier ones.
    """
    slots: dict[str, Any] = {}
    for result in _successful(results):
        slot = SLOT_BY_KIND.get(result.agent_kind)
        if slot is not None:
            slots[slot] = result.data
    return AggregatedAnalysis(
        **slots,
        overall_risk_level=overall_risk_level(results),
        overall_confidence=overall_confidence(results),
    )


def summarize_results(results: Sequence[AgentResult]) -> AnalysisSummary:
    successful = len(_successful(results))
    return AnalysisSummary(
        total_agents=len(results),
        successful_agents=successful,
        failed_agents=len(results) - successful,
        overall_confidence=overall_confidence(results),
    )
