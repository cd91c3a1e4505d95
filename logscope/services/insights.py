from __future__ import annotations

from ..orchestration.gating import payload_mapping
from ..schemas.tasks import AnalysisResult, QuickInsights

TOP_ISSUE_LIMIT = 3


def _system_health(confidence: float) -> str:
    if confidence > 0.8:
        return "GOOD"
    if confidence > 0.6:
        return "MODERATE"
    return "POOR"


def extract_quick_insights(result: AnalysisResult) -> QuickInsights:
    """Pull the headline findings out of an aggregated analysis."""
    aggregated = result.aggregated_data
    anomalies = payload_mapping(aggregated.anomalies).get("anomalies")
    recommendations = payload_mapping(payload_mapping(aggregated.report).get("recommendations"))
    immediate = recommendations.get("immediate")
    return QuickInsights(
        top_issues=list(anomalies[:TOP_ISSUE_LIMIT]) if isinstance(anomalies, (list, tuple)) else [],
        risk_level=aggregated.overall_risk_level,
        urgent_actions=list(immediate) if isinstance(immediate, (list, tuple)) else [],
        system_health=_system_health(result.summary.overall_confidence),
    )
