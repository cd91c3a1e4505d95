"""Gating rules for conditional pipelines.

A rule ties a target agent kind to a prerequisite kind: the target only runs
when an earlier agent of the prerequisite kind succeeded and its payload
satisfies the rule's predicate.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, Mapping, Sequence

from pydantic import BaseModel

from ..schemas.agents import AgentKind, AgentResult


def payload_mapping(data: Any) -> Mapping[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, Mapping):
        return data
    return {}


def _lookup(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def flags_suspicious_patterns(data: Any) -> bool:
    return bool(_lookup(payload_mapping(data), "has_suspicious_patterns", "hasSuspiciousPatterns"))


def reports_findings(data: Any) -> bool:
    payload = payload_mapping(data)
    total = _lookup(payload, "total_issues", "totalIssues")
    if isinstance(total, (int, float)) and not isinstance(total, bool) and total > 0:
        return True
    issues = _lookup(payload, "issues")
    return isinstance(issues, (list, tuple)) and len(issues) > 0


@dataclass(frozen=True, slots=True)
class GatingRule:
    target: AgentKind
    prerequisite: AgentKind
    predicate: Callable[[Any], bool]
    description: str

    def allows(self, previous_results: Sequence[AgentResult]) -> bool:
        return any(
            result.success and result.agent_kind is self.prerequisite and self.predicate(result.data)
            for result in previous_results
        )


@dataclass(frozen=True, slots=True)
class GatingDecision:
    run: bool
    reason: str | None = None


DEFAULT_GATING_RULES: tuple[GatingRule, ...] = (
    GatingRule(
        target=AgentKind.ANOMALY_DETECTION,
        prerequisite=AgentKind.FEATURE_EXTRACTION,
        predicate=flags_suspicious_patterns,
        description="feature extraction found no suspicious patterns",
    ),
    GatingRule(
        target=AgentKind.BEHAVIOR_ANALYSIS,
        prerequisite=AgentKind.ISSUE_DETECTION,
        predicate=reports_findings,
        description="issue detection reported no findings",
    ),
)


class GatingPolicy:
    def __init__(self, rules: Iterable[GatingRule] = DEFAULT_GATING_RULES) -> None:
        self._rules = tuple(rules)

    def evaluate(self, kind: AgentKind, previous_results: Sequence[AgentResult]) -> GatingDecision:
        for rule in self._rules:
            if rule.target is kind and not rule.allows(previous_results):
                return GatingDecision(run=False, reason=rule.description)
        return GatingDecision(run=True)
