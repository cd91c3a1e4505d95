from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence

from ..schemas.agents import AgentKind, AgentResult, RegisteredAgent


@dataclass(frozen=True)
class AgentContext:
    """Per-agent input bundle for one task execution.

    ``previous_results`` holds the results of agents that already ran in the
    same task. Parallel pipelines always pass an empty tuple.
    """
    task_id: str
    user_context: dict[str, Any] = field(default_factory=dict)
    previous_results: tuple[AgentResult, ...] = ()

    def latest_result_for(self, kind: AgentKind) -> AgentResult | None:
        for result in reversed(self.previous_results):
            if result.agent_kind is kind:
                return result
        return None


class AnalysisAgent(Protocol):
    name: str
    version: str
    kind: AgentKind
    capabilities: Sequence[str]

    async def execute(self, records: Sequence[Any], context: AgentContext) -> AgentResult:
        ...

    async def health_check(self) -> bool:
        ...


def describe_agent(agent: AnalysisAgent) -> RegisteredAgent:
    return RegisteredAgent(
        name=agent.name,
        version=agent.version,
        kind=getattr(agent, "kind", AgentKind.GENERIC),
        capabilities=list(getattr(agent, "capabilities", ()) or ()),
    )
