from __future__ import annotations

import inspect
from typing import Dict, Iterable

from ..core.logging import get_logger
from ..core.metrics import record_health_check
from ..schemas.agents import RegisteredAgent
from .base import AnalysisAgent, describe_agent

__all__ = ["AgentRegistry"]

logger = get_logger(name=__name__)


class AgentRegistry:
    """In-memory map from agent name to agent instance.

    Registration overwrites by name; there is no deregistration.
    """

    def __init__(self, agents: Iterable[AnalysisAgent] | None = None) -> None:
        self._agents: Dict[str, AnalysisAgent] = {}
        for agent in agents or ():
            self.register(agent)

    def register(self, agent: AnalysisAgent) -> None:
        if agent.name in self._agents:
            logger.info("agent_replaced", agent=agent.name, version=agent.version)
        else:
            logger.info("agent_registered", agent=agent.name, version=agent.version)
        self._agents[agent.name] = agent

    def get(self, name: str) -> AnalysisAgent | None:
        return self._agents.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._agents

    def __len__(self) -> int:
        return len(self._agents)

    def list(self) -> list[str]:
        return list(self._agents)

    def describe(self) -> list[RegisteredAgent]:
        return [describe_agent(agent) for agent in self._agents.values()]

    async def health_check(self, name: str) -> bool:
        agent = self._agents.get(name)
        if agent is None:
            return False
        try:
            outcome = agent.health_check()
            if inspect.isawaitable(outcome):
                outcome = await outcome
            healthy = bool(outcome)
        except Exception as exc:
            logger.warning("agent_health_check_error", agent=name, error=str(exc))
            healthy = False
        record_health_check(agent=name, healthy=healthy)
        return healthy
