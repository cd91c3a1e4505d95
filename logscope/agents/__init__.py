from .base import AgentContext, AnalysisAgent, describe_agent
from .registry import AgentRegistry

__all__ = ["AgentContext", "AnalysisAgent", "AgentRegistry", "describe_agent"]
