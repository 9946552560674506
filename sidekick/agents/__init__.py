# Exposes the agent registry and persona types.

from .registry import AgentRegistry
from .types import AgentId, AgentProfile, RetrievalPolicy, DEFAULT_AGENT

__all__ = ["AgentRegistry", "AgentId", "AgentProfile", "RetrievalPolicy", "DEFAULT_AGENT"]
