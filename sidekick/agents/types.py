# Data models for the agent layer.
# Profiles are built once from personas.yaml and never mutated afterwards.

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class AgentId(str, Enum):
    """Closed set of advisor personas."""
    TECHNOLOGY = "technology"
    COACH = "coach"
    LEGAL = "legal"
    HR = "hr"
    MARKETING = "marketing"
    SALES = "sales"
    KNOWLEDGE = "knowledge"
    CONTENT = "content"


DEFAULT_AGENT = AgentId.TECHNOLOGY

# Retired identifiers still sent by older clients.
LEGACY_ALIASES = {
    "strategy": AgentId.TECHNOLOGY,
}


@dataclass(frozen=True)
class RetrievalPolicy:
    """How many chunks to pull, how similar they must be, how much room they get."""
    result_limit: int = 5
    similarity_threshold: float = 0.4
    max_context_tokens: int = 3000

    def __post_init__(self):
        if self.result_limit < 1:
            raise ValueError(f"result_limit must be >= 1, got {self.result_limit}")
        if not 0.0 <= self.similarity_threshold <= 1.0:
            raise ValueError(f"similarity_threshold must be within [0, 1], got {self.similarity_threshold}")
        if self.max_context_tokens < 1:
            raise ValueError(f"max_context_tokens must be >= 1, got {self.max_context_tokens}")


@dataclass(frozen=True)
class AgentProfile:
    """A persona: instructions plus sampling parameters."""
    id: AgentId
    name: str
    instructions: str
    temperature: float = 0.7
    max_output_tokens: int = 4096
    max_input_tokens: int = 16000
    subtitle: str = ""
    description: str = ""
    retrieval: Optional[RetrievalPolicy] = None

    @property
    def uses_retrieval(self) -> bool:
        return self.retrieval is not None
