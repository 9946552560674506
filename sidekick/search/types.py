# Data models for the search layer: what retrieval returns and what the
# budgeter hands to the prompt composer.

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class RetrievedChunk:
    """A scored excerpt of one of the caller's documents."""
    document_id: str
    document_name: str
    text: str
    similarity: float
    ordinal: int = 0
    chunk_id: Optional[str] = None

    @property
    def key(self) -> Tuple[str, int]:
        return (self.document_id, self.ordinal)


@dataclass
class ContextBlock:
    """Retrieved context rendered for the prompt."""
    text: str
    included: int
    total: int
    sources: List[str] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return self.included == 0


# Bounds for ad-hoc document search requests.
MAX_SEARCH_LIMIT = 20
MIN_SEARCH_THRESHOLD = 0.3
MAX_SEARCH_THRESHOLD = 0.95


def clamp_search_options(limit: int, threshold: float) -> Tuple[int, float]:
    """Keep caller-supplied search options inside sane bounds."""
    limit = max(1, min(int(limit), MAX_SEARCH_LIMIT))
    threshold = max(MIN_SEARCH_THRESHOLD, min(float(threshold), MAX_SEARCH_THRESHOLD))
    return limit, threshold
