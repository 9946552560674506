# Retrieval engine: delegates nearest-neighbour search to a VectorSearch
# collaborator and owns the threshold / dedup / ranking policy on top of it.

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from sidekick.agents.types import RetrievalPolicy
from sidekick.errors import RetrievalUnavailable
from sidekick.logging import get_logger, log_with_context
from .rank import rank_chunks
from .types import RetrievedChunk


class VectorSearch(Protocol):
    async def search(self, query: str, owner_id: str, limit: int) -> List[RetrievedChunk]:
        ...


class Retriever:
    def __init__(
        self,
        backend: VectorSearch,
        candidate_factor: int = 2,
        logger: Optional[logging.Logger] = None,
    ):
        self.backend = backend
        self.candidate_factor = candidate_factor
        self.logger = logger or get_logger(__name__)

    async def retrieve(self, query: str, owner_id: str, policy: RetrievalPolicy) -> List[RetrievedChunk]:
        """
        Return at most ``policy.result_limit`` chunks scoring at or above
        ``policy.similarity_threshold``, best first.

        Raises RetrievalUnavailable if the backend fails (timeouts included).
        An empty list is a normal outcome.
        """
        # over-fetch so threshold filtering and dedup still leave a full page
        want = policy.result_limit * self.candidate_factor
        try:
            candidates = await self.backend.search(query, owner_id, want)
        except Exception as e:
            log_with_context(
                self.logger, logging.WARNING, "retrieval.unavailable",
                owner_id=owner_id, error=type(e).__name__,
            )
            raise RetrievalUnavailable(f"Vector search failed: {type(e).__name__}") from e

        ranked = rank_chunks(candidates, policy.similarity_threshold, policy.result_limit)
        log_with_context(
            self.logger, logging.INFO, "retrieval.done",
            owner_id=owner_id,
            candidates=len(candidates),
            kept=len(ranked),
            threshold=policy.similarity_threshold,
        )
        return ranked
