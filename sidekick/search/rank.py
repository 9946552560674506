# Ranking policy applied to raw vector-search candidates.
# Stateless: threshold cutoff, dedup, deterministic sort, cap.

from __future__ import annotations
from typing import Dict, Iterable, List, Tuple
from .types import RetrievedChunk


def rank_chunks(
    candidates: Iterable[RetrievedChunk],
    threshold: float,
    limit: int,
) -> List[RetrievedChunk]:
    # Drop anything under the threshold; keep the best score per (document, ordinal)
    best: Dict[Tuple[str, int], RetrievedChunk] = {}
    for c in candidates:
        if c.similarity < threshold:
            continue
        seen = best.get(c.key)
        if seen is None or c.similarity > seen.similarity:
            best[c.key] = c

    ranked = sorted(best.values(), key=lambda c: (-c.similarity, c.document_id, c.ordinal))
    return ranked[:limit]
