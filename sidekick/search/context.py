# Turns ranked chunks into a token-bounded, cited context block.

from __future__ import annotations

import logging
import math
from typing import List, Optional, Sequence

from sidekick.logging import get_logger, log_with_context
from .types import ContextBlock, RetrievedChunk

CONTEXT_HEADER = "## Relevant Information from Documents"
NO_CONTEXT_MESSAGE = "No relevant documents found in your knowledge base."
NO_CONTEXT_BLOCK = f"{CONTEXT_HEADER}\n\n{NO_CONTEXT_MESSAGE}"

_logger = get_logger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token count (~4 chars per token), rounded up."""
    return math.ceil(len(text) / 4)


def render_chunk(chunk: RetrievedChunk) -> str:
    relevance = round(chunk.similarity * 100)
    return f'### From "{chunk.document_name}" (relevance: {relevance}%)\n{chunk.text}'


def _no_context_text(max_context_tokens: int) -> str:
    # largest form that fits; "" when even the bare message does not
    for text in (NO_CONTEXT_BLOCK, NO_CONTEXT_MESSAGE):
        if estimate_tokens(text) <= max_context_tokens:
            return text
    return ""


def budget_context(
    chunks: Sequence[RetrievedChunk],
    max_context_tokens: int,
    logger: Optional[logging.Logger] = None,
) -> ContextBlock:
    """
    Render chunks in the order given until the next one would push the
    estimated size past ``max_context_tokens``. Chunks are never cut mid-text.
    When nothing fits, returns the "no relevant documents" notice in the
    largest form the budget allows (possibly empty text).
    """
    logger = logger or _logger
    parts: List[str] = [CONTEXT_HEADER]
    used = estimate_tokens(CONTEXT_HEADER)
    sources: List[str] = []
    included = 0

    for chunk in chunks:
        section = render_chunk(chunk)
        # sections are joined with a blank line
        cost = estimate_tokens("\n\n" + section)
        if used + cost > max_context_tokens:
            break
        parts.append(section)
        used += cost
        included += 1
        if chunk.document_name not in sources:
            sources.append(chunk.document_name)

    if chunks and included < len(chunks):
        log_with_context(
            logger,
            logging.WARNING if included == 0 else logging.INFO,
            "context.truncated",
            included=included,
            total=len(chunks),
            max_tokens=max_context_tokens,
        )

    if included == 0:
        return ContextBlock(text=_no_context_text(max_context_tokens), included=0, total=len(chunks))

    return ContextBlock(text="\n\n".join(parts), included=included, total=len(chunks), sources=sources)
