# Makes the folder importable as a package.
# Exports the retrieval engine, budgeter and chunk types for convenience.

from .context import budget_context, estimate_tokens, NO_CONTEXT_BLOCK
from .retriever import Retriever, VectorSearch
from .types import RetrievedChunk, ContextBlock, clamp_search_options

__all__ = [
    "Retriever",
    "VectorSearch",
    "RetrievedChunk",
    "ContextBlock",
    "budget_context",
    "estimate_tokens",
    "clamp_search_options",
    "NO_CONTEXT_BLOCK",
]
