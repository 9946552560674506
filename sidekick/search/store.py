# Vector search over the caller's own documents.
#
# Layout written by the ingestion pipeline (not part of this package):
#   <index_dir>/<owner_id>/faiss.index   inner-product index of normalized vectors
#   <index_dir>/<owner_id>/ids.npy       FAISS row -> chunks.id
#   <db_path>                            SQLite table `chunks`
#
# One index per owner keeps results from ever crossing tenant boundaries.

from __future__ import annotations

import asyncio
import logging
import re
import sqlite3
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

import faiss
import numpy as np

from sidekick.logging import get_logger, log_with_context
from .types import RetrievedChunk

CHUNKS_SCHEMA = """
CREATE TABLE IF NOT EXISTS chunks (
    id TEXT PRIMARY KEY,
    owner_id TEXT NOT NULL,
    document_id TEXT NOT NULL,
    document_name TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL
);
"""

_OWNER_ID = re.compile(r"^[0-9A-Za-z_.-]+$")


class FaissChunkStore:
    def __init__(self, db_path: str, index_dir: str, embedder, logger: Optional[logging.Logger] = None):
        self.db_path = db_path
        self.index_dir = Path(index_dir)
        self.embedder = embedder
        self.logger = logger or get_logger(__name__)

    # -------------------------
    # Paths
    # -------------------------
    def _owner_paths(self, owner_id: str) -> Tuple[Path, Path]:
        if not _OWNER_ID.match(owner_id) or owner_id in (".", ".."):
            raise ValueError(f"Invalid owner id {owner_id!r}")
        owner_dir = self.index_dir / owner_id
        return owner_dir / "faiss.index", owner_dir / "ids.npy"

    # -------------------------
    # Public API
    # -------------------------
    async def search(self, query: str, owner_id: str, limit: int) -> List[RetrievedChunk]:
        index_path, ids_path = self._owner_paths(owner_id)
        if not index_path.exists() or not ids_path.exists():
            log_with_context(self.logger, logging.INFO, "search.no_index", owner_id=owner_id)
            return []

        qvec = await self.embedder.embed(query)
        # FAISS and sqlite are blocking; keep them off the event loop
        return await asyncio.to_thread(self._search_sync, qvec, owner_id, index_path, ids_path, limit)

    # -------------------------
    # Blocking helpers
    # -------------------------
    def _search_sync(
        self,
        qvec: np.ndarray,
        owner_id: str,
        index_path: Path,
        ids_path: Path,
        limit: int,
    ) -> List[RetrievedChunk]:
        index = faiss.read_index(index_path.as_posix())
        ids = np.load(ids_path.as_posix()).astype(str).tolist()
        if index.ntotal != len(ids):
            raise RuntimeError(f"Index size ({index.ntotal}) != ids count ({len(ids)}) for owner {owner_id}")
        if qvec.shape[0] != index.d:
            raise ValueError(f"Query dim {qvec.shape[0]} != index dim {index.d}")

        k = min(limit, index.ntotal)
        if k <= 0:
            return []
        D, I = index.search(qvec.reshape(1, -1).astype("float32"), k)

        scores = {}
        for row_idx, sim in zip(I[0].tolist(), D[0].tolist()):
            if 0 <= row_idx < len(ids):
                # inner product of unit vectors is in [-1, 1]
                scores[ids[row_idx]] = min(1.0, max(0.0, float(sim)))

        rows = self._fetch_chunks(owner_id, list(scores))
        log_with_context(self.logger, logging.DEBUG, "search.hits", owner_id=owner_id, hits=len(scores), rows=len(rows))
        return [
            RetrievedChunk(
                chunk_id=chunk_id,
                document_id=document_id,
                document_name=document_name,
                ordinal=int(chunk_index),
                text=content,
                similarity=scores[chunk_id],
            )
            for (chunk_id, document_id, document_name, chunk_index, content) in rows
        ]

    def _fetch_chunks(self, owner_id: str, chunk_ids: Sequence[str]) -> list:
        if not chunk_ids:
            return []
        placeholders = ",".join("?" for _ in chunk_ids)
        sql = f"""
        SELECT id, document_id, document_name, chunk_index, content
        FROM chunks
        WHERE owner_id = ? AND id IN ({placeholders});
        """
        conn = sqlite3.connect(self.db_path)
        try:
            return conn.execute(sql, (owner_id, *chunk_ids)).fetchall()
        finally:
            conn.close()
